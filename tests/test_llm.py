# file: tests/test_llm.py
from unittest.mock import patch

import pytest
import requests

from backlink_hunter.schema import TextBlock, ToolUseBlock
from backlink_hunter.tools.llm import (
    LLMNotReady, OllamaChatClient, parse_chat_response, parse_json_object, to_ollama_messages, to_ollama_tools,
)


def test_to_ollama_messages_maps_tool_blocks():
    convo = [
        {"role": "user", "content": "Check my pipeline"},
        {"role": "assistant", "content": [
            {"type": "text", "text": "On it."},
            {"type": "tool_use", "id": "t1", "name": "get_pipeline_summary", "input": {}},
        ]},
        {"role": "user", "content": [
            {"type": "tool_result", "tool_use_id": "t1", "content": '{"total_prospects": 0}', "is_error": False},
        ]},
    ]
    out = to_ollama_messages("sys", convo)

    assert out[0] == {"role": "system", "content": "sys"}
    assert out[1] == {"role": "user", "content": "Check my pipeline"}
    assert out[2]["tool_calls"] == [{"function": {"name": "get_pipeline_summary", "arguments": {}}}]
    assert out[2]["content"] == "On it."
    assert out[3] == {"role": "tool", "content": '{"total_prospects": 0}', "tool_name": "get_pipeline_summary"}
    assert len(out) == 4


def test_to_ollama_tools_wraps_schema():
    tools = to_ollama_tools([{"name": "x", "description": "d", "input_schema": {"type": "object"}}])
    assert tools == [{"type": "function", "function": {"name": "x", "description": "d",
                                                        "parameters": {"type": "object"}}}]


def test_parse_chat_response_tool_calls():
    resp = parse_chat_response({"message": {
        "content": "<think>hmm</think>Let me look.",
        "tool_calls": [{"function": {"name": "check_link_live", "arguments": '{"prospect_id": "p1"}'}}],
    }})
    assert resp.stop_reason == "tool_use"
    assert isinstance(resp.content[0], TextBlock) and resp.content[0].text == "Let me look."
    call = resp.content[1]
    assert isinstance(call, ToolUseBlock)
    assert call.id.startswith("toolu_")
    assert call.input == {"prospect_id": "p1"}


def test_parse_chat_response_stop_reasons():
    assert parse_chat_response({"message": {"content": "done"}}).stop_reason == "end_turn"
    assert parse_chat_response({"message": {"content": "cut"}, "done_reason": "length"}).stop_reason == "max_tokens"
    with pytest.raises(LLMNotReady):
        parse_chat_response({"error": "model not found"})


@pytest.mark.parametrize("arguments", ["null", "[1]", "3", '"text"'])
def test_parse_chat_response_rejects_non_object_arguments(arguments):
    with pytest.raises(LLMNotReady):
        parse_chat_response({"message": {"tool_calls": [
            {"function": {"name": "get_pipeline_summary", "arguments": arguments}},
        ]}})


def test_parse_chat_response_rejects_nameless_calls():
    with pytest.raises(LLMNotReady):
        parse_chat_response({"message": {"tool_calls": [{"function": {"arguments": {}}}]}})
    with pytest.raises(LLMNotReady):
        parse_chat_response({"message": {"tool_calls": [{"function": {"name": 7, "arguments": {}}}]}})
    with pytest.raises(LLMNotReady):
        parse_chat_response({"message": {"tool_calls": ["get_pipeline_summary"]}})


def test_parse_json_object():
    assert parse_json_object('Here you go: {"subject": "Hi", "body_text": "x"} thanks') == {"subject": "Hi", "body_text": "x"}
    with pytest.raises(LLMNotReady):
        parse_json_object("no json here")
    with pytest.raises(LLMNotReady):
        parse_json_object("{not: valid}")


def test_chat_transport_failure_is_llm_not_ready():
    client = OllamaChatClient(model="m", max_tokens=10)
    with patch("backlink_hunter.tools.llm.requests.post", side_effect=requests.ConnectionError("refused")):
        with pytest.raises(LLMNotReady):
            client.chat("sys", [], [{"role": "user", "content": "hi"}])
