# backlink_hunter/tools/llm.py
from __future__ import annotations
import re, json, time, uuid, asyncio, logging, requests
from typing import Any, Dict, List, Optional
from backlink_hunter.config import get_settings
from backlink_hunter.schema import ModelResponse, TextBlock, ToolUseBlock

log = logging.getLogger("llm")

# Strip Ollama <think> blocks just in case
_THINK_BLOCK = re.compile(r"<\s*think\s*>.*?<\s*/\s*think\s*>", re.I | re.S)
_JSON_OBJECT = re.compile(r"\{.*\}", re.S)

class LLMNotReady(RuntimeError): ...

def _clean(t: str) -> str:
    return _THINK_BLOCK.sub("", t or "").strip()

def _post(path: str, payload: dict, timeout: Optional[int] = None):
    s = get_settings()
    payload = dict(payload or {})
    payload.setdefault("think", s.ollama_think)
    url = f"{s.ollama_base}{path}"
    r = requests.post(url, json=payload, timeout=timeout or s.llm_timeout)
    r.raise_for_status()
    return r.json()

def ollama_generate(prompt: str, system: str = "", temperature: float = 0.3) -> str:
    s = get_settings()
    try:
        t0 = time.time()
        data = _post("/api/generate", {
            "model": s.ollama_model,
            "prompt": prompt,
            "options": {"temperature": temperature},
            "system": system,
            "stream": False
        })
    except Exception as e:
        log.warning("ollama_generate failed: %s", e)
        raise LLMNotReady(f"Ollama text model not ready: {e}")
    resp = _clean(data.get("response") or "")
    if not resp:
        raise LLMNotReady("Empty response from LLM.")
    log.info("LLM generate chars=%d latency=%.2fs", len(resp), time.time() - t0)
    return resp

def parse_json_object(text: str) -> Dict[str, Any]:
    """First {...} span of a model reply as a dict. Raises LLMNotReady when none parses."""
    m = _JSON_OBJECT.search(_clean(text))
    if not m:
        raise LLMNotReady("LLM reply contained no JSON object.")
    try:
        data = json.loads(m.group(0))
    except json.JSONDecodeError as e:
        raise LLMNotReady(f"LLM reply was not valid JSON: {e}")
    if not isinstance(data, dict):
        raise LLMNotReady("LLM reply JSON was not an object.")
    return data

# ---------- Chat with tools ----------

def to_ollama_tools(tool_specs: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """{name, description, input_schema} -> Ollama function tools."""
    return [
        {
            "type": "function",
            "function": {
                "name": t["name"],
                "description": t.get("description", ""),
                "parameters": t.get("input_schema") or {"type": "object", "properties": {}},
            },
        }
        for t in tool_specs
    ]

def to_ollama_messages(system: str, messages: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """
    Flattens block-structured turns into Ollama chat messages.
      • assistant tool_use blocks -> tool_calls
      • user tool_result blocks   -> role "tool" messages (named after the call)
    """
    out: List[Dict[str, Any]] = []
    if system:
        out.append({"role": "system", "content": system})
    tool_names: Dict[str, str] = {}

    for m in messages:
        role, content = m["role"], m["content"]
        if isinstance(content, str):
            out.append({"role": role, "content": content})
            continue

        texts: List[str] = []
        calls: List[Dict[str, Any]] = []
        for block in content:
            kind = block.get("type")
            if kind == "text":
                texts.append(block.get("text", ""))
            elif kind == "tool_use":
                tool_names[block["id"]] = block["name"]
                calls.append({"function": {"name": block["name"], "arguments": block.get("input") or {}}})
            elif kind == "tool_result":
                out.append({
                    "role": "tool",
                    "content": block.get("content", ""),
                    "tool_name": tool_names.get(block.get("tool_use_id", ""), ""),
                })

        if role == "assistant":
            msg: Dict[str, Any] = {"role": "assistant", "content": "\n".join(texts)}
            if calls:
                msg["tool_calls"] = calls
            out.append(msg)
        elif texts:
            out.append({"role": role, "content": "\n".join(texts)})
    return out

def parse_chat_response(data: Dict[str, Any]) -> ModelResponse:
    msg = data.get("message") if isinstance(data, dict) else None
    if not isinstance(msg, dict):
        raise LLMNotReady("Ollama chat response had no message.")

    blocks: List[Any] = []
    text = _clean(msg.get("content") or "")
    if text:
        blocks.append(TextBlock(text=text))

    for call in msg.get("tool_calls") or []:
        fn = call.get("function") if isinstance(call, dict) else None
        if not isinstance(fn, dict):
            raise LLMNotReady("Tool call had no function.")
        args = fn.get("arguments") or {}
        if isinstance(args, str):
            try:
                args = json.loads(args)
            except json.JSONDecodeError as e:
                raise LLMNotReady(f"Tool call arguments were not JSON: {e}")
        if not isinstance(args, dict):
            raise LLMNotReady(f"Tool call arguments were not an object: {type(args).__name__}")
        name = fn.get("name")
        if not isinstance(name, str) or not name:
            raise LLMNotReady("Tool call had no function name.")
        blocks.append(ToolUseBlock(
            id=str(call.get("id") or f"toolu_{uuid.uuid4().hex[:24]}"),
            name=name,
            input=args,
        ))

    if any(isinstance(b, ToolUseBlock) for b in blocks):
        stop = "tool_use"
    elif data.get("done_reason") == "length":
        stop = "max_tokens"
    else:
        stop = "end_turn"
    return ModelResponse(content=blocks, stop_reason=stop)

class OllamaChatClient:
    """Chat-with-tools model client. Every failure surfaces as LLMNotReady."""

    def __init__(self, model: Optional[str] = None, max_tokens: Optional[int] = None):
        s = get_settings()
        self.model = model or s.ollama_model
        self.max_tokens = max_tokens or s.max_tokens

    def chat(self, system: str, tools: List[Dict[str, Any]], messages: List[Dict[str, Any]]) -> ModelResponse:
        t0 = time.time()
        try:
            data = _post("/api/chat", {
                "model": self.model,
                "messages": to_ollama_messages(system, messages),
                "tools": to_ollama_tools(tools),
                "options": {"temperature": 0.2, "num_predict": self.max_tokens},
                "stream": False,
            })
        except (requests.RequestException, ValueError) as e:
            raise LLMNotReady(f"Ollama chat failed: {e}")
        resp = parse_chat_response(data)
        log.info("LLM chat stop=%s tool_calls=%d latency=%.2fs",
                 resp.stop_reason, len(resp.tool_uses), time.time() - t0)
        return resp

    async def create(self, system: str, tools: List[Dict[str, Any]], messages: List[Dict[str, Any]]) -> ModelResponse:
        return await asyncio.to_thread(self.chat, system, tools, messages)

    async def generate(self, prompt: str, system: str = "", temperature: float = 0.3) -> str:
        return await asyncio.to_thread(ollama_generate, prompt, system, temperature)
