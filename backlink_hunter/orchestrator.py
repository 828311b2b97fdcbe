# file: backlink_hunter/orchestrator.py
import asyncio
import json
import logging
import uuid
from typing import Any, Dict, List, Optional

from backlink_hunter.agent.context import AgentServices
from backlink_hunter.agent.dispatcher import ToolDispatcher
from backlink_hunter.agent.prompt import system_prompt
from backlink_hunter.agent.tools import TOOL_SPECS
from backlink_hunter.schema import (
    ChatMessage, ChatResponse, Identity, ToolCallSummary, ToolInvocation, ToolResultBlock,
)
from backlink_hunter.tools.llm import LLMNotReady

log = logging.getLogger("orchestrator")

APOLOGY = "Sorry, I couldn't complete that request. Please try again."


class InvalidChatRequest(ValueError):
    pass


class ProjectNotFound(LookupError):
    pass


def _is_uuid(value: str) -> bool:
    try:
        uuid.UUID(str(value))
    except ValueError:
        return False
    return True


def _plain_text(content: Any) -> str:
    if isinstance(content, str):
        return content
    return "\n".join(b.get("text", "") for b in content if isinstance(b, dict) and b.get("type") == "text")


class AgentOrchestrator:
    """
    Runs one agent turn for a chat request: model call, tool execution,
    feed results back, repeat until the model stops or the turn budget
    is spent. Persists the user message and exactly one assistant message.
    """

    def __init__(self, services: AgentServices, dispatcher: Optional[ToolDispatcher] = None):
        self.services = services
        self.dispatcher = dispatcher or ToolDispatcher(services)
        self.max_turns = services.settings.max_turns

    async def validate(self, project_id: str, identity: Identity, messages: List[ChatMessage]) -> None:
        if not messages:
            raise InvalidChatRequest("messages must not be empty")
        if not _is_uuid(project_id):
            raise InvalidChatRequest("project_id must be a UUID")
        if messages[-1].role != "user":
            raise InvalidChatRequest("last message must be from the user")
        project = await self.services.store.get_project(project_id, identity.org_id)
        if not project:
            raise ProjectNotFound(f"Project {project_id} not found")

    async def _run_tool(self, block, project_id: str, org_id: str) -> tuple:
        try:
            result = await self.dispatcher.execute(block.name, block.input, project_id, org_id)
        except Exception as e:
            log.warning("tool %s failed: %s", block.name, e)
            err = str(e) or e.__class__.__name__
            record = ToolInvocation(tool=block.name, input=block.input, error=err, success=False)
            return record, ToolResultBlock(tool_use_id=block.id, content=json.dumps({"error": err}), is_error=True)

        success = not (isinstance(result, dict) and "error" in result)
        record = ToolInvocation(tool=block.name, input=block.input, result=result, success=success)
        return record, ToolResultBlock(tool_use_id=block.id, content=json.dumps(result, default=str))

    async def run(self, project_id: str, identity: Identity, messages: List[ChatMessage],
                  cancel: Optional[asyncio.Event] = None) -> ChatResponse:
        await self.validate(project_id, identity, messages)
        store = self.services.store

        await store.create_agent_message(
            project_id=project_id, user_id=identity.user_id,
            role="user", content=_plain_text(messages[-1].content),
        )

        convo: List[Dict[str, Any]] = [m.model_dump() for m in messages]
        system = system_prompt(project_id)
        records: List[ToolInvocation] = []
        final_text = ""

        for turn in range(1, self.max_turns + 1):
            if cancel is not None and cancel.is_set():
                log.info("run cancelled project=%s turn=%d", project_id, turn)
                break
            try:
                resp = await self.services.llm.create(system, TOOL_SPECS, convo)
            except LLMNotReady as e:
                log.warning("model call failed project=%s turn=%d: %s", project_id, turn, e)
                break

            convo.append({"role": "assistant", "content": [b.model_dump() for b in resp.content]})
            if resp.text:
                final_text = resp.text

            tool_uses = resp.tool_uses
            if resp.stop_reason != "tool_use" or not tool_uses:
                log.info("run finished project=%s turns=%d stop=%s", project_id, turn, resp.stop_reason)
                break

            results = []
            for block in tool_uses:
                record, result = await self._run_tool(block, project_id, identity.org_id)
                records.append(record)
                results.append(result.model_dump())
            convo.append({"role": "user", "content": results})
        else:
            log.warning("turn budget exhausted project=%s max_turns=%d", project_id, self.max_turns)

        message = final_text or APOLOGY
        await store.create_agent_message(
            project_id=project_id, user_id=identity.user_id,
            role="assistant", content=message, tool_calls=records or None,
        )
        return ChatResponse(
            message=message,
            tool_calls=[ToolCallSummary(tool=r.tool, success=r.success) for r in records],
        )
