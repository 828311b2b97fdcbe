from __future__ import annotations
import logging
import time
from typing import Any, Awaitable, Callable, Dict

from backlink_hunter.agent.context import AgentServices, ToolContext
from backlink_hunter.agent.handlers import contacts, outreach, pipeline, prospecting, site
from backlink_hunter.agent.tools import TOOL_INPUTS, ToolName

log = logging.getLogger("dispatcher")

Handler = Callable[[Any, ToolContext], Awaitable[Dict[str, Any]]]


class UnknownToolError(KeyError):
    def __init__(self, name: str):
        super().__init__(name)
        self.name = name

    def __str__(self) -> str:
        return f"Unknown tool: {self.name}"


class ToolDispatcher:
    """Routes a named tool call with a raw input map to its typed handler."""

    def __init__(self, services: AgentServices, handlers: Dict[ToolName, Handler] | None = None):
        self.services = services
        self.handlers: Dict[ToolName, Handler] = handlers or {
            ToolName.analyse_site: site.analyse_site,
            ToolName.check_existing_backlinks: site.check_existing_backlinks,
            ToolName.run_discovery: prospecting.run_discovery,
            ToolName.import_prospects: prospecting.import_prospects,
            ToolName.validate_import: prospecting.validate_import,
            ToolName.confirm_import: prospecting.confirm_import,
            ToolName.enrich_contacts: contacts.enrich_contacts,
            ToolName.generate_outreach_email: outreach.generate_outreach_email,
            ToolName.generate_bulk_emails: outreach.generate_bulk_emails,
            ToolName.get_pipeline_summary: pipeline.get_pipeline_summary,
            ToolName.get_prospects_needing_attention: pipeline.get_prospects_needing_attention,
            ToolName.update_prospect_status: pipeline.update_prospect_status,
            ToolName.check_link_live: pipeline.check_link_live,
        }
        missing = set(ToolName) - set(self.handlers)
        extra = set(self.handlers) - set(ToolName)
        if missing or extra:
            raise ValueError(
                f"tool table mismatch: missing={sorted(t.value for t in missing)} "
                f"extra={sorted(str(t) for t in extra)}"
            )

    async def execute(self, tool_name: str, raw_input: Dict[str, Any], project_id: str, org_id: str) -> Dict[str, Any]:
        try:
            name = ToolName(tool_name)
        except ValueError:
            raise UnknownToolError(tool_name) from None

        # pydantic.ValidationError propagates; the caller reports it as a failed call
        inp = TOOL_INPUTS[name].model_validate(raw_input or {})
        ctx = ToolContext(project_id=project_id, org_id=org_id, services=self.services)

        t0 = time.time()
        log.info("tool start name=%s project=%s", name.value, project_id)
        result = await self.handlers[name](inp, ctx)
        log.info("tool done name=%s error=%s latency=%.2fs",
                 name.value, "error" in result, time.time() - t0)
        return result
