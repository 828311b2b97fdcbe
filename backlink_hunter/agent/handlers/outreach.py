from __future__ import annotations
import logging

from backlink_hunter.agent.context import ToolContext
from backlink_hunter.agent.handlers import PROJECT_NOT_FOUND, PROSPECT_NOT_FOUND
from backlink_hunter.agent.tools import GenerateBulkEmailsInput, GenerateOutreachEmailInput
from backlink_hunter.schema import OutreachEmail, ProspectStatus

log = logging.getLogger("handlers")

PREVIEW_CHARS = 200
ADVANCES_TO_DRAFTED = {ProspectStatus.identified, ProspectStatus.enriched}


async def generate_outreach_email(inp: GenerateOutreachEmailInput, ctx: ToolContext) -> dict:
    prospect = await ctx.store.get_prospect(inp.prospect_id, ctx.org_id)
    if not prospect:
        return dict(PROSPECT_NOT_FOUND)
    project = await ctx.store.get_project(prospect.project_id, ctx.org_id)
    if not project:
        return dict(PROJECT_NOT_FOUND)

    draft = await ctx.services.writer.draft(
        prospect, project,
        tone=inp.tone,
        is_followup=inp.is_followup,
        custom_value_prop=inp.custom_value_prop,
    )
    email = await ctx.store.create_outreach_email(OutreachEmail(
        prospect_id=prospect.id,
        project_id=prospect.project_id,
        org_id=ctx.org_id,
        subject=draft.subject,
        body_text=draft.body_text,
        body_html=draft.body_html,
        status="draft",
        ai_generated=True,
        is_followup=inp.is_followup,
        followup_number=inp.followup_number,
    ))

    if prospect.status in ADVANCES_TO_DRAFTED:
        await ctx.store.update_prospect(prospect.id, ctx.org_id, status=ProspectStatus.outreach_drafted)

    return {
        "email_id": email.id,
        "prospect_id": prospect.id,
        "subject": email.subject,
        "body_preview": email.body_text[:PREVIEW_CHARS],
    }


async def generate_bulk_emails(inp: GenerateBulkEmailsInput, ctx: ToolContext) -> dict:
    results = []
    for pid in inp.prospect_ids:
        single = GenerateOutreachEmailInput(prospect_id=pid, tone=inp.tone, is_followup=inp.is_followup)
        try:
            res = await generate_outreach_email(single, ctx)
        except Exception as e:
            log.warning("bulk draft failed prospect=%s: %s", pid, e)
            res = {"error": str(e) or "Draft generation failed"}
        if "error" in res:
            res = {"prospect_id": pid, **res}
        results.append(res)

    drafted = sum(1 for r in results if "error" not in r)
    return {
        "total": len(results),
        "drafted": drafted,
        "failed": len(results) - drafted,
        "results": results,
    }
