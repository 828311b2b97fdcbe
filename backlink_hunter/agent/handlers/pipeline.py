from __future__ import annotations
import logging
import math
from datetime import timedelta

from backlink_hunter.agent.context import ToolContext
from backlink_hunter.agent.handlers import PROJECT_NOT_FOUND, PROSPECT_NOT_FOUND, iso
from backlink_hunter.agent.tools import ProjectInput, ProspectInput, UpdateProspectStatusInput
from backlink_hunter.schema import ProspectStatus, TERMINAL_STATUSES, is_pipeline_transition, utcnow
from backlink_hunter.services.link_verification import verify_link

log = logging.getLogger("handlers")

CONTACTED_OR_LATER = {
    ProspectStatus.contacted, ProspectStatus.followed_up, ProspectStatus.won, ProspectStatus.lost,
}
STAMPS_LAST_CONTACT = {ProspectStatus.contacted, ProspectStatus.followed_up}
STALE_AFTER = timedelta(days=14)
FOLLOWUP_AFTER = timedelta(days=7)


def _percent(part: int, whole: int) -> int:
    return int(math.floor(part / whole * 100 + 0.5)) if whole else 0


async def get_pipeline_summary(inp: ProjectInput, ctx: ToolContext) -> dict:
    project_id = inp.project_id or ctx.project_id
    if not await ctx.store.get_project(project_id, ctx.org_id):
        return dict(PROJECT_NOT_FOUND)
    prospects = await ctx.store.list_prospects(project_id, ctx.org_id)

    stages = {}
    contacted = replied = won = 0
    for p in prospects:
        stages[p.status.value] = stages.get(p.status.value, 0) + 1
        if p.status not in CONTACTED_OR_LATER:
            continue
        contacted += 1
        if p.status == ProspectStatus.won:
            won += 1
        emails = await ctx.store.list_outreach_emails(p.id, ctx.org_id)
        if any(e.replied_at for e in emails):
            replied += 1

    return {
        "project_id": project_id,
        "total_prospects": len(prospects),
        "stages": stages,
        "reply_rate": _percent(replied, contacted),
        "win_rate": _percent(won, contacted),
    }


async def get_prospects_needing_attention(inp: ProjectInput, ctx: ToolContext) -> dict:
    project_id = inp.project_id or ctx.project_id
    if not await ctx.store.get_project(project_id, ctx.org_id):
        return dict(PROJECT_NOT_FOUND)
    prospects = await ctx.store.list_prospects(project_id, ctx.org_id)
    now = utcnow()

    no_contact = [
        p for p in prospects
        if p.status == ProspectStatus.needs_manual_enrichment
        or (p.status in (ProspectStatus.identified, ProspectStatus.enriched) and not p.contact_email)
    ]
    stale = [p for p in prospects if p.status not in TERMINAL_STATUSES and now - p.updated_at > STALE_AFTER]
    followups_due = [
        p for p in prospects
        if p.status == ProspectStatus.contacted and p.last_contacted_at
        and now - p.last_contacted_at > FOLLOWUP_AFTER
    ]
    dead_links = [p for p in prospects if p.status == ProspectStatus.won and p.link_live is False]

    return {
        "no_contact": [{"id": p.id, "domain": p.prospect_domain, "status": p.status.value} for p in no_contact],
        "stale": [
            {"id": p.id, "domain": p.prospect_domain, "status": p.status.value,
             "days_since_update": (now - p.updated_at).days}
            for p in stale
        ],
        "followups_due": [
            {"id": p.id, "domain": p.prospect_domain, "days_since_contact": (now - p.last_contacted_at).days}
            for p in followups_due
        ],
        "dead_links": [
            {"id": p.id, "domain": p.prospect_domain, "link_url": p.link_url, "lost_at": iso(p.link_lost_at)}
            for p in dead_links
        ],
        "summary": {
            "no_contact": len(no_contact),
            "stale": len(stale),
            "followups_due": len(followups_due),
            "dead_links": len(dead_links),
        },
    }


async def update_prospect_status(inp: UpdateProspectStatusInput, ctx: ToolContext) -> dict:
    prospect = await ctx.store.get_prospect(inp.prospect_id, ctx.org_id)
    if not prospect:
        return dict(PROSPECT_NOT_FOUND)

    if not is_pipeline_transition(prospect.status, inp.status):
        log.warning("prospect=%s off-pipeline transition %s -> %s",
                    prospect.id, prospect.status.value, inp.status.value)

    patch = {"status": inp.status}
    if inp.notes:
        patch["notes"] = inp.notes
    if inp.status in STAMPS_LAST_CONTACT:
        patch["last_contacted_at"] = utcnow()
    await ctx.store.update_prospect(prospect.id, ctx.org_id, **patch)

    return {
        "prospect_id": prospect.id,
        "domain": prospect.prospect_domain,
        "old_status": prospect.status.value,
        "new_status": inp.status.value,
    }


async def check_link_live(inp: ProspectInput, ctx: ToolContext) -> dict:
    prospect = await ctx.store.get_prospect(inp.prospect_id, ctx.org_id)
    if not prospect:
        return dict(PROSPECT_NOT_FOUND)
    project = await ctx.store.get_project(prospect.project_id, ctx.org_id)
    if not project:
        return dict(PROJECT_NOT_FOUND)

    result = await verify_link(prospect, project.target_url)
    await ctx.store.update_prospect(
        prospect.id, ctx.org_id,
        link_live=result.link_live,
        link_url=result.link_url,
        link_verified_at=result.verified_at,
        link_lost_at=result.lost_at,
        status=ProspectStatus.verification_error if result.error else prospect.status,
    )
    out = {
        "prospect_id": prospect.id,
        "domain": prospect.prospect_domain,
        "link_live": result.link_live,
        "link_url": result.link_url,
        "verified_at": iso(result.verified_at),
    }
    if result.error:
        out["error"] = result.error
    return out
