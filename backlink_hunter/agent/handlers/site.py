from __future__ import annotations

from backlink_hunter.agent.context import ToolContext
from backlink_hunter.agent.handlers import PROJECT_NOT_FOUND
from backlink_hunter.agent.tools import ProjectInput


async def analyse_site(inp: ProjectInput, ctx: ToolContext) -> dict:
    project_id = inp.project_id or ctx.project_id
    project = await ctx.store.get_project(project_id, ctx.org_id)
    if not project:
        return dict(PROJECT_NOT_FOUND)
    analysis = await ctx.services.site_analyzer.analyse(project.target_url)
    return {"project_id": project_id, "analysis": analysis.model_dump(mode="json")}


async def check_existing_backlinks(inp: ProjectInput, ctx: ToolContext) -> dict:
    project_id = inp.project_id or ctx.project_id
    project = await ctx.store.get_project(project_id, ctx.org_id)
    if not project:
        return dict(PROJECT_NOT_FOUND)
    backlinks = await ctx.store.list_existing_backlinks(project_id, ctx.org_id)
    return {
        "project_id": project_id,
        "count": len(backlinks),
        "domains": [
            {"domain": b.linking_domain, "url": b.linking_url, "dr": b.domain_rating}
            for b in backlinks
        ],
    }
