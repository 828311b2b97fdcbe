from __future__ import annotations
import logging

from backlink_hunter.agent.context import ToolContext
from backlink_hunter.agent.tools import EnrichContactsInput
from backlink_hunter.services.enrichment import enrich_prospect

log = logging.getLogger("handlers")


async def enrich_contacts(inp: EnrichContactsInput, ctx: ToolContext) -> dict:
    """Contact lookup per prospect, one at a time. A failing prospect is reported, never raised."""
    results = []
    for pid in inp.prospect_ids:
        prospect = await ctx.store.get_prospect(pid, ctx.org_id)
        if not prospect:
            results.append({"prospect_id": pid, "error": "Prospect not found"})
            continue
        try:
            patch = await enrich_prospect(prospect, ctx.services.contacts)
            await ctx.store.update_prospect(pid, ctx.org_id, **patch)
        except Exception as e:
            log.warning("enrich failed prospect=%s domain=%s: %s", pid, prospect.prospect_domain, e)
            results.append({"prospect_id": pid, "domain": prospect.prospect_domain, "error": str(e) or "Enrichment failed"})
            continue
        results.append({
            "prospect_id": pid,
            "domain": prospect.prospect_domain,
            "contact_found": bool(patch.get("contact_email")),
            "contact_email": patch.get("contact_email"),
            "contact_name": patch.get("contact_name"),
        })

    found = sum(1 for r in results if r.get("contact_found"))
    return {
        "total": len(results),
        "contacts_found": found,
        "contacts_missing": len(results) - found,
        "results": results,
    }
