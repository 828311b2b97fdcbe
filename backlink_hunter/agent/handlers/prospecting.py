"""
Discovery and import handlers.

run_discovery / validate_import only snapshot candidates into an Import Job.
import_prospects / confirm_import are the sole writers of prospects, and only
for URLs present in a complete, unconsumed job of the matching entry method.
"""
from __future__ import annotations
import logging
from typing import Any, Dict, List, Optional, Tuple

from backlink_hunter.agent.context import ToolContext
from backlink_hunter.agent.handlers import PROJECT_NOT_FOUND
from backlink_hunter.agent.tools import (
    AGENT_OPPORTUNITY_TYPES, ConfirmImportInput, ImportProspectsInput,
    RunDiscoveryInput, ValidateImportInput,
)
from backlink_hunter.schema import (
    DiscoveryRequest, EntryMethod, ImportJob, ImportJobStatus, OpportunityType,
    ProspectDraft, ValidationBucket, ValidationThresholds, utcnow,
)
from backlink_hunter.services.discovery import discover_opportunities
from backlink_hunter.services.import_validation import validate_import_urls
from backlink_hunter.services.quota import check_prospect_quota

log = logging.getLogger("handlers")

DEFAULT_TYPES = [OpportunityType.resource_link, OpportunityType.guest_post]
IMPORT_THRESHOLDS = ValidationThresholds(min_da=10, min_relevance=30, max_spam_score=30)


def _bucket_counts(results) -> Tuple[int, int, int]:
    return (
        sum(r.bucket == ValidationBucket.passed for r in results),
        sum(r.bucket == ValidationBucket.review for r in results),
        sum(r.bucket == ValidationBucket.fail for r in results),
    )


async def run_discovery(inp: RunDiscoveryInput, ctx: ToolContext) -> dict:
    project_id = inp.project_id or ctx.project_id
    project = await ctx.store.get_project(project_id, ctx.org_id)
    if not project:
        return dict(PROJECT_NOT_FOUND)

    types = [AGENT_OPPORTUNITY_TYPES[t] for t in inp.opportunity_types] or DEFAULT_TYPES
    req = DiscoveryRequest(
        project_id=project_id,
        seed_keywords=inp.keywords,
        seed_url=inp.competitor_url,
        opportunity_types=types,
        limit=inp.limit,
    )

    job = await ctx.store.create_import_job(
        project_id, ctx.org_id,
        entry_method=EntryMethod.discovery,
        total_submitted=0,
        input_payload={"keywords": inp.keywords, "competitor_url": inp.competitor_url,
                       "opportunity_types": [t.value for t in types], "limit": inp.limit},
    )
    await ctx.store.update_import_job(job.id, ctx.org_id, status=ImportJobStatus.running)

    try:
        found = await discover_opportunities(
            req, ctx.org_id, project.target_keywords,
            store=ctx.store, search=ctx.services.search, metrics=ctx.services.metrics,
            settings=ctx.services.settings,
        )
    except Exception as e:
        log.warning("run_discovery job=%s failed: %s", job.id, e)
        await ctx.store.update_import_job(
            job.id, ctx.org_id, status=ImportJobStatus.complete, completed_at=utcnow(),
            results_payload={"opportunities": [], "error": str(e)},
        )
        raise

    await ctx.store.update_import_job(
        job.id, ctx.org_id,
        status=ImportJobStatus.complete,
        total_submitted=len(found),
        total_passed=len(found),
        results_payload={"opportunities": [c.model_dump(mode="json") for c in found]},
        completed_at=utcnow(),
    )
    log.info("run_discovery job=%s project=%s total=%d", job.id, project_id, len(found))
    return {
        "job_id": job.id,
        "total": len(found),
        "opportunities": [
            {
                "url": c.url,
                "domain": c.domain,
                "title": c.title,
                "type": c.opportunity_type.value,
                "da": c.domain_rating,
                "linkability_score": c.linkability_score,
                "relevance_score": c.relevance_score,
            }
            for c in found
        ],
    }


async def validate_import(inp: ValidateImportInput, ctx: ToolContext) -> dict:
    project_id = inp.project_id or ctx.project_id
    project = await ctx.store.get_project(project_id, ctx.org_id)
    if not project:
        return dict(PROJECT_NOT_FOUND)

    job = await ctx.store.create_import_job(
        project_id, ctx.org_id,
        entry_method=EntryMethod.import_,
        total_submitted=len(inp.urls),
        input_payload={"urls": inp.urls},
    )
    await ctx.store.update_import_job(job.id, ctx.org_id, status=ImportJobStatus.running)

    results = await validate_import_urls(
        inp.urls, project_id, ctx.org_id, IMPORT_THRESHOLDS,
        store=ctx.store, metrics=ctx.services.metrics,
    )
    passed, review, failed = _bucket_counts(results)

    await ctx.store.update_import_job(
        job.id, ctx.org_id,
        status=ImportJobStatus.complete,
        total_passed=passed, total_review=review, total_failed=failed,
        results_payload={"results": [r.model_dump(mode="json") for r in results]},
        completed_at=utcnow(),
    )
    return {
        "job_id": job.id,
        "total": len(results),
        "passed": passed,
        "review": review,
        "failed": failed,
        "results": [
            {
                "url": r.url,
                "domain": r.domain,
                "bucket": r.bucket.value,
                "reason": r.reason,
                "da": r.domain_authority,
                "spam_score": r.spam_score,
                **({"error": r.error} if r.error else {}),
            }
            for r in results
        ],
    }


# ---------- confirmation-gated writes ----------

def _job_error(job: Optional[ImportJob], project_id: str, method: EntryMethod) -> Optional[str]:
    if job is None or job.project_id != project_id:
        return "Import job not found"
    if job.entry_method != method:
        return f"Import job {job.id} has entry method {job.entry_method.value}, expected {method.value}"
    if job.status != ImportJobStatus.complete:
        return f"Import job {job.id} has not completed"
    if job.consumed_at is not None:
        return f"Import job {job.id} was already imported"
    return None


def _discovery_drafts(job: ImportJob) -> Dict[str, ProspectDraft]:
    out: Dict[str, ProspectDraft] = {}
    for c in (job.results_payload or {}).get("opportunities", []):
        out.setdefault(c["url"], ProspectDraft(
            prospect_url=c["url"],
            prospect_domain=c["domain"],
            entry_method=EntryMethod.discovery,
            page_title=c.get("title") or None,
            page_url=c["url"],
            snippet=c.get("snippet") or None,
            opportunity_type=c.get("opportunity_type"),
            domain_authority=c.get("domain_rating"),
            spam_score=c.get("spam_score"),
            referring_domains=c.get("referring_domains"),
            linkability_score=c.get("linkability_score"),
            relevance_score=c.get("relevance_score"),
        ))
    return out


def _validation_drafts(job: ImportJob) -> Dict[str, ProspectDraft]:
    out: Dict[str, ProspectDraft] = {}
    for r in (job.results_payload or {}).get("results", []):
        if r.get("bucket") not in (ValidationBucket.passed.value, ValidationBucket.review.value):
            continue
        out.setdefault(r["url"], ProspectDraft(
            prospect_url=r["url"],
            prospect_domain=r["domain"],
            entry_method=EntryMethod.import_,
            page_url=r["url"],
            domain_authority=r.get("domain_authority"),
            spam_score=r.get("spam_score"),
            relevance_score=r.get("relevance_score"),
        ))
    return out


async def _import_from_job(ctx: ToolContext, project_id: str, job_id: str, urls: List[str],
                           method: EntryMethod) -> Dict[str, Any]:
    job = await ctx.store.get_import_job(job_id, ctx.org_id)
    err = _job_error(job, project_id, method)
    if err:
        log.warning("import refused job=%s: %s", job_id, err)
        return {"error": err}

    snapshot = _discovery_drafts(job) if method == EntryMethod.discovery else _validation_drafts(job)
    accepted: List[ProspectDraft] = []
    rejected: List[str] = []
    seen = set()
    for url in urls:
        u = url.strip()
        if u in seen:
            continue
        seen.add(u)
        if u in snapshot:
            accepted.append(snapshot[u])
        else:
            rejected.append(url)

    if not accepted:
        return {"error": "None of the selected URLs belong to this import job", "rejected": rejected}

    org = await ctx.store.get_organisation(ctx.org_id)
    if not org:
        return {"error": "Organisation not found"}
    quota = check_prospect_quota(org, len(accepted))
    if not quota.allowed:
        log.info("import quota denied org=%s requested=%d remaining=%d", ctx.org_id, len(accepted), quota.remaining)
        return {"error": f"Quota exceeded: {quota.remaining} prospects remaining", "remaining": quota.remaining}

    created = await ctx.store.create_prospects_bulk(project_id, ctx.org_id, accepted)
    if created:
        await ctx.store.increment_prospects_used(ctx.org_id, len(created))

    now = utcnow()
    await ctx.store.update_import_job(
        job.id, ctx.org_id,
        status=ImportJobStatus.complete,
        total_passed=len(created),
        completed_at=now,
        consumed_at=now,
    )
    log.info("import job=%s method=%s requested=%d created=%d rejected=%d",
             job.id, method.value, len(accepted), len(created), len(rejected))
    return {
        "job_id": job.id,
        "requested": len(accepted),
        "imported": len(created),
        "prospect_ids": [p.id for p in created],
        "rejected": rejected,
        "quota_remaining": quota.remaining - len(created),
    }


async def import_prospects(inp: ImportProspectsInput, ctx: ToolContext) -> dict:
    project_id = inp.project_id or ctx.project_id
    return await _import_from_job(ctx, project_id, inp.job_id, inp.selected_urls, EntryMethod.discovery)


async def confirm_import(inp: ConfirmImportInput, ctx: ToolContext) -> dict:
    project_id = inp.project_id or ctx.project_id
    return await _import_from_job(ctx, project_id, inp.job_id, inp.urls, EntryMethod.import_)
