# file: tests/test_prospecting_handlers.py
import pytest

from backlink_hunter.agent.handlers.prospecting import (
    confirm_import, import_prospects, run_discovery, validate_import,
)
from backlink_hunter.agent.tools import (
    ConfirmImportInput, ImportProspectsInput, RunDiscoveryInput, ValidateImportInput,
)
from backlink_hunter.schema import DomainMetrics, ImportJobStatus, OpportunityType, SearchResult
from conftest import FakeMetrics, FakeSearch

HITS = [
    SearchResult(url="https://homeblog.co.uk/resources", title="Kitchen design resources", snippet="useful resources"),
    SearchResult(url="https://writers.co.uk/write-for-us", title="Write for us", snippet="kitchen renovation"),
    SearchResult(url="https://third.co.uk/", title="Kitchen news", snippet=""),
]


@pytest.fixture
def discovery_services(services):
    services.search = FakeSearch(HITS)
    services.metrics = FakeMetrics({"homeblog.co.uk": DomainMetrics(domain_rating=40, spam_score=3, referring_domains=40)})
    return services


async def _discover(ctx, **kw):
    return await run_discovery(RunDiscoveryInput(**kw), ctx)


@pytest.mark.asyncio
async def test_run_discovery_snapshots_without_creating_prospects(ctx, discovery_services, store, project, org):
    res = await _discover(ctx, opportunity_types=["resource_page", "competitor_mention"])

    assert res["total"] == 3
    assert res["opportunities"][0]["domain"] == "homeblog.co.uk"
    job = await store.get_import_job(res["job_id"], org.id)
    assert job.status == ImportJobStatus.complete
    assert job.input_payload["opportunity_types"] == ["resource_link", "mention"]
    assert len(job.results_payload["opportunities"]) == 3
    assert await store.list_prospects(project.id, org.id) == []
    assert (await store.get_organisation(org.id)).prospects_used_this_month == 0


@pytest.mark.asyncio
async def test_run_discovery_unknown_project(ctx, discovery_services):
    res = await _discover(ctx, project_id="00000000-0000-0000-0000-000000000000")
    assert res == {"error": "Project not found"}


@pytest.mark.asyncio
async def test_import_prospects_creates_only_snapshot_urls(ctx, discovery_services, store, project, org):
    disc = await _discover(ctx)
    res = await import_prospects(ImportProspectsInput(
        job_id=disc["job_id"],
        selected_urls=["https://homeblog.co.uk/resources", "https://evil.example/", "https://writers.co.uk/write-for-us"],
    ), ctx)

    assert res["requested"] == 2
    assert res["imported"] == 2
    assert res["rejected"] == ["https://evil.example/"]
    assert res["quota_remaining"] == 198
    assert (await store.get_organisation(org.id)).prospects_used_this_month == 2

    prospects = {p.prospect_domain: p for p in await store.list_prospects(project.id, org.id)}
    home = prospects["homeblog.co.uk"]
    assert home.page_title == "Kitchen design resources"
    assert home.domain_authority == 40
    assert home.opportunity_type == OpportunityType.resource_link
    assert prospects["writers.co.uk"].opportunity_type == OpportunityType.guest_post

    job = await store.get_import_job(disc["job_id"], org.id)
    assert job.consumed_at is not None and job.total_passed == 2


@pytest.mark.asyncio
async def test_import_prospects_refuses_consumed_job(ctx, discovery_services, store, project, org):
    disc = await _discover(ctx)
    urls = ["https://third.co.uk/"]
    await import_prospects(ImportProspectsInput(job_id=disc["job_id"], selected_urls=urls), ctx)
    again = await import_prospects(ImportProspectsInput(job_id=disc["job_id"], selected_urls=urls), ctx)

    assert "already imported" in again["error"]
    assert (await store.get_organisation(org.id)).prospects_used_this_month == 1


@pytest.mark.asyncio
async def test_import_prospects_refuses_missing_or_wrong_job(ctx, services, store, project, org):
    missing = await import_prospects(ImportProspectsInput(job_id="nope", selected_urls=["https://a.co.uk/"]), ctx)
    assert missing == {"error": "Import job not found"}

    val = await validate_import(ValidateImportInput(urls=["https://a.co.uk/"]), ctx)
    wrong = await import_prospects(ImportProspectsInput(job_id=val["job_id"], selected_urls=["https://a.co.uk/"]), ctx)
    assert "expected discovery" in wrong["error"]
    assert await store.list_prospects(project.id, org.id) == []


@pytest.mark.asyncio
async def test_import_prospects_quota_denied_writes_nothing(ctx, discovery_services, store, project, org):
    store.organisations[org.id] = org.model_copy(update={"prospects_used_this_month": 199})
    disc = await _discover(ctx)
    res = await import_prospects(ImportProspectsInput(
        job_id=disc["job_id"], selected_urls=[h.url for h in HITS],
    ), ctx)

    assert res["remaining"] == 1
    assert "Quota exceeded" in res["error"]
    assert await store.list_prospects(project.id, org.id) == []
    job = await store.get_import_job(disc["job_id"], org.id)
    assert job.consumed_at is None


@pytest.mark.asyncio
async def test_validate_then_confirm_import(ctx, services, store, project, org):
    services.metrics = FakeMetrics({
        "good.co.uk": DomainMetrics(domain_rating=30),
        "small.co.uk": DomainMetrics(domain_rating=2),
    })
    val = await validate_import(ValidateImportInput(
        urls=["https://good.co.uk/", "https://small.co.uk/", "https://pinterest.com/x"],
    ), ctx)
    assert (val["passed"], val["review"], val["failed"]) == (1, 1, 1)
    assert await store.list_prospects(project.id, org.id) == []

    res = await confirm_import(ConfirmImportInput(
        job_id=val["job_id"], urls=["https://good.co.uk/", "https://small.co.uk/", "https://pinterest.com/x"],
    ), ctx)
    assert res["imported"] == 2
    assert res["rejected"] == ["https://pinterest.com/x"]
    assert (await store.get_organisation(org.id)).prospects_used_this_month == 2


@pytest.mark.asyncio
async def test_confirm_import_rejects_discovery_job(ctx, discovery_services, store, project, org):
    disc = await _discover(ctx)
    res = await confirm_import(ConfirmImportInput(job_id=disc["job_id"], urls=[HITS[0].url]), ctx)
    assert "expected import" in res["error"]
    assert await store.list_prospects(project.id, org.id) == []


@pytest.mark.asyncio
async def test_usage_counts_only_created_prospects(ctx, discovery_services, store, project, org):
    first = await _discover(ctx)
    await import_prospects(ImportProspectsInput(job_id=first["job_id"], selected_urls=[HITS[0].url]), ctx)

    # A stale snapshot still lists homeblog; the store skips it as a duplicate domain.
    job = await store.get_import_job(first["job_id"], org.id)
    await store.update_import_job(job.id, org.id, consumed_at=None)
    res = await import_prospects(ImportProspectsInput(
        job_id=first["job_id"], selected_urls=[HITS[0].url, HITS[2].url],
    ), ctx)

    assert res["requested"] == 2 and res["imported"] == 1
    assert (await store.get_organisation(org.id)).prospects_used_this_month == 2
