# file: tests/test_discovery.py
import pytest

from backlink_hunter.schema import (
    DiscoveryFilters, DiscoveryRequest, DomainMetrics, ExistingBacklink, OpportunityType, SearchResult,
)
from backlink_hunter.services.discovery import build_queries, discover_opportunities, guess_opportunity_type
from conftest import FakeMetrics, FakeSearch


def _hit(url, title="Kitchen design resources", snippet="useful resources"):
    return SearchResult(url=url, title=title, snippet=snippet)


def test_build_queries_per_keyword_and_type():
    qs = build_queries(["kitchen"], [OpportunityType.guest_post], None, "UK")
    assert qs == ['"kitchen" "write for us" OR "contribute" UK', '"kitchen" "guest post" OR "guest article" UK']


def test_build_queries_puts_locale_before_inurl():
    qs = build_queries(["kitchen"], [OpportunityType.broken_link, OpportunityType.link_exchange], None, "UK")
    assert qs == [
        '"kitchen" resources UK inurl:resources',
        '"kitchen" links UK inurl:links',
        "kitchen directory UK trade association",
        "kitchen UK blog inurl:resources",
    ]
    assert build_queries(["kitchen"], [OpportunityType.mention], None, "") == ['"kitchen"']


def test_build_queries_competitor_url_adds_site_queries():
    qs = build_queries(["a", "b", "c", "d"], [], "https://rival.co.uk/page", "UK")
    assert qs[0] == 'site:rival.co.uk "a" OR "b" OR "c"'
    assert qs[1:] == ['"rival.co.uk" "a"', '"rival.co.uk" "b"', '"rival.co.uk" "c"']


def test_guess_opportunity_type():
    assert guess_opportunity_type(_hit("https://x.com", "Write for us", ""), []) == OpportunityType.guest_post
    assert guess_opportunity_type(_hit("https://x.com", "Trade directory", ""), []) == OpportunityType.link_exchange
    assert guess_opportunity_type(_hit("https://x.com", "Plain", ""), [OpportunityType.mention]) == OpportunityType.mention


@pytest.mark.asyncio
async def test_discovery_filters_dedupes_and_sorts(store, project, org, settings):
    store.add_backlink(ExistingBacklink(project_id=project.id, org_id=org.id,
                                        linking_domain="linked.co.uk", linking_url="https://linked.co.uk/a"))
    search = FakeSearch([
        _hit("https://weak.co.uk/a"),
        _hit("https://www.strong.co.uk/resources"),
        _hit("https://strong.co.uk/other"),
        _hit("https://www.pinterest.com/pin/1"),
        _hit("https://linked.co.uk/page"),
        _hit("https://spammy.co.uk/"),
        _hit("https://unknown.co.uk/"),
    ])
    metrics = FakeMetrics({
        "weak.co.uk": DomainMetrics(domain_rating=5, spam_score=0, referring_domains=1),
        "strong.co.uk": DomainMetrics(domain_rating=60, spam_score=0, referring_domains=150),
        "spammy.co.uk": DomainMetrics(domain_rating=40, spam_score=45, referring_domains=50),
    })
    req = DiscoveryRequest(project_id=project.id, seed_keywords=["kitchen"], limit=30)

    found = await discover_opportunities(req, org.id, project.target_keywords,
                                         store=store, search=search, metrics=metrics, settings=settings)

    domains = [c.domain for c in found]
    assert domains == ["strong.co.uk", "weak.co.uk", "unknown.co.uk"]
    assert found[0].url == "https://www.strong.co.uk/resources"
    assert found[0].linkability_score == 95
    unknown = found[2]
    assert unknown.linkability_score == 50 and unknown.domain_rating is None
    scores = [c.linkability_score for c in found]
    assert scores == sorted(scores, reverse=True)


@pytest.mark.asyncio
async def test_discovery_respects_limit_filters_and_query_cap(store, project, org, settings):
    search = FakeSearch([_hit(f"https://site{i}.co.uk/") for i in range(10)])
    req = DiscoveryRequest(
        project_id=project.id,
        seed_keywords=[f"kw{i}" for i in range(15)],
        opportunity_types=[OpportunityType.resource_link],
        filters=DiscoveryFilters(min_da=0, exclude_domains=["www.site0.co.uk"]),
        limit=3,
    )
    found = await discover_opportunities(req, org.id, [], store=store, search=search,
                                         metrics=FakeMetrics(), settings=settings)
    assert len(found) == 3
    assert "site0.co.uk" not in [c.domain for c in found]
    assert len(search.queries) == 20
    assert all(q.endswith(" UK") for q in search.queries)


@pytest.mark.asyncio
async def test_discovery_min_da_drops_unknown_metrics(store, project, org, settings):
    search = FakeSearch([_hit("https://unknown.co.uk/")])
    req = DiscoveryRequest(project_id=project.id, filters=DiscoveryFilters(min_da=10))
    found = await discover_opportunities(req, org.id, ["kitchen"], store=store, search=search,
                                         metrics=FakeMetrics(), settings=settings)
    assert found == []


@pytest.mark.asyncio
async def test_discovery_falls_back_to_project_keywords(store, project, org, settings):
    search = FakeSearch([])
    req = DiscoveryRequest(project_id=project.id, opportunity_types=[OpportunityType.mention])
    await discover_opportunities(req, org.id, project.target_keywords, store=store, search=search,
                                 metrics=FakeMetrics(), settings=settings)
    assert search.queries == ['"kitchen design" UK', '"kitchen renovation" UK']
