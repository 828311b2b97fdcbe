from __future__ import annotations
import logging
from typing import List, Optional, Sequence
from urllib.parse import urlparse

from backlink_hunter.config import Settings, get_settings
from backlink_hunter.schema import (
    DiscoveryRequest, OpportunityCandidate, OpportunityType, SearchResult,
)
from backlink_hunter.services.exclusion import extract_domain, is_excluded_domain, normalize_domain
from backlink_hunter.services.scoring import linkability_score, relevance_score

log = logging.getLogger("discovery")

MAX_LIMIT = 200

# Search query templates per opportunity type; {kw} is the seed keyword and
# {loc} the locale hint, placed ahead of any inurl: operator.
QUERY_TEMPLATES = {
    OpportunityType.resource_link: ['"{kw}" "useful resources"{loc}', '"{kw}" "resources" OR "links"{loc}'],
    OpportunityType.guest_post: ['"{kw}" "write for us" OR "contribute"{loc}', '"{kw}" "guest post" OR "guest article"{loc}'],
    OpportunityType.broken_link: ['"{kw}" resources{loc} inurl:resources', '"{kw}" links{loc} inurl:links'],
    OpportunityType.link_exchange: ["{kw} directory{loc} trade association", "{kw}{loc} blog inurl:resources"],
}
DEFAULT_TEMPLATES = ['"{kw}"{loc}']


def build_queries(keywords: Sequence[str], types: Sequence[OpportunityType],
                  seed_url: Optional[str], locale: str = "UK") -> List[str]:
    loc = f" {locale}" if locale else ""
    queries: List[str] = []
    for kw in keywords:
        for t in types:
            for tpl in QUERY_TEMPLATES.get(t, DEFAULT_TEMPLATES):
                queries.append(tpl.format(kw=kw, loc=loc))

    if seed_url:
        host = urlparse(seed_url).hostname
        top = list(keywords[:3])
        if host and top:
            queries.append(f"site:{host} " + " OR ".join(f'"{kw}"' for kw in top))
            queries.extend(f'"{host}" "{kw}"' for kw in top)
    return queries


def guess_opportunity_type(result: SearchResult, requested: Sequence[OpportunityType]) -> OpportunityType:
    text = f"{result.title} {result.snippet} {result.url}".lower()
    if "write for us" in text or "guest post" in text or "contribute" in text:
        return OpportunityType.guest_post
    if "resource" in text or "useful links" in text:
        return OpportunityType.resource_link
    if "directory" in text or "listing" in text:
        return OpportunityType.link_exchange
    if "broken" in text or "404" in text:
        return OpportunityType.broken_link
    return requested[0] if requested else OpportunityType.resource_link


async def discover_opportunities(req: DiscoveryRequest, org_id: str, project_keywords: Sequence[str],
                                 *, store, search, metrics,
                                 settings: Optional[Settings] = None) -> List[OpportunityCandidate]:
    """
    Search, filter and score link opportunities for a project.

    Results are de-duplicated by domain (first hit wins), stripped of excluded
    domains and of domains already linking or already prospected, and returned
    sorted by linkability, highest first.
    """
    s = settings or get_settings()
    limit = max(0, min(req.limit, MAX_LIMIT))
    keywords = [k for k in (req.seed_keywords or project_keywords) if k and k.strip()]
    types = req.opportunity_types or [OpportunityType.resource_link, OpportunityType.guest_post]

    queries = build_queries(keywords, types, req.seed_url, s.discovery_locale)[: s.discovery_max_queries]
    log.info("discovery project=%s queries=%d limit=%d", req.project_id, len(queries), limit)

    results: List[SearchResult] = []
    for q in queries:
        try:
            results.extend(await search.search(q))
        except Exception as e:
            log.warning("discovery search failed q=%r: %s", q, e)
    log.info("discovery search returned %d results", len(results))

    user_excludes = {normalize_domain(d) for d in req.filters.exclude_domains}
    seen = set()
    found: List[OpportunityCandidate] = []

    for r in results:
        if len(found) >= limit:
            break
        domain = extract_domain(r.url)
        if not domain or domain in seen:
            continue
        seen.add(domain)

        if is_excluded_domain(domain) or domain in user_excludes:
            continue
        if await store.is_existing_backlink(req.project_id, org_id, domain):
            continue
        if await store.is_existing_prospect(req.project_id, org_id, domain):
            continue

        m = await metrics.domain_metrics(domain)
        dr = m.domain_rating if m else 0
        spam = m.spam_score if m else 0
        if spam > req.filters.max_spam_score or dr < req.filters.min_da:
            log.debug("discovery drop %s dr=%d spam=%d", domain, dr, spam)
            continue

        found.append(OpportunityCandidate(
            url=r.url,
            domain=domain,
            title=r.title,
            snippet=r.snippet,
            opportunity_type=guess_opportunity_type(r, types),
            linkability_score=linkability_score(m),
            relevance_score=relevance_score(r.title, r.snippet, keywords),
            domain_rating=m.domain_rating if m else None,
            spam_score=m.spam_score if m else None,
            referring_domains=m.referring_domains if m else None,
        ))

    # list.sort is stable, so equal scores keep search order
    found.sort(key=lambda c: c.linkability_score, reverse=True)
    log.info("discovery complete project=%s total=%d", req.project_id, len(found))
    return found
