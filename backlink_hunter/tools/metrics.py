from __future__ import annotations
import asyncio, logging, time
from typing import Any, Dict, List, Optional
import requests

from backlink_hunter.config import get_settings
from backlink_hunter.schema import DomainMetrics

log = logging.getLogger("metrics")

BASE_URL = "https://api.dataforseo.com/v3"
RETRIES = 3

def _post(path: str, body: List[Dict[str, Any]]) -> Dict[str, Any]:
    """POST with basic auth; 429 and network errors back off and retry."""
    s = get_settings()
    last: Optional[Exception] = None
    for attempt in range(RETRIES + 1):
        if attempt:
            time.sleep(min(2 ** attempt, 8))
        try:
            r = requests.post(
                f"{BASE_URL}{path}",
                json=body,
                auth=(s.dataforseo_login, s.dataforseo_password),
                timeout=s.http_timeout,
            )
        except requests.RequestException as e:
            last = e
            continue
        if r.status_code == 429:
            last = requests.HTTPError("DataForSEO rate limit exceeded", response=r)
            continue
        r.raise_for_status()
        return r.json()
    raise last

def _first_result(data: Dict[str, Any]) -> Dict[str, Any]:
    tasks = data.get("tasks") or [{}]
    results = (tasks[0] or {}).get("result") or [{}]
    return results[0] or {}

def fetch_domain_metrics(domain: str) -> Optional[DomainMetrics]:
    if not get_settings().metrics_configured:
        log.debug("DataForSEO not configured, no metrics for %s", domain)
        return None
    try:
        summary = _first_result(_post("/backlinks/summary/live", [{"target": domain}]))
    except requests.RequestException as e:
        log.warning("metrics lookup failed domain=%s: %s", domain, e)
        return None
    return DomainMetrics(
        domain_rating=int(summary.get("rank") or 0),
        spam_score=int(summary.get("backlinks_spam_score") or summary.get("spam_score") or 0),
        referring_domains=int(summary.get("referring_domains") or 0),
        monthly_traffic=int(summary.get("organic_traffic") or 0),
    )

class MetricsClient:
    """Domain metrics provider; None means unknown (unconfigured or failed)."""

    async def domain_metrics(self, domain: str) -> Optional[DomainMetrics]:
        return await asyncio.to_thread(fetch_domain_metrics, domain)
