from __future__ import annotations
import asyncio, logging, re
from typing import List, Dict, Optional
from urllib.parse import urlencode

from ddgs import DDGS
import requests
from bs4 import BeautifulSoup

from backlink_hunter.config import get_settings
from backlink_hunter.schema import SearchResult

log = logging.getLogger("search")

# Detect site:domain usage
_SITE_RE = re.compile(r"\bsite:([a-z0-9\.\-]+)", re.I)

UA = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
    "AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/124.0.0.0 Safari/537.36"
)

HTML_ENDPOINTS = [
    "https://html.duckduckgo.com/html/",
    "https://lite.duckduckgo.com/lite/",
]

def _extract_site_domain(q: str) -> Optional[str]:
    m = _SITE_RE.search(q or "")
    return m.group(1).lower() if m else None

def _filter_by_domain(hits: List[Dict], domain: Optional[str]) -> List[Dict]:
    if not domain:
        return hits
    dom = domain.lower()
    return [h for h in hits if dom in (h.get("href") or "").lower()]

def _ddg_text_once(client: DDGS, query: str, region: str, max_results: int) -> List[Dict]:
    results: List[Dict] = []
    try:
        for r in client.text(query, region=region, safesearch="moderate", max_results=max_results) or []:
            if not r:
                continue
            results.append({
                "title": r.get("title") or "",
                "href": r.get("href") or "",
                "body": r.get("body") or "",
            })
            if len(results) >= max_results:
                break
    except Exception as e:
        log.warning("ddg_text failed q=%r region=%s: %s", query, region, e)
    return results

def _ddg_html_scrape(query: str, max_results: int, region_hint: str, timeout: int) -> List[Dict]:
    """Fallback: scrape DDG HTML / Lite endpoints with a realistic UA."""
    params = {"q": query, "kl": region_hint}
    headers = {"User-Agent": UA}
    results: List[Dict] = []
    seen = set()

    for base in HTML_ENDPOINTS:
        url = f"{base}?{urlencode(params)}"
        try:
            log.info("ddg_html GET %s", url)
            r = requests.get(url, headers=headers, timeout=timeout)
            r.raise_for_status()
        except requests.RequestException as e:
            log.warning("ddg_html failed %s: %s", url, e)
            continue
        soup = BeautifulSoup(r.text, "html.parser")
        for a in soup.select("div.result"):
            link = a.select_one("a.result__a")
            if not link:
                continue
            href = link.get("href", "")
            if not href.startswith("http") or href in seen:
                continue
            snippet = a.select_one(".result__snippet")
            results.append({
                "title": link.get_text(" ", strip=True),
                "href": href,
                "body": snippet.get_text(" ", strip=True) if snippet else "",
            })
            seen.add(href)
            if len(results) >= max_results:
                return results
    return results

def ddg_search(query: str, max_results: int = 10, region: str = "uk-en") -> List[SearchResult]:
    """
    DuckDuckGo search that:
      • tries the preferred region, then worldwide
      • post-filters by domain when 'site:domain' is present
      • falls back to HTML scraping with a real UA if the API returns 0
    """
    s = get_settings()
    site_domain = _extract_site_domain(query)
    log.info("ddg_search q=%r region=%s site_domain=%s", query, region, site_domain or "-")

    hits: List[Dict] = []
    seen_href = set()

    def _take(batch: List[Dict]) -> bool:
        for h in _filter_by_domain(batch, site_domain):
            href = h.get("href") or ""
            if href and href not in seen_href:
                hits.append(h); seen_href.add(href)
                if len(hits) >= max_results:
                    return True
        return False

    try:
        with DDGS() as client:
            for reg in (region, "wt-wt"):
                if _take(_ddg_text_once(client, query, reg, max_results * 2)):
                    break
    except Exception as e:
        log.warning("DDGS client init/usage failed: %s", e)

    if not hits:
        _take(_ddg_html_scrape(query, max_results * 2, region, s.http_timeout))

    log.info("ddg_search -> %d hits", len(hits))
    return [
        SearchResult(url=h["href"], title=h.get("title") or "", snippet=h.get("body") or "")
        for h in hits[:max_results]
    ]

class WebSearch:
    """Search provider used by discovery. Offline mode returns no results."""

    def __init__(self, enabled: Optional[bool] = None, max_results: Optional[int] = None, region: str = "uk-en"):
        s = get_settings()
        self.enabled = s.online_search if enabled is None else enabled
        self.max_results = max_results or s.search_max_results
        self.region = region

    async def search(self, query: str) -> List[SearchResult]:
        if not self.enabled:
            log.info("search disabled, skipping q=%r", query)
            return []
        return await asyncio.to_thread(ddg_search, query, self.max_results, self.region)
