from __future__ import annotations
import asyncio, logging, re
from typing import Optional
import requests
from bs4 import BeautifulSoup

from backlink_hunter.config import get_settings

log = logging.getLogger("fetch")

UA = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
    "AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/124.0.0.0 Safari/537.36"
)

MAX_CONDENSED_CHARS = 30000

def condense_html(html: str, limit: int = MAX_CONDENSED_CHARS) -> str:
    """
    Title, meta description, headings and paragraphs of a page, one per line,
    truncated to `limit` characters.
    """
    soup = BeautifulSoup(html or "", "html.parser")
    for tag in soup(["script", "style", "noscript", "nav", "footer"]):
        tag.decompose()

    lines = []
    if soup.title and soup.title.string:
        lines.append(f"Title: {soup.title.string.strip()}")
    meta = soup.find("meta", attrs={"name": "description"})
    if meta and meta.get("content"):
        lines.append(f"Description: {meta['content'].strip()}")
    for h in soup.find_all(["h1", "h2", "h3"]):
        txt = h.get_text(" ", strip=True)
        if txt:
            lines.append(f"{h.name.upper()}: {txt}")
    for p in soup.find_all("p"):
        txt = p.get_text(" ", strip=True)
        if len(txt) > 30:
            lines.append(txt)

    text = "\n".join(lines)
    text = re.sub(r"[ \t]+", " ", text)
    return text[:limit]

def http_get_html(url: str, timeout: Optional[int] = None) -> Optional[str]:
    """Fetches a URL with a realistic UA. Returns the HTML body, or None on failure."""
    headers = {"User-Agent": UA, "Accept": "text/html,application/xhtml+xml"}
    try:
        r = requests.get(url, headers=headers, timeout=timeout or get_settings().http_timeout)
        r.raise_for_status()
    except requests.RequestException as e:
        log.warning("fetch failed %s: %s", url, e)
        return None
    ctype = (r.headers.get("content-type") or "").lower()
    if "html" not in ctype:
        log.info("fetch non-html %s ctype=%s", url, ctype or "-")
        return None
    return r.text

class PageFetcher:
    async def condensed_text(self, url: str) -> Optional[str]:
        html = await asyncio.to_thread(http_get_html, url)
        if html is None:
            return None
        text = condense_html(html)
        log.info("fetch %s -> %d chars", url, len(text))
        return text
