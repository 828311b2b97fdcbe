from __future__ import annotations
import asyncio
import logging
from typing import Optional
from urllib.parse import urljoin

import requests
from bs4 import BeautifulSoup

from backlink_hunter.config import get_settings
from backlink_hunter.schema import LinkVerification, Prospect, utcnow
from backlink_hunter.services.exclusion import extract_domain

log = logging.getLogger("verifier")

VERIFIER_UA = "BacklinkHunter-LinkVerifier/1.0"


def page_links_to(html: str, base_url: str, target_domain: str, target_url: str) -> bool:
    """True when any href on the page points at the target domain or exactly at the target URL."""
    soup = BeautifulSoup(html or "", "html.parser")
    wanted = (target_url or "").strip().lower()
    for el in soup.find_all(href=True):
        raw = (el.get("href") or "").strip()
        if not raw:
            continue
        if wanted and raw.lower() == wanted:
            return True
        host = extract_domain(urljoin(base_url, raw))
        if host and host == target_domain:
            return True
    return False


def verify_prospect_link(prospect: Prospect, target_url: str, timeout: Optional[int] = None) -> LinkVerification:
    """
    Fetch the prospect's page and look for a link back to target_url.

    lost_at is cleared when the link is live, stamped when a previously live
    link is gone, and otherwise carried over unchanged.
    """
    now = utcnow()
    target_domain = extract_domain(target_url) or (target_url or "").lower()
    check_url = prospect.link_url or prospect.page_url or prospect.prospect_url
    lost_if_missing = now if prospect.link_live else prospect.link_lost_at

    def _not_live(error: str) -> LinkVerification:
        log.info("verify prospect=%s url=%s -> not live (%s)", prospect.id, check_url, error)
        return LinkVerification(
            prospect_id=prospect.id,
            link_live=False,
            link_url=prospect.link_url,
            verified_at=now,
            lost_at=lost_if_missing,
            error=error,
        )

    try:
        r = requests.get(
            check_url,
            headers={"User-Agent": VERIFIER_UA},
            allow_redirects=True,
            timeout=timeout or get_settings().http_timeout,
        )
    except requests.RequestException as e:
        return _not_live(str(e) or e.__class__.__name__)

    if not r.ok:
        return _not_live(f"HTTP {r.status_code}")

    found = page_links_to(r.text, r.url or check_url, target_domain, target_url)
    log.info("verify prospect=%s url=%s -> live=%s", prospect.id, check_url, found)
    return LinkVerification(
        prospect_id=prospect.id,
        link_live=found,
        link_url=(prospect.link_url or check_url) if found else prospect.link_url,
        verified_at=now,
        lost_at=None if found else lost_if_missing,
    )


async def verify_link(prospect: Prospect, target_url: str) -> LinkVerification:
    return await asyncio.to_thread(verify_prospect_link, prospect, target_url)
