from __future__ import annotations
import asyncio, logging
from typing import List, Optional
import requests
from email_validator import validate_email, EmailNotValidError

from backlink_hunter.config import get_settings
from backlink_hunter.schema import DomainContact

log = logging.getLogger("contacts")

BASE_URL = "https://api.hunter.io/v2"
MIN_CONFIDENCE = 30

# Roles ordered by preference for outreach
PREFERRED_ROLES = [
    "editor",
    "content manager",
    "content",
    "marketing",
    "founder",
    "owner",
    "ceo",
    "managing director",
    "director",
]

def role_index(role: str) -> int:
    lower = (role or "").lower()
    for i, r in enumerate(PREFERRED_ROLES):
        if r in lower:
            return i
    return len(PREFERRED_ROLES)

def _valid_email(addr: str) -> Optional[str]:
    try:
        return validate_email(addr, check_deliverability=False).normalized
    except EmailNotValidError:
        log.info("dropping invalid address %r", addr)
        return None

def rank_contacts(emails: List[dict]) -> List[DomainContact]:
    """Hunter email entries -> validated contacts sorted by role preference, then confidence."""
    out: List[DomainContact] = []
    for e in emails:
        conf = e.get("confidence") or 0
        if not e.get("value") or conf < MIN_CONFIDENCE:
            continue
        addr = _valid_email(e["value"])
        if not addr:
            continue
        name = " ".join(p for p in (e.get("first_name"), e.get("last_name")) if p)
        out.append(DomainContact(name=name, email=addr, role=e.get("position") or "", confidence=conf))
    out.sort(key=lambda c: (role_index(c.role), -c.confidence))
    return out

def find_domain_contacts(domain: str) -> List[DomainContact]:
    """Hunter.io domain search. Unconfigured or rate limited -> []. Other HTTP errors raise."""
    s = get_settings()
    if not s.contacts_configured:
        log.warning("Hunter.io not configured, no contacts for %s", domain)
        return []
    r = requests.get(
        f"{BASE_URL}/domain-search",
        params={"domain": domain, "api_key": s.hunter_api_key},
        timeout=s.http_timeout,
    )
    if r.status_code == 429:
        log.warning("Hunter.io rate limit exceeded domain=%s", domain)
        return []
    r.raise_for_status()
    emails = ((r.json() or {}).get("data") or {}).get("emails") or []
    contacts = rank_contacts(emails)
    log.info("contacts domain=%s raw=%d kept=%d", domain, len(emails), len(contacts))
    return contacts

class ContactFinder:
    async def best_contact(self, domain: str) -> Optional[DomainContact]:
        contacts = await asyncio.to_thread(find_domain_contacts, domain)
        return contacts[0] if contacts else None
