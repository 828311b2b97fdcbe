from __future__ import annotations
from typing import Optional
from urllib.parse import urlparse

# Aggregators, social platforms and marketplaces: no backlink value.
EXCLUDED_DOMAINS = frozenset({
    "checkatrade.com",
    "bark.com",
    "yell.com",
    "amazon.co.uk",
    "amazon.com",
    "pinterest.com",
    "pinterest.co.uk",
    "facebook.com",
    "twitter.com",
    "x.com",
    "instagram.com",
    "linkedin.com",
    "youtube.com",
    "tiktok.com",
    "reddit.com",
    "tumblr.com",
    "medium.com",
    "quora.com",
    "wikipedia.org",
    "ebay.co.uk",
    "ebay.com",
    "gumtree.com",
    "trustpilot.com",
    "yelp.com",
    "tripadvisor.com",
    "glassdoor.com",
})

def normalize_domain(domain: str) -> str:
    d = (domain or "").strip().lower().rstrip(".")
    return d[4:] if d.startswith("www.") else d

def extract_domain(url: str) -> Optional[str]:
    """Hostname without a leading www., or None when the URL has no host."""
    try:
        host = urlparse((url or "").strip()).hostname
    except ValueError:
        return None
    return normalize_domain(host) if host else None

def is_excluded_domain(domain: str) -> bool:
    d = normalize_domain(domain)
    if d in EXCLUDED_DOMAINS:
        return True
    return any(d.endswith("." + ex) for ex in EXCLUDED_DOMAINS)
