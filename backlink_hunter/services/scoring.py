from __future__ import annotations
import math
from typing import Iterable

from backlink_hunter.schema import DomainMetrics

LINKABILITY_FLOOR, LINKABILITY_CEILING = 5, 95
RELEVANCE_FLOOR, RELEVANCE_CEILING = 10, 95
DEFAULT_SCORE = 50

def _clamp(value: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, value))

def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))

def linkability_score(metrics: DomainMetrics | None) -> int:
    """
    Additive heuristic over domain metrics, clamped to [5, 95].
    Unknown metrics score the neutral 50.
    """
    if metrics is None:
        return DEFAULT_SCORE

    score = 50

    dr = metrics.domain_rating
    if dr >= 50:
        score += 30
    elif dr >= 30:
        score += 20
    elif dr >= 15:
        score += 10
    else:
        score += 5

    spam = metrics.spam_score
    if spam > 20:
        score -= 30
    elif spam > 10:
        score -= 15
    elif spam > 5:
        score -= 5

    rd = metrics.referring_domains
    if rd >= 100:
        score += 20
    elif rd >= 30:
        score += 15
    elif rd >= 10:
        score += 10
    else:
        score += 5

    return int(_clamp(score, LINKABILITY_FLOOR, LINKABILITY_CEILING))

def relevance_score(title: str, snippet: str, keywords: Iterable[str]) -> int:
    """Share of seed keywords found in title + snippet, mapped onto [10, 95]."""
    kws = [k for k in keywords if k and k.strip()]
    if not kws:
        return DEFAULT_SCORE
    text = f"{title or ''} {snippet or ''}".lower()
    matches = sum(1 for kw in kws if kw.lower() in text)
    ratio = matches / len(kws)
    return _round_half_up(_clamp(ratio * 80 + 20, RELEVANCE_FLOOR, RELEVANCE_CEILING))
