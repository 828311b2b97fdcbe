# file: tests/test_scoring.py
import pytest
from backlink_hunter.schema import DomainMetrics
from backlink_hunter.services.scoring import linkability_score, relevance_score


def test_linkability_strong_domain_is_capped():
    m = DomainMetrics(domain_rating=60, spam_score=0, referring_domains=150)
    assert linkability_score(m) == 95


def test_linkability_weak_spammy_domain():
    m = DomainMetrics(domain_rating=10, spam_score=25, referring_domains=5)
    assert linkability_score(m) == 30


def test_linkability_unknown_metrics_is_neutral():
    assert linkability_score(None) == 50


@pytest.mark.parametrize("dr,spam,rd", [(0, 100, 0), (100, 0, 10_000), (15, 11, 30), (30, 6, 10)])
def test_linkability_stays_in_bounds(dr, spam, rd):
    score = linkability_score(DomainMetrics(domain_rating=dr, spam_score=spam, referring_domains=rd))
    assert 5 <= score <= 95


def test_relevance_no_keywords_is_neutral():
    assert relevance_score("Anything", "at all", []) == 50


def test_relevance_all_keywords_match():
    assert relevance_score("Kitchen design ideas", "renovation tips", ["kitchen", "renovation"]) == 95


def test_relevance_no_match_hits_floor():
    assert relevance_score("Gardening", "roses", ["kitchen"]) == 20


def test_relevance_rounds_half_up():
    # 1 of 16 -> 0.0625 * 80 + 20 = 25.0
    kws = ["kitchen"] + [f"missing{i}" for i in range(15)]
    assert relevance_score("kitchen", "", kws) == 25
    # 1 of 32 -> 22.5 -> 23
    kws32 = ["kitchen"] + [f"missing{i}" for i in range(31)]
    assert relevance_score("kitchen", "", kws32) == 23


def test_relevance_is_case_insensitive():
    assert relevance_score("KITCHEN", "", ["Kitchen"]) == 95
