from __future__ import annotations
import logging
from typing import List, Sequence

from backlink_hunter.schema import ImportValidationResult, ValidationBucket, ValidationThresholds
from backlink_hunter.services.exclusion import extract_domain, is_excluded_domain

log = logging.getLogger("validation")


async def validate_url(url: str, project_id: str, org_id: str, thresholds: ValidationThresholds,
                       *, store, metrics) -> ImportValidationResult:
    domain = extract_domain(url)
    if not domain:
        return ImportValidationResult(url=url, domain="", bucket=ValidationBucket.fail, reason="Invalid URL")

    if is_excluded_domain(domain):
        return ImportValidationResult(url=url, domain=domain, bucket=ValidationBucket.fail, reason="Excluded domain")

    if await store.is_existing_backlink(project_id, org_id, domain):
        return ImportValidationResult(
            url=url, domain=domain, bucket=ValidationBucket.fail,
            reason="Already an existing backlink", is_existing_backlink=True,
        )
    if await store.is_existing_prospect(project_id, org_id, domain):
        return ImportValidationResult(
            url=url, domain=domain, bucket=ValidationBucket.fail,
            reason="Already a prospect", is_existing_prospect=True,
        )

    m = await metrics.domain_metrics(domain)
    da = m.domain_rating if m else 0
    spam = m.spam_score if m else 0

    if spam > thresholds.max_spam_score:
        return ImportValidationResult(
            url=url, domain=domain, bucket=ValidationBucket.fail,
            reason=f"Spam score {spam} exceeds threshold {thresholds.max_spam_score}",
            domain_authority=da, spam_score=spam,
        )

    # Relevance needs page content; it stays unscored at import time.
    if da < thresholds.min_da:
        return ImportValidationResult(
            url=url, domain=domain, bucket=ValidationBucket.review,
            reason=f"DA {da} below threshold {thresholds.min_da}",
            domain_authority=da, spam_score=spam,
        )
    return ImportValidationResult(
        url=url, domain=domain, bucket=ValidationBucket.passed,
        domain_authority=da, spam_score=spam,
    )


async def validate_import_urls(urls: Sequence[str], project_id: str, org_id: str,
                               thresholds: ValidationThresholds, *, store, metrics) -> List[ImportValidationResult]:
    """Bucket each URL into pass / review / fail. One URL failing never stops the batch."""
    log.info("validating import urls=%d project=%s", len(urls), project_id)
    results: List[ImportValidationResult] = []
    for url in urls:
        try:
            results.append(await validate_url(url, project_id, org_id, thresholds, store=store, metrics=metrics))
        except Exception as e:
            log.warning("validation failed url=%s: %s", url, e)
            results.append(ImportValidationResult(
                url=url, domain=extract_domain(url) or "", bucket=ValidationBucket.fail,
                reason="Validation error", error=str(e),
            ))

    log.info(
        "validation complete total=%d pass=%d review=%d fail=%d",
        len(results),
        sum(r.bucket == ValidationBucket.passed for r in results),
        sum(r.bucket == ValidationBucket.review for r in results),
        sum(r.bucket == ValidationBucket.fail for r in results),
    )
    return results
