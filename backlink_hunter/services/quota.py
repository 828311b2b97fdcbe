from __future__ import annotations
from dataclasses import dataclass

from backlink_hunter.schema import Organisation, PlanTier

PLAN_LIMITS = {
    PlanTier.starter: 200,
    PlanTier.growth: 1000,
    PlanTier.agency: 5000,
}

@dataclass
class QuotaCheck:
    allowed: bool
    remaining: int
    used: int
    limit: int
    plan: PlanTier

def plan_limit(org: Organisation) -> int:
    if org.monthly_prospect_limit is not None:
        return org.monthly_prospect_limit
    return PLAN_LIMITS[org.plan]

def check_prospect_quota(org: Organisation, requested: int = 1) -> QuotaCheck:
    """Pure check of used vs. limit for a requested number of new prospects."""
    limit = plan_limit(org)
    used = org.prospects_used_this_month
    remaining = max(0, limit - used)
    return QuotaCheck(
        allowed=remaining >= requested,
        remaining=remaining,
        used=used,
        limit=limit,
        plan=org.plan,
    )
