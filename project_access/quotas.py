"""
project_access/quotas.py

Plan quota table: how many non-owner collaborators a project may have,
keyed by the project owner's subscription plan.

Unknown or missing plans get the free plan's limits (fail closed).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional

from project_access.models import PlanName


@dataclass(frozen=True)
class PlanQuota:
    """Collaboration limits for one plan tier."""
    name: str
    max_collaborators: int


PLAN_QUOTAS: Dict[str, PlanQuota] = {
    PlanName.free.value: PlanQuota(PlanName.free.value, max_collaborators=0),
    PlanName.pro.value: PlanQuota(PlanName.pro.value, max_collaborators=3),
    PlanName.team.value: PlanQuota(PlanName.team.value, max_collaborators=10),
}

DEFAULT_PLAN = PlanName.free.value


def normalize_plan(plan: Optional[str]) -> str:
    """
    Return the canonical plan name, or "free" for anything unrecognized.

    Example:
        normalize_plan(" Pro ") -> "pro"
        normalize_plan("enterprise") -> "free"
    """
    if isinstance(plan, PlanName):
        return plan.value
    name = plan.strip().lower() if plan else ""
    return name if name in PLAN_QUOTAS else DEFAULT_PLAN


def get_plan_quota(plan: Optional[str]) -> PlanQuota:
    return PLAN_QUOTAS[normalize_plan(plan)]


def max_collaborators(plan: Optional[str]) -> int:
    """
    Maximum number of non-owner collaborators on a project owned by a user on `plan`.

    free -> 0, pro -> 3, team -> 10; anything else -> 0.
    """
    return get_plan_quota(plan).max_collaborators


def collaborator_usage(plan: Optional[str], current: int) -> Dict[str, Any]:
    """
    Usage report for the member picker / upgrade prompt.

    `allowed` says whether one more collaborator would fit. A project may be
    over its limit after the owner downgraded; existing grants are kept and
    only new seats are refused.
    """
    quota = get_plan_quota(plan)
    return {
        "plan": quota.name,
        "current": current,
        "limit": quota.max_collaborators,
        "allowed": current + 1 <= quota.max_collaborators,
    }
