"""
project_access/test_quotas.py

Tests for the plan quota table and owner plan derivation.
"""

import pytest

from project_access.conftest import add_project
from project_access.quotas import collaborator_usage, max_collaborators, normalize_plan
from project_access.subscriptions import (
    Subscription,
    get_effective_plan,
    get_subscription,
    upsert_subscription,
)


# ============================================================================
# Quota table
# ============================================================================

@pytest.mark.parametrize("plan,limit", [
    ("free", 0),
    ("pro", 3),
    ("team", 10),
    ("PRO", 3),
])
def test_max_collaborators(plan, limit):
    assert max_collaborators(plan) == limit


@pytest.mark.parametrize("plan", ["enterprise", "", None, "gold"])
def test_unknown_plan_fails_closed(plan):
    assert max_collaborators(plan) == 0
    assert normalize_plan(plan) == "free"


def test_collaborator_usage_report():
    assert collaborator_usage("pro", 2) == {"plan": "pro", "current": 2, "limit": 3, "allowed": True}
    assert collaborator_usage("pro", 3)["allowed"] is False


def test_collaborator_usage_over_limit_after_downgrade():
    usage = collaborator_usage("free", 5)
    assert usage["limit"] == 0
    assert usage["current"] == 5
    assert usage["allowed"] is False


# ============================================================================
# Effective plan
# ============================================================================

@pytest.mark.parametrize("status,expected", [
    ("active", "team"),
    ("trialing", "team"),
    ("past_due", "free"),
    ("canceled", "free"),
])
def test_effective_plan_by_status(status, expected):
    sub = Subscription(user_id="u1", status=status, plan_name="team")
    assert get_effective_plan(sub) == expected


def test_missing_subscription_is_free(conn):
    sub = get_subscription(conn, "nobody")
    assert sub.plan_name == "free"
    assert get_effective_plan(sub) == "free"


def test_project_carries_owner_effective_plan(conn):
    project = add_project(conn, "p1", "owner", plan="pro")
    assert project.owner_plan == "pro"

    upsert_subscription(conn, "owner", "pro", status="past_due")
    project = add_project(conn, "p2", "owner")
    assert project.owner_plan == "free"
