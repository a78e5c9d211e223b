"""
project_access/subscriptions.py

Subscription state for project owners.

The collaborator quota of a project depends on its owner's *effective* plan:
- active / trialing subscription: the subscribed plan
- past_due / canceled / no subscription row: free

Source of truth: subscriptions table.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from project_access.db import DBConnection, execute_query, fetch_one
from project_access.quotas import normalize_plan


# ============================================================================
# Subscription Data Model
# ============================================================================

@dataclass
class Subscription:
    """Subscription state from database."""
    user_id: str
    status: str  # "trialing", "active", "past_due", "canceled"
    plan_name: str  # "free", "pro", "team"
    current_period_end: Optional[str] = None
    cancel_at_period_end: bool = False
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @property
    def is_active(self) -> bool:
        """Check if subscription grants paid features."""
        return self.status in ("active", "trialing")

    @property
    def is_past_due(self) -> bool:
        return self.status == "past_due"

    @property
    def is_canceled(self) -> bool:
        return self.status == "canceled"


# ============================================================================
# Subscription Queries
# ============================================================================

def get_subscription(conn: DBConnection, user_id: str) -> Subscription:
    """
    Fetch subscription for a user.

    If no subscription exists, returns a default free subscription so every
    user always has a subscription state.
    """
    row = fetch_one(
        conn,
        """
        SELECT
            user_id, status, plan_name, current_period_end,
            cancel_at_period_end, created_at, updated_at
        FROM subscriptions
        WHERE user_id = :user_id
        LIMIT 1
        """,
        {"user_id": user_id},
    )

    if row:
        return Subscription(
            user_id=row["user_id"],
            status=row["status"] or "active",
            plan_name=row["plan_name"] or "free",
            current_period_end=row["current_period_end"],
            cancel_at_period_end=bool(row["cancel_at_period_end"]),
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )

    return Subscription(user_id=user_id, status="active", plan_name="free")


def get_effective_plan(subscription: Subscription) -> str:
    """
    Compute effective plan based on subscription status.

    Past due or canceled subscriptions lose their paid plan immediately.
    """
    if subscription.is_active:
        return normalize_plan(subscription.plan_name)
    return "free"


def get_user_plan(conn: DBConnection, user_id: str) -> str:
    """Effective plan for a user (the outbound "plan of user" lookup)."""
    return get_effective_plan(get_subscription(conn, user_id))


# ============================================================================
# Subscription Management Helpers
# ============================================================================

def upsert_subscription(
    conn: DBConnection,
    user_id: str,
    plan_name: str,
    status: str = "active",
) -> None:
    """
    Create or update a user's subscription (billing webhooks, admin, tests).

    Plan downgrades never touch existing project grants; the quota is only
    enforced when a new collaborator is added.
    """
    now = datetime.now(timezone.utc).isoformat()
    execute_query(
        conn,
        """
        INSERT INTO subscriptions (user_id, status, plan_name, created_at, updated_at)
        VALUES (:user_id, :status, :plan_name, :now, :now)
        ON CONFLICT (user_id) DO UPDATE
        SET status = excluded.status,
            plan_name = excluded.plan_name,
            updated_at = excluded.updated_at
        """,
        {"user_id": user_id, "status": status, "plan_name": plan_name, "now": now},
    )
    conn.commit()
