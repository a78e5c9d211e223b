"""
project_access/projects.py

Read-only project repository.

This package never creates or edits project rows; it reads the owner,
organization and owner plan it needs for access decisions, and lists the
projects a user can open.
"""

from __future__ import annotations

from typing import List, Optional

from project_access.db import DBConnection, fetch_all, fetch_one
from project_access.grants import list_shared_project_ids
from project_access.models import Project
from project_access.subscriptions import get_user_plan


def get_project(conn: DBConnection, project_id: str) -> Optional[Project]:
    """
    Load a project with its owner's effective plan.

    Returns:
        Project, or None if no such project exists
    """
    row = fetch_one(
        conn,
        "SELECT id, user_id, organization_id FROM projects WHERE id = :project_id",
        {"project_id": project_id},
    )
    if not row:
        return None

    return Project(
        id=row["id"],
        owner_id=row["user_id"],
        organization_id=row["organization_id"],
        owner_plan=get_user_plan(conn, row["user_id"]),
    )


def list_owned_project_ids(conn: DBConnection, user_id: str) -> List[str]:
    rows = fetch_all(
        conn,
        "SELECT id FROM projects WHERE user_id = :user_id ORDER BY created_at ASC, id ASC",
        {"user_id": user_id},
    )
    return [row["id"] for row in rows]


def list_accessible_project_ids(conn: DBConnection, user_id: str) -> List[str]:
    """
    Projects a user can open: owned ones first, then ones shared with them.

    Grants are read fresh on every call, so a revoked project is gone from
    the very next listing.
    """
    owned = list_owned_project_ids(conn, user_id)
    seen = set(owned)
    shared = [pid for pid in list_shared_project_ids(conn, user_id) if pid not in seen]
    return owned + shared
