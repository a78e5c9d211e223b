"""
project_access/grants.py

Access grant store: persisted (project, user) -> role rows.

The project owner is implicit (projects.user_id) and never stored here.
At most one row exists per (project, user); the table's unique constraint
plus ON CONFLICT upsert make a duplicate impossible to read.

These functions run inside the caller's transaction and do not commit.
Access changes go through access_control, which wraps them in
db.project_write_lock. Driver errors surface as StorageError.
"""

from __future__ import annotations

import functools
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

from project_access.config import IS_DEV
from project_access.db import DB_ERRORS, DBConnection, execute_query, fetch_all, fetch_one
from project_access.errors import StorageError
from project_access.models import AccessGrant, ProjectRole
from project_access.roles import parse_role


def _storage_operation(operation: str, detail: str, key_name: str = "project_id") -> Callable:
    """
    Translate driver errors raised by a store function into StorageError.

    key_name names the function's first argument after conn. Only a
    project_id key is recorded on the error.
    """
    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        def wrapper(conn: DBConnection, key: str, *args, **kwargs):
            try:
                return func(conn, key, *args, **kwargs)
            except DB_ERRORS as e:
                print(f"[GRANTS] DB error on {operation}: {key_name}={key}, error={type(e).__name__}: {e}")
                project_id = key if key_name == "project_id" else None
                raise StorageError(detail, operation=operation, project_id=project_id) from e
        return wrapper
    return decorator


def _row_to_grant(row: Dict[str, Any]) -> AccessGrant:
    # Rows holding a role that is not grantable confer no access
    role = parse_role(row["role"])
    if role not in (ProjectRole.viewer, ProjectRole.editor, ProjectRole.manager):
        role = ProjectRole.none

    granted_at = row["created_at"]
    if isinstance(granted_at, datetime):
        granted_at = granted_at.isoformat()

    return AccessGrant(
        project_id=row["project_id"],
        user_id=row["user_id"],
        role=role,
        granted_at=granted_at,
        granted_by=row.get("granted_by"),
    )


# ============================================================================
# Reads
# ============================================================================

@_storage_operation("find_grant", "Failed to load project access")
def find_grant(conn: DBConnection, project_id: str, user_id: str) -> Optional[AccessGrant]:
    row = fetch_one(
        conn,
        """
        SELECT project_id, user_id, role, granted_by, created_at
        FROM project_access
        WHERE project_id = :project_id AND user_id = :user_id
        """,
        {"project_id": project_id, "user_id": user_id},
    )
    return _row_to_grant(row) if row else None


@_storage_operation("list_grants", "Failed to load project access")
def list_grants_by_project(conn: DBConnection, project_id: str) -> List[AccessGrant]:
    """All grants of a project, oldest first (ties broken by insertion order)."""
    rows = fetch_all(
        conn,
        """
        SELECT project_id, user_id, role, granted_by, created_at
        FROM project_access
        WHERE project_id = :project_id
        ORDER BY created_at ASC, id ASC
        """,
        {"project_id": project_id},
    )
    return [_row_to_grant(row) for row in rows]


@_storage_operation("count_grants", "Failed to load project access")
def count_grants_by_project(conn: DBConnection, project_id: str) -> int:
    """Number of collaborators on a project, owner excluded."""
    row = fetch_one(
        conn,
        "SELECT COUNT(*) AS n FROM project_access WHERE project_id = :project_id",
        {"project_id": project_id},
    )
    return int(row["n"]) if row else 0


@_storage_operation("list_shared_projects", "Failed to load project access", key_name="user_id")
def list_shared_project_ids(conn: DBConnection, user_id: str) -> List[str]:
    """
    Ids of projects shared with a user through a grant.

    Projects the user owns are not included.
    """
    rows = fetch_all(
        conn,
        """
        SELECT project_id
        FROM project_access
        WHERE user_id = :user_id AND role IN ('viewer', 'editor', 'manager')
        ORDER BY created_at ASC, id ASC
        """,
        {"user_id": user_id},
    )
    return [row["project_id"] for row in rows]


# ============================================================================
# Writes
# ============================================================================

@_storage_operation("upsert_grant", "Failed to add team member")
def upsert_grant(
    conn: DBConnection,
    project_id: str,
    user_id: str,
    role: ProjectRole,
    granted_by: Optional[str] = None,
) -> AccessGrant:
    """
    Insert a grant, or change the role of the existing one in place.

    A role change keeps the original granted-at timestamp and granted_by.
    """
    now = datetime.now(timezone.utc).isoformat()
    execute_query(
        conn,
        """
        INSERT INTO project_access (project_id, user_id, role, granted_by, created_at)
        VALUES (:project_id, :user_id, :role, :granted_by, :created_at)
        ON CONFLICT (project_id, user_id) DO UPDATE
        SET role = excluded.role
        """,
        {
            "project_id": project_id,
            "user_id": user_id,
            "role": ProjectRole(role).value,
            "granted_by": granted_by,
            "created_at": now,
        },
    )

    row = fetch_one(
        conn,
        """
        SELECT project_id, user_id, role, granted_by, created_at
        FROM project_access
        WHERE project_id = :project_id AND user_id = :user_id
        """,
        {"project_id": project_id, "user_id": user_id},
    )

    if IS_DEV:
        print(f"[GRANTS] Upserted grant: project_id={project_id}, user_id={user_id}, role={ProjectRole(role).value}")

    return _row_to_grant(row)


@_storage_operation("delete_grant", "Failed to remove team member")
def delete_grant(conn: DBConnection, project_id: str, user_id: str) -> bool:
    """
    Remove a grant. Deleting a grant that does not exist is a no-op.

    Returns:
        True if a row was removed
    """
    cur = execute_query(
        conn,
        "DELETE FROM project_access WHERE project_id = :project_id AND user_id = :user_id",
        {"project_id": project_id, "user_id": user_id},
    )
    removed = (cur.rowcount or 0) > 0

    if IS_DEV:
        print(f"[GRANTS] Deleted grant: project_id={project_id}, user_id={user_id}, removed={removed}")

    return removed


@_storage_operation("delete_project_grants", "Failed to remove team member")
def delete_grants_by_project(conn: DBConnection, project_id: str) -> int:
    """
    Remove every grant of a project (project deletion).

    The foreign key cascade does the same when the project row is deleted;
    this covers stores where the cascade is not enforced.
    """
    cur = execute_query(
        conn,
        "DELETE FROM project_access WHERE project_id = :project_id",
        {"project_id": project_id},
    )
    return max(cur.rowcount or 0, 0)
