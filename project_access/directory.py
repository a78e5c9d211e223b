"""
project_access/directory.py

Identity / organization directory.

Users and organizations are owned by the external identity provider; this
package only reads them. UserDirectory is the interface the membership view
and the engine depend on; DbUserDirectory reads the provider's users as
mirrored into the local users table (kept in sync by the provider webhook).
Driver errors surface as StorageError.
"""

from __future__ import annotations

import functools
from typing import Callable, Dict, Iterable, List, Optional

from project_access.db import DB_ERRORS, DBConnection, fetch_all, fetch_one
from project_access.errors import StorageError
from project_access.models import UserSummary
from project_access.subscriptions import get_user_plan

# Organization member lists are fetched in one page
ORG_MEMBER_LIMIT = 100


def display_name(first_name: Optional[str], last_name: Optional[str], email: Optional[str]) -> str:
    """
    "First Last", falling back to the email address, then "Unknown".
    """
    name = " ".join(part for part in (first_name, last_name) if part)
    return name or email or "Unknown"


def _directory_lookup(operation: str) -> Callable:
    """Translate driver errors raised by a directory query into StorageError."""
    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        def wrapper(self, *args, **kwargs):
            try:
                return func(self, *args, **kwargs)
            except DB_ERRORS as e:
                print(f"[DIRECTORY] DB error on {operation}: error={type(e).__name__}: {e}")
                raise StorageError("Failed to load users", operation=operation) from e
        return wrapper
    return decorator


class UserDirectory:
    """Read-only lookups against the identity provider."""

    def get_user(self, user_id: str) -> Optional[UserSummary]:
        return self.get_users([user_id]).get(user_id)

    def get_users(self, user_ids: Iterable[str]) -> Dict[str, UserSummary]:
        raise NotImplementedError

    def list_organization_members(self, organization_id: str) -> List[UserSummary]:
        """Members of an organization, in the directory's own order."""
        raise NotImplementedError

    def get_user_plan(self, user_id: str) -> str:
        raise NotImplementedError


class DbUserDirectory(UserDirectory):
    """UserDirectory over the local users / subscriptions tables."""

    def __init__(self, conn: DBConnection):
        self.conn = conn

    @staticmethod
    def _summary(row) -> UserSummary:
        return UserSummary(
            id=row["id"],
            name=display_name(row["first_name"], row["last_name"], row["email"]),
            email=row["email"] or "",
            image_url=row["image_url"] or "",
        )

    @_directory_lookup("get_user")
    def get_user(self, user_id: str) -> Optional[UserSummary]:
        row = fetch_one(
            self.conn,
            "SELECT id, email, first_name, last_name, image_url FROM users WHERE id = :user_id",
            {"user_id": user_id},
        )
        return self._summary(row) if row else None

    @_directory_lookup("get_users")
    def get_users(self, user_ids: Iterable[str]) -> Dict[str, UserSummary]:
        unique_ids = list(dict.fromkeys(uid for uid in user_ids if uid))
        if not unique_ids:
            return {}

        # One named placeholder per id keeps the query portable across drivers
        params = {f"id{i}": uid for i, uid in enumerate(unique_ids)}
        placeholders = ", ".join(f":{key}" for key in params)
        rows = fetch_all(
            self.conn,
            f"SELECT id, email, first_name, last_name, image_url FROM users WHERE id IN ({placeholders})",
            params,
        )
        return {row["id"]: self._summary(row) for row in rows}

    @_directory_lookup("list_organization_members")
    def list_organization_members(self, organization_id: str) -> List[UserSummary]:
        if not organization_id:
            return []
        rows = fetch_all(
            self.conn,
            """
            SELECT id, email, first_name, last_name, image_url
            FROM users
            WHERE organization_id = :organization_id
            ORDER BY created_at ASC, id ASC
            LIMIT :limit
            """,
            {"organization_id": organization_id, "limit": ORG_MEMBER_LIMIT},
        )
        return [self._summary(row) for row in rows]

    @_directory_lookup("get_user_plan")
    def get_user_plan(self, user_id: str) -> str:
        return get_user_plan(self.conn, user_id)
