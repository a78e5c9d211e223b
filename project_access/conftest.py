"""
Shared fixtures: an in-memory SQLite database with the full schema, plus
helpers to seed users, subscriptions and projects.
"""

import sqlite3
from typing import Optional

import pytest

from project_access.db import connect_sqlite
from project_access.migrate import create_schema
from project_access.models import Project
from project_access.projects import get_project
from project_access.subscriptions import upsert_subscription


def add_user(
    conn: sqlite3.Connection,
    user_id: str,
    organization_id: Optional[str] = None,
    first_name: Optional[str] = None,
    last_name: Optional[str] = None,
    email: Optional[str] = None,
    created_at: Optional[str] = None,
) -> None:
    conn.execute(
        """
        INSERT INTO users (id, email, first_name, last_name, image_url, organization_id, created_at)
        VALUES (?, ?, ?, ?, ?, ?, COALESCE(?, CURRENT_TIMESTAMP))
        """,
        (
            user_id,
            email if email is not None else f"{user_id}@example.com",
            first_name,
            last_name,
            f"https://img.example.com/{user_id}.png",
            organization_id,
            created_at,
        ),
    )
    conn.commit()


def add_project(
    conn: sqlite3.Connection,
    project_id: str,
    owner_id: str,
    plan: Optional[str] = None,
    organization_id: Optional[str] = None,
) -> Project:
    """Insert a project (and its owner's subscription when `plan` is given)."""
    if plan is not None:
        upsert_subscription(conn, owner_id, plan)
    conn.execute(
        "INSERT INTO projects (id, user_id, organization_id, name) VALUES (?, ?, ?, ?)",
        (project_id, owner_id, organization_id, f"Project {project_id}"),
    )
    conn.commit()
    return get_project(conn, project_id)


@pytest.fixture
def conn():
    """In-memory database with schema."""
    connection = connect_sqlite(":memory:")
    create_schema(connection)
    yield connection
    connection.close()


@pytest.fixture
def db_file(tmp_path):
    """Path of a file-backed database with schema (for multi-connection tests)."""
    path = str(tmp_path / "access.db")
    connection = connect_sqlite(path)
    create_schema(connection)
    connection.close()
    return path
