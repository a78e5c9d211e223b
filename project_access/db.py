# project_access/db.py
# Database abstraction layer supporting PostgreSQL (production) and SQLite (dev)
#
# Queries are written once with named parameters (":project_id"), which both
# sqlite3 and SQLAlchemy text() accept.

import sqlite3
from contextlib import contextmanager
from pathlib import Path as FsPath
from typing import Any, Dict, Generator, List, Optional, Union
from urllib.parse import urlparse

from sqlalchemy import create_engine, pool, text
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import SQLAlchemyError

from project_access.config import (
    DATABASE_PATH,
    DATABASE_URL,
    IS_POSTGRES,
    SQLITE_BUSY_TIMEOUT,
)

DBConnection = Union[sqlite3.Connection, Connection]

# Any of these raised by a query is a storage failure
DB_ERRORS = (sqlite3.Error, SQLAlchemyError)

# Global engine (SQLAlchemy) or None for SQLite
_engine: Optional[Engine] = None


def init_engine() -> None:
    """Initialize SQLAlchemy engine for PostgreSQL if DATABASE_URL is set."""
    global _engine

    if not IS_POSTGRES:
        _engine = None
        print("[DB] Using SQLite (local dev mode)")
        return

    parsed = urlparse(DATABASE_URL)
    if not parsed.scheme or not parsed.netloc:
        raise ValueError(f"Invalid DATABASE_URL: {DATABASE_URL[:20]}...")

    # SQLAlchemy only accepts the "postgresql" scheme
    url = DATABASE_URL
    if url.startswith("postgres://"):
        url = "postgresql://" + url[len("postgres://"):]

    _engine = create_engine(
        url,
        poolclass=pool.QueuePool,
        pool_size=5,
        max_overflow=10,
        pool_pre_ping=True,  # Verify connections before use
        echo=False,
    )

    print(f"[DB] Using PostgreSQL ({parsed.hostname})")


def sqlite_path() -> str:
    """Resolve the SQLite file next to the package unless an absolute path is configured."""
    path = FsPath(DATABASE_PATH)
    if path.is_absolute() or DATABASE_PATH == ":memory:":
        return DATABASE_PATH
    return str(FsPath(__file__).resolve().parent / DATABASE_PATH)


def connect_sqlite(path: str) -> sqlite3.Connection:
    """
    Open a SQLite connection configured for this service.

    - Row factory so columns can be read by name
    - Foreign keys on, so deleting a project cascades to its grants
    - Busy timeout bounds how long a writer waits for the write lock
    """
    conn = sqlite3.connect(path, timeout=SQLITE_BUSY_TIMEOUT, check_same_thread=False)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON")
    return conn


@contextmanager
def get_db_connection() -> Generator[DBConnection, None, None]:
    """
    Context manager for database connections.
    Returns sqlite3.Connection for SQLite or sqlalchemy Connection for Postgres.
    """
    if IS_POSTGRES:
        if _engine is None:
            init_engine()

        with _engine.connect() as conn:
            yield conn
    else:
        conn = connect_sqlite(sqlite_path())
        try:
            yield conn
        finally:
            conn.close()


def is_sqlite(conn: DBConnection) -> bool:
    return isinstance(conn, sqlite3.Connection)


def execute_query(
    conn: DBConnection,
    query: str,
    params: Optional[Dict[str, Any]] = None,
) -> Any:
    """
    Execute a query with named parameters.

    Returns:
        Cursor (SQLite) or CursorResult (PostgreSQL)
    """
    if is_sqlite(conn):
        return conn.execute(query, params or {})
    return conn.execute(text(query), params or {})


def row_to_dict(row) -> Dict[str, Any]:
    """
    Convert a sqlite3.Row or SQLAlchemy Row to a plain dict.

    This is the single boundary for converting DB rows to dicts.
    """
    if row is None:
        return {}
    if hasattr(row, "_mapping"):
        return dict(row._mapping)
    return dict(row)


def fetch_one(conn: DBConnection, query: str, params: Optional[Dict[str, Any]] = None) -> Optional[Dict[str, Any]]:
    row = execute_query(conn, query, params).fetchone()
    return row_to_dict(row) if row is not None else None


def fetch_all(conn: DBConnection, query: str, params: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
    return [row_to_dict(row) for row in execute_query(conn, query, params).fetchall()]


def commit(conn: DBConnection) -> None:
    conn.commit()


def rollback(conn: DBConnection) -> None:
    conn.rollback()


@contextmanager
def project_write_lock(conn: DBConnection, project_id: str) -> Generator[DBConnection, None, None]:
    """
    Run the enclosed reads and writes as one transaction that no other writer
    of the same project can interleave with.

    SQLite: BEGIN IMMEDIATE takes the database write lock up front, so a
    concurrent writer blocks (up to the busy timeout) before it can read a
    count that is about to go stale.

    PostgreSQL: a transaction-scoped advisory lock keyed on the project id.
    Writers of other projects are not blocked.

    Commits when the block exits normally, rolls back on any exception.
    """
    if is_sqlite(conn):
        if not conn.in_transaction:
            conn.execute("BEGIN IMMEDIATE")
    else:
        conn.execute(
            text("SELECT pg_advisory_xact_lock(hashtext(:project_id))"),
            {"project_id": project_id},
        )

    try:
        yield conn
    except BaseException:
        rollback(conn)
        raise
    else:
        commit(conn)


# Initialize engine on module import if Postgres mode
if IS_POSTGRES and _engine is None:
    init_engine()
