# project_access/migrate.py
# Database migration module for PostgreSQL and SQLite
# Run: python -m project_access.migrate

from sqlalchemy import text

from project_access.db import DBConnection, commit, get_db_connection, is_sqlite


def run_migrations() -> None:
    """
    Run all database migrations (idempotent).
    Creates tables and indexes if missing. Safe to run multiple times.
    """
    print("[MIGRATE] Starting database migrations...")

    with get_db_connection() as conn:
        create_schema(conn)

    print("[MIGRATE] All migrations complete!")


def create_schema(conn: DBConnection) -> None:
    """Create the schema on an open connection and commit."""
    if is_sqlite(conn):
        _run_sqlite_migrations(conn)
    else:
        _run_postgres_migrations(conn)
    commit(conn)


def _run_postgres_migrations(conn) -> None:
    """PostgreSQL-specific migrations using SQLAlchemy."""
    print("[MIGRATE] Running PostgreSQL migrations...")

    # Users mirrored from the identity provider
    conn.execute(text("""
        CREATE TABLE IF NOT EXISTS users (
            id TEXT PRIMARY KEY,
            email TEXT,
            first_name TEXT,
            last_name TEXT,
            image_url TEXT,
            organization_id TEXT,
            created_at TIMESTAMPTZ DEFAULT CURRENT_TIMESTAMP
        )
    """))
    conn.execute(text("CREATE INDEX IF NOT EXISTS idx_users_organization ON users(organization_id)"))

    # Subscriptions (one per user)
    conn.execute(text("""
        CREATE TABLE IF NOT EXISTS subscriptions (
            id SERIAL PRIMARY KEY,
            user_id TEXT UNIQUE NOT NULL,
            status TEXT DEFAULT 'active',
            plan_name TEXT DEFAULT 'free',
            current_period_end TEXT,
            cancel_at_period_end BOOLEAN DEFAULT FALSE,
            created_at TEXT,
            updated_at TEXT
        )
    """))

    # Projects (owned by the CRUD layer; read here)
    conn.execute(text("""
        CREATE TABLE IF NOT EXISTS projects (
            id TEXT PRIMARY KEY,
            user_id TEXT NOT NULL,
            organization_id TEXT,
            name TEXT,
            created_at TIMESTAMPTZ DEFAULT CURRENT_TIMESTAMP
        )
    """))
    conn.execute(text("CREATE INDEX IF NOT EXISTS idx_projects_user ON projects(user_id)"))

    # Project access grants
    conn.execute(text("""
        CREATE TABLE IF NOT EXISTS project_access (
            id SERIAL PRIMARY KEY,
            project_id TEXT NOT NULL REFERENCES projects(id) ON DELETE CASCADE,
            user_id TEXT NOT NULL,
            role TEXT NOT NULL CHECK (role IN ('viewer', 'editor', 'manager')),
            granted_by TEXT,
            created_at TEXT NOT NULL,
            UNIQUE(project_id, user_id)
        )
    """))
    conn.execute(text("CREATE INDEX IF NOT EXISTS idx_project_access_user ON project_access(user_id)"))

    print("[MIGRATE] PostgreSQL migrations complete")


def _run_sqlite_migrations(conn) -> None:
    """SQLite-specific migrations."""
    print("[MIGRATE] Running SQLite migrations...")

    cur = conn.cursor()

    cur.execute("""
        CREATE TABLE IF NOT EXISTS users (
            id TEXT PRIMARY KEY,
            email TEXT,
            first_name TEXT,
            last_name TEXT,
            image_url TEXT,
            organization_id TEXT,
            created_at TEXT DEFAULT CURRENT_TIMESTAMP
        )
    """)
    cur.execute("CREATE INDEX IF NOT EXISTS idx_users_organization ON users(organization_id)")

    cur.execute("""
        CREATE TABLE IF NOT EXISTS subscriptions (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            user_id TEXT UNIQUE NOT NULL,
            status TEXT DEFAULT 'active',
            plan_name TEXT DEFAULT 'free',
            current_period_end TEXT,
            cancel_at_period_end INTEGER DEFAULT 0,
            created_at TEXT,
            updated_at TEXT
        )
    """)

    cur.execute("""
        CREATE TABLE IF NOT EXISTS projects (
            id TEXT PRIMARY KEY,
            user_id TEXT NOT NULL,
            organization_id TEXT,
            name TEXT,
            created_at TEXT DEFAULT CURRENT_TIMESTAMP
        )
    """)
    cur.execute("CREATE INDEX IF NOT EXISTS idx_projects_user ON projects(user_id)")

    cur.execute("""
        CREATE TABLE IF NOT EXISTS project_access (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            project_id TEXT NOT NULL REFERENCES projects(id) ON DELETE CASCADE,
            user_id TEXT NOT NULL,
            role TEXT NOT NULL CHECK (role IN ('viewer', 'editor', 'manager')),
            granted_by TEXT,
            created_at TEXT NOT NULL,
            UNIQUE(project_id, user_id)
        )
    """)
    cur.execute("CREATE INDEX IF NOT EXISTS idx_project_access_user ON project_access(user_id)")

    print("[MIGRATE] SQLite migrations complete")


if __name__ == "__main__":
    run_migrations()
