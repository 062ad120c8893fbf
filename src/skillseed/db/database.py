"""SQLite database connection and schema management.

Provides connection management and schema initialization for the skill tree
tables written by the seeder.
"""

from __future__ import annotations

import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Generator

import structlog

logger = structlog.get_logger(__name__)

# Default database location
DEFAULT_DB_PATH = Path("db/skillseed.db")

# Current database file (module-level for simplicity in CLI context)
_db_path: Path | None = None


def init_db(db_path: Path | None = None) -> None:
    """Initialize database with schema.

    Creates the database file and all required tables if they don't exist.

    Args:
        db_path: Path to database file. Defaults to db/skillseed.db
    """
    global _db_path
    _db_path = db_path or DEFAULT_DB_PATH

    with get_db() as conn:
        _create_schema(conn)

    logger.info("database.initialized", path=str(_db_path))


@contextmanager
def get_db(autocommit: bool = False) -> Generator[sqlite3.Connection, None, None]:
    """Get database connection as context manager.

    Args:
        autocommit: If True, every statement is committed on its own and
            nothing is rolled back on error. Seed runs use this mode.

    Yields:
        SQLite connection with row factory set to sqlite3.Row

    Example:
        with get_db() as conn:
            rows = conn.execute("SELECT * FROM domains").fetchall()
    """
    db_path = _db_path or DEFAULT_DB_PATH

    # Ensure directory exists
    db_path.parent.mkdir(parents=True, exist_ok=True)

    conn = sqlite3.connect(db_path, isolation_level=None if autocommit else "DEFERRED")
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON")

    try:
        yield conn
        if not autocommit:
            conn.commit()
    except Exception:
        if not autocommit:
            conn.rollback()
        raise
    finally:
        conn.close()


def _create_schema(conn: sqlite3.Connection) -> None:
    """Create database schema.

    Uses IF NOT EXISTS for idempotency. UNIQUE constraints are the
    conflict targets used by the repository upserts.
    """
    conn.executescript(
        """
        CREATE TABLE IF NOT EXISTS skilltrees (
            id TEXT PRIMARY KEY,
            name TEXT NOT NULL,
            tier_bases TEXT NOT NULL DEFAULT '{}'
        );

        CREATE TABLE IF NOT EXISTS domains (
            id TEXT PRIMARY KEY,
            skilltree_id TEXT NOT NULL REFERENCES skilltrees(id),
            name TEXT NOT NULL,
            tier INTEGER NOT NULL,
            description TEXT NOT NULL DEFAULT '',
            prerequisites TEXT NOT NULL DEFAULT '[]',
            display_order INTEGER NOT NULL DEFAULT 0,
            UNIQUE (skilltree_id, name)
        );

        CREATE TABLE IF NOT EXISTS topics (
            id TEXT PRIMARY KEY,
            domain_id TEXT NOT NULL REFERENCES domains(id),
            name TEXT NOT NULL,
            complexity_weight REAL NOT NULL DEFAULT 1.0,
            display_order INTEGER NOT NULL DEFAULT 0,
            retired_at TEXT,
            UNIQUE (domain_id, name)
        );

        CREATE TABLE IF NOT EXISTS nodes (
            id TEXT PRIMARY KEY,
            domain_id TEXT NOT NULL REFERENCES domains(id),
            topic_id TEXT NOT NULL REFERENCES topics(id),
            concept TEXT NOT NULL,
            difficulty REAL NOT NULL,
            question_templates TEXT NOT NULL DEFAULT '[]',
            retired_at TEXT,
            UNIQUE (domain_id, topic_id, concept)
        );

        CREATE INDEX IF NOT EXISTS idx_domains_skilltree ON domains(skilltree_id);
        CREATE INDEX IF NOT EXISTS idx_topics_domain ON topics(domain_id);
        CREATE INDEX IF NOT EXISTS idx_nodes_domain ON nodes(domain_id);
        CREATE INDEX IF NOT EXISTS idx_nodes_topic ON nodes(topic_id);
        """
    )
