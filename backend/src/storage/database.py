"""
SQLite schema and connection handling for the paper repository.

Three tables back the search engine:
- documents: research papers, authors and keywords stored as JSON arrays
- bookmarks: one row per (user, paper)
- audit_logs: append-only user events; RESEARCH_VIEWED rows feed
  recommendations
"""

import sqlite3
from pathlib import Path
from typing import Optional
import logging

logger = logging.getLogger('storage')

SCHEMA = (
    """
    CREATE TABLE IF NOT EXISTS documents (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        title TEXT NOT NULL,
        abstract TEXT NOT NULL DEFAULT '',
        authors_json TEXT NOT NULL DEFAULT '[]',
        keywords_json TEXT NOT NULL DEFAULT '[]',
        subject_area TEXT,
        category TEXT NOT NULL CHECK (category IN ('Completed', 'Published')),
        year_completed INTEGER,
        view_count INTEGER NOT NULL DEFAULT 0 CHECK (view_count >= 0),
        status TEXT NOT NULL DEFAULT 'pending',
        created_at TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS bookmarks (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        user_id TEXT NOT NULL,
        document_id INTEGER NOT NULL REFERENCES documents(id),
        created_at TEXT NOT NULL,
        UNIQUE (user_id, document_id)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS audit_logs (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        user_id TEXT,
        action TEXT NOT NULL,
        resource TEXT,
        resource_id INTEGER,
        details_json TEXT,
        timestamp TEXT NOT NULL
    )
    """,
)

INDEXES = {
    "idx_documents_status": "documents(status)",
    "idx_documents_category": "documents(category)",
    "idx_documents_views": "documents(view_count)",
    "idx_documents_created": "documents(created_at)",
    "idx_bookmarks_user": "bookmarks(user_id)",
    "idx_audit_user_time": "audit_logs(user_id, timestamp)",
    "idx_audit_action_time": "audit_logs(action, timestamp)",
}


def _casefold(value):
    # SQLite LOWER() only folds ASCII
    return value.casefold() if isinstance(value, str) else value


class Database:
    """Owns one SQLite connection and the repository schema."""

    def __init__(self, db_path: str):
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self.connection: Optional[sqlite3.Connection] = None

    def connect(self) -> sqlite3.Connection:
        """
        Open the connection on first use.

        The connection is shared with the API thread pool, so thread checks
        are disabled; DocumentStore serializes access with a lock. Text
        matching relies on the casefold() SQL function registered here.
        """
        if self.connection is None:
            self.connection = sqlite3.connect(self.db_path, check_same_thread=False)
            self.connection.row_factory = sqlite3.Row
            self.connection.create_function(
                "casefold", 1, _casefold, deterministic=True
            )
            logger.debug(f"Opened database {self.db_path}")
        return self.connection

    def initialize_schema(self):
        """Create tables and indexes that do not exist yet."""
        conn = self.connect()
        cursor = conn.cursor()

        for statement in SCHEMA:
            cursor.execute(statement)

        for name, target in INDEXES.items():
            cursor.execute(f"CREATE INDEX IF NOT EXISTS {name} ON {target}")

        conn.commit()
        logger.info(f"Schema ready at {self.db_path}")

    def close(self):
        if self.connection is not None:
            self.connection.close()
            self.connection = None

    def __enter__(self):
        self.connect()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()


def init_database(db_path: str) -> Database:
    """
    Open a database and make sure the schema exists.

    Args:
        db_path: Path to SQLite database file

    Returns:
        Database instance with an open connection
    """
    db = Database(db_path)
    db.initialize_schema()
    return db
