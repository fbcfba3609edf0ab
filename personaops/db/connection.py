"""
Database connection utilities.
Centralizes get_db(), get_db_conn() context manager, gen_id() and JSON column helpers.
"""

import json
import logging
import sqlite3
import uuid
from contextlib import contextmanager
from datetime import datetime, timezone

from personaops import config

logger = logging.getLogger("personaops.db")


def get_db(db_path: str = None):
    """Get a database connection with row_factory for dict-like access."""
    conn = sqlite3.connect(db_path or config.DB_PATH, check_same_thread=False)
    conn.row_factory = sqlite3.Row
    conn.execute(f"PRAGMA journal_mode={config.DB_JOURNAL_MODE}")
    conn.execute("PRAGMA foreign_keys=ON")
    return conn


@contextmanager
def get_db_conn(db_path: str = None):
    """Context manager for database connections. Ensures connections are always closed."""
    conn = get_db(db_path)
    try:
        yield conn
    finally:
        conn.close()


def gen_id(prefix=""):
    """Generate a prefixed UUID."""
    short = uuid.uuid4().hex[:12]
    return f"{prefix}_{short}" if prefix else short


def utcnow() -> str:
    return datetime.now(timezone.utc).isoformat()


def canonical_json(value) -> str:
    """Serialize a JSON value so equal objects produce equal strings."""
    return json.dumps(value, sort_keys=True, separators=(",", ":"))


def loads_or_none(raw):
    if raw is None:
        return None
    return json.loads(raw)
