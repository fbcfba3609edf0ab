"""
Migration 001: Baseline schema.

A no-op for databases created by init_db. It exists to establish a baseline
version so later migrations can build on it.
"""


def up(conn):
    """Baseline migration - verify core tables exist."""
    cursor = conn.execute(
        "SELECT name FROM sqlite_master WHERE type='table' ORDER BY name"
    )
    tables = {row[0] for row in cursor.fetchall()}

    required = {"profiles", "icp_analyses", "playbook_analyses", "company_analyzer_outputs"}
    missing = required - tables

    if missing:
        raise RuntimeError(
            f"Baseline migration requires existing schema. Missing tables: {missing}. "
            f"Run 'python -m personaops.db.init_db' first."
        )
