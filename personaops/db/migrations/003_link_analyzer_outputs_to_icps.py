"""
Migration 003: Add company_analyzer_outputs.icp_id.

Existing rows stay NULL until scripts/backfill_icp_id.py links them.
"""


def up(conn):
    columns = {row[1] for row in conn.execute("PRAGMA table_info(company_analyzer_outputs)").fetchall()}
    if "icp_id" not in columns:
        conn.execute("ALTER TABLE company_analyzer_outputs ADD COLUMN icp_id TEXT REFERENCES icps(id)")
    conn.execute("""
        CREATE INDEX IF NOT EXISTS idx_analyzer_icp
        ON company_analyzer_outputs(icp_id)
    """)
