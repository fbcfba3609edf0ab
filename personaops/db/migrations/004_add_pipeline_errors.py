"""
Migration 004: Add pipeline_errors for non-fatal errors recorded by the
orchestrator and by best-effort writes (report saves, invitation mail).
"""


def up(conn):
    conn.execute("""
        CREATE TABLE IF NOT EXISTS pipeline_errors (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            pipeline_id TEXT,
            user_id TEXT,
            phase TEXT NOT NULL,
            function_name TEXT,
            error_type TEXT,
            error_message TEXT,
            context TEXT DEFAULT '{}',
            severity TEXT DEFAULT 'warning',
            created_at TEXT DEFAULT (datetime('now'))
        )
    """)
    conn.execute("""
        CREATE INDEX IF NOT EXISTS idx_pipeline_errors_pipeline
        ON pipeline_errors(pipeline_id)
    """)
