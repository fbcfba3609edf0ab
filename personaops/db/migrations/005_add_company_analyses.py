"""
Migration 005: Add company_analyses, the company-analysis result cache.
"""


def up(conn):
    conn.execute("""
        CREATE TABLE IF NOT EXISTS company_analyses (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            user_id TEXT NOT NULL,
            website_url TEXT NOT NULL,
            analysis_result TEXT NOT NULL,
            created_at TEXT DEFAULT (datetime('now')),
            updated_at TEXT DEFAULT (datetime('now')),
            UNIQUE (user_id, website_url)
        )
    """)
