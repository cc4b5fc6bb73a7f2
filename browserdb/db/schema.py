"""Database schema — table names, column layouts and the version registry."""

# Bump when any table's layout changes; tables upgrade themselves through
# ``GenericTable.update_table``.
SCHEMA_VERSION = 1

TABLE_HISTORY = "history"
TABLE_VISITS = "visits"
TABLE_VERSIONS = "table_versions"

# ==========================================================================
# Version registry (one row per managed table)
# ==========================================================================
SCHEMA_DDL = f"""
CREATE TABLE IF NOT EXISTS {TABLE_VERSIONS} (
    name        TEXT PRIMARY KEY,
    version     INTEGER NOT NULL,
    updated_at  TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%SZ','now'))
);
"""

# ==========================================================================
# Sites
# ==========================================================================
HISTORY_ROWS = """
    id      INTEGER PRIMARY KEY AUTOINCREMENT,
    guid    TEXT NOT NULL UNIQUE,
    url     TEXT NOT NULL UNIQUE,
    title   TEXT NOT NULL
"""

# ==========================================================================
# Visits (siteId is checked by the application, not by a REFERENCES clause)
# ==========================================================================
VISITS_ROWS = """
    id      INTEGER PRIMARY KEY AUTOINCREMENT,
    siteId  INTEGER NOT NULL,
    date    INTEGER NOT NULL,
    type    INTEGER NOT NULL
"""

VISITS_INDICES = (
    f"CREATE INDEX IF NOT EXISTS idx_visits_site ON {TABLE_VISITS}(siteId)",
    f"CREATE INDEX IF NOT EXISTS idx_visits_date ON {TABLE_VISITS}(date)",
)
