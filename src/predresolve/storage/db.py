"""DuckDB connection and schema init."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

import duckdb

if TYPE_CHECKING:
    from duckdb import DuckDBPyConnection

SCHEMA_SQL = """
CREATE SEQUENCE IF NOT EXISTS attempt_seq START 1;

-- Markets awaiting (or having received) a resolution
CREATE TABLE IF NOT EXISTS markets (
    market_id       VARCHAR PRIMARY KEY,
    question        VARCHAR NOT NULL,
    deadline        BIGINT NOT NULL,
    created_at      BIGINT NOT NULL,
    resolved        BOOLEAN NOT NULL DEFAULT FALSE,
    outcome         BOOLEAN,
    confidence      INTEGER,
    evidence_digest VARCHAR,
    resolved_at     BIGINT
);

-- Every resolution attempt (accepted, rejected, insufficient, failed)
CREATE TABLE IF NOT EXISTS resolution_attempts (
    id              BIGINT PRIMARY KEY DEFAULT nextval('attempt_seq'),
    market_id       VARCHAR NOT NULL,
    attempted_at    BIGINT NOT NULL,
    category        VARCHAR,
    decision        VARCHAR NOT NULL,
    confidence      DOUBLE,
    failed_sources  JSON,
    reason          VARCHAR
);
"""


def get_connection(db_path: str | Path, read_only: bool = False) -> DuckDBPyConnection:
    """Return a DuckDB connection. Caller must close or use as context manager."""
    path = Path(db_path)
    if not read_only:
        path.parent.mkdir(parents=True, exist_ok=True)
    return duckdb.connect(str(path), read_only=read_only)


def init_schema(conn: DuckDBPyConnection) -> None:
    """Create tables and sequences if they do not exist."""
    for stmt in SCHEMA_SQL.split(";"):
        stmt = stmt.strip()
        if stmt:
            try:
                conn.execute(stmt)
            except duckdb.Error as e:
                if "already exists" not in str(e).lower():
                    raise
