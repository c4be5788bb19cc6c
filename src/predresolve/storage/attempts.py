"""Resolution attempt audit log."""

from __future__ import annotations

import json
import time
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from duckdb import DuckDBPyConnection

_COLUMNS = ["market_id", "attempted_at", "category", "decision", "confidence", "failed_sources", "reason"]


def record_attempt(
    conn: DuckDBPyConnection,
    market_id: str,
    category: str | None,
    decision: str,
    confidence: float,
    failed_sources: list[str],
    reason: str | None,
) -> None:
    conn.execute(
        """
        INSERT INTO resolution_attempts (market_id, attempted_at, category, decision, confidence, failed_sources, reason)
        VALUES (?, ?, ?, ?, ?, ?, ?)
        """,
        [market_id, int(time.time() * 1000), category, decision, confidence, json.dumps(failed_sources), reason],
    )


def list_attempts(conn: DuckDBPyConnection, market_id: str | None = None, limit: int = 50) -> list[dict]:
    """Most recent attempts first."""
    sql = f"SELECT {', '.join(_COLUMNS)} FROM resolution_attempts"
    params: list = []
    if market_id:
        sql += " WHERE market_id = ?"
        params.append(market_id)
    sql += " ORDER BY id DESC LIMIT ?"
    params.append(limit)
    rows = conn.execute(sql, params).fetchall()
    out = []
    for r in rows:
        item = dict(zip(_COLUMNS, r))
        item["failed_sources"] = json.loads(item["failed_sources"]) if item["failed_sources"] else []
        out.append(item)
    return out
