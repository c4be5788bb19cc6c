"""Market persistence: add, list, pending lookup, mark resolved."""

from __future__ import annotations

import time
import uuid
from datetime import datetime, timezone
from typing import TYPE_CHECKING

from predresolve.models import Market

if TYPE_CHECKING:
    from duckdb import DuckDBPyConnection

_COLUMNS = [
    "market_id",
    "question",
    "deadline",
    "created_at",
    "resolved",
    "outcome",
    "confidence",
    "evidence_digest",
    "resolved_at",
]


def _to_ms(dt: datetime) -> int:
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return int(dt.timestamp() * 1000)


def _from_ms(ms: int) -> datetime:
    return datetime.fromtimestamp(ms / 1000, tz=timezone.utc)


def add_market(
    conn: DuckDBPyConnection,
    question: str,
    deadline: datetime,
    market_id: str | None = None,
) -> Market:
    """Insert a new unresolved market and return it."""
    market_id = market_id or str(uuid.uuid4())[:8]
    conn.execute(
        "INSERT INTO markets (market_id, question, deadline, created_at, resolved) VALUES (?, ?, ?, ?, false)",
        [market_id, question, _to_ms(deadline), int(time.time() * 1000)],
    )
    return Market(market_id=market_id, question=question, deadline=deadline)


def get_market(conn: DuckDBPyConnection, market_id: str) -> dict | None:
    row = conn.execute(
        f"SELECT {', '.join(_COLUMNS)} FROM markets WHERE market_id = ?", [market_id]
    ).fetchone()
    return dict(zip(_COLUMNS, row)) if row else None


def list_markets(conn: DuckDBPyConnection, pending_only: bool = False) -> list[dict]:
    """List markets (or unresolved only) as list of dicts, newest deadline last."""
    where = "WHERE NOT resolved" if pending_only else ""
    rows = conn.execute(
        f"SELECT {', '.join(_COLUMNS)} FROM markets {where} ORDER BY deadline, market_id"
    ).fetchall()
    return [dict(zip(_COLUMNS, r)) for r in rows]


def list_pending_markets(conn: DuckDBPyConnection, now: datetime | None = None) -> list[Market]:
    """Unresolved markets whose deadline has passed."""
    now_ms = _to_ms(now) if now else int(time.time() * 1000)
    rows = conn.execute(
        "SELECT market_id, question, deadline FROM markets WHERE NOT resolved AND deadline <= ? "
        "ORDER BY deadline, market_id",
        [now_ms],
    ).fetchall()
    return [Market(market_id=r[0], question=r[1], deadline=_from_ms(r[2])) for r in rows]


def mark_resolved(
    conn: DuckDBPyConnection,
    market_id: str,
    outcome: bool,
    confidence: int,
    evidence_digest: str,
) -> bool:
    """Set the resolution once. Returns False if the market is unknown or already resolved."""
    row = conn.execute("SELECT resolved FROM markets WHERE market_id = ?", [market_id]).fetchone()
    if row is None or row[0]:
        return False
    conn.execute(
        """
        UPDATE markets SET resolved = true, outcome = ?, confidence = ?, evidence_digest = ?, resolved_at = ?
        WHERE market_id = ?
        """,
        [outcome, confidence, evidence_digest, int(time.time() * 1000), market_id],
    )
    return True
