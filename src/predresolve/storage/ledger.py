"""Local ledger: DuckDB-backed MarketSource, ResolutionSink and AttemptRecorder."""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

from predresolve.errors import CollaboratorFailure
from predresolve.models import Market, SubmissionReceipt
from predresolve.storage.attempts import record_attempt
from predresolve.storage.markets import list_pending_markets, mark_resolved

if TYPE_CHECKING:
    from duckdb import DuckDBPyConnection


class Ledger:
    """Reads pending markets from and writes resolutions to a local DuckDB file."""

    def __init__(self, conn: DuckDBPyConnection, now: datetime | None = None) -> None:
        self.conn = conn
        self.now = now

    async def list_pending_markets(self) -> list[Market]:
        try:
            return list_pending_markets(self.conn, now=self.now)
        except Exception as e:
            raise CollaboratorFailure(f"ledger read failed: {e}") from e

    async def submit_resolution(
        self,
        market_id: str,
        outcome: bool,
        confidence: int,
        evidence_digest: bytes,
    ) -> SubmissionReceipt:
        digest = "0x" + evidence_digest.hex()
        if not mark_resolved(self.conn, market_id, outcome, confidence, digest):
            return SubmissionReceipt(market_id=market_id, ok=False, reason="unknown or already resolved")
        return SubmissionReceipt(market_id=market_id, ok=True, reference=digest)

    def record_attempt(
        self,
        market_id: str,
        category: str | None,
        decision: str,
        confidence: float,
        failed_sources: list[str],
        reason: str | None,
    ) -> None:
        record_attempt(self.conn, market_id, category, decision, confidence, failed_sources, reason)
