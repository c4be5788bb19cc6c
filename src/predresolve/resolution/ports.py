"""Boundary contracts with the market store / chain collaborator, plus the HTTP relay sink."""

from __future__ import annotations

from typing import Any, Protocol

import httpx
import structlog

from predresolve.errors import CollaboratorFailure
from predresolve.models import Market, SubmissionReceipt

log = structlog.get_logger(__name__)


class MarketSource(Protocol):
    """Markets past their deadline and not yet resolved."""

    async def list_pending_markets(self) -> list[Market]: ...


class ResolutionSink(Protocol):
    """Receives accepted resolutions. Already-resolved markets are rejected by the sink."""

    async def submit_resolution(
        self,
        market_id: str,
        outcome: bool,
        confidence: int,
        evidence_digest: bytes,
    ) -> SubmissionReceipt: ...


class AttemptRecorder(Protocol):
    """Optional audit trail of every resolution attempt."""

    def record_attempt(
        self,
        market_id: str,
        category: str | None,
        decision: str,
        confidence: float,
        failed_sources: list[str],
        reason: str | None,
    ) -> None: ...


class HttpRelaySink:
    """Posts resolveMarket calls to a relay that signs and submits them to the oracle contract."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        relay_url: str,
        oracle_address: str,
        chain_selector_name: str,
        gas_limit: int = 500000,
    ) -> None:
        self.client = client
        self.relay_url = relay_url
        self.oracle_address = oracle_address
        self.chain_selector_name = chain_selector_name
        self.gas_limit = gas_limit

    async def submit_resolution(
        self,
        market_id: str,
        outcome: bool,
        confidence: int,
        evidence_digest: bytes,
    ) -> SubmissionReceipt:
        body: dict[str, Any] = {
            "receiver": self.oracle_address,
            "chain": self.chain_selector_name,
            "gas_limit": self.gas_limit,
            "function": "resolveMarket",
            "args": [market_id, outcome, confidence, "0x" + evidence_digest.hex()],
        }
        try:
            resp = await self.client.post(self.relay_url, json=body)
            resp.raise_for_status()
            data = resp.json()
        except httpx.HTTPError as e:
            raise CollaboratorFailure(f"relay request failed: {e}") from e
        except ValueError as e:
            raise CollaboratorFailure(f"relay reply malformed: {e}") from e
        ok = bool(data.get("ok", data.get("tx_status") == "success"))
        log.debug("relay_submitted", market_id=market_id, ok=ok)
        return SubmissionReceipt(
            market_id=market_id,
            ok=ok,
            reason=data.get("reason") or data.get("error"),
            reference=data.get("tx_hash"),
        )
