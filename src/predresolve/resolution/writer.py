"""ResolutionWriter - packages an accepted consensus into the sink's write call."""

from __future__ import annotations

import hashlib
import json
import time
from typing import Any

import structlog

from predresolve.errors import CollaboratorFailure, ConsensusBelowThreshold, InsufficientData
from predresolve.models import ConsensusResult, Decision, GateDecision, Market, SubmissionReceipt
from predresolve.resolution.ports import ResolutionSink


def evidence_digest(result: ConsensusResult, timestamp_ms: int) -> bytes:
    """32-byte SHA3-256 over canonical JSON of the outcome and its evidence."""
    proof = {
        "outcome": result.outcome,
        "confidence": round(result.confidence),
        "sources": list(result.contributing_sources),
        "evidence": list(result.evidence),
        "timestamp": timestamp_ms,
    }
    payload = json.dumps(proof, sort_keys=True, separators=(",", ":")).encode("utf-8")
    return hashlib.sha3_256(payload).digest()


class ResolutionWriter:
    """Only ever writes results that went through an Accepted gate decision."""

    def __init__(self, sink: ResolutionSink, log: Any = None) -> None:
        self.sink = sink
        self.log = log or structlog.get_logger(__name__)

    async def write(self, market: Market, result: ConsensusResult, decision: GateDecision) -> SubmissionReceipt:
        if result.insufficient_data or decision.decision is Decision.INSUFFICIENT_DATA:
            raise InsufficientData(result.succeeded, result.required or 0, result.dispatched)
        if not decision.accepted:
            raise ConsensusBelowThreshold(decision.confidence, decision.threshold)
        digest = evidence_digest(result, int(time.time() * 1000))
        confidence = int(round(result.confidence))
        self.log.info(
            "resolution_writing",
            market_id=market.market_id,
            outcome=result.outcome,
            confidence=confidence,
            digest=digest.hex(),
        )
        receipt = await self.sink.submit_resolution(market.market_id, result.outcome, confidence, digest)
        if not receipt.ok:
            raise CollaboratorFailure(f"sink rejected market {market.market_id}: {receipt.reason or 'unknown'}")
        self.log.info("resolution_written", market_id=market.market_id, reference=receipt.reference)
        return receipt
