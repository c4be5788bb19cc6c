"""ResolutionGate - acceptance threshold on consensus confidence."""

from __future__ import annotations

from typing import Any

import structlog

from predresolve.errors import ConsensusBelowThreshold
from predresolve.models import ConsensusResult, Decision, GateDecision

DEFAULT_THRESHOLD = 80.0


class ResolutionGate:
    """Accept iff confidence >= threshold. Rejection is an expected outcome, not an error."""

    def __init__(self, threshold: float = DEFAULT_THRESHOLD, log: Any = None) -> None:
        if not 0 < threshold <= 100:
            raise ValueError(f"threshold must be in (0, 100], got {threshold}")
        self.threshold = threshold
        self.log = log or structlog.get_logger(__name__)

    def decide(self, result: ConsensusResult) -> GateDecision:
        if result.insufficient_data:
            reason = result.evidence[0] if result.evidence else "insufficient data"
            self.log.info(
                "resolution_insufficient",
                confidence=result.confidence,
                threshold=self.threshold,
                failed_sources=list(result.failed_sources),
            )
            return GateDecision(
                decision=Decision.INSUFFICIENT_DATA,
                confidence=result.confidence,
                threshold=self.threshold,
                reason=reason,
            )
        if result.confidence >= self.threshold:
            self.log.info("resolution_accepted", confidence=result.confidence, threshold=self.threshold)
            return GateDecision(
                decision=Decision.ACCEPTED,
                confidence=result.confidence,
                threshold=self.threshold,
            )
        reason = str(ConsensusBelowThreshold(result.confidence, self.threshold))
        self.log.info(
            "resolution_rejected",
            confidence=result.confidence,
            threshold=self.threshold,
            failed_sources=list(result.failed_sources),
        )
        return GateDecision(
            decision=Decision.REJECTED,
            confidence=result.confidence,
            threshold=self.threshold,
            reason=reason,
        )
