"""ConsensusAggregator - numeric (median/spread) and agreement-count consensus."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

import structlog

from predresolve.consensus.stats import confidence_from_spread, median, spread_pct
from predresolve.errors import InsufficientData
from predresolve.models import Category, ConsensusResult, Observation

NUMERIC = "numeric"
AGREEMENT = "agreement"


class ConsensusAggregator:
    """Turns the completed observation set for one market into a ConsensusResult.

    Failed observations never contribute evidence but always count in the
    dispatched total. Below ``min_successes`` the result is flagged
    ``insufficient_data`` with confidence 0; no outcome is derived.
    """

    def __init__(self, min_successes: int = 3, log: Any = None) -> None:
        self.min_successes = min_successes
        self.log = log or structlog.get_logger(__name__)

    @staticmethod
    def mode_for(category: Category) -> str:
        return NUMERIC if category.numeric else AGREEMENT

    def aggregate(
        self,
        category: Category,
        observations: Sequence[Observation],
        threshold: float | None = None,
        direction: str = "above",
    ) -> ConsensusResult:
        if self.mode_for(category) == NUMERIC:
            return self.numeric(observations, threshold, direction)
        return self.agreement(observations)

    def _insufficient(self, mode: str, observations: Sequence[Observation], usable: int) -> ConsensusResult:
        failed = [o for o in observations if not o.succeeded]
        evidence = [str(InsufficientData(usable, self.min_successes, len(observations)))]
        evidence += [f"{o.source_name} failed: {o.failure_reason}" for o in failed]
        self.log.info(
            "consensus_insufficient",
            mode=mode,
            usable=usable,
            dispatched=len(observations),
            required=self.min_successes,
            failed_sources=[o.source_name for o in failed],
        )
        return ConsensusResult(
            mode=mode,
            outcome=False,
            confidence=0.0,
            evidence=tuple(evidence),
            failed_sources=tuple(o.source_name for o in failed),
            dispatched=len(observations),
            succeeded=usable,
            insufficient_data=True,
            required=self.min_successes,
        )

    def numeric(
        self,
        observations: Sequence[Observation],
        threshold: float | None,
        direction: str = "above",
    ) -> ConsensusResult:
        usable = [
            o for o in observations
            if o.succeeded and isinstance(o.value, (int, float)) and not isinstance(o.value, bool)
        ]
        if len(usable) < self.min_successes:
            return self._insufficient(NUMERIC, observations, len(usable))
        if threshold is None:
            raise ValueError("numeric consensus needs a threshold")
        values = [float(o.value) for o in usable]
        mid = median(values)
        spread = spread_pct(values)
        confidence = confidence_from_spread(spread)
        outcome = mid < threshold if direction == "below" else mid > threshold
        usable_ids = {id(o) for o in usable}
        failed = tuple(o.source_name for o in observations if id(o) not in usable_ids)
        self.log.info(
            "consensus_computed",
            mode=NUMERIC,
            median=round(mid, 6),
            spread_pct=round(spread, 4),
            threshold=threshold,
            direction=direction,
            outcome=outcome,
            confidence=confidence,
            succeeded=len(usable),
            dispatched=len(observations),
        )
        return ConsensusResult(
            mode=NUMERIC,
            outcome=outcome,
            confidence=confidence,
            contributing_sources=tuple(o.source_name for o in usable),
            evidence=tuple(o.evidence() for o in usable),
            failed_sources=failed,
            dispatched=len(observations),
            succeeded=len(usable),
            median=mid,
            spread=spread,
            threshold=threshold,
        )

    def agreement(self, observations: Sequence[Observation]) -> ConsensusResult:
        usable = [o for o in observations if o.succeeded and isinstance(o.value, bool)]
        if len(usable) < self.min_successes:
            return self._insufficient(AGREEMENT, observations, len(usable))
        yes = sum(1 for o in usable if o.value)
        no = len(usable) - yes
        # A tie has no majority; report "no" with the tied count.
        outcome = yes > no
        agreeing = yes if outcome else no
        confidence = agreeing / len(observations) * 100
        usable_ids = {id(o) for o in usable}
        failed = tuple(o.source_name for o in observations if id(o) not in usable_ids)
        self.log.info(
            "consensus_computed",
            mode=AGREEMENT,
            yes=yes,
            no=no,
            outcome=outcome,
            confidence=round(confidence, 2),
            succeeded=len(usable),
            dispatched=len(observations),
        )
        return ConsensusResult(
            mode=AGREEMENT,
            outcome=outcome,
            confidence=confidence,
            contributing_sources=tuple(o.source_name for o in usable),
            evidence=tuple(o.evidence() for o in usable),
            failed_sources=failed,
            dispatched=len(observations),
            succeeded=len(usable),
        )
