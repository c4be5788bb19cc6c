"""Per-market resolution pipeline and the batch cycle invoked by the external scheduler."""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass, field
from typing import Any

import structlog

from predresolve.consensus.aggregator import ConsensusAggregator
from predresolve.errors import CollaboratorFailure
from predresolve.fetchers.fanout import FetcherSet, fan_out
from predresolve.models import (
    Category,
    ConsensusResult,
    Decision,
    GateDecision,
    Market,
    MarketState,
    SourceDescriptor,
    SubmissionReceipt,
)
from predresolve.resolution.gate import ResolutionGate
from predresolve.resolution.ports import AttemptRecorder, MarketSource
from predresolve.resolution.writer import ResolutionWriter
from predresolve.routing.categorizer import categorize
from predresolve.routing.extract import extract_direction, extract_threshold
from predresolve.sources.discovery import SourceDiscoveryStrategy


@dataclass
class Evaluation:
    """Everything decided about one question short of writing it."""

    question: str
    category: Category
    sources: list[SourceDescriptor]
    result: ConsensusResult
    decision: GateDecision


@dataclass
class MarketOutcome:
    market_id: str
    state: MarketState
    evaluation: Evaluation | None = None
    receipt: SubmissionReceipt | None = None
    reason: str | None = None


@dataclass
class CycleReport:
    """Summary of one invocation over all pending markets."""

    started_at: int
    finished_at: int | None = None
    resolved: list[str] = field(default_factory=list)
    rejected: list[tuple[str, str]] = field(default_factory=list)
    insufficient: list[tuple[str, str]] = field(default_factory=list)
    failed: list[tuple[str, str]] = field(default_factory=list)
    deadline_exceeded: bool = False

    @property
    def processed(self) -> int:
        return len(self.resolved) + len(self.rejected) + len(self.insufficient) + len(self.failed)


class ResolutionEngine:
    """Categorize -> discover -> fan-out fetch -> aggregate -> gate -> write.

    Pending -> Categorizing -> Fetching -> Aggregating ->
    (Accepted -> Writing -> Resolved) | (Rejected -> Pending)
    """

    def __init__(
        self,
        discovery: SourceDiscoveryStrategy,
        fetchers: FetcherSet,
        aggregator: ConsensusAggregator,
        gate: ResolutionGate,
        writer: ResolutionWriter | None = None,
        *,
        fetch_timeout_sec: float = 5.0,
        default_price_threshold: float = 60000.0,
        recorder: AttemptRecorder | None = None,
        log: Any = None,
    ) -> None:
        self.discovery = discovery
        self.fetchers = fetchers
        self.aggregator = aggregator
        self.gate = gate
        self.writer = writer
        self.fetch_timeout_sec = fetch_timeout_sec
        self.default_price_threshold = default_price_threshold
        self.recorder = recorder
        self.log = log or structlog.get_logger(__name__)
        # market_id -> (market, evaluation, write task) for writes not yet settled
        self._in_flight: dict[str, tuple[Market, Evaluation, asyncio.Future]] = {}

    def _threshold(self, question: str, log: Any) -> float:
        threshold = extract_threshold(question)
        if threshold is None:
            log.warning("threshold_defaulted", default=self.default_price_threshold)
            return self.default_price_threshold
        return threshold

    async def evaluate(self, question: str, log: Any = None) -> Evaluation:
        """Run the pipeline up to and including the gate. No writes."""
        log = log or self.log
        category = categorize(question)
        log = log.bind(category=category.value)
        log.debug("market_state", state=MarketState.CATEGORIZING.value)
        sources = await self.discovery.discover(question, category)
        if not sources:
            log.warning("no_sources", reason="no registered source for this category or asset")
        log.info("sources_selected", sources=[s.name for s in sources], discovery=self.discovery.name)

        log.debug("market_state", state=MarketState.FETCHING.value)
        observations = await fan_out(
            self.fetchers, category, sources, question, self.fetch_timeout_sec, log=log
        )

        log.debug("market_state", state=MarketState.AGGREGATING.value)
        threshold = None
        direction = "above"
        if category.numeric:
            threshold = self._threshold(question, log)
            direction = extract_direction(question)
        result = self.aggregator.aggregate(category, observations, threshold=threshold, direction=direction)
        decision = self.gate.decide(result)
        return Evaluation(question=question, category=category, sources=sources, result=result, decision=decision)

    async def resolve_market(self, market: Market) -> MarketOutcome:
        """Resolve one market. Raises CollaboratorFailure if the write is rejected."""
        log = self.log.bind(market_id=market.market_id)
        if market.resolved:
            log.info("market_skipped", reason="already resolved")
            return MarketOutcome(market.market_id, MarketState.RESOLVED, reason="already resolved")

        evaluation = await self.evaluate(market.question, log=log)
        decision = evaluation.decision
        if decision.decision is not Decision.ACCEPTED:
            log.info(
                "market_left_pending",
                decision=decision.decision.value,
                confidence=decision.confidence,
                threshold=decision.threshold,
                failed_sources=list(evaluation.result.failed_sources),
                reason=decision.reason,
            )
            self._record(market, evaluation, decision.decision.value, decision.reason)
            return MarketOutcome(market.market_id, MarketState.PENDING, evaluation, reason=decision.reason)

        if self.writer is None:
            raise CollaboratorFailure("no resolution writer configured")
        log.debug("market_state", state=MarketState.WRITING.value)
        receipt = await self._write(market, evaluation)
        self._record(market, evaluation, MarketState.RESOLVED.value, receipt.reference)
        log.info("market_resolved", outcome=evaluation.result.outcome, confidence=decision.confidence)
        return MarketOutcome(market.market_id, MarketState.RESOLVED, evaluation, receipt=receipt)

    async def _write(self, market: Market, evaluation: Evaluation) -> SubmissionReceipt:
        """Submit shielded from cycle cancellation. A write cut off by the deadline is settled by run_cycle."""
        task = asyncio.ensure_future(self.writer.write(market, evaluation.result, evaluation.decision))
        self._in_flight[market.market_id] = (market, evaluation, task)
        try:
            receipt = await asyncio.shield(task)
        except asyncio.CancelledError:
            raise
        except Exception:
            self._in_flight.pop(market.market_id, None)
            raise
        self._in_flight.pop(market.market_id, None)
        return receipt

    async def _settle_in_flight(self, report: CycleReport) -> None:
        """Wait for writes already handed to the sink so the report says what was written."""
        for market_id, (market, evaluation, task) in list(self._in_flight.items()):
            try:
                receipt = await task
            except Exception as e:
                reason = f"{type(e).__name__}: {e}"
                self.log.warning("market_skipped", market_id=market_id, reason=reason)
                self._record(market, evaluation, "failed", reason)
                report.failed.append((market_id, reason))
            else:
                self._record(market, evaluation, MarketState.RESOLVED.value, receipt.reference)
                self.log.info("market_resolved", market_id=market_id, after_deadline=True)
                report.resolved.append(market_id)
        self._in_flight.clear()

    def _record(self, market: Market, evaluation: Evaluation | None, decision: str, reason: str | None) -> None:
        if self.recorder is None:
            return
        try:
            self.recorder.record_attempt(
                market.market_id,
                evaluation.category.value if evaluation else None,
                decision,
                evaluation.result.confidence if evaluation else 0.0,
                list(evaluation.result.failed_sources) if evaluation else [],
                reason,
            )
        except Exception as e:
            self.log.warning("attempt_record_failed", market_id=market.market_id, error=str(e))

    async def run_cycle(self, market_source: MarketSource, deadline_sec: float | None = None) -> CycleReport:
        """Process every pending market once. One market's failure never aborts the rest.

        If the deadline passes, in-flight fetches are abandoned and the remaining
        markets stay pending. A write already handed to the sink is awaited and
        reported with its real result.
        """
        report = CycleReport(started_at=int(time.time() * 1000))
        try:
            markets = await market_source.list_pending_markets()
        except CollaboratorFailure:
            self.log.error("pending_markets_unavailable")
            raise
        except Exception as e:
            self.log.error("pending_markets_unavailable", error=str(e))
            raise CollaboratorFailure(f"market source failed: {e}") from e
        self.log.info("cycle_started", pending=len(markets))

        async def process_all() -> None:
            for market in markets:
                await self._process(market, report)

        try:
            if deadline_sec is None:
                await process_all()
            else:
                await asyncio.wait_for(process_all(), deadline_sec)
        except asyncio.TimeoutError:
            report.deadline_exceeded = True
            await self._settle_in_flight(report)
            done = set(report.resolved) | {m for m, _ in report.rejected + report.insufficient + report.failed}
            left = [m.market_id for m in markets if m.market_id not in done]
            self.log.warning("cycle_deadline_exceeded", deadline_sec=deadline_sec, left_pending=left)
        report.finished_at = int(time.time() * 1000)
        self.log.info(
            "cycle_finished",
            resolved=len(report.resolved),
            rejected=len(report.rejected),
            insufficient=len(report.insufficient),
            failed=len(report.failed),
            deadline_exceeded=report.deadline_exceeded,
        )
        return report

    async def _process(self, market: Market, report: CycleReport) -> None:
        try:
            outcome = await self.resolve_market(market)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            reason = f"{type(e).__name__}: {e}"
            self.log.warning("market_skipped", market_id=market.market_id, reason=reason)
            self._record(market, None, "failed", reason)
            report.failed.append((market.market_id, reason))
            return
        if outcome.receipt is not None:
            report.resolved.append(market.market_id)
        elif outcome.evaluation is None:
            report.rejected.append((market.market_id, outcome.reason or ""))
        elif outcome.evaluation and outcome.evaluation.decision.decision is Decision.INSUFFICIENT_DATA:
            report.insufficient.append((market.market_id, outcome.reason or ""))
        else:
            report.rejected.append((market.market_id, outcome.reason or ""))
