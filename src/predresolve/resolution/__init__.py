"""Gate, writer, boundary ports and the per-market resolution engine."""

from predresolve.resolution.engine import CycleReport, Evaluation, MarketOutcome, ResolutionEngine
from predresolve.resolution.gate import ResolutionGate
from predresolve.resolution.ports import AttemptRecorder, HttpRelaySink, MarketSource, ResolutionSink
from predresolve.resolution.writer import ResolutionWriter, evidence_digest

__all__ = [
    "ResolutionEngine",
    "Evaluation",
    "MarketOutcome",
    "CycleReport",
    "ResolutionGate",
    "ResolutionWriter",
    "evidence_digest",
    "MarketSource",
    "ResolutionSink",
    "AttemptRecorder",
    "HttpRelaySink",
]
