"""Canonical schema (Pydantic) - sources, observations, consensus, markets."""

from predresolve.models.market import (
    Decision,
    GateDecision,
    Market,
    MarketState,
    SubmissionReceipt,
    VerificationStrategy,
)
from predresolve.models.observation import ConsensusResult, Observation
from predresolve.models.source import Category, FetchKind, SourceDescriptor

__all__ = [
    "Category",
    "FetchKind",
    "SourceDescriptor",
    "Observation",
    "ConsensusResult",
    "Market",
    "MarketState",
    "Decision",
    "GateDecision",
    "SubmissionReceipt",
    "VerificationStrategy",
]
