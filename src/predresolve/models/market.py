"""Market, Decision, GateDecision, SubmissionReceipt - resolution lifecycle entities."""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class Market(BaseModel):
    """Pending market as read from the market source. Read-only to the core."""

    model_config = ConfigDict(frozen=True)

    market_id: str
    question: str
    deadline: datetime
    resolved: bool = False


class MarketState(str, Enum):
    """Per-market state within one resolution invocation."""

    PENDING = "pending"
    CATEGORIZING = "categorizing"
    FETCHING = "fetching"
    AGGREGATING = "aggregating"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    WRITING = "writing"
    RESOLVED = "resolved"


class Decision(str, Enum):
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    INSUFFICIENT_DATA = "insufficient_data"


class GateDecision(BaseModel):
    """Outcome of applying the acceptance threshold to a consensus result."""

    model_config = ConfigDict(frozen=True)

    decision: Decision
    confidence: float
    threshold: float
    reason: str = ""

    @property
    def accepted(self) -> bool:
        return self.decision is Decision.ACCEPTED


class SubmissionReceipt(BaseModel):
    """Result of a resolution write."""

    market_id: str
    ok: bool
    reason: str | None = None
    reference: str | None = None  # tx hash or ledger row reference


class VerificationStrategy(BaseModel):
    """Pre-creation feasibility report for a question."""

    question: str
    category: str
    sources: list[str] = Field(default_factory=list)
    method: str = ""
    consensus_threshold: float = 0.8
    confidence: float = 0.0
    feasible: bool = True
    suggestions: list[str] = Field(default_factory=list)
