"""Observation and ConsensusResult - per-run resolution data."""

from __future__ import annotations

import time

from pydantic import BaseModel, ConfigDict, Field


def _now_ms() -> int:
    return int(time.time() * 1000)


class Observation(BaseModel):
    """One source's answer (or failure) to a single resolution query."""

    model_config = ConfigDict(frozen=True)

    source_name: str
    succeeded: bool
    value: float | bool | str | None = None  # price, boolean claim, or textual evidence
    timestamp: int = Field(default_factory=_now_ms)  # ms epoch
    failure_reason: str | None = None
    detail: str | None = None  # free-text justification from interpretive extraction

    @classmethod
    def ok(cls, source_name: str, value: float | bool | str, detail: str | None = None) -> Observation:
        return cls(source_name=source_name, succeeded=True, value=value, detail=detail)

    @classmethod
    def failed(cls, source_name: str, reason: str) -> Observation:
        return cls(source_name=source_name, succeeded=False, failure_reason=reason)

    def evidence(self) -> str:
        """Human-readable 'name: value' line. Only meaningful for succeeded observations."""
        if isinstance(self.value, bool):
            text = "yes" if self.value else "no"
        elif isinstance(self.value, float):
            text = f"{self.value:.2f}"
        else:
            text = str(self.value)
        if self.detail:
            text = f"{text} ({self.detail})"
        return f"{self.source_name}: {text}"


class ConsensusResult(BaseModel):
    """Aggregated outcome across observations. Derived, immutable."""

    model_config = ConfigDict(frozen=True)

    mode: str  # "numeric" | "agreement"
    outcome: bool = False
    confidence: float = Field(0.0, ge=0, le=100)
    contributing_sources: tuple[str, ...] = ()
    evidence: tuple[str, ...] = ()
    failed_sources: tuple[str, ...] = ()
    dispatched: int = 0
    succeeded: int = 0
    median: float | None = None
    spread: float | None = None  # percent
    threshold: float | None = None
    insufficient_data: bool = False
    required: int | None = None  # minimum usable sources, set when insufficient
