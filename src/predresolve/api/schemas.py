"""Pydantic schemas for API request/response consistency and OpenAPI docs."""

from __future__ import annotations

from pydantic import BaseModel, Field


# --- Health ---
class HealthResponse(BaseModel):
    status: str = "ok"


# --- Error (consistent shape for 4xx/5xx) ---
class ErrorResponse(BaseModel):
    detail: str = Field(..., description="Human-readable message")
    code: str | None = Field(None, description="Machine-readable code, e.g. not_found")


# --- Analyze ---
class AnalyzeRequest(BaseModel):
    question: str = Field(..., min_length=1, description="Market question text")


# --- Markets ---
class MarketListItem(BaseModel):
    market_id: str
    question: str
    deadline: int = Field(..., description="ms epoch")
    created_at: int | None = None
    resolved: bool = False
    outcome: bool | None = None
    confidence: int | None = None
    evidence_digest: str | None = None
    resolved_at: int | None = None


class MarketsListResponse(BaseModel):
    markets: list[MarketListItem]
    total: int


# --- Attempts ---
class AttemptItem(BaseModel):
    market_id: str
    attempted_at: int
    category: str | None = None
    decision: str
    confidence: float | None = None
    failed_sources: list[str] = Field(default_factory=list)
    reason: str | None = None


class AttemptsResponse(BaseModel):
    market_id: str
    attempts: list[AttemptItem]
