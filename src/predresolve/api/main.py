"""FastAPI backend: question analysis and ledger read access."""

from __future__ import annotations

from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, Query
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from predresolve.api.schemas import (
    AnalyzeRequest,
    AttemptsResponse,
    ErrorResponse,
    HealthResponse,
    MarketsListResponse,
)
from predresolve.config import get_settings
from predresolve.models import VerificationStrategy
from predresolve.routing.feasibility import analyze_question
from predresolve.sources.registry import SourceRegistry
from predresolve.storage.attempts import list_attempts
from predresolve.storage.db import get_connection, init_schema
from predresolve.storage.markets import get_market
from predresolve.storage.markets import list_markets as storage_list_markets

# Set by run_api() so the app picks up the CLI's profile.
_config_profile: str | None = None
_config_dir: Path | None = None


def _get_conn():
    settings = get_settings(_config_profile, _config_dir)
    return get_connection(settings.db_path, read_only=True)


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings(_config_profile, _config_dir).validate()
    conn = get_connection(settings.db_path, read_only=False)
    try:
        init_schema(conn)
    finally:
        conn.close()
    app.state.registry = SourceRegistry(overrides=settings.source_overrides())
    app.state.target_sources = settings.target_sources
    yield


app = FastAPI(title="PredResolve API", version="0.1.0", lifespan=lifespan)
app.add_middleware(CORSMiddleware, allow_origins=["*"], allow_methods=["*"], allow_headers=["*"])


def _error_json(code: str, message: str, status_code: int = 404) -> JSONResponse:
    """Return consistent error JSON: { detail, code }."""
    return JSONResponse(
        status_code=status_code,
        content={"detail": message, "code": code},
    )


@app.get("/health", response_model=HealthResponse)
def health() -> HealthResponse:
    return HealthResponse(status="ok")


@app.post("/analyze", response_model=VerificationStrategy)
def analyze(body: AnalyzeRequest) -> VerificationStrategy:
    """Feasibility report: category, sources, method, suggestions."""
    return analyze_question(
        body.question,
        registry=getattr(app.state, "registry", None),
        target=getattr(app.state, "target_sources", 5),
    )


@app.get("/markets", response_model=MarketsListResponse)
def markets_list(
    pending: bool = False,
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0),
) -> MarketsListResponse:
    """List ledger markets with optional limit/offset."""
    conn = _get_conn()
    try:
        all_markets = storage_list_markets(conn, pending_only=pending)
        return MarketsListResponse(markets=all_markets[offset : offset + limit], total=len(all_markets))
    finally:
        conn.close()


@app.get(
    "/markets/{market_id}/attempts",
    response_model=AttemptsResponse,
    responses={404: {"description": "Market not found", "model": ErrorResponse}},
)
def market_attempts(market_id: str, limit: int = Query(50, ge=1, le=500)):
    """Resolution attempts for one market, newest first."""
    conn = _get_conn()
    try:
        if get_market(conn, market_id) is None:
            return _error_json("not_found", f"Market {market_id} not found")
        return AttemptsResponse(market_id=market_id, attempts=list_attempts(conn, market_id=market_id, limit=limit))
    finally:
        conn.close()


def run_api(
    host: str = "127.0.0.1",
    port: int = 8000,
    profile: str | None = None,
    config_dir: Path | None = None,
) -> None:
    global _config_profile, _config_dir
    _config_profile = profile
    _config_dir = config_dir
    import uvicorn

    uvicorn.run("predresolve.api.main:app", host=host, port=port, reload=False)
