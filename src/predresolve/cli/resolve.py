"""Resolve subcommand: run (one cycle), question (dry run), history."""

from __future__ import annotations

import asyncio
from typing import Any

import httpx
import typer

from predresolve.config.settings import Settings
from predresolve.consensus.aggregator import ConsensusAggregator
from predresolve.errors import CollaboratorFailure, ConfigurationError
from predresolve.fetchers.fanout import FetcherSet
from predresolve.fetchers.interpreter import HttpInterpreter
from predresolve.resolution.engine import CycleReport, ResolutionEngine
from predresolve.resolution.gate import ResolutionGate
from predresolve.resolution.ports import AttemptRecorder, HttpRelaySink, ResolutionSink
from predresolve.resolution.writer import ResolutionWriter
from predresolve.sources.discovery import DynamicDiscovery, SourceDiscoveryStrategy, StaticDiscovery
from predresolve.sources.registry import SourceRegistry
from predresolve.storage.attempts import list_attempts
from predresolve.storage.db import get_connection, init_schema
from predresolve.storage.ledger import Ledger

app = typer.Typer(help="Resolve pending markets")


def build_engine(
    settings: Settings,
    client: httpx.AsyncClient,
    sink: ResolutionSink | None = None,
    recorder: AttemptRecorder | None = None,
    log: Any = None,
) -> ResolutionEngine:
    """Wire registry, discovery, fetchers, aggregator, gate and writer from settings."""
    registry = SourceRegistry(overrides=settings.source_overrides())
    static = StaticDiscovery(registry, target=settings.target_sources)
    interpreter = None
    if settings.interpreter_url:
        interpreter = HttpInterpreter(
            client,
            settings.interpreter_url,
            model=settings.interpreter_model,
            api_key=settings.interpreter_api_key,
        )
    discovery: SourceDiscoveryStrategy = static
    if settings.discovery_mode == "dynamic":
        if interpreter is None:
            raise ConfigurationError("dynamic discovery requires [interpreter] url")
        discovery = DynamicDiscovery(interpreter, static, target=settings.target_sources, log=log)
    return ResolutionEngine(
        discovery,
        FetcherSet(client, interpreter, min_confidence=settings.interpreter_min_confidence, log=log),
        ConsensusAggregator(min_successes=settings.min_successful_sources, log=log),
        ResolutionGate(threshold=settings.acceptance_threshold, log=log),
        ResolutionWriter(sink, log=log) if sink is not None else None,
        fetch_timeout_sec=settings.fetch_timeout_sec,
        default_price_threshold=settings.default_price_threshold,
        recorder=recorder,
        log=log,
    )


async def _run_cycle(settings: Settings, sink_kind: str) -> CycleReport:
    conn = get_connection(settings.db_path)
    init_schema(conn)
    ledger = Ledger(conn)
    try:
        async with httpx.AsyncClient(follow_redirects=True) as client:
            sink: ResolutionSink = ledger
            if sink_kind == "relay":
                settings.validate(require_chain=True)
                sink = HttpRelaySink(
                    client,
                    settings.relay_url,
                    settings.oracle_address,
                    settings.chain_selector_name,
                    gas_limit=settings.gas_limit,
                )
            engine = build_engine(settings, client, sink=sink, recorder=ledger)
            return await engine.run_cycle(ledger, deadline_sec=settings.cycle_deadline_sec)
    finally:
        conn.close()


@app.command("run")
def run(
    ctx: typer.Context,
    sink: str = typer.Option("ledger", "--sink", help="Where accepted resolutions go: ledger | relay"),
) -> None:
    """Resolve every pending market once. Invoke from the external scheduler."""
    settings = ctx.obj["settings"]
    if sink not in ("ledger", "relay"):
        typer.echo(f"Unknown sink: {sink}", err=True)
        raise typer.Exit(2)
    try:
        report = asyncio.run(_run_cycle(settings, sink))
    except ConfigurationError as e:
        typer.echo(f"Configuration error: {e}", err=True)
        raise typer.Exit(2)
    except CollaboratorFailure as e:
        typer.echo(f"Market source unavailable: {e}", err=True)
        raise typer.Exit(1)
    typer.echo(f"Resolved: {len(report.resolved)}  " + "  ".join(report.resolved))
    for label, items in (
        ("Rejected", report.rejected),
        ("Insufficient data", report.insufficient),
        ("Failed", report.failed),
    ):
        typer.echo(f"{label}: {len(items)}")
        for market_id, reason in items:
            typer.echo(f"  {market_id}: {reason}")
    if report.deadline_exceeded:
        typer.echo("Cycle deadline exceeded; remaining markets left pending.")


@app.command("question")
def question(
    ctx: typer.Context,
    text: str = typer.Argument(..., help="Question to evaluate (nothing is written)"),
) -> None:
    """Dry run: fetch, aggregate and gate one question."""
    settings = ctx.obj["settings"]

    async def _evaluate():
        async with httpx.AsyncClient(follow_redirects=True) as client:
            return await build_engine(settings, client).evaluate(text)

    evaluation = asyncio.run(_evaluate())
    result = evaluation.result
    typer.echo(f"Category:   {evaluation.category.value} ({result.mode})")
    typer.echo(f"Sources:    {', '.join(s.name for s in evaluation.sources)}")
    if result.median is not None:
        typer.echo(f"Median:     {result.median:.2f}  spread {result.spread:.2f}%  threshold {result.threshold:g}")
    typer.echo(f"Outcome:    {'YES' if result.outcome else 'NO'}")
    typer.echo(f"Confidence: {result.confidence:.1f} (threshold {evaluation.decision.threshold:g})")
    typer.echo(f"Decision:   {evaluation.decision.decision.value}")
    for line in result.evidence:
        typer.echo(f"  {line}")
    if result.failed_sources:
        typer.echo(f"Failed:     {', '.join(result.failed_sources)}")


@app.command("history")
def history(
    ctx: typer.Context,
    market_id: str | None = typer.Option(None, "--market", "-m", help="Only this market"),
    limit: int = typer.Option(20, "--limit", "-n", help="Max rows"),
) -> None:
    """Show recent resolution attempts."""
    settings = ctx.obj["settings"]
    conn = get_connection(settings.db_path)
    init_schema(conn)
    try:
        for row in list_attempts(conn, market_id=market_id, limit=limit):
            failed = ",".join(row["failed_sources"]) or "-"
            typer.echo(
                f"  {row['attempted_at']}  {row['market_id']:<10}  {row['decision']:<18}  "
                f"{row['confidence'] or 0:5.1f}  failed={failed}  {row['reason'] or ''}"
            )
    finally:
        conn.close()
