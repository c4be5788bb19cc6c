"""Analyze command: feasibility report for a question."""

from __future__ import annotations

import typer

from predresolve.routing.feasibility import analyze_question
from predresolve.sources.registry import SourceRegistry


def analyze(
    ctx: typer.Context,
    question: str = typer.Argument(..., help="Market question text"),
) -> None:
    """Show category, sources, method and suggestions for a question."""
    settings = ctx.obj["settings"]
    registry = SourceRegistry(overrides=settings.source_overrides())
    report = analyze_question(question, registry=registry, target=settings.target_sources)
    typer.echo(f"Category:   {report.category}")
    typer.echo(f"Method:     {report.method}")
    typer.echo(f"Sources:    {', '.join(report.sources)}")
    typer.echo(f"Confidence: {report.confidence:.0f}")
    typer.echo(f"Feasible:   {'yes' if report.feasible else 'no'}")
    for s in report.suggestions:
        typer.echo(f"  - {s}")
