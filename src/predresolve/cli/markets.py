"""Markets subcommand: add, list."""

from __future__ import annotations

from datetime import datetime

import typer

from predresolve.storage.db import get_connection, init_schema
from predresolve.storage.markets import add_market
from predresolve.storage.markets import list_markets as storage_list_markets

app = typer.Typer(help="Local market ledger")


@app.command("add")
def add(
    ctx: typer.Context,
    question: str = typer.Argument(..., help="Market question text"),
    deadline: datetime = typer.Option(..., "--deadline", "-d", help="Resolution deadline (ISO 8601, UTC if naive)"),
    market_id: str | None = typer.Option(None, "--id", help="Market ID (default: random)"),
) -> None:
    """Add a market to the local ledger."""
    settings = ctx.obj["settings"]
    conn = get_connection(settings.db_path)
    init_schema(conn)
    try:
        market = add_market(conn, question, deadline, market_id=market_id)
        typer.echo(f"Added market {market.market_id} (deadline {market.deadline.isoformat()})")
    finally:
        conn.close()


@app.command("list")
def list_markets(
    ctx: typer.Context,
    pending_only: bool = typer.Option(False, "--pending", help="Show only unresolved markets"),
) -> None:
    """List markets in the local ledger."""
    settings = ctx.obj["settings"]
    conn = get_connection(settings.db_path)
    init_schema(conn)
    try:
        rows = storage_list_markets(conn, pending_only=pending_only)
        for r in rows:
            status = "pending" if not r["resolved"] else f"{'YES' if r['outcome'] else 'NO'} ({r['confidence']}%)"
            typer.echo(f"  {r['market_id']:<10}  {status:<12}  {(r['question'] or '')[:60]}")
        typer.echo(f"Total: {len(rows)} markets")
    finally:
        conn.close()
