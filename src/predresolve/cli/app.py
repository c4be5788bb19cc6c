"""Root CLI app - entry point and command registration."""

from pathlib import Path

import typer

from predresolve.config import get_settings
from predresolve.config.settings import configure_logging
from predresolve.errors import ConfigurationError

app = typer.Typer(
    name="predres",
    help="PredResolve - Multi-source consensus resolution for prediction-market questions.",
    no_args_is_help=True,
)


@app.callback()
def main(
    ctx: typer.Context,
    config_dir: Path | None = typer.Option(
        None, "--config-dir", "-C", help="Config directory (default: ./config or package config)"
    ),
    profile: str | None = typer.Option(
        None, "--profile", "-p", help="Config profile (e.g. dev) to overlay on default.toml"
    ),
) -> None:
    """Load and validate config, configure logging, store options in context."""
    try:
        settings = get_settings(profile, config_dir).validate()
    except ConfigurationError as e:
        typer.echo(f"Configuration error: {e}", err=True)
        raise typer.Exit(2)
    configure_logging(settings)
    ctx.obj = {"settings": settings, "config_dir": config_dir, "profile": profile}


# Subcommands registered from other modules
from predresolve.cli import analyze, api_cmd, markets, resolve  # noqa: E402

app.command("analyze")(analyze.analyze)
app.add_typer(markets.app, name="markets")
app.add_typer(resolve.app, name="resolve")
app.add_typer(api_cmd.app, name="api")


def run() -> None:
    app()


if __name__ == "__main__":
    run()
