"""Unified CLI entry point for Silverscreen.

Config precedence: settings.default.toml -> settings.local.toml -> env vars (SILVERSCREEN_* with double underscores) -> CLI flags.
"""

from __future__ import annotations

import typer

from silverscreen.cli.capture_cmd import capture
from silverscreen.cli.settings_cmd import settings_app

try:
    from importlib.metadata import version

    VERSION = version("silverscreen")
except Exception:
    VERSION = "unknown"

APP_HELP = (
    "silverscreen — responsive screenshots across browser engines and viewport widths. "
    "Config precedence: settings.default.toml -> settings.local.toml -> env vars (SILVERSCREEN_* with __) -> CLI flags."
)

app = typer.Typer(add_completion=True, help=APP_HELP)

app.command("capture")(capture)
app.add_typer(settings_app, name="settings")


@app.callback(invoke_without_command=True)
def main(ctx: typer.Context, version: bool = typer.Option(False, "--version", help="Show version and exit.")) -> None:
    """Show help when no subcommand is provided."""
    if version:
        typer.echo(f"silverscreen {VERSION}")
        raise typer.Exit()
    if ctx.invoked_subcommand is None:
        typer.echo(ctx.get_help())
        raise typer.Exit()


if __name__ == "__main__":
    app()
