"""CLI command for capturing a URL list."""

from __future__ import annotations

import asyncio
import sys
from pathlib import Path
from typing import Any, Optional

import typer
from rich.console import Console

from silverscreen.monitoring.event_bus import CaptureEvent, EventBus, EventType, JsonlSink

console = Console()


class ConsoleSink:
    """Print one line per event and remember whether any job failed."""

    def __init__(self, out: Console) -> None:
        self._out = out
        self.errors = 0

    async def handle_event(self, event: CaptureEvent) -> None:
        if event.type == EventType.PROGRESS:
            self._out.print(f"  [green]✓[/green] {event.browser} {event.breakpoint}: {event.path}")
        elif event.type == EventType.START:
            self._out.print(f"[bold]📸 {event.browser}[/bold] {event.url}")
        elif event.type == EventType.ERROR:
            self.errors += 1
            self._out.print(f"  [red]✗[/red] {event.browser} {event.url}: {event.message}")


def parse_breakpoints(values: list[str]) -> dict[str, int]:
    """Parse ``NAME=WIDTH`` pairs, keeping the given order.

    Raises:
        typer.BadParameter: On a malformed pair or non-integer width.
    """
    breakpoints: dict[str, int] = {}
    for value in values:
        name, sep, width = value.partition("=")
        if not sep or not name.strip():
            raise typer.BadParameter(f"expected NAME=WIDTH, got {value!r}", param_hint="--breakpoint")
        try:
            breakpoints[name.strip()] = int(width)
        except ValueError:
            raise typer.BadParameter(f"width must be an integer, got {width!r}", param_hint="--breakpoint")
    return breakpoints


def capture(
    urls_file: Path = typer.Argument(..., help="Text file containing URLs (one per line)."),
    output_dir: Optional[Path] = typer.Option(None, "--output", "-o", help="Directory for screenshots."),
    browsers: Optional[list[str]] = typer.Option(None, "--browser", "-b", help="Browser engine (repeatable)."),
    breakpoints: Optional[list[str]] = typer.Option(None, "--breakpoint", help="NAME=WIDTH (repeatable; replaces defaults)."),
    concurrency: Optional[int] = typer.Option(None, "--concurrency", "-c", min=1, help="Max jobs in flight."),
    hide: Optional[list[str]] = typer.Option(None, "--hide", help="CSS selector to suppress (repeatable)."),
    serial: bool = typer.Option(False, "--serial", help="Capture one URL at a time, browsers in turn."),
    headed: bool = typer.Option(False, "--headed", help="Show browser windows."),
    jsonl: bool = typer.Option(False, "--jsonl", help="Write events to stdout as JSON lines."),
) -> None:
    """Capture responsive screenshots for every URL in URLS_FILE."""
    from silverscreen.capture.urls import read_urls_from_file
    from silverscreen.exceptions import SilverscreenError
    from silverscreen.log import configure_logging
    from silverscreen.settings import get_settings

    settings = get_settings()
    configure_logging("DEBUG" if settings.debug else settings.log_level, settings.log_format)

    try:
        urls = read_urls_from_file(urls_file)
    except SilverscreenError as e:
        console.print(f"[red]✗[/red] {e}")
        raise typer.Exit(code=1)
    if not urls:
        console.print("[red]✗[/red] No valid URLs found in file")
        raise typer.Exit(code=1)

    overrides: dict[str, Any] = {
        "browsers": browsers or None,
        "breakpoints": parse_breakpoints(breakpoints) if breakpoints else None,
        "concurrency": concurrency,
        "hide_selectors": hide or None,
    }
    if headed:
        overrides["browser_options"] = {"headless": False}

    try:
        config = settings.capture_config(overrides)
    except ValueError as e:
        console.print(f"[red]✗[/red] Invalid configuration: {e}")
        raise typer.Exit(code=1)

    effective_output = output_dir or Path(settings.output.output_dir)
    console.print(f"📋 Found {len(urls)} valid URLs to process")

    sink = ConsoleSink(console)
    bus = EventBus()
    bus.add_sink(sink)
    if jsonl:
        bus.add_sink(JsonlSink(sys.stdout))

    try:
        asyncio.run(_run_capture(config, bus, urls, effective_output, serial=serial))
    except SilverscreenError as e:
        console.print(f"[red]✗[/red] {e}")
        raise typer.Exit(code=1)

    if sink.errors:
        console.print(f"\n[yellow]⚠[/yellow] {sink.errors} capture job(s) failed")
        raise typer.Exit(code=1)
    console.print(f"\n[green]✓[/green] Complete! Screenshots saved to {effective_output}/")


async def _run_capture(config: Any, bus: EventBus, urls: list[str], output_dir: Path, *, serial: bool) -> None:
    from silverscreen.capture.screenshotter import Screenshotter

    async with Screenshotter(config, event_bus=bus) as shooter:
        if serial:
            for url in urls:
                await shooter.capture_screenshots(url, output_dir)
        else:
            await shooter.capture_all(urls, output_dir)
