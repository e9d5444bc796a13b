"""Multi-browser, multi-breakpoint screenshot capture engine.

One ``Screenshotter`` owns one Playwright driver and one launched browser
per configured engine. Work is split into (url × browser) jobs; each job
gets its own browsing context and page and runs the full pipeline:

    navigate → wait out challenge → re-hide → plugins → scroll → delay
    → for each breakpoint: resize, settle, re-hide, screenshot, ``progress``

A job that raises emits a single ``error`` event and abandons its remaining
breakpoints; its context is closed regardless and other jobs carry on.

Usage::

    from silverscreen.capture.config import build_capture_config
    from silverscreen.capture.screenshotter import Screenshotter

    config = build_capture_config({"breakpoints": {"mobile": 390, "desktop": 1440}})
    async with Screenshotter(config) as shooter:
        await shooter.capture_all(["https://example.com"], "screenshots")
"""

from __future__ import annotations

import itertools
import logging
import time
from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable

from playwright.async_api import Error as PlaywrightError, async_playwright

from silverscreen.browser.challenge import wait_for_challenge
from silverscreen.browser.hiding import install_hide_selectors, reapply_hide_selectors
from silverscreen.browser.launcher import launch_browser
from silverscreen.browser.plugins import Plugin, PluginRunner, load_plugins
from silverscreen.browser.stealth import apply_stealth_scripts, build_context_options, is_chromium_family
from silverscreen.capture.config import CaptureConfig
from silverscreen.capture.paths import artifact_filename, page_directory_name, write_url_sidecar
from silverscreen.capture.pool import run_concurrent
from silverscreen.exceptions import EngineNotInitializedError, NoBrowsersLaunchedError, UnknownBrowserError
from silverscreen.monitoring.event_bus import EventBus, EventType

logger = logging.getLogger(__name__)

# Best-effort load-state wait after each viewport resize.
_RESIZE_LOAD_STATE_TIMEOUT_MS = 10_000

# Step through the page one viewport at a time so lazy content loads.
_SCROLL_TO_LOAD_JS = """async () => {
    const scrollStep = window.innerHeight;
    const maxScroll = document.body ? document.body.scrollHeight : 0;
    for (let y = 0; y < maxScroll; y += scrollStep) {
        window.scrollTo(0, y);
        await new Promise((r) => setTimeout(r, 100));
    }
    window.scrollTo(0, 0);
}"""


@dataclass(frozen=True)
class CaptureJob:
    """One (url, browser) unit of work."""

    url: str
    browser_name: str
    browser: Any
    output_dir: Path
    sequence: int


@dataclass
class CaptureSummary:
    """Tally of a capture run; per-job details travel on the event bus."""

    total: int = 0
    succeeded: int = 0
    failed: int = 0
    paths: list[str] = field(default_factory=list)


class Screenshotter:
    """Capture orchestration engine.

    Args:
        config: Immutable capture configuration (defaults if omitted).
        plugins: Plugin instances to run on every page. When omitted, the
            plugin names in ``config.plugins`` are resolved.
        event_bus: Bus receiving ``start``/``progress``/``complete``/``error``
            events. A private bus is created if omitted.
        playwright_factory: Callable returning an object with an async
            ``start()``; defaults to ``async_playwright``.
    """

    def __init__(
        self,
        config: CaptureConfig | None = None,
        *,
        plugins: Iterable[Plugin] | None = None,
        event_bus: EventBus | None = None,
        playwright_factory: Callable[[], Any] = async_playwright,
    ) -> None:
        self.config = config or CaptureConfig()
        self.events = event_bus or EventBus()
        self.browsers: dict[str, Any] = {}
        self.plugin_runner = PluginRunner(plugins if plugins is not None else load_plugins(self.config.plugins))
        self._playwright_factory = playwright_factory
        self._playwright: Any = None
        self._sequence = itertools.count(1)

    async def __aenter__(self) -> "Screenshotter":
        await self.init()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def init(self) -> None:
        """Launch one browser per configured engine.

        Unknown names and individual launch failures are logged and skipped.

        Raises:
            NoBrowsersLaunchedError: If no engine could be launched.
        """
        if self._playwright is None:
            self._playwright = await self._playwright_factory().start()

        for name in self.config.browsers:
            if name in self.browsers:
                continue
            try:
                browser = await launch_browser(self._playwright, name, self.config.browser_options)
            except UnknownBrowserError as exc:
                logger.warning("%s — skipping", exc)
                continue
            except Exception as exc:
                logger.error("Failed to launch %s: %s", name, exc)
                continue
            self.browsers[name] = browser
            logger.info("Launched %s", name)

        if not self.browsers:
            await self._stop_playwright()
            raise NoBrowsersLaunchedError(list(self.config.browsers))

    async def close(self) -> None:
        """Close every browser; a browser that fails to close does not block the rest."""
        for name, browser in list(self.browsers.items()):
            try:
                await browser.close()
            except Exception as exc:
                logger.warning("Failed to close %s: %s", name, exc)
        self.browsers.clear()
        await self._stop_playwright()

    async def _stop_playwright(self) -> None:
        if self._playwright is None:
            return
        try:
            await self._playwright.stop()
        except Exception as exc:
            logger.warning("Failed to stop Playwright driver: %s", exc)
        self._playwright = None

    # ------------------------------------------------------------------
    # Public capture API
    # ------------------------------------------------------------------

    async def capture_all(self, urls: Iterable[str], output_dir: str | Path = "screenshots") -> CaptureSummary:
        """Capture every URL in every live browser, ``config.concurrency`` jobs at a time.

        Duplicate URLs are dropped, keeping first-occurrence order. Per-job
        failures surface only as ``error`` events; this call always returns
        once every job has settled.

        Raises:
            EngineNotInitializedError: If ``init()`` has not succeeded.
        """
        self._require_browsers()
        jobs = self._build_jobs(dict.fromkeys(urls), Path(output_dir))
        summary = CaptureSummary(total=len(jobs))
        logger.info("Capturing %d jobs (concurrency=%d)", len(jobs), self.config.concurrency)

        await run_concurrent(
            [lambda job=job: self._run_job(job, summary) for job in jobs],
            self.config.concurrency,
        )
        logger.info("Capture finished: %d succeeded, %d failed", summary.succeeded, summary.failed)
        return summary

    async def capture_screenshots(self, url: str, output_dir: str | Path = "screenshots") -> CaptureSummary:
        """Capture one URL in each live browser, strictly one job at a time.

        Raises:
            EngineNotInitializedError: If ``init()`` has not succeeded.
        """
        self._require_browsers()
        jobs = self._build_jobs([url], Path(output_dir))
        summary = CaptureSummary(total=len(jobs))
        for job in jobs:
            await self._run_job(job, summary)
        return summary

    def _require_browsers(self) -> None:
        if not self.browsers:
            raise EngineNotInitializedError()

    def _build_jobs(self, urls: Iterable[str], output_dir: Path) -> list[CaptureJob]:
        return [
            CaptureJob(
                url=url,
                browser_name=name,
                browser=browser,
                output_dir=output_dir,
                sequence=next(self._sequence),
            )
            for url in urls
            for name, browser in self.browsers.items()
        ]

    # ------------------------------------------------------------------
    # Per-job pipeline
    # ------------------------------------------------------------------

    async def _run_job(self, job: CaptureJob, summary: CaptureSummary) -> bool:
        """Run one job end to end; never raises."""
        await self.events.emit(EventType.START, browser=job.browser_name, url=job.url)
        context = None
        page = None
        try:
            dir_name = page_directory_name(job.url)
            context = await job.browser.new_context(**build_context_options(job.browser_name))
            page = await context.new_page()

            await self._navigate(page, job)
            await self._interact(page)
            paths = await self._capture_breakpoints(page, job, dir_name)
        except Exception as exc:
            message = str(exc) or type(exc).__name__
            logger.error("Capture failed for %s in %s: %s", job.url, job.browser_name, message)
            summary.failed += 1
            await self.events.emit(EventType.ERROR, browser=job.browser_name, url=job.url, message=message)
            return False
        finally:
            await self._close_session(page, context)

        summary.succeeded += 1
        summary.paths.extend(paths)
        await self.events.emit(EventType.COMPLETE, browser=job.browser_name, url=job.url)
        return True

    async def _navigate(self, page: Any, job: CaptureJob) -> None:
        if is_chromium_family(job.browser_name):
            await apply_stealth_scripts(page)
        await install_hide_selectors(page, self.config.hide_selectors)

        await page.goto(job.url, wait_until=self.config.wait_until, timeout=self.config.navigation_timeout_ms)
        await wait_for_challenge(page, wait_until=self.config.wait_until, timeout_s=self.config.challenge_timeout_s)

    async def _interact(self, page: Any) -> None:
        # Challenge redirects may have replaced the document the init script ran in.
        await reapply_hide_selectors(page, self.config.hide_selectors)

        acted = await self.plugin_runner.run(page)
        if acted:
            logger.debug("Plugins acted: %s", ", ".join(acted))

        if self.config.scroll_to_load:
            await page.evaluate(_SCROLL_TO_LOAD_JS)

        if self.config.delay_ms > 0:
            await page.wait_for_timeout(self.config.delay_ms)

    async def _capture_breakpoints(self, page: Any, job: CaptureJob, dir_name: str) -> list[str]:
        page_dir = job.output_dir / job.browser_name / dir_name
        page_dir.mkdir(parents=True, exist_ok=True)
        write_url_sidecar(page_dir, job.url)

        timestamp_ms = int(time.time() * 1000)
        written: list[str] = []

        for breakpoint, width in self.config.breakpoints.items():
            await page.set_viewport_size({"width": width, "height": self.config.viewport_height})

            if self.config.breakpoint_delay_ms > 0:
                await page.wait_for_timeout(self.config.breakpoint_delay_ms)
            try:
                await page.wait_for_load_state("domcontentloaded", timeout=_RESIZE_LOAD_STATE_TIMEOUT_MS)
            except PlaywrightError:
                pass

            # SPAs can wipe <head> on resize.
            await reapply_hide_selectors(page, self.config.hide_selectors)

            filename = artifact_filename(breakpoint, timestamp_ms, job.sequence, self.config.screenshot_extension)
            await page.screenshot(path=str(page_dir / filename), **self.config.screenshot)

            relative = f"{job.browser_name}/{dir_name}/{filename}"
            written.append(relative)
            await self.events.emit(
                EventType.PROGRESS,
                browser=job.browser_name,
                url=job.url,
                breakpoint=breakpoint,
                path=relative,
            )
        return written

    async def _close_session(self, page: Any, context: Any) -> None:
        for resource in (page, context):
            if resource is None:
                continue
            try:
                await resource.close()
            except Exception as exc:
                logger.warning("Failed to close browser session resource: %s", exc)
