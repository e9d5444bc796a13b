"""Silverscreen test configuration — shared fixtures for unit and integration tests.

The fake Playwright below mirrors the slice of the async API the engine
uses (launch → new_context → new_page → goto/evaluate/screenshot/close)
and records how many pages are open at once.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import pytest
from playwright.async_api import TimeoutError as PlaywrightTimeout


# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_settings_cache():
    """Clear the settings LRU cache between tests."""
    from silverscreen.settings.config import get_settings

    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture()
def anyio_backend() -> str:
    return "asyncio"


# ---------------------------------------------------------------------------
# Fake Playwright
# ---------------------------------------------------------------------------


@dataclass
class SessionTracker:
    """Shared record of everything the fake browsers were asked to do."""

    open_pages: int = 0
    high_water: int = 0
    pages_created: int = 0
    contexts_closed: int = 0
    goto_delay_s: float = 0.01
    fail_urls: set[str] = field(default_factory=set)
    titles: dict[str, str] = field(default_factory=dict)
    screenshot_calls: list[dict[str, Any]] = field(default_factory=list)
    launched: list[tuple[str, dict[str, Any]]] = field(default_factory=list)
    context_options: list[dict[str, Any]] = field(default_factory=list)
    pages: list["FakePage"] = field(default_factory=list)

    def page_opened(self) -> None:
        self.open_pages += 1
        self.pages_created += 1
        self.high_water = max(self.high_water, self.open_pages)


class FakePage:
    def __init__(self, tracker: SessionTracker) -> None:
        self._tracker = tracker
        self.url = "about:blank"
        self.init_scripts: list[str] = []
        self.evaluated: list[str] = []
        self.viewports: list[dict[str, int]] = []
        self.closed = False

    async def add_init_script(self, script: str) -> None:
        self.init_scripts.append(script)

    async def goto(self, url: str, wait_until: str = "load", timeout: int = 30_000) -> None:
        await asyncio.sleep(self._tracker.goto_delay_s)
        if url in self._tracker.fail_urls:
            raise PlaywrightTimeout(f"Timeout {timeout}ms exceeded navigating to {url}")
        self.url = url

    async def title(self) -> str:
        return self._tracker.titles.get(self.url, "Example Domain")

    async def evaluate(self, script: str, arg: Any = None) -> Any:
        self.evaluated.append(script)
        if "hasChallengeElement" in script:
            return {"hasChallengeElement": False, "bodyChildCount": 12}
        return None

    async def wait_for_event(self, event: str, predicate: Any = None, timeout: float | None = None) -> None:
        await asyncio.sleep(0)

    async def wait_for_load_state(self, state: str = "load", timeout: float | None = None) -> None:
        await asyncio.sleep(0)

    async def wait_for_timeout(self, timeout: float) -> None:
        await asyncio.sleep(0)

    async def set_viewport_size(self, size: dict[str, int]) -> None:
        self.viewports.append(size)

    async def screenshot(self, path: str | None = None, **options: Any) -> bytes:
        await asyncio.sleep(0.005)
        data = b"\x89PNG\r\n\x1a\nfake"
        if path:
            Path(path).write_bytes(data)
        self._tracker.screenshot_calls.append({"path": path, **options})
        return data

    async def query_selector(self, selector: str) -> None:
        return None

    async def close(self) -> None:
        if not self.closed:
            self.closed = True
            self._tracker.open_pages -= 1


class FakeContext:
    def __init__(self, tracker: SessionTracker) -> None:
        self._tracker = tracker

    async def new_page(self) -> FakePage:
        page = FakePage(self._tracker)
        self._tracker.page_opened()
        self._tracker.pages.append(page)
        return page

    async def close(self) -> None:
        self._tracker.contexts_closed += 1


class FakeBrowser:
    def __init__(self, tracker: SessionTracker, name: str) -> None:
        self._tracker = tracker
        self.name = name
        self.closed = False

    async def new_context(self, **options: Any) -> FakeContext:
        self._tracker.context_options.append(options)
        return FakeContext(self._tracker)

    async def close(self) -> None:
        self.closed = True


class FakeBrowserType:
    def __init__(self, tracker: SessionTracker, name: str) -> None:
        self._tracker = tracker
        self.name = name
        self.fail = False

    async def launch(self, **options: Any) -> FakeBrowser:
        if self.fail:
            raise RuntimeError(f"Executable doesn't exist for {self.name}")
        self._tracker.launched.append((self.name, options))
        return FakeBrowser(self._tracker, self.name)


class FakePlaywright:
    def __init__(self) -> None:
        self.tracker = SessionTracker()
        self.chromium = FakeBrowserType(self.tracker, "chromium")
        self.firefox = FakeBrowserType(self.tracker, "firefox")
        self.webkit = FakeBrowserType(self.tracker, "webkit")
        self.stopped = False

    async def stop(self) -> None:
        self.stopped = True

    def factory(self):
        """Stand-in for ``async_playwright`` — returns an object with async ``start()``."""
        pw = self

        class _Manager:
            async def start(self) -> FakePlaywright:
                return pw

        return _Manager()


@pytest.fixture()
def fake_playwright() -> FakePlaywright:
    """A fresh fake Playwright driver with its session tracker."""
    return FakePlaywright()


# ---------------------------------------------------------------------------
# Pytest markers
# ---------------------------------------------------------------------------


def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers."""
    config.addinivalue_line("markers", "integration: marks tests that exercise the full capture pipeline")
