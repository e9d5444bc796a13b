"""Map browser names onto Playwright engines and launch them."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from silverscreen.browser.stealth import build_launch_options
from silverscreen.exceptions import UnknownBrowserError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EngineSpec:
    """Which Playwright browser type backs a name, and with which channel."""

    browser_type: str
    channel: str | None = None


BROWSER_ENGINES: dict[str, EngineSpec] = {
    "chromium": EngineSpec("chromium"),
    "chrome": EngineSpec("chromium"),
    "firefox": EngineSpec("firefox"),
    "webkit": EngineSpec("webkit"),
    "edge": EngineSpec("chromium", channel="msedge"),
}


def resolve_engine(browser_name: str) -> EngineSpec:
    """Return the ``EngineSpec`` for *browser_name* (case-insensitive).

    Raises:
        UnknownBrowserError: If the name is not a supported engine.
    """
    spec = BROWSER_ENGINES.get(browser_name.strip().lower())
    if spec is None:
        raise UnknownBrowserError(browser_name)
    return spec


async def launch_browser(playwright: Any, browser_name: str, base_options: dict[str, Any]) -> Any:
    """Launch one browser process for *browser_name*.

    Args:
        playwright: A started ``Playwright`` object (``async_playwright().start()``).
        browser_name: Configured engine name.
        base_options: Shared launch options (headless, args, ...).

    Returns:
        The Playwright ``Browser``.

    Raises:
        UnknownBrowserError: If the name is not a supported engine.
    """
    spec = resolve_engine(browser_name)
    options = build_launch_options(browser_name, base_options)
    if spec.channel:
        options["channel"] = spec.channel

    logger.debug("Launching %s (%s, channel=%s)", browser_name, spec.browser_type, spec.channel)
    browser_type = getattr(playwright, spec.browser_type)
    return await browser_type.launch(**options)
