"""Browser anti-detection for Chromium-family engines.

Sites behind bot protection often refuse to render for an obviously
automated browser. For Chromium-based engines (``chromium``, ``chrome``,
``edge``) this module provides:

- Extra launch flags (disable the AutomationControlled blink feature,
  fixed window size, no first-run or default-browser prompts)
- A fixed desktop user-agent for every new browsing context
- Init-time patches (hide ``navigator.webdriver``, non-empty plugin list,
  accepted languages, notification permission reported as ``default``)

These are best-effort evasions; nothing here guarantees a page will treat
the session as human.

Usage::

    from silverscreen.browser.stealth import apply_stealth_scripts, build_context_options

    context = await browser.new_context(**build_context_options("chromium"))
    page = await context.new_page()
    await apply_stealth_scripts(page)
"""

from __future__ import annotations

import logging
from typing import Any

logger = logging.getLogger(__name__)

CHROMIUM_FAMILY: frozenset[str] = frozenset({"chromium", "chrome", "edge"})

STEALTH_ARGS: list[str] = [
    "--disable-blink-features=AutomationControlled",
    "--disable-features=IsolateOrigins,site-per-process",
    "--no-first-run",
    "--no-default-browser-check",
    "--disable-infobars",
    "--window-size=1920,1080",
]

DESKTOP_USER_AGENT = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/131.0.0.0 Safari/537.36"
)

# Stealth JavaScript, injected via page.add_init_script()
_STEALTH_SCRIPT: str = """
// Remove navigator.webdriver flag
Object.defineProperty(navigator, 'webdriver', { get: () => false });

// Patch navigator.plugins to look non-empty (headless has none)
Object.defineProperty(navigator, 'plugins', {
    get: () => [1, 2, 3, 4, 5],
});

// Patch navigator.languages
Object.defineProperty(navigator, 'languages', {
    get: () => ['en-US', 'en'],
});

// Drop the automation extension runtime
if (window.chrome) {
    window.chrome.runtime = undefined;
}

// Headless reports notifications as 'denied'; real browsers start at 'default'
if (window.Notification && window.Notification.permission === 'denied') {
    Object.defineProperty(Notification, 'permission', { get: () => 'default' });
}
"""


def is_chromium_family(browser_name: str) -> bool:
    """Return True if *browser_name* runs on the Chromium engine."""
    return browser_name.lower() in CHROMIUM_FAMILY


def build_launch_options(browser_name: str, base_options: dict[str, Any]) -> dict[str, Any]:
    """Return launch kwargs for *browser_name* with stealth flags appended.

    *base_options* is never mutated.
    """
    options = dict(base_options)
    if is_chromium_family(browser_name):
        options["args"] = [*options.get("args", []), *STEALTH_ARGS]
    return options


def build_context_options(browser_name: str) -> dict[str, Any]:
    """Return ``new_context()`` kwargs for one job on *browser_name*."""
    if is_chromium_family(browser_name):
        return {"user_agent": DESKTOP_USER_AGENT}
    return {}


async def apply_stealth_scripts(page) -> None:
    """Inject stealth JavaScript into a Playwright page.

    Call this **before** navigating so the patches run in every document,
    including challenge redirects.
    """
    await page.add_init_script(_STEALTH_SCRIPT)
    logger.debug("Stealth scripts injected")
