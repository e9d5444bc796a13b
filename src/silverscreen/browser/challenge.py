"""Anti-bot interstitial detection and wait-out.

Some sites answer the first request with a JS challenge page ("Just a
moment...", "Checking your browser") that replaces itself with the real
content after a few seconds. Screenshots of the interstitial are useless,
so the pipeline blocks here until the challenge clears or a deadline passes.

1. **Snapshot** — read the page URL, title and a couple of DOM facts into a
   ``PageSnapshot``.
2. **Detect** — ``is_challenge()`` is a pure predicate over that snapshot,
   OR-ing three signals: a challenge endpoint URL, a challenge title, or a
   known challenge container (or a near-empty body with a waiting title).
3. **Wait** — poll until the predicate turns false or the deadline passes.
   Either outcome lets the pipeline continue; a challenge that never clears
   only produces a warning.
"""

from __future__ import annotations

import asyncio
import logging
import re
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING

from playwright.async_api import Error as PlaywrightError

logger = logging.getLogger(__name__)

if TYPE_CHECKING:
    from playwright.async_api import Page


CHALLENGE_URL_PATTERN = re.compile(r"/cdn-cgi/(challenge-platform|l/chk_)", re.IGNORECASE)

CHALLENGE_TITLE_PATTERN = re.compile(
    r"just a moment|checking your browser|attention required|verifying|security check|please wait|enable javascript",
    re.IGNORECASE,
)

# Narrower title set used together with the near-empty body signal.
SPARSE_PAGE_TITLE_PATTERN = re.compile(r"moment|wait|check", re.IGNORECASE)
SPARSE_BODY_MAX_CHILDREN = 3

CHALLENGE_SELECTORS: list[str] = [
    "#challenge-running",
    "#challenge-stage",
    "#cf-challenge-running",
    "#cf-spinner-please-wait",
    "#cf-norobot-container",
    ".cf-browser-verification",
    "#challenge-form",
    "#turnstile-wrapper",
    '[class*="challenge"]',
    'iframe[src*="challenges.cloudflare.com"]',
]

_SNAPSHOT_JS = """(selectors) => ({
    hasChallengeElement: selectors.some((sel) => {
        try { return !!document.querySelector(sel); } catch (e) { return false; }
    }),
    bodyChildCount: document.body ? document.body.children.length : null,
})"""


@dataclass(frozen=True)
class PageSnapshot:
    """The page facts the challenge heuristic looks at."""

    url: str
    title: str = ""
    has_challenge_element: bool = False
    body_child_count: int | None = None


@dataclass
class ChallengeResult:
    """Outcome of :func:`wait_for_challenge`."""

    detected: bool = False
    cleared: bool = True
    waited_s: float = 0.0


def is_challenge(snapshot: PageSnapshot) -> bool:
    """Return True if *snapshot* looks like an anti-bot interstitial."""
    if CHALLENGE_URL_PATTERN.search(snapshot.url):
        return True
    if CHALLENGE_TITLE_PATTERN.search(snapshot.title):
        return True
    if snapshot.has_challenge_element:
        return True
    return (
        snapshot.body_child_count is not None
        and snapshot.body_child_count <= SPARSE_BODY_MAX_CHILDREN
        and bool(SPARSE_PAGE_TITLE_PATTERN.search(snapshot.title))
    )


async def take_snapshot(page: Page) -> PageSnapshot:
    """Read URL, title and challenge DOM facts from a live page."""
    url = page.url
    title = await page.title()
    facts = await page.evaluate(_SNAPSHOT_JS, CHALLENGE_SELECTORS)
    return PageSnapshot(
        url=url,
        title=title or "",
        has_challenge_element=bool(facts.get("hasChallengeElement")),
        body_child_count=facts.get("bodyChildCount"),
    )


async def is_challenged(page: Page) -> bool:
    """Snapshot *page* and apply :func:`is_challenge`.

    A page mid-navigation can throw on ``title()`` or ``evaluate()``; that
    counts as still challenged.
    """
    try:
        return is_challenge(await take_snapshot(page))
    except Exception as exc:
        logger.debug("Challenge check failed on %s, treating as challenged: %s", page.url, exc)
        return True


async def _navigation_or_pause(page: Page, navigation_timeout_ms: int, poll_interval_s: float) -> None:
    """Return when the page navigates or *poll_interval_s* elapses, whichever is first."""

    async def wait_navigation() -> None:
        # Challenge iframes navigate constantly; only a top-level navigation counts.
        try:
            await page.wait_for_event(
                "framenavigated",
                predicate=lambda frame: frame is page.main_frame,
                timeout=navigation_timeout_ms,
            )
            await page.wait_for_load_state("domcontentloaded", timeout=navigation_timeout_ms)
        except PlaywrightError:
            # A failed wait never shortens the pause.
            await asyncio.sleep(poll_interval_s)

    tasks = {asyncio.ensure_future(wait_navigation()), asyncio.ensure_future(asyncio.sleep(poll_interval_s))}
    try:
        await asyncio.wait(tasks, return_when=asyncio.FIRST_COMPLETED)
    finally:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)


async def wait_for_challenge(
    page: Page,
    *,
    wait_until: str = "load",
    timeout_s: float = 60.0,
    poll_interval_s: float = 3.0,
    navigation_timeout_ms: int = 5_000,
    settle_s: float = 2.0,
) -> ChallengeResult:
    """Block while *page* shows a challenge interstitial.

    Args:
        page: Playwright ``Page`` that has just navigated.
        wait_until: Load state to await once the challenge clears.
        timeout_s: Wall-clock deadline for the challenge to clear.
        poll_interval_s: Fixed pause raced against each navigation wait.
        navigation_timeout_ms: Sub-timeout for each navigation wait.
        settle_s: Extra pause after clearing for client-side rendering.

    Returns:
        A ``ChallengeResult``; never raises for an uncleared challenge.
    """
    if not await is_challenged(page):
        return ChallengeResult()

    logger.info("Challenge detected on %s, waiting up to %.0fs", page.url, timeout_s)
    started = time.monotonic()
    deadline = started + timeout_s

    while time.monotonic() < deadline and await is_challenged(page):
        await _navigation_or_pause(page, navigation_timeout_ms, poll_interval_s)

    waited = time.monotonic() - started
    if await is_challenged(page):
        logger.warning("Challenge did not clear within %.0fs on %s", timeout_s, page.url)
        return ChallengeResult(detected=True, cleared=False, waited_s=waited)

    logger.info("Challenge cleared on %s after %.1fs", page.url, waited)

    load_state = "domcontentloaded" if wait_until == "commit" else wait_until
    try:
        await page.wait_for_load_state(load_state)
    except PlaywrightError:
        pass
    await asyncio.sleep(settle_s)
    try:
        await page.wait_for_load_state("domcontentloaded")
    except PlaywrightError:
        pass

    return ChallengeResult(detected=True, cleared=True, waited_s=waited)
