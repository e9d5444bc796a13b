"""Page interaction plugins.

A plugin is any object with a ``name`` and an async ``handle(page) -> bool``
that returns True when it acted on the page (dismissed a banner, removed a
modal, ...). ``PluginRunner`` runs a list of them in order against one
page; a plugin that raises is logged and the next one still runs.

Plugins named in configuration are resolved through :func:`load_plugins`,
either by a registered short name or a ``package.module:ClassName`` path.
"""

from __future__ import annotations

import asyncio
import importlib
import logging
from collections.abc import Callable, Iterable
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from playwright.async_api import Error as PlaywrightError

from silverscreen.exceptions import SilverscreenError

logger = logging.getLogger(__name__)

if TYPE_CHECKING:
    from playwright.async_api import Page


@runtime_checkable
class Plugin(Protocol):
    """Capability contract for page interaction logic."""

    name: str

    async def handle(self, page: Page) -> bool:
        """Act on *page*; return True if something was done."""
        ...


class BasePlugin:
    """Optional convenience base: stores the display name and logs under it."""

    def __init__(self, name: str) -> None:
        self.name = name

    async def handle(self, page: Page) -> bool:
        return False

    def log(self, message: str, *args: object) -> None:
        logger.info("[%s] " + message, self.name, *args)


# ---------------------------------------------------------------------------
# Built-in plugins
# ---------------------------------------------------------------------------


class CookieBannerPlugin(BasePlugin):
    """Click the close button of a cookie notice if one shows up."""

    def __init__(
        self,
        selector: str = ".ila-cookieb__close-button",
        appear_wait_s: float = 2.0,
        dismiss_wait_s: float = 1.0,
    ) -> None:
        super().__init__("Cookie Banner")
        self.selector = selector
        self.appear_wait_s = appear_wait_s
        self.dismiss_wait_s = dismiss_wait_s

    async def handle(self, page: Page) -> bool:
        try:
            await asyncio.sleep(self.appear_wait_s)
            button = await page.query_selector(self.selector)
            if button:
                self.log("Found cookie notice, dismissing...")
                await button.click()
                await asyncio.sleep(self.dismiss_wait_s)
                self.log("Cookie notice dismissed")
                return True
        except PlaywrightError as exc:
            self.log("Cookie notice dismissal failed: %s", exc)
        return False


_SANDBOX_REMOVE_JS = """(selectors) => {
    document.querySelectorAll(selectors).forEach((el) => el.remove());
    const style = document.createElement('style');
    style.textContent = `${selectors} { display: none !important; }`;
    document.head.appendChild(style);
}"""


class SandboxModalPlugin(BasePlugin):
    """Wait for a sandbox/consent modal and strip it from the DOM."""

    def __init__(
        self,
        container_selector: str = ".micromodalcontainer",
        remove_selectors: str = ".micromodalcontainer, .micromodaloverlay, .micromodal-slide",
        timeout_ms: int = 15_000,
    ) -> None:
        super().__init__("Sandbox Button")
        self.container_selector = container_selector
        self.remove_selectors = remove_selectors
        self.timeout_ms = timeout_ms

    async def handle(self, page: Page) -> bool:
        try:
            await page.wait_for_selector(self.container_selector, state="visible", timeout=self.timeout_ms)
        except PlaywrightError as exc:
            self.log("No modal appeared: %s", exc)
            return False
        self.log("Found modal, removing from DOM...")
        await page.evaluate(_SANDBOX_REMOVE_JS, self.remove_selectors)
        self.log("Modal removed")
        return True


class ModalClosePlugin(BasePlugin):
    """Click a generic modal close control."""

    def __init__(self, selector: str = '.modal-close, .popup-close, [aria-label="Close"]') -> None:
        super().__init__("Modal Closer")
        self.selector = selector

    async def handle(self, page: Page) -> bool:
        try:
            close = await page.query_selector(self.selector)
            if close:
                self.log("Found modal dialog, closing...")
                await close.click()
                await asyncio.sleep(1.0)
                return True
        except PlaywrightError as exc:
            self.log("Modal close failed: %s", exc)
        return False


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------

PLUGIN_REGISTRY: dict[str, Callable[[], Plugin]] = {
    "cookie": CookieBannerPlugin,
    "sandbox": SandboxModalPlugin,
    "modal": ModalClosePlugin,
}


def register_plugin(short_name: str, factory: Callable[[], Plugin]) -> None:
    """Make *factory* resolvable by *short_name* in configuration."""
    PLUGIN_REGISTRY[short_name.lower()] = factory


def resolve_plugin(ref: str) -> Plugin:
    """Instantiate a plugin from a registered short name or ``module:ClassName``.

    Raises:
        SilverscreenError: If the ref cannot be resolved or the result does
            not satisfy the ``Plugin`` protocol.
    """
    factory = PLUGIN_REGISTRY.get(ref.strip().lower())
    if factory is None:
        module_name, _, attr = ref.partition(":")
        if not attr:
            raise SilverscreenError(f"Unknown plugin: {ref!r}")
        try:
            factory = getattr(importlib.import_module(module_name), attr)
        except (ImportError, AttributeError) as exc:
            raise SilverscreenError(f"Cannot load plugin {ref!r}: {exc}") from exc

    plugin = factory()
    if not isinstance(plugin, Plugin):
        raise SilverscreenError(f"Plugin {ref!r} has no name/handle(page)")
    return plugin


def load_plugins(refs: Iterable[str]) -> list[Plugin]:
    """Resolve every configured plugin ref, in order."""
    return [resolve_plugin(ref) for ref in refs]


# ---------------------------------------------------------------------------
# Runner
# ---------------------------------------------------------------------------


class PluginRunner:
    """Run plugins sequentially against one page, isolating each failure."""

    def __init__(self, plugins: Iterable[Plugin] = ()) -> None:
        self.plugins: list[Plugin] = list(plugins)

    def add_plugin(self, plugin: Plugin) -> None:
        """Append *plugin* to the run order."""
        self.plugins.append(plugin)

    async def run(self, page: Page) -> list[str]:
        """Run every plugin in declaration order.

        Returns:
            Names of the plugins that reported acting on the page.
        """
        acted: list[str] = []
        for plugin in self.plugins:
            name = getattr(plugin, "name", type(plugin).__name__)
            try:
                if await plugin.handle(page):
                    acted.append(name)
            except Exception as exc:
                logger.warning("Plugin %s failed: %s", name, exc)
        return acted
