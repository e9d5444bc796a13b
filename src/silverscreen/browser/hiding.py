"""Hide-selector suppression.

Configured CSS selectors (chat widgets, consent walls, sticky promos) are
kept out of screenshots three ways: a marked ``<style>`` element that
forces them invisible, an active removal pass, and a ``MutationObserver``
that removes late-injected matches such as delayed modals. The init
script runs on every navigation; :func:`reapply_hide_selectors` restores
the style after SPAs rebuild ``<head>``.
"""

from __future__ import annotations

import json
import logging

logger = logging.getLogger(__name__)

STYLE_MARKER = "data-silverscreen-hide"

_HIDE_RULE = (
    "{ display: none !important; visibility: hidden !important; opacity: 0 !important; "
    "pointer-events: none !important; max-height: 0 !important; overflow: hidden !important; }"
)

_INIT_SCRIPT_TEMPLATE = """
(() => {
    const css = %(css)s;
    const selectors = %(selectors)s;
    const applyStyle = () => {
        const root = document.head || document.documentElement;
        if (!root) return;
        const style = document.createElement('style');
        style.setAttribute('%(marker)s', '');
        style.textContent = css;
        root.appendChild(style);
    };
    const removeElements = () => {
        selectors.forEach((sel) => {
            document.querySelectorAll(sel).forEach((el) => el.remove());
        });
    };
    if (document.readyState === 'loading') {
        document.addEventListener('DOMContentLoaded', () => { applyStyle(); removeElements(); }, { once: true });
    } else {
        applyStyle();
        removeElements();
    }
    const observer = new MutationObserver(() => removeElements());
    const startObserving = () => observer.observe(document.body || document.documentElement, { childList: true, subtree: true });
    if (document.body) startObserving();
    else document.addEventListener('DOMContentLoaded', startObserving, { once: true });
})();
"""

_REAPPLY_JS = """({ css, selectors, marker }) => {
    if (!document.querySelector(`style[${marker}]`)) {
        const style = document.createElement('style');
        style.setAttribute(marker, '');
        style.textContent = css;
        (document.head || document.documentElement).appendChild(style);
    }
    selectors.forEach((sel) => {
        document.querySelectorAll(sel).forEach((el) => el.remove());
    });
}"""


def build_hide_css(selectors: list[str] | tuple[str, ...]) -> str:
    """Return one forced-invisible rule per selector, or ``""`` when there are none."""
    return "\n".join(f"{sel} {_HIDE_RULE}" for sel in selectors)


def build_hide_init_script(selectors: list[str] | tuple[str, ...]) -> str:
    """Return the init script that installs style, removal pass and observer."""
    return _INIT_SCRIPT_TEMPLATE % {
        "css": json.dumps(build_hide_css(selectors)),
        "selectors": json.dumps(list(selectors)),
        "marker": STYLE_MARKER,
    }


async def install_hide_selectors(page, selectors: list[str] | tuple[str, ...]) -> None:
    """Register the hide init script on *page*; no-op without selectors."""
    if not selectors:
        return
    await page.add_init_script(build_hide_init_script(selectors))
    logger.debug("Hide selectors installed: %d", len(selectors))


async def reapply_hide_selectors(page, selectors: list[str] | tuple[str, ...]) -> None:
    """Re-insert the hide style if it was dropped and remove current matches."""
    if not selectors:
        return
    await page.evaluate(
        _REAPPLY_JS,
        {"css": build_hide_css(selectors), "selectors": list(selectors), "marker": STYLE_MARKER},
    )
