"""Read capture targets from a plain-text URL list."""

from __future__ import annotations

import logging
from pathlib import Path
from urllib.parse import urlsplit

from silverscreen.exceptions import SilverscreenError

logger = logging.getLogger(__name__)


def is_valid_url(candidate: str) -> bool:
    """Return True for absolute http(s) URLs with a host."""
    try:
        parts = urlsplit(candidate)
    except ValueError:
        return False
    return parts.scheme in ("http", "https") and bool(parts.hostname)


def read_urls_from_file(path: str | Path) -> list[str]:
    """Return the valid URLs in *path*, one per line, in file order.

    Blank lines and ``#`` comments are ignored; invalid entries are skipped
    with a warning.

    Raises:
        SilverscreenError: If the file cannot be read.
    """
    try:
        content = Path(path).read_text(encoding="utf-8")
    except OSError as exc:
        raise SilverscreenError(f"Failed to read URL file {path}: {exc}") from exc

    urls: list[str] = []
    for lineno, raw in enumerate(content.splitlines(), 1):
        line = raw.strip()
        if not line or line.startswith("#"):
            continue
        if not is_valid_url(line):
            logger.warning("Skipping invalid URL on line %d: %s", lineno, line)
            continue
        urls.append(line)
    return urls
