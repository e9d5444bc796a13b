"""Silverscreen-specific exception hierarchy."""

from __future__ import annotations


class SilverscreenError(Exception):
    """Base exception for all Silverscreen-specific errors."""


class NoBrowsersLaunchedError(SilverscreenError):
    """Raised by ``init()`` when not a single browser engine could be launched.

    Attributes:
        requested: The browser names that were configured.
    """

    def __init__(self, requested: list[str]) -> None:
        self.requested = list(requested)
        super().__init__(f"No browsers could be launched (requested: {', '.join(self.requested) or 'none'})")


class EngineNotInitializedError(SilverscreenError):
    """Raised when a capture is requested before ``init()`` succeeded."""

    def __init__(self) -> None:
        super().__init__("No browsers initialized. Call init() first.")


class UnknownBrowserError(SilverscreenError):
    """Raised when a browser name does not map to a supported engine."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Unknown browser: {name}")


class InvalidUrlError(SilverscreenError):
    """Raised when a URL has no usable scheme or host."""

    def __init__(self, url: str) -> None:
        self.url = url
        super().__init__(f"Invalid URL: {url!r}")
