"""Silverscreen — responsive screenshot capture across browser engines and viewport widths."""

from __future__ import annotations

try:
    from importlib.metadata import version

    __version__ = version("silverscreen")
except Exception:
    __version__ = "0.0.0"
