"""Immutable capture configuration and the layered merge that builds it.

A ``CaptureConfig`` is constructed once per engine and never mutated.
Layers are merged left to right (defaults, then file config, then
request-time overrides) by :func:`build_capture_config`:

* ``browser_options`` and ``screenshot`` merge key-by-key.
* ``breakpoints`` replaces the whole map when a layer provides one, so a
  user asking for two widths never silently inherits the four defaults.
* Every other key is last-writer-wins.
"""

from __future__ import annotations

from collections.abc import Mapping
from types import MappingProxyType
from typing import Annotated, Any, Literal

from pydantic import AfterValidator, BaseModel, ConfigDict, Field, PlainSerializer, field_validator

WaitUntil = Literal["load", "domcontentloaded", "networkidle", "commit"]

DEFAULT_BREAKPOINTS: dict[str, int] = {
    "mobile-390px": 390,
    "tablet-768px": 768,
    "desktop-1440px": 1440,
    "large-1920px": 1920,
}

# Read-only view over a validated dict; dumps back to a plain dict.
FrozenOptions = Annotated[
    Mapping[str, Any],
    AfterValidator(lambda value: MappingProxyType(dict(value))),
    PlainSerializer(dict, return_type=dict[str, Any]),
]
FrozenWidths = Annotated[
    Mapping[str, int],
    AfterValidator(lambda value: MappingProxyType(dict(value))),
    PlainSerializer(dict, return_type=dict[str, int]),
]

# Keys whose mapping values merge key-by-key across layers.
_MERGED_KEYS: tuple[str, ...] = ("browser_options", "screenshot")


class CaptureConfig(BaseModel):
    """Everything the capture engine needs to know, fixed for its lifetime."""

    model_config = ConfigDict(frozen=True, extra="forbid", validate_default=True)

    browsers: tuple[str, ...] = ("chromium",)
    browser_options: FrozenOptions = Field(default_factory=lambda: {"headless": True})
    breakpoints: FrozenWidths = Field(default_factory=lambda: dict(DEFAULT_BREAKPOINTS))
    screenshot: FrozenOptions = Field(default_factory=lambda: {"full_page": True})
    concurrency: int = 3
    wait_until: WaitUntil = "load"
    hide_selectors: tuple[str, ...] = ()
    plugins: tuple[str, ...] = ()
    delay_ms: int = 0
    breakpoint_delay_ms: int = 200
    scroll_to_load: bool = True
    navigation_timeout_ms: int = 60_000
    challenge_timeout_s: float = 60.0
    viewport_height: int = 1080

    @field_validator("browsers")
    @classmethod
    def _normalize_browsers(cls, value: tuple[str, ...]) -> tuple[str, ...]:
        """Lower-case and de-duplicate engine names, keeping first-seen order."""
        names = tuple(dict.fromkeys(name.strip().lower() for name in value if name.strip()))
        if not names:
            raise ValueError("at least one browser is required")
        return names

    @field_validator("breakpoints")
    @classmethod
    def _check_breakpoints(cls, value: Mapping[str, int]) -> Mapping[str, int]:
        if not value:
            raise ValueError("at least one breakpoint is required")
        for name, width in value.items():
            if width < 1:
                raise ValueError(f"breakpoint {name!r} must have a positive width, got {width}")
        return value

    @field_validator("concurrency")
    @classmethod
    def _check_concurrency(cls, value: int) -> int:
        if value < 1:
            raise ValueError(f"concurrency must be >= 1, got {value}")
        return value

    @field_validator("delay_ms", "breakpoint_delay_ms", "navigation_timeout_ms", "viewport_height")
    @classmethod
    def _check_non_negative(cls, value: int) -> int:
        if value < 0:
            raise ValueError(f"value must be >= 0, got {value}")
        return value

    @property
    def screenshot_extension(self) -> str:
        """File extension matching the configured screenshot ``type``."""
        kind = str(self.screenshot.get("type", "png")).lower()
        return "jpg" if kind in ("jpeg", "jpg") else "png"


def merge_layers(*layers: Mapping[str, Any] | None) -> dict[str, Any]:
    """Merge raw configuration mappings; later layers win.

    ``None`` and empty layers are skipped, and ``None`` values inside a
    layer mean "not set" so partial overrides never blank a default.
    """
    merged: dict[str, Any] = {}
    for layer in layers:
        if not layer:
            continue
        for key, value in layer.items():
            if value is None:
                continue
            if key in _MERGED_KEYS and isinstance(value, Mapping):
                merged[key] = {**merged.get(key, {}), **value}
            elif key == "breakpoints" and isinstance(value, Mapping):
                merged[key] = dict(value)
            else:
                merged[key] = value
    return merged


def build_capture_config(*layers: Mapping[str, Any] | None) -> CaptureConfig:
    """Build an immutable ``CaptureConfig`` from defaults plus override layers.

    Args:
        *layers: Raw mappings (file config, request overrides, ...) applied
            on top of the built-in defaults, in order.

    Returns:
        A validated, frozen ``CaptureConfig``.

    Raises:
        pydantic.ValidationError: If the merged values are invalid.
    """
    defaults = CaptureConfig().model_dump()
    return CaptureConfig(**merge_layers(defaults, *layers))
