"""Configuration loader for Silverscreen using Pydantic settings.

Config precedence (highest wins):
  1. CLI flags (where applicable)
  2. Environment variables (SILVERSCREEN_* with __ for nesting)
  3. settings.local.toml
  4. settings.<env>.toml
  5. settings.default.toml
"""

from __future__ import annotations

import os
import tomllib
from functools import lru_cache
from pathlib import Path
from typing import Any

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from silverscreen.capture.config import CaptureConfig, WaitUntil, build_capture_config

# ---------------------------------------------------------------------------
# Path helpers
# ---------------------------------------------------------------------------

_THIS_DIR = Path(__file__).resolve().parent
PROJECT_ROOT = Path(os.getenv("SILVERSCREEN_PROJECT_ROOT", _THIS_DIR.parents[2]))
CONFIG_DIR = PROJECT_ROOT / "config"

ENV_VAR_NAME = "SILVERSCREEN_ENV"
DEFAULT_ENV = "local"

_CAPTURE_DEFAULTS = CaptureConfig()


def _resolve_env() -> str:
    return (os.getenv(ENV_VAR_NAME) or DEFAULT_ENV).strip()


def _load_toml(path: Path) -> dict[str, Any]:
    if path.is_file():
        with open(path, "rb") as f:
            return tomllib.load(f)
    return {}


# ---------------------------------------------------------------------------
# Section models
# ---------------------------------------------------------------------------


class CaptureSettings(BaseSettings):
    """Capture engine knobs as read from files and the environment."""

    model_config = SettingsConfigDict(env_prefix="SILVERSCREEN_CAPTURE__")

    browsers: list[str] = Field(default_factory=lambda: list(_CAPTURE_DEFAULTS.browsers))
    browser_options: dict[str, Any] = Field(default_factory=lambda: dict(_CAPTURE_DEFAULTS.browser_options))
    breakpoints: dict[str, int] = Field(default_factory=lambda: dict(_CAPTURE_DEFAULTS.breakpoints))
    screenshot: dict[str, Any] = Field(default_factory=lambda: dict(_CAPTURE_DEFAULTS.screenshot))
    concurrency: int = _CAPTURE_DEFAULTS.concurrency
    wait_until: WaitUntil = _CAPTURE_DEFAULTS.wait_until
    hide_selectors: list[str] = Field(default_factory=list)
    plugins: list[str] = Field(default_factory=list)
    delay_ms: int = _CAPTURE_DEFAULTS.delay_ms
    breakpoint_delay_ms: int = _CAPTURE_DEFAULTS.breakpoint_delay_ms
    scroll_to_load: bool = _CAPTURE_DEFAULTS.scroll_to_load
    navigation_timeout_ms: int = _CAPTURE_DEFAULTS.navigation_timeout_ms
    challenge_timeout_s: float = _CAPTURE_DEFAULTS.challenge_timeout_s
    viewport_height: int = _CAPTURE_DEFAULTS.viewport_height


class OutputSettings(BaseSettings):
    """Where screenshots are written."""

    model_config = SettingsConfigDict(env_prefix="SILVERSCREEN_OUTPUT__")

    output_dir: str = "screenshots"


# ---------------------------------------------------------------------------
# Root settings
# ---------------------------------------------------------------------------


class Settings(BaseSettings):
    """Root Silverscreen settings with nested sections."""

    model_config = SettingsConfigDict(
        env_prefix="SILVERSCREEN_",
        env_nested_delimiter="__",
        extra="ignore",
    )

    env: str = Field(default_factory=_resolve_env)
    project_root: Path = Field(default=PROJECT_ROOT)
    debug: bool = False
    log_level: str = "INFO"
    log_format: str = "text"  # text | json

    capture: CaptureSettings = Field(default_factory=CaptureSettings)
    output: OutputSettings = Field(default_factory=OutputSettings)

    @model_validator(mode="before")
    @classmethod
    def _merge_toml_files(cls, values: dict[str, Any]) -> dict[str, Any]:
        """Layer TOML config files before env var overrides."""
        defaults = _load_toml(CONFIG_DIR / "settings.default.toml")
        env_name = (values.get("env") or os.getenv(ENV_VAR_NAME) or DEFAULT_ENV).strip()
        env_overrides = _load_toml(CONFIG_DIR / f"settings.{env_name}.toml")
        local_overrides = _load_toml(CONFIG_DIR / "settings.local.toml")

        # Merge: defaults < env-specific < local < explicit values.
        # Breakpoints are a whole map, never merged key-by-key.
        merged: dict[str, Any] = {}
        for layer in (defaults, env_overrides, local_overrides, values):
            for key, val in layer.items():
                if isinstance(val, dict) and isinstance(merged.get(key), dict):
                    section = {**merged[key], **val}
                    if key == "capture" and "breakpoints" in val:
                        section["breakpoints"] = val["breakpoints"]
                    merged[key] = section
                else:
                    merged[key] = val
        return merged

    @model_validator(mode="after")
    def _resolve_paths(self) -> "Settings":
        """Normalize the output directory against project_root."""
        if not Path(self.output.output_dir).is_absolute():
            self.output.output_dir = str(self.project_root / self.output.output_dir)
        return self

    def capture_config(self, overrides: dict[str, Any] | None = None) -> CaptureConfig:
        """Build the immutable engine configuration: defaults ⊕ settings ⊕ *overrides*."""
        return build_capture_config(self.capture.model_dump(), overrides)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return the singleton settings instance (cached)."""
    return Settings()
