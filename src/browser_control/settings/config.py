"""Configuration loader for browser-control using Pydantic settings.

Config precedence (highest wins):
  1. Environment variables (BRCTL_* with __ for nesting, plus a few
     unprefixed aliases such as CHROMIUM_PATH and GEMINI_API_KEY)
  2. settings.local.toml
  3. settings.default.toml

Settings are read once per process and are immutable afterwards.
"""

from __future__ import annotations

import os
import tempfile
import time
import tomllib
from functools import lru_cache
from pathlib import Path
from typing import Any, Literal

from pydantic import AliasChoices, Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# ---------------------------------------------------------------------------
# Path helpers
# ---------------------------------------------------------------------------

_THIS_DIR = Path(__file__).resolve().parent
PROJECT_ROOT = Path(os.getenv("BRCTL_PROJECT_ROOT", _THIS_DIR.parents[2]))
CONFIG_DIR = Path(os.getenv("BRCTL_CONFIG_DIR", PROJECT_ROOT / "config"))

_TMP = Path(tempfile.gettempdir())

STATE_FILE_NAME = "state.json"
PROFILE_PREFIX = "profile-"


def _default_state_dir() -> Path:
    return _TMP / "browser-control"


def _profile_dir(state_dir: Path) -> Path:
    """Return a fresh per-invocation profile directory under *state_dir*."""
    return state_dir / f"{PROFILE_PREFIX}{int(time.time() * 1000)}"


def _load_toml(path: Path) -> dict[str, Any]:
    if path.is_file():
        with open(path, "rb") as f:
            return tomllib.load(f)
    return {}


# ---------------------------------------------------------------------------
# Section models
# ---------------------------------------------------------------------------


class BrowserSettings(BaseSettings):
    """Playwright browser launch settings."""

    model_config = SettingsConfigDict(env_prefix="BRCTL_BROWSER__", populate_by_name=True, frozen=True)

    executable_path: str = Field(
        default="/usr/bin/chromium-browser",
        validation_alias=AliasChoices("BRCTL_BROWSER__EXECUTABLE_PATH", "CHROMIUM_PATH"),
    )
    headless: bool = Field(
        default=True,
        validation_alias=AliasChoices("BRCTL_BROWSER__HEADLESS", "BROWSER_HEADLESS"),
    )
    timeout_ms: int = 30_000
    action_timeout_ms: int = 5_000
    wait_timeout_ms: int = 10_000
    window_width: int = 1920
    window_height: int = 1080
    sandbox: bool = False
    auto_install: bool = True
    screenshot_path: str = str(_TMP / "screenshot.png")
    analysis_screenshot_path: str = str(_TMP / "screenshot-analysis.png")


class StealthSettings(BaseSettings):
    """Anti-detection configuration."""

    model_config = SettingsConfigDict(env_prefix="BRCTL_STEALTH__", frozen=True)

    enabled: bool = True


class VisionSettings(BaseSettings):
    """AI screenshot analysis configuration.

    ``backend`` selects how ``analyze`` is served:

    - ``auto``: Gemini when an API key is set, else the external command
      when configured, else no analysis (screenshot only).
    - ``gemini``: direct Gemini REST call (requires ``api_key``).
    - ``command``: external tool invoked as ``<command> <image> <prompt>``.
    - ``none``: never analyze.
    """

    model_config = SettingsConfigDict(env_prefix="BRCTL_VISION__", populate_by_name=True, frozen=True)

    backend: Literal["auto", "gemini", "command", "none"] = "auto"
    api_key: str = Field(
        default="",
        validation_alias=AliasChoices("BRCTL_VISION__API_KEY", "GEMINI_API_KEY"),
    )
    model: str = "gemini-2.0-flash"
    api_base: str = "https://generativelanguage.googleapis.com/v1beta"
    command: str = ""
    timeout_sec: float = 60.0
    max_retries: int = 2
    default_prompt: str = "Describe the content of this page"


_SECTIONS: dict[str, type[BaseSettings]] = {
    "browser": BrowserSettings,
    "stealth": StealthSettings,
    "vision": VisionSettings,
}


# ---------------------------------------------------------------------------
# Root settings
# ---------------------------------------------------------------------------


class Settings(BaseSettings):
    """Root browser-control settings with nested sections."""

    model_config = SettingsConfigDict(
        env_prefix="BRCTL_",
        env_nested_delimiter="__",
        extra="ignore",
        frozen=True,
    )

    debug: bool = False
    state_dir: Path = Field(default_factory=_default_state_dir)
    data_dir: Path = Field(default_factory=lambda: _profile_dir(_default_state_dir()))
    # Auto-generated profiles under state_dir are deleted on stop unless set.
    keep_profile: bool = False

    browser: BrowserSettings = Field(default_factory=BrowserSettings)
    stealth: StealthSettings = Field(default_factory=StealthSettings)
    vision: VisionSettings = Field(default_factory=VisionSettings)

    @model_validator(mode="before")
    @classmethod
    def _merge_toml_files(cls, values: dict[str, Any]) -> dict[str, Any]:
        """Layer TOML config files before env var overrides."""
        defaults = _load_toml(CONFIG_DIR / "settings.default.toml")
        local_overrides = _load_toml(CONFIG_DIR / "settings.local.toml")

        # Section-level env vars (including unprefixed aliases) are only read
        # when a section is built on its own, so collect them explicitly.
        section_env: dict[str, Any] = {}
        for name, section_cls in _SECTIONS.items():
            section = section_cls()
            if section.model_fields_set:
                section_env[name] = section.model_dump(include=section.model_fields_set)

        # Merge: defaults < local < section env < explicit values
        merged: dict[str, Any] = {}
        for layer in (defaults, local_overrides, section_env, values):
            for key, val in layer.items():
                if isinstance(val, dict) and isinstance(merged.get(key), dict):
                    merged[key] = {**merged[key], **val}
                else:
                    merged[key] = val

        # The profile directory is unique per invocation and lives under state_dir.
        if merged.get("state_dir") and not merged.get("data_dir"):
            merged["data_dir"] = _profile_dir(Path(merged["state_dir"]).expanduser())
        return merged

    @property
    def state_file(self) -> Path:
        """Location of the persisted session record."""
        return self.state_dir / STATE_FILE_NAME


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return the singleton settings instance (cached)."""
    return Settings()
