"""browser-control test configuration — shared fixtures for unit tests."""

from __future__ import annotations

import stat
from pathlib import Path
from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest

# Environment variables that would leak a developer's local configuration.
_ENV_VARS = (
    "CHROMIUM_PATH",
    "BROWSER_HEADLESS",
    "GEMINI_API_KEY",
    "BRCTL_STATE_DIR",
    "BRCTL_DATA_DIR",
    "BRCTL_DEBUG",
    "BRCTL_KEEP_PROFILE",
    "BRCTL_BROWSER__EXECUTABLE_PATH",
    "BRCTL_BROWSER__HEADLESS",
    "BRCTL_STEALTH__ENABLED",
    "BRCTL_VISION__BACKEND",
    "BRCTL_VISION__API_KEY",
    "BRCTL_VISION__COMMAND",
)


# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_settings_cache(monkeypatch):
    """Clear the settings LRU cache and local env overrides between tests."""
    from browser_control.settings.config import get_settings

    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture()
def fake_browser(tmp_path: Path) -> Path:
    """An executable file standing in for the browser binary."""
    exe = tmp_path / "bin" / "chromium"
    exe.parent.mkdir(parents=True)
    exe.write_text("#!/bin/sh\nexit 0\n")
    exe.chmod(exe.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return exe


@pytest.fixture()
def settings(tmp_path: Path, fake_browser: Path):
    """Settings rooted in ``tmp_path`` with an existing browser executable."""
    from browser_control.settings.config import Settings

    return Settings(
        state_dir=tmp_path / "state",
        data_dir=tmp_path / "state" / "profile-test",
        browser={
            "executable_path": str(fake_browser),
            "headless": True,
            "screenshot_path": str(tmp_path / "shots" / "screenshot.png"),
            "analysis_screenshot_path": str(tmp_path / "shots" / "analysis.png"),
        },
    )


# ---------------------------------------------------------------------------
# Mock Playwright
# ---------------------------------------------------------------------------


@pytest.fixture()
def fake_playwright():
    """A ``sync_playwright``-shaped factory whose browser is all mocks.

    ``factory().start()`` returns the driver; the persistent context has no
    initial pages, so the session opens one with ``new_page()``.
    """
    factory = MagicMock(name="sync_playwright")
    driver = factory.return_value.start.return_value
    driver.chromium.executable_path = "/opt/playwright/chromium"
    context = driver.chromium.launch_persistent_context.return_value
    context.pages = []
    page = context.new_page.return_value
    page.url = "about:blank"
    page.title.return_value = ""
    return SimpleNamespace(factory=factory, driver=driver, context=context, page=page)


@pytest.fixture()
def installer():
    return MagicMock(name="install_chromium", return_value=None)


@pytest.fixture()
def session(settings, fake_playwright, installer):
    """A ``SessionManager`` wired to the mock Playwright factory."""
    from browser_control.browser.session import SessionManager

    return SessionManager(settings, playwright_factory=fake_playwright.factory, installer=installer)


@pytest.fixture()
def dispatcher(session, settings):
    """An ``ActionDispatcher`` with no vision backend configured."""
    from browser_control.browser.actions import ActionDispatcher

    return ActionDispatcher(session, settings, vision_factory=lambda s: None)
