"""Unit tests for launch options, stealth injection and the Chromium installer."""

from __future__ import annotations

import subprocess
from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest

from browser_control.browser import installer
from browser_control.browser.stealth import STEALTH_SCRIPT, apply_stealth_scripts, build_launch_options
from browser_control.exceptions import BrowserUnavailableError
from browser_control.settings.config import Settings


class TestLaunchOptions:
    def test_defaults(self, tmp_path) -> None:
        opts = build_launch_options(Settings(state_dir=tmp_path), "/usr/bin/chromium")

        assert opts["headless"] is True
        assert opts["executable_path"] == "/usr/bin/chromium"
        assert opts["viewport"] == {"width": 1920, "height": 1080}
        assert "--window-size=1920,1080" in opts["args"]
        assert "--no-sandbox" in opts["args"]
        assert "--disable-blink-features=AutomationControlled" in opts["args"]
        assert opts["ignore_default_args"] == ["--enable-automation"]

    def test_bundled_browser_omits_executable(self, tmp_path) -> None:
        assert "executable_path" not in build_launch_options(Settings(state_dir=tmp_path), None)

    def test_sandbox_and_stealth_off(self, tmp_path) -> None:
        settings = Settings(
            state_dir=tmp_path,
            browser={"sandbox": True, "headless": False, "window_width": 1280, "window_height": 720},
            stealth={"enabled": False},
        )

        opts = build_launch_options(settings, None)

        assert opts["headless"] is False
        assert "--no-sandbox" not in opts["args"]
        assert "--window-size=1280,720" in opts["args"]
        assert "ignore_default_args" not in opts

    def test_headless_env_alias(self, tmp_path, monkeypatch) -> None:
        monkeypatch.setenv("BROWSER_HEADLESS", "false")
        assert build_launch_options(Settings(state_dir=tmp_path), None)["headless"] is False


class TestStealthScript:
    def test_injected_as_init_script(self) -> None:
        page = MagicMock()
        apply_stealth_scripts(page)
        page.add_init_script.assert_called_once_with(STEALTH_SCRIPT)

    @pytest.mark.parametrize("marker", ["webdriver", "plugins", "languages", "Win32", "chrome", "permissions"])
    def test_script_patches(self, marker: str) -> None:
        assert marker in STEALTH_SCRIPT


class TestInstaller:
    def test_is_executable(self, fake_browser, tmp_path) -> None:
        assert installer.is_executable(str(fake_browser))
        assert not installer.is_executable(str(tmp_path / "nope"))
        assert not installer.is_executable(None)

    def test_install_success(self, monkeypatch) -> None:
        run = MagicMock(return_value=SimpleNamespace(returncode=0, stdout="ok", stderr=""))
        monkeypatch.setattr(installer.subprocess, "run", run)

        installer.install_chromium()

        argv = run.call_args.args[0]
        assert argv[1:] == ["-m", "playwright", "install", "chromium"]

    def test_install_nonzero_exit(self, monkeypatch) -> None:
        run = MagicMock(return_value=SimpleNamespace(returncode=1, stdout="", stderr="network unreachable"))
        monkeypatch.setattr(installer.subprocess, "run", run)

        with pytest.raises(BrowserUnavailableError, match="network unreachable"):
            installer.install_chromium()

    def test_install_timeout(self, monkeypatch) -> None:
        run = MagicMock(side_effect=subprocess.TimeoutExpired(cmd="playwright", timeout=1))
        monkeypatch.setattr(installer.subprocess, "run", run)

        with pytest.raises(BrowserUnavailableError, match="could not run"):
            installer.install_chromium(timeout_sec=1)
