"""Tests for the browser-control CLI using typer's CliRunner."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import pytest
from typer.testing import CliRunner

import browser_control.cli.app as cli_app
from browser_control.browser.session import SessionManager

runner = CliRunner()


def _json(output: str) -> Any:
    """Decode the JSON document printed on stdout, skipping any log lines."""
    lines = output.splitlines()
    for idx, line in enumerate(lines):
        if line.lstrip().startswith(("{", "[")):
            doc, _ = json.JSONDecoder().raw_decode("\n".join(lines[idx:]).lstrip())
            return doc
    raise AssertionError(f"no JSON in output: {output!r}")


@pytest.fixture()
def cli_env(tmp_path: Path, monkeypatch, fake_browser, fake_playwright, installer):
    """Point the CLI at ``tmp_path`` and the mock Playwright factory."""
    monkeypatch.setenv("BRCTL_STATE_DIR", str(tmp_path / "state"))
    monkeypatch.setenv("CHROMIUM_PATH", str(fake_browser))

    def _build_session(settings):
        return SessionManager(settings, playwright_factory=fake_playwright.factory, installer=installer)

    monkeypatch.setattr(cli_app, "build_session", _build_session)

    def _write_png(path: str, **_kwargs) -> bytes:
        Path(path).write_bytes(b"\x89PNG\r\n\x1a\n" + b"\x00" * 32)
        return b""

    fake_playwright.page.screenshot.side_effect = _write_png
    return fake_playwright


class TestUsage:
    def test_no_args_shows_help(self) -> None:
        result = runner.invoke(cli_app.app, [])
        assert result.exit_code == 0
        assert "navigate" in result.output

    def test_version(self) -> None:
        result = runner.invoke(cli_app.app, ["--version"])
        assert result.exit_code == 0
        assert result.output.startswith("browser-control ")

    def test_missing_argument_is_usage_error(self, cli_env) -> None:
        result = runner.invoke(cli_app.app, ["navigate"])
        assert result.exit_code == 2
        cli_env.factory.assert_not_called()

    @pytest.mark.parametrize("timeout", ["soon", "0"])
    def test_invalid_timeout_is_usage_error(self, cli_env, timeout) -> None:
        result = runner.invoke(cli_app.app, ["wait", "#x", timeout])
        assert result.exit_code == 2

    def test_unknown_command(self) -> None:
        result = runner.invoke(cli_app.app, ["teleport"])
        assert result.exit_code == 2


class TestSingleCommands:
    def test_status_without_session(self, cli_env) -> None:
        result = runner.invoke(cli_app.app, ["status"])

        assert result.exit_code == 0
        payload = _json(result.stdout)
        assert payload["success"] is True
        assert payload["running"] is False
        cli_env.factory.assert_not_called()

    def test_page_command_without_session_fails_in_band(self, cli_env) -> None:
        """Failures are reported as JSON with a zero exit code."""
        result = runner.invoke(cli_app.app, ["navigate", "https://example.test"])

        assert result.exit_code == 0
        payload = _json(result.stdout)
        assert payload == {"success": False, "error": "Browser not started", "hint": "Run `start` first"}

    def test_start_stops_browser_on_exit(self, cli_env, tmp_path) -> None:
        result = runner.invoke(cli_app.app, ["start"])

        assert result.exit_code == 0
        assert _json(result.stdout)["message"] == "Browser started"
        cli_env.context.close.assert_called_once()
        state = json.loads((tmp_path / "state" / "state.json").read_text())
        assert state["status"] == "stopped"

    def test_status_reads_previous_invocation(self, cli_env, tmp_path) -> None:
        runner.invoke(cli_app.app, ["start"])

        result = runner.invoke(cli_app.app, ["status"])

        persisted = _json(result.stdout)["persisted"]
        assert persisted["status"] == "stopped"
        assert persisted["dataDirectory"].startswith(str(tmp_path / "state" / "profile-"))

    def test_setup(self, cli_env, installer) -> None:
        result = runner.invoke(cli_app.app, ["setup"])

        assert result.exit_code == 0
        assert _json(result.stdout)["success"] is True
        installer.assert_called_once_with()


class TestRun:
    def test_chained_steps_share_one_session(self, cli_env, tmp_path) -> None:
        out = tmp_path / "out.png"

        result = runner.invoke(
            cli_app.app,
            ["run", "start", "navigate https://example.test", f"screenshot {out}"],
        )

        assert result.exit_code == 0
        records = _json(result.stdout)
        assert [r["command"] for r in records] == ["start", "navigate", "screenshot"]
        assert all(r["result"]["success"] for r in records)
        shot = records[-1]["result"]
        assert shot["path"] == str(out)
        assert shot["size"] > 0
        assert out.exists()
        cli_env.driver.chromium.launch_persistent_context.assert_called_once()
        cli_env.context.close.assert_called_once()

    def test_stops_at_first_failure(self, cli_env) -> None:
        result = runner.invoke(cli_app.app, ["run", "start", "teleport now", "snapshot"])

        records = _json(result.stdout)
        assert [r["command"] for r in records] == ["start", "teleport"]
        assert records[-1]["result"]["success"] is False

    def test_keep_going(self, cli_env) -> None:
        result = runner.invoke(cli_app.app, ["run", "--keep-going", "navigate https://example.test", "status"])

        records = _json(result.stdout)
        assert [r["result"]["success"] for r in records] == [False, True]

    def test_steps_from_file(self, cli_env, tmp_path) -> None:
        script = tmp_path / "steps.txt"
        script.write_text("# smoke test\nstart\n\nwait '#main > h1' 250\n")

        result = runner.invoke(cli_app.app, ["run", "--file", str(script)])

        records = _json(result.stdout)
        assert records[1]["args"] == ["#main > h1", "250"]
        cli_env.page.wait_for_selector.assert_called_once_with("#main > h1", state="visible", timeout=250)

    def test_no_steps(self, cli_env) -> None:
        result = runner.invoke(cli_app.app, ["run"])
        assert result.exit_code == 2

    def test_missing_file(self, cli_env, tmp_path) -> None:
        result = runner.invoke(cli_app.app, ["run", "--file", str(tmp_path / "nope.txt")])
        assert result.exit_code == 2

    def test_unbalanced_quotes(self, cli_env) -> None:
        result = runner.invoke(cli_app.app, ["run", "type '#q hello"])
        assert result.exit_code == 2


class TestEntrypoint:
    def test_uncaught_error_exits_one(self, monkeypatch, capsys) -> None:
        def _boom() -> None:
            raise RuntimeError("settings file unreadable")

        monkeypatch.setattr(cli_app, "app", _boom)

        with pytest.raises(SystemExit) as exc_info:
            cli_app.entrypoint()

        assert exc_info.value.code == 1
        assert "settings file unreadable" in capsys.readouterr().err
