"""Unified CLI entry point for browser-control.

Each invocation is its own process: it builds the settings once, runs one
command against a fresh ``SessionManager`` and always stops the browser
before exiting. Use ``run`` to chain several commands in one session.

Config precedence: settings.default.toml -> settings.local.toml -> env vars (BRCTL_* with __).
"""

from __future__ import annotations

import json
import logging
import shlex
import sys
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Callable, Iterator, Optional

import typer
from rich.console import Console

from browser_control.browser.actions import ActionDispatcher
from browser_control.browser.session import SessionManager
from browser_control.models.results import ActionResult
from browser_control.settings import Settings, get_settings

try:
    from importlib.metadata import version

    VERSION = version("browser-control")
except Exception:
    VERSION = "unknown"

APP_HELP = (
    "browser-control — drive a single stealth-patched browser session. "
    "Results are printed as JSON on stdout; logs go to stderr. "
    "Config precedence: settings.default.toml -> settings.local.toml -> env vars (BRCTL_* with __)."
)

app = typer.Typer(add_completion=False, help=APP_HELP, pretty_exceptions_enable=False)
console = Console()
err_console = Console(stderr=True)


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    version: bool = typer.Option(False, "--version", help="Show version and exit."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging on stderr."),
) -> None:
    """Show help when no subcommand is provided."""
    if version:
        typer.echo(f"browser-control {VERSION}")
        raise typer.Exit()
    if ctx.invoked_subcommand is None:
        typer.echo(ctx.get_help())
        raise typer.Exit()
    _configure_logging(verbose or get_settings().debug)


# ---------------------------------------------------------------------------
# Session commands
# ---------------------------------------------------------------------------


@app.command("start")
def start_cmd() -> None:
    """Launch the browser (it is closed again when this process exits)."""
    _run_one(lambda d: d.start())


@app.command("stop")
def stop_cmd() -> None:
    """Close the browser if this process holds one."""
    _run_one(lambda d: d.stop())


@app.command("status")
def status_cmd() -> None:
    """Show session liveness, configuration and the last persisted state."""
    _run_one(lambda d: d.status())


@app.command("setup")
def setup_cmd() -> None:
    """Install Playwright's Chromium build."""
    settings = get_settings()
    _emit(build_session(settings).install_browser())


# ---------------------------------------------------------------------------
# Page commands
# ---------------------------------------------------------------------------


@app.command("navigate")
def navigate_cmd(url: str = typer.Argument(..., help="URL to load, including the scheme.")) -> None:
    """Load a URL and wait for the network to settle."""
    _run_one(lambda d: d.navigate(url))


@app.command("screenshot")
def screenshot_cmd(
    path: Optional[str] = typer.Argument(None, help="Output image path (default from settings)."),
) -> None:
    """Capture a full-page screenshot."""
    _run_one(lambda d: d.screenshot(path))


@app.command("snapshot")
def snapshot_cmd() -> None:
    """Print a bounded digest of page text, links and interactive elements."""
    _run_one(lambda d: d.snapshot())


@app.command("wait")
def wait_cmd(
    selector: str = typer.Argument(..., help="CSS selector to wait for."),
    timeout_ms: Optional[int] = typer.Argument(None, min=1, help="Timeout in milliseconds (default 10000)."),
) -> None:
    """Wait until an element is visible."""
    _run_one(lambda d: d.wait_for_visible(selector, timeout_ms))


@app.command("click")
def click_cmd(selector: str = typer.Argument(..., help="CSS selector of a visible element.")) -> None:
    """Click a visible element (run `wait` first)."""
    _run_one(lambda d: d.click(selector))


@app.command("type")
def type_cmd(
    selector: str = typer.Argument(..., help="CSS selector of a visible input."),
    text: str = typer.Argument(..., help="Text to enter."),
) -> None:
    """Fill a visible input with text (run `wait` first)."""
    _run_one(lambda d: d.type(selector, text))


@app.command("eval")
def eval_cmd(script: str = typer.Argument(..., help="JavaScript expression or function source.")) -> None:
    """Evaluate JavaScript in the page and print its value."""
    _run_one(lambda d: d.evaluate(script))


@app.command("analyze")
def analyze_cmd(
    prompt: Optional[str] = typer.Argument(None, help="Question or instruction for the vision model."),
) -> None:
    """Screenshot the page and analyze it with the configured vision backend."""
    _run_one(lambda d: d.analyze(prompt))


# ---------------------------------------------------------------------------
# Multi-step runs
# ---------------------------------------------------------------------------


@app.command("run")
def run_cmd(
    steps: Optional[list[str]] = typer.Argument(None, help='Steps such as "navigate https://example.com".'),
    file: Optional[Path] = typer.Option(None, "--file", "-f", help="File with one step per line ('#' comments)."),
    keep_going: bool = typer.Option(False, "--keep-going", help="Continue after a failed step."),
) -> None:
    """Run several commands in order inside one browser session.

    Example::

        browser-control run start "navigate https://example.com" "screenshot /tmp/out.png"
    """
    raw_steps: list[str] = []
    if file is not None:
        if not file.is_file():
            err_console.print(f"[red]File not found:[/red] {file}")
            raise typer.Exit(code=2)
        raw_steps.extend(_load_steps(file))
    raw_steps.extend(steps or [])

    parsed: list[list[str]] = []
    for step in raw_steps:
        try:
            tokens = shlex.split(step)
        except ValueError as e:
            err_console.print(f"[red]Cannot parse step[/red] {step!r}: {e}")
            raise typer.Exit(code=2) from None
        if tokens:
            parsed.append(tokens)

    if not parsed:
        err_console.print("[red]No steps given.[/red] Pass steps as arguments or with --file.")
        raise typer.Exit(code=2)

    records: list[dict[str, Any]] = []
    with _dispatcher() as dispatcher:
        for tokens in parsed:
            result = dispatcher.dispatch(tokens[0], tokens[1:])
            records.append({"command": tokens[0], "args": tokens[1:], "result": result.to_dict()})
            if not result.success and not keep_going:
                break
    _print_json(records)


def _load_steps(path: Path) -> list[str]:
    """Read steps from *path*: one per line, blank lines and ``#`` comments skipped."""
    steps = []
    for line in path.read_text(encoding="utf-8").splitlines():
        line = line.strip()
        if line and not line.startswith("#"):
            steps.append(line)
    return steps


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def build_session(settings: Settings) -> SessionManager:
    """Create the process's session manager."""
    return SessionManager(settings)


@contextmanager
def _dispatcher() -> Iterator[ActionDispatcher]:
    """Yield a dispatcher and always stop the browser afterwards."""
    settings = get_settings()
    session = build_session(settings)
    try:
        yield ActionDispatcher(session, settings)
    finally:
        if session.is_running:
            session.stop()


def _run_one(action: Callable[[ActionDispatcher], ActionResult]) -> None:
    with _dispatcher() as dispatcher:
        result = action(dispatcher)
    _emit(result)


def _emit(result: ActionResult) -> None:
    _print_json(result.to_dict())


def _print_json(payload: Any) -> None:
    console.print_json(json.dumps(payload, ensure_ascii=False, default=str))


def _configure_logging(debug: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.WARNING,
        format="%(asctime)s %(levelname)-8s %(name)s — %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        stream=sys.stderr,
    )
    # Quieten noisy libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


def entrypoint() -> None:
    """Console-script entry: uncaught errors exit non-zero with a message."""
    try:
        app()
    except Exception as e:
        err_console.print(f"[red]Error:[/red] {e}")
        sys.exit(1)


if __name__ == "__main__":
    entrypoint()
