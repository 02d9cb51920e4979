"""Page actions with a uniform pre-condition and result contract.

Every page-affecting action requires a running session; otherwise it
returns ``Failure("Browser not started")`` without touching anything.
Playwright exceptions are caught where they occur and turned into
``Failure`` values with an actionable ``hint`` where one exists.

``click`` and ``type`` never wait for their target: callers run
``wait <selector>`` first. ``wait`` itself never retries.
"""

from __future__ import annotations

import functools
import logging
import time
from pathlib import Path
from typing import TYPE_CHECKING, Any, Callable

from playwright.sync_api import Error as PlaywrightError, TimeoutError as PlaywrightTimeout

from browser_control.browser.navigation import is_navigable_url, resilient_goto
from browser_control.browser.snapshot import collect_snapshot
from browser_control.exceptions import NavigationError, first_line
from browser_control.models.results import ActionResult
from browser_control.vision.factory import create_vision_analyzer

if TYPE_CHECKING:
    from playwright.sync_api import Page

    from browser_control.browser.session import SessionManager
    from browser_control.settings.config import Settings
    from browser_control.vision.base import VisionAnalyzer

logger = logging.getLogger(__name__)

NOT_STARTED = "Browser not started"
_NOT_STARTED_HINT = "Run `start` first"
_SNAPSHOT_HINT = "Run `snapshot` to list the visible elements and their selectors"
_BLANK_PAGES = frozenset({"", "about:blank"})


def requires_session(method: Callable[..., ActionResult]) -> Callable[..., ActionResult]:
    """Return ``Failure`` when no session is running; never let exceptions escape."""

    @functools.wraps(method)
    def wrapper(self: ActionDispatcher, *args: Any, **kwargs: Any) -> ActionResult:
        if not self.session.is_running:
            return ActionResult.fail(NOT_STARTED, hint=_NOT_STARTED_HINT)
        try:
            return method(self, *args, **kwargs)
        except Exception as e:
            logger.warning("%s failed: %s", method.__name__, e)
            return ActionResult.fail(f"{method.__name__} failed: {first_line(e)}")

    return wrapper


class ActionDispatcher:
    """Command surface over a ``SessionManager``.

    Args:
        session: The process's session manager (sole owner of the page).
        settings: Immutable process settings.
        vision_factory: Builds the vision analyzer on first ``analyze``;
            may return ``None`` when no backend is configured.
    """

    def __init__(
        self,
        session: SessionManager,
        settings: Settings,
        *,
        vision_factory: Callable[[Settings], VisionAnalyzer | None] = create_vision_analyzer,
    ) -> None:
        self.session = session
        self.settings = settings
        self._vision_factory = vision_factory

    @property
    def _page(self) -> Page:
        return self.session.page  # type: ignore[return-value]

    # ------------------------------------------------------------------
    # Session passthroughs
    # ------------------------------------------------------------------

    def start(self) -> ActionResult:
        return self.session.start()

    def stop(self) -> ActionResult:
        return self.session.stop()

    def status(self) -> ActionResult:
        return self.session.status()

    # ------------------------------------------------------------------
    # Page actions
    # ------------------------------------------------------------------

    @requires_session
    def navigate(self, url: str) -> ActionResult:
        """Load *url* and wait for the network to settle."""
        if not is_navigable_url(url):
            return ActionResult.fail(
                f"Invalid URL: {url!r}",
                hint="Include the scheme, e.g. `navigate https://example.com`",
            )

        timeout_ms = self.settings.browser.timeout_ms
        try:
            response = resilient_goto(self._page, url, timeout_ms=timeout_ms)
        except NavigationError as e:
            return ActionResult.fail(str(e))
        except PlaywrightTimeout:
            return ActionResult.fail(
                f"Navigation to {url} timed out after {timeout_ms}ms",
                hint="The site may be slow or unreachable; retry or check connectivity",
            )
        except PlaywrightError as e:
            return ActionResult.fail(f"Navigation to {url} failed: {first_line(e)}")

        logger.info("Navigated to %s", self._page.url)
        return ActionResult.ok(
            url=self._page.url,
            title=self._page.title(),
            status=response.status if response is not None else None,
        )

    @requires_session
    def screenshot(self, path: str | None = None) -> ActionResult:
        """Capture the full page to *path* (parent directories are created)."""
        target = Path(path or self.settings.browser.screenshot_path).expanduser()
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            self._page.screenshot(path=str(target), full_page=True)
            size = target.stat().st_size
        except (PlaywrightError, OSError) as e:
            hint = "The page is blank; run `navigate <url>` first" if self._page_is_blank() else None
            return ActionResult.fail(f"Screenshot failed: {first_line(e)}", hint=hint)

        logger.info("Screenshot saved: %s (%d bytes)", target, size)
        return ActionResult.ok(path=str(target), size=size)

    @requires_session
    def snapshot(self) -> ActionResult:
        """Bounded digest of page text, links and interactive elements."""
        try:
            snap = collect_snapshot(self._page)
        except PlaywrightError as e:
            return ActionResult.fail(f"Snapshot failed: {first_line(e)}")
        return ActionResult.ok(**snap)

    @requires_session
    def wait_for_visible(self, selector: str, timeout_ms: int | None = None) -> ActionResult:
        """Block until *selector* is visible or *timeout_ms* elapses."""
        timeout = self.settings.browser.wait_timeout_ms if timeout_ms is None else timeout_ms
        # Playwright treats 0 as "wait forever".
        if timeout <= 0:
            return ActionResult.fail(f"Invalid timeout: {timeout}", hint="Use a timeout of at least 1ms")

        start = time.monotonic()
        try:
            self._page.wait_for_selector(selector, state="visible", timeout=timeout)
        except PlaywrightTimeout:
            return ActionResult.fail(
                f"Timed out after {timeout}ms waiting for {selector!r} to become visible",
                hint=_SNAPSHOT_HINT,
            )
        except PlaywrightError as e:
            return ActionResult.fail(f"Waiting for {selector!r} failed: {first_line(e)}", hint=_SNAPSHOT_HINT)

        elapsed_ms = int((time.monotonic() - start) * 1000)
        return ActionResult.ok(selector=selector, visible=True, elapsedMs=elapsed_ms)

    @requires_session
    def click(self, selector: str) -> ActionResult:
        """Click an element that is already visible."""
        locator = self._page.locator(selector).first
        failure = self._check_visible(locator, selector, "click")
        if failure is not None:
            return failure
        try:
            locator.click(timeout=self.settings.browser.action_timeout_ms)
        except PlaywrightError as e:
            return ActionResult.fail(
                f"Click on {selector!r} failed: {first_line(e)}",
                hint=f"Run `wait {selector}` first, then retry the click",
            )
        logger.info("Clicked %s", selector)
        return ActionResult.ok(selector=selector)

    @requires_session
    def type(self, selector: str, text: str) -> ActionResult:
        """Replace the value of an already-visible input with *text*."""
        locator = self._page.locator(selector).first
        failure = self._check_visible(locator, selector, "type")
        if failure is not None:
            return failure
        try:
            locator.fill(text, timeout=self.settings.browser.action_timeout_ms)
        except PlaywrightError as e:
            return ActionResult.fail(
                f"Typing into {selector!r} failed: {first_line(e)}",
                hint=f"Run `wait {selector}` first and make sure it is an editable field",
            )
        logger.info("Typed %d chars into %s", len(text), selector)
        return ActionResult.ok(selector=selector, textLength=len(text))

    @requires_session
    def evaluate(self, script: str) -> ActionResult:
        """Run *script* in the page and return its value."""
        try:
            value = self._page.evaluate(script)
        except PlaywrightError as e:
            return ActionResult.fail(f"Script error: {first_line(e)}")
        return ActionResult.ok(result=value)

    @requires_session
    def analyze(self, prompt: str | None = None) -> ActionResult:
        """Screenshot the page and hand it to the vision backend.

        Without a configured backend this still succeeds, returning the
        screenshot path and a note that analysis was skipped.
        """
        prompt = prompt or self.settings.vision.default_prompt
        shot = self.screenshot(self.settings.browser.analysis_screenshot_path)
        if not shot.success:
            return shot
        image_path = shot.get("path")

        try:
            analyzer = self._vision_factory(self.settings)
        except ValueError as e:
            return ActionResult.fail(f"Vision backend misconfigured: {e}", hint=f"Screenshot saved to {image_path}")

        if analyzer is None:
            return ActionResult.ok(
                screenshot=image_path,
                note="AI analysis skipped: no vision backend configured (set GEMINI_API_KEY or BRCTL_VISION__COMMAND)",
            )

        logger.info("Analyzing %s with %s", image_path, analyzer.name)
        try:
            result = analyzer.analyze(Path(image_path), prompt)
        except Exception as e:
            logger.error("Vision analysis failed: %s", e)
            return ActionResult.fail(f"Analysis failed: {first_line(e)}", hint=f"Screenshot saved to {image_path}")
        finally:
            analyzer.close()

        return ActionResult.ok(prompt=prompt, analysis=result.text, screenshot=image_path, model=result.model)

    # ------------------------------------------------------------------
    # Name-based dispatch (``run`` command)
    # ------------------------------------------------------------------

    def dispatch(self, command: str, args: list[str]) -> ActionResult:
        """Run one command given as a name plus string arguments."""
        entry = _COMMANDS.get(command)
        if entry is None:
            return ActionResult.fail(
                f"Unknown command: {command!r}",
                hint="Available: " + ", ".join(sorted(_COMMANDS)),
            )
        method_name, required, optional, usage = entry
        if not required <= len(args) <= required + optional:
            return ActionResult.fail(f"Wrong number of arguments for {command!r}", hint=f"Usage: {usage}")

        call_args: list[Any] = list(args)
        if command == "wait" and len(call_args) == 2:
            try:
                call_args[1] = int(call_args[1])
            except ValueError:
                return ActionResult.fail(f"Invalid timeout: {call_args[1]!r}", hint=f"Usage: {usage}")
        return getattr(self, method_name)(*call_args)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _check_visible(self, locator: Any, selector: str, verb: str) -> ActionResult | None:
        try:
            visible = locator.is_visible()
        except PlaywrightError as e:
            return ActionResult.fail(f"Invalid selector {selector!r}: {first_line(e)}", hint=_SNAPSHOT_HINT)
        if not visible:
            return ActionResult.fail(
                f"Element {selector!r} is not visible",
                hint=f"Run `wait {selector}` before `{verb}`; actions do not wait for elements",
            )
        return None

    def _page_is_blank(self) -> bool:
        try:
            return self._page.url in _BLANK_PAGES
        except Exception:
            return True


# command -> (method, required args, optional args, usage)
_COMMANDS: dict[str, tuple[str, int, int, str]] = {
    "start": ("start", 0, 0, "start"),
    "stop": ("stop", 0, 0, "stop"),
    "status": ("status", 0, 0, "status"),
    "navigate": ("navigate", 1, 0, "navigate <url>"),
    "screenshot": ("screenshot", 0, 1, "screenshot [path]"),
    "snapshot": ("snapshot", 0, 0, "snapshot"),
    "wait": ("wait_for_visible", 1, 1, "wait <selector> [timeout_ms]"),
    "click": ("click", 1, 0, "click <selector>"),
    "type": ("type", 2, 0, "type <selector> <text>"),
    "eval": ("evaluate", 1, 0, "eval <script>"),
    "analyze": ("analyze", 0, 1, "analyze [prompt]"),
}
