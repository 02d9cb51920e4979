"""Single browser session lifecycle.

``SessionManager`` owns the only Playwright persistent context and page of
the process. States are ``NoSession`` and ``Running``:

- ``start()`` on ``NoSession`` launches the browser (``Running`` on success,
  unchanged on failure); on ``Running`` it is a no-op.
- ``stop()`` on ``Running`` closes everything (``NoSession``); on
  ``NoSession`` it is a no-op.

Both always return an ``ActionResult`` and never raise. The on-disk
``PersistedState`` is rewritten on every transition so a later process can
see the last configuration used; it is never used to reattach to a browser.
"""

from __future__ import annotations

import logging
import shutil
from pathlib import Path
from typing import TYPE_CHECKING, Any, Callable

from playwright.sync_api import sync_playwright

from browser_control.browser.installer import install_chromium, is_executable
from browser_control.browser.stealth import apply_stealth_scripts, build_launch_options
from browser_control.exceptions import BrowserUnavailableError, first_line
from browser_control.settings.config import PROFILE_PREFIX
from browser_control.models.results import ActionResult
from browser_control.state import PersistedState, SessionStatus, load_state, save_state

if TYPE_CHECKING:
    from playwright.sync_api import BrowserContext, Page, Playwright

    from browser_control.settings.config import Settings

logger = logging.getLogger(__name__)

_SETUP_HINT = "Run `setup` to install Chromium, or point CHROMIUM_PATH at an installed browser"


class SessionManager:
    """Owns the browser/page pair for the lifetime of one CLI invocation.

    Args:
        settings: Immutable process settings.
        playwright_factory: Callable returning a Playwright context manager
            (defaults to ``sync_playwright``).
        installer: Callable that installs a browser binary or raises
            ``BrowserUnavailableError``.
    """

    def __init__(
        self,
        settings: Settings,
        *,
        playwright_factory: Callable[[], Any] = sync_playwright,
        installer: Callable[[], None] = install_chromium,
    ) -> None:
        self.settings = settings
        self._playwright_factory = playwright_factory
        self._installer = installer
        self._install_attempted = False

        self._playwright: Playwright | None = None
        self._context: BrowserContext | None = None
        self._page: Page | None = None

        self.persisted: PersistedState | None = load_state(settings.state_file)
        self.executable_path: str = settings.browser.executable_path

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def is_running(self) -> bool:
        return self._context is not None

    @property
    def page(self) -> Page | None:
        """The live page, or ``None`` when no session is running."""
        return self._page

    @property
    def data_dir(self) -> Path:
        return Path(self.settings.data_dir).expanduser()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self) -> ActionResult:
        """Launch the browser and open one stealth-patched page."""
        if self.is_running:
            logger.info("Browser already running")
            return ActionResult.ok(message="Browser already running", **self._describe())

        try:
            executable = self._resolve_executable()
        except BrowserUnavailableError as e:
            logger.error("Browser unavailable: %s", e)
            return ActionResult.fail(str(e), hint=_SETUP_HINT)

        logger.info(
            "Starting browser: stealth=%s headless=%s data_dir=%s",
            self.settings.stealth.enabled,
            self.settings.browser.headless,
            self.data_dir,
        )

        try:
            self.data_dir.mkdir(parents=True, exist_ok=True)
            self._playwright = self._playwright_factory().start()
            options = build_launch_options(self.settings, executable)
            self._context = self._playwright.chromium.launch_persistent_context(str(self.data_dir), **options)
            self._page = self._context.pages[0] if self._context.pages else self._context.new_page()

            # Must run before the first navigation.
            if self.settings.stealth.enabled:
                apply_stealth_scripts(self._page)

            self.executable_path = executable or self._playwright.chromium.executable_path
        except Exception as e:
            logger.error("Browser launch failed: %s", e)
            self._teardown()
            return ActionResult.fail(f"Browser launch failed: {first_line(e)}", hint=_SETUP_HINT)

        self._save(SessionStatus.RUNNING)
        logger.info("Browser started")
        return ActionResult.ok(message="Browser started", **self._describe())

    def stop(self) -> ActionResult:
        """Close the browser if one is running."""
        if not self.is_running:
            return ActionResult.ok(message="Browser not running")

        error: Exception | None = None
        try:
            self._context.close()
        except Exception as e:
            logger.error("Browser close failed: %s", e)
            error = e
        finally:
            self._context = None
            self._page = None
            self._stop_driver()
            self._remove_profile()
            self._save(SessionStatus.STOPPED)

        if error is not None:
            return ActionResult.fail(f"Browser close failed: {first_line(error)}")
        logger.info("Browser stopped")
        return ActionResult.ok(message="Browser stopped")

    def status(self) -> ActionResult:
        """Report liveness plus best-effort page URL and title. Never fails."""
        url = title = None
        if self._page is not None:
            try:
                url = self._page.url
            except Exception:
                url = None
            try:
                title = self._page.title()
            except Exception:
                title = None

        return ActionResult.ok(
            running=self.is_running,
            url=url,
            title=title,
            **self._describe(),
            persisted=self.persisted.to_dict() if self.persisted else None,
        )

    def install_browser(self) -> ActionResult:
        """Force a Playwright Chromium install (the ``setup`` command)."""
        try:
            self._installer()
        except BrowserUnavailableError as e:
            return ActionResult.fail(str(e), hint="Check network access and disk space, then retry `setup`")

        path = None
        try:
            with self._playwright_factory() as pw:
                path = pw.chromium.executable_path
        except Exception as e:
            logger.debug("Could not resolve bundled Chromium path: %s", e)
        return ActionResult.ok(message="Chromium installed", browserExecutablePath=path)

    # ------------------------------------------------------------------
    # Context manager: guaranteed cleanup
    # ------------------------------------------------------------------

    def __enter__(self) -> SessionManager:
        return self

    def __exit__(self, *exc_info: object) -> None:
        if self.is_running:
            self.stop()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _resolve_executable(self) -> str | None:
        """Pick the browser binary; ``None`` means Playwright's bundled Chromium.

        Order: configured path, then the last persisted path, then a
        one-time automatic install.
        """
        configured = self.settings.browser.executable_path
        if is_executable(configured):
            return configured

        previous = self.persisted.browser_executable_path if self.persisted else ""
        if previous and previous != configured and is_executable(previous):
            logger.info("Configured browser %s not found; reusing last used %s", configured, previous)
            return previous

        if not self.settings.browser.auto_install:
            raise BrowserUnavailableError(configured, "executable not found and auto-install is disabled")
        if self._install_attempted:
            raise BrowserUnavailableError(configured, "executable not found and auto-install already failed")

        logger.warning("Browser executable %s not found — installing Playwright Chromium", configured)
        self._install_attempted = True
        self._installer()
        return None

    def _describe(self) -> dict[str, Any]:
        return {
            "dataDirectory": str(self.data_dir),
            "browserExecutablePath": self.executable_path,
            "stealth": self.settings.stealth.enabled,
            "headless": self.settings.browser.headless,
        }

    def _save(self, status: SessionStatus) -> None:
        state = PersistedState(
            browser_executable_path=self.executable_path,
            data_directory=str(self.data_dir),
            status=status,
        )
        if save_state(self.settings.state_file, state):
            self.persisted = state

    def _stop_driver(self) -> None:
        if self._playwright is None:
            return
        try:
            self._playwright.stop()
        except Exception as e:
            logger.debug("Playwright driver stop failed: %s", e)
        finally:
            self._playwright = None

    def _teardown(self) -> None:
        """Release whatever a failed ``start()`` managed to create."""
        if self._context is not None:
            try:
                self._context.close()
            except Exception as e:
                logger.debug("Context close during teardown failed: %s", e)
        self._context = None
        self._page = None
        self._stop_driver()
        self._remove_profile()

    def _remove_profile(self) -> None:
        """Delete the per-invocation ``profile-*`` directory under ``state_dir``.

        A ``data_dir`` configured elsewhere is left alone, as is any profile
        when ``keep_profile`` is set.
        """
        if self.settings.keep_profile:
            return
        data_dir = self.data_dir
        state_dir = Path(self.settings.state_dir).expanduser()
        if data_dir.parent != state_dir or not data_dir.name.startswith(PROFILE_PREFIX):
            return
        try:
            shutil.rmtree(data_dir)
        except FileNotFoundError:
            return
        except OSError as e:
            logger.warning("Could not remove browser profile %s: %s", data_dir, e)
            return
        logger.debug("Removed browser profile %s", data_dir)
