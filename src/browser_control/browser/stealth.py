"""Browser anti-detection: launch flags and fingerprint-masking init script.

The init script must be registered on a page **before** its first
navigation so every document it loads sees the patched properties.

Usage::

    from browser_control.browser.stealth import apply_stealth_scripts, build_launch_options

    context = pw.chromium.launch_persistent_context(str(data_dir), **build_launch_options(settings, exe))
    page = context.new_page()
    apply_stealth_scripts(page)
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from playwright.sync_api import Page

    from browser_control.settings.config import Settings

logger = logging.getLogger(__name__)

# Stealth JavaScript, injected via page.add_init_script()
STEALTH_SCRIPT: str = """
(() => {
    // Remove navigator.webdriver flag
    Object.defineProperty(navigator, 'webdriver', { get: () => false });

    // Patch navigator.plugins to look non-empty
    Object.defineProperty(navigator, 'plugins', { get: () => [1, 2, 3, 4, 5] });

    Object.defineProperty(navigator, 'language', { get: () => 'en-US' });
    Object.defineProperty(navigator, 'languages', { get: () => ['en-US', 'en'] });
    Object.defineProperty(navigator, 'platform', { get: () => 'Win32' });
    Object.defineProperty(navigator, 'hardwareConcurrency', { get: () => 8 });
    Object.defineProperty(navigator, 'deviceMemory', { get: () => 8 });

    // ChromeDriver marker
    window.cdc_ = undefined;

    // Mimic chrome.runtime (present in real Chrome)
    if (!window.chrome) window.chrome = {};
    if (!window.chrome.runtime) window.chrome.runtime = {};

    // Prevent detection via permissions API
    if (window.navigator.permissions && window.navigator.permissions.query) {
        const originalQuery = window.navigator.permissions.query.bind(window.navigator.permissions);
        window.navigator.permissions.query = (parameters) =>
            parameters.name === 'notifications'
                ? Promise.resolve({ state: Notification.permission })
                : originalQuery(parameters);
    }
})();
"""

_BASE_ARGS: tuple[str, ...] = (
    "--disable-dev-shm-usage",
    "--disable-blink-features=AutomationControlled",
)

_NO_SANDBOX_ARGS: tuple[str, ...] = (
    "--no-sandbox",
    "--disable-setuid-sandbox",
)


def build_launch_options(settings: Settings, executable_path: str | None) -> dict[str, Any]:
    """Build keyword arguments for ``chromium.launch_persistent_context()``.

    Args:
        settings: Process settings.
        executable_path: Browser binary to launch, or ``None`` to use
            Playwright's bundled Chromium.

    Returns:
        A dict of launch options (everything except ``user_data_dir``).
    """
    browser = settings.browser
    args = list(_BASE_ARGS)
    if not browser.sandbox:
        args.extend(_NO_SANDBOX_ARGS)
    args.append(f"--window-size={browser.window_width},{browser.window_height}")

    options: dict[str, Any] = {
        "headless": browser.headless,
        "args": args,
        "viewport": {"width": browser.window_width, "height": browser.window_height},
    }
    if executable_path:
        options["executable_path"] = executable_path
    if settings.stealth.enabled:
        # Drop the switch Playwright adds that exposes navigator.webdriver.
        options["ignore_default_args"] = ["--enable-automation"]
    return options


def apply_stealth_scripts(page: Page) -> None:
    """Inject stealth JavaScript into a Playwright page.

    Call this **before** navigating so the script runs in every frame from
    the start.

    Args:
        page: Playwright ``Page`` object.
    """
    page.add_init_script(STEALTH_SCRIPT)
    logger.debug("Stealth scripts injected")
