"""Browser binary discovery and one-shot Playwright Chromium install."""

from __future__ import annotations

import logging
import os
import subprocess
import sys
from pathlib import Path

from browser_control.exceptions import BrowserUnavailableError

logger = logging.getLogger(__name__)

_INSTALL_TIMEOUT_SEC = 600


def is_executable(path: str | None) -> bool:
    """Return True if *path* names an existing executable file."""
    if not path:
        return False
    p = Path(path)
    return p.is_file() and os.access(p, os.X_OK)


def install_chromium(timeout_sec: int = _INSTALL_TIMEOUT_SEC) -> None:
    """Run ``playwright install chromium`` in the current interpreter.

    Raises:
        BrowserUnavailableError: If the installer cannot be run or exits non-zero.
    """
    cmd = [sys.executable, "-m", "playwright", "install", "chromium"]
    logger.info("Installing Playwright Chromium: %s", " ".join(cmd))
    try:
        proc = subprocess.run(cmd, capture_output=True, text=True, timeout=timeout_sec, check=False)
    except (OSError, subprocess.TimeoutExpired) as e:
        raise BrowserUnavailableError("chromium", f"installer could not run: {e}") from e

    if proc.returncode != 0:
        detail = (proc.stderr or proc.stdout or "").strip()[-500:]
        raise BrowserUnavailableError("chromium", f"installer exited with {proc.returncode}: {detail}")
    logger.info("Playwright Chromium installed")
