"""Browser-control exception hierarchy.

These are raised inside collaborators (installer, navigation, vision
backends) and converted into ``Failure`` results at the session and
dispatcher boundary.
"""

from __future__ import annotations


class BrowserControlError(Exception):
    """Base exception for all browser-control errors."""


class BrowserUnavailableError(BrowserControlError):
    """Raised when no usable browser executable exists and auto-install failed.

    Attributes:
        executable_path: The configured executable that was not usable.
    """

    def __init__(self, executable_path: str, reason: str) -> None:
        self.executable_path = executable_path
        self.reason = reason
        super().__init__(f"Browser unavailable ({executable_path}): {reason}")


class NavigationError(BrowserControlError):
    """Raised when a navigation fails for a non-retryable reason (DNS, TLS, refused)."""

    def __init__(self, url: str, reason: str) -> None:
        self.url = url
        self.reason = reason
        super().__init__(f"Navigation to {url} failed: {reason}")


class VisionAnalysisError(BrowserControlError):
    """Raised when a configured vision backend fails to produce an analysis."""


def first_line(exc: BaseException) -> str:
    """First line of an exception message (Playwright appends call logs)."""
    text = str(exc).strip()
    return text.splitlines()[0] if text else type(exc).__name__
