"""Retrying vision analyzer wrapper.

Wraps any ``VisionAnalyzer`` with exponential-backoff retry so that
transient network or rate-limit errors do not fail an ``analyze`` call.
"""

from __future__ import annotations

import logging
import time
from pathlib import Path

from browser_control.vision.base import VisionAnalyzer, VisionResult

logger = logging.getLogger(__name__)

# Transient network and rate-limit exceptions.
_RETRYABLE_EXCEPTION_NAMES = frozenset({
    "ConnectionError",
    "TimeoutError",
    "ReadTimeout",
    "ConnectTimeout",
    "ConnectError",
    "RemoteProtocolError",
})


def _is_retryable(exc: Exception) -> bool:
    """Return True if *exc* looks like a transient error worth retrying."""
    if type(exc).__name__ in _RETRYABLE_EXCEPTION_NAMES:
        return True
    status_code = getattr(exc, "status_code", None) or getattr(
        getattr(exc, "response", None), "status_code", None
    )
    return bool(status_code and status_code in (429, 500, 502, 503, 504))


class RetryingVisionAnalyzer(VisionAnalyzer):
    """Transparent retry wrapper around any ``VisionAnalyzer``.

    Args:
        delegate: The backend to delegate calls to.
        max_retries: Number of retry attempts (0 = pass through).
        base_delay: Base delay in seconds for exponential backoff.
        max_delay: Cap on the backoff delay.
    """

    def __init__(
        self,
        delegate: VisionAnalyzer,
        *,
        max_retries: int = 2,
        base_delay: float = 1.0,
        max_delay: float = 15.0,
    ) -> None:
        self._delegate = delegate
        self._max_retries = max_retries
        self._base_delay = base_delay
        self._max_delay = max_delay
        self.name = delegate.name

    def analyze(self, image_path: Path, prompt: str) -> VisionResult:
        """Analyze with retry on transient errors."""
        attempt = 1
        while True:
            try:
                return self._delegate.analyze(image_path, prompt)
            except Exception as exc:
                if attempt > self._max_retries or not _is_retryable(exc):
                    raise
                delay = min(self._base_delay * (2 ** (attempt - 1)), self._max_delay)
                logger.warning(
                    "Vision call failed (attempt %d/%d): %s — retrying in %.1fs",
                    attempt,
                    self._max_retries + 1,
                    type(exc).__name__,
                    delay,
                )
                time.sleep(delay)
                attempt += 1

    def close(self) -> None:
        """Delegate cleanup."""
        self._delegate.close()
