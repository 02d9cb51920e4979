"""Gemini vision backend using the Generative Language REST API.

Authenticates with an API key (``GEMINI_API_KEY`` or
``BRCTL_VISION__API_KEY``) and sends the screenshot inline as base64.
"""

from __future__ import annotations

import base64
import logging
import mimetypes
import time
from pathlib import Path

import httpx

from browser_control.exceptions import VisionAnalysisError
from browser_control.vision.base import VisionAnalyzer, VisionResult

logger = logging.getLogger(__name__)


class GeminiVisionAnalyzer(VisionAnalyzer):
    """Vision analyzer backed by Gemini ``generateContent``.

    Args:
        api_key: Generative Language API key.
        model: Gemini model name (e.g. ``gemini-2.0-flash``).
        api_base: REST API base URL.
        timeout_sec: HTTP timeout for a single request.
    """

    name = "gemini"

    def __init__(
        self,
        api_key: str,
        model: str = "gemini-2.0-flash",
        api_base: str = "https://generativelanguage.googleapis.com/v1beta",
        timeout_sec: float = 60.0,
    ) -> None:
        if not api_key:
            raise ValueError("Gemini vision backend requires an API key")
        self.model = model
        self.api_base = api_base.rstrip("/")
        self._api_key = api_key
        self._client = httpx.Client(timeout=timeout_sec)

    def analyze(self, image_path: Path, prompt: str) -> VisionResult:
        try:
            image_bytes = Path(image_path).read_bytes()
        except OSError as e:
            raise VisionAnalysisError(f"Cannot read screenshot {image_path}: {e}") from e

        mime_type = mimetypes.guess_type(str(image_path))[0] or "image/png"
        payload = {
            "contents": [
                {
                    "role": "user",
                    "parts": [
                        {"text": prompt},
                        {
                            "inline_data": {
                                "mime_type": mime_type,
                                "data": base64.b64encode(image_bytes).decode("ascii"),
                            }
                        },
                    ],
                }
            ]
        }

        url = f"{self.api_base}/models/{self.model}:generateContent"
        start = time.monotonic()
        try:
            resp = self._client.post(url, json=payload, headers={"x-goog-api-key": self._api_key})
            resp.raise_for_status()
            body = resp.json()
        except httpx.HTTPStatusError as e:
            logger.error("Gemini HTTP error: %s %s", e.response.status_code, e.response.text[:500])
            raise
        except httpx.TransportError as e:
            logger.error("Cannot reach Gemini at %s: %s", self.api_base, e)
            raise

        latency_ms = (time.monotonic() - start) * 1000
        text = _extract_text(body)
        if not text:
            reason = (body.get("promptFeedback") or {}).get("blockReason", "empty response")
            raise VisionAnalysisError(f"Gemini returned no analysis ({reason})")

        logger.info("Gemini analysis complete: model=%s latency=%.0fms", self.model, latency_ms)
        return VisionResult(text=text.strip(), model=self.model, latency_ms=latency_ms, raw_response=body)

    def close(self) -> None:
        self._client.close()


def _extract_text(body: dict) -> str:
    """Concatenate the text parts of the first candidate."""
    candidates = body.get("candidates") or []
    if not candidates:
        return ""
    parts = (candidates[0].get("content") or {}).get("parts") or []
    return "".join(p.get("text", "") for p in parts if isinstance(p, dict))
