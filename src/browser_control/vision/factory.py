"""Factory for creating the configured vision analyzer.

Backend selection (``vision.backend``):

    auto     — gemini when an API key is set, else command when one is
               configured, else no analyzer
    gemini   — direct Gemini REST call
    command  — external analysis tool
    none     — no analyzer

Returns ``None`` when nothing is configured so ``analyze`` can degrade to
a screenshot-only answer.
"""

from __future__ import annotations

import logging

from browser_control.settings.config import Settings, VisionSettings
from browser_control.vision.base import VisionAnalyzer

logger = logging.getLogger(__name__)


def create_vision_analyzer(settings: Settings) -> VisionAnalyzer | None:
    """Create the vision analyzer selected by *settings*.

    Args:
        settings: Process settings.

    Returns:
        A ``VisionAnalyzer`` (with retry wrapper), or ``None`` if no backend
        is configured or the selected one lacks its credential.

    Raises:
        ValueError: If the configured command cannot be parsed.
    """
    vision = settings.vision
    backend = _resolve_backend(vision)

    base: VisionAnalyzer
    if backend == "gemini":
        from browser_control.vision.gemini import GeminiVisionAnalyzer

        base = GeminiVisionAnalyzer(
            api_key=vision.api_key,
            model=vision.model,
            api_base=vision.api_base,
            timeout_sec=vision.timeout_sec,
        )
    elif backend == "command":
        from browser_control.vision.command import CommandVisionAnalyzer

        base = CommandVisionAnalyzer(vision.command, timeout_sec=vision.timeout_sec)
    else:
        logger.debug("No vision backend configured")
        return None

    logger.debug("Created vision analyzer: backend=%s", backend)

    from browser_control.vision.retry import RetryingVisionAnalyzer

    return RetryingVisionAnalyzer(base, max_retries=vision.max_retries)


def _resolve_backend(vision: VisionSettings) -> str:
    """Resolve ``auto`` to a concrete backend name (or ``none``).

    An explicitly selected backend without its API key or command also
    resolves to ``none`` so ``analyze`` degrades instead of failing.
    """
    if vision.backend == "gemini" and not vision.api_key:
        logger.warning("Vision backend 'gemini' selected but no API key is set (GEMINI_API_KEY); skipping analysis")
        return "none"
    if vision.backend == "command" and not vision.command.strip():
        logger.warning("Vision backend 'command' selected but BRCTL_VISION__COMMAND is empty; skipping analysis")
        return "none"
    if vision.backend != "auto":
        return vision.backend
    if vision.api_key:
        return "gemini"
    if vision.command.strip():
        return "command"
    return "none"
