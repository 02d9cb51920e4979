"""Abstract vision analyzer interface."""

from __future__ import annotations

import abc
from dataclasses import dataclass, field
from pathlib import Path


@dataclass
class VisionResult:
    """Unified result from any vision backend."""

    text: str = ""
    model: str = ""
    latency_ms: float = 0.0
    raw_response: dict = field(default_factory=dict)


class VisionAnalyzer(abc.ABC):
    """Turns a screenshot plus a text prompt into analysis text."""

    name: str = "vision"

    @abc.abstractmethod
    def analyze(self, image_path: Path, prompt: str) -> VisionResult:
        """Analyze the image at *image_path* according to *prompt*.

        Raises:
            VisionAnalysisError: If the backend cannot produce an answer.
        """

    def close(self) -> None:
        """Clean up resources. Override if needed."""
