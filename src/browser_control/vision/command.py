"""Vision backend that shells out to an external analysis tool.

The tool is invoked as ``<command...> <image_path> <prompt>`` and its
standard output is taken as the analysis text.
"""

from __future__ import annotations

import logging
import shlex
import subprocess
import time
from pathlib import Path

from browser_control.exceptions import VisionAnalysisError
from browser_control.vision.base import VisionAnalyzer, VisionResult

logger = logging.getLogger(__name__)


class CommandVisionAnalyzer(VisionAnalyzer):
    """Run an external program to analyze a screenshot.

    Args:
        command: Command line (shell-split, not run through a shell).
        timeout_sec: Wall-clock limit for the tool.
    """

    name = "command"

    def __init__(self, command: str, timeout_sec: float = 60.0) -> None:
        self.argv = shlex.split(command)
        if not self.argv:
            raise ValueError("command vision backend requires a command")
        self.timeout_sec = timeout_sec

    def analyze(self, image_path: Path, prompt: str) -> VisionResult:
        argv = [*self.argv, str(image_path), prompt]
        logger.debug("Running vision command: %s", self.argv[0])
        start = time.monotonic()
        try:
            proc = subprocess.run(argv, capture_output=True, text=True, timeout=self.timeout_sec, check=False)
        except subprocess.TimeoutExpired as e:
            raise VisionAnalysisError(f"Vision command timed out after {self.timeout_sec:.0f}s") from e
        except OSError as e:
            raise VisionAnalysisError(f"Vision command could not run: {e}") from e

        if proc.returncode != 0:
            detail = (proc.stderr or proc.stdout or "").strip()[-500:]
            raise VisionAnalysisError(f"Vision command exited with {proc.returncode}: {detail}")

        latency_ms = (time.monotonic() - start) * 1000
        return VisionResult(text=proc.stdout.strip(), model=Path(self.argv[0]).name, latency_ms=latency_ms)
