"""AI screenshot analysis backends.

``create_vision_analyzer()`` returns ``None`` when no backend is
configured; callers treat that as "analysis skipped", not as an error.
"""

from browser_control.vision.base import VisionAnalyzer, VisionResult
from browser_control.vision.factory import create_vision_analyzer

__all__ = ["VisionAnalyzer", "VisionResult", "create_vision_analyzer"]
