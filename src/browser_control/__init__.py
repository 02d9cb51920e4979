"""Browser Control — drive a single stealth-patched browser session from the command line."""

from __future__ import annotations

try:
    from importlib.metadata import version

    __version__ = version("browser-control")
except Exception:
    __version__ = "0.0.0"
