"""Data models shared across the session, dispatcher and CLI layers."""

from browser_control.models.results import ActionResult

__all__ = ["ActionResult"]
