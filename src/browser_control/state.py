"""On-disk record of the last-known session configuration.

Each CLI invocation is a fresh process, so a ``running`` status in this file
never means the current process holds a live browser. The record only tells
a later invocation which executable and profile directory were last used.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, ValidationError

logger = logging.getLogger(__name__)


class SessionStatus(str, Enum):
    """Lifecycle status recorded on disk."""

    IDLE = "idle"
    RUNNING = "running"
    STOPPED = "stopped"


def _utcnow_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class PersistedState(BaseModel):
    """Last-known configuration and status, serialised with camelCase keys."""

    model_config = ConfigDict(populate_by_name=True)

    browser_executable_path: str = Field(alias="browserExecutablePath")
    data_directory: str = Field(alias="dataDirectory")
    status: SessionStatus = SessionStatus.IDLE
    last_active_timestamp: str = Field(default_factory=_utcnow_iso, alias="lastActiveTimestamp")

    def to_dict(self) -> dict[str, str]:
        """Serialize to the on-disk JSON shape."""
        return self.model_dump(mode="json", by_alias=True)


def load_state(path: Path) -> PersistedState | None:
    """Read the state file at *path*.

    A missing, unreadable or malformed file yields ``None`` so callers fall
    back to the configured defaults.
    """
    if not path.is_file():
        return None
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
        return PersistedState.model_validate(raw)
    except (OSError, ValueError, ValidationError) as e:
        logger.debug("Ignoring unreadable state file %s: %s", path, e)
        return None


def save_state(path: Path, state: PersistedState) -> bool:
    """Atomically write *state* to *path*.

    Returns ``False`` (after logging) when the write fails; persisting state
    is never fatal to the action that triggered it.
    """
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(prefix=".state-", suffix=".json", dir=path.parent)
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(state.to_dict(), f, indent=2)
        os.replace(tmp_name, path)
    except OSError as e:
        logger.error("Failed to save state to %s: %s", path, e)
        return False
    logger.debug("State saved: %s -> %s", state.status.value, path)
    return True
