"""Append-only JSONL audit trail for authentication events."""

from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

DEFAULT_EVENT_LOG = ".stackit/auth-events.jsonl"

_event_log_path: Path | None = None


def configure(path: str | Path | None) -> None:
    """Set the event log destination. ``None`` disables event logging."""
    global _event_log_path
    _event_log_path = Path(path) if path else None


def event_log_path() -> Path | None:
    return _event_log_path


def log_event(event_type: str, **details: Any) -> None:
    file_path = _event_log_path
    if file_path is None:
        return
    try:
        file_path.parent.mkdir(parents=True, exist_ok=True)
        event = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "event_type": event_type,
            **details,
        }
        with file_path.open("a", encoding="utf-8") as f:
            f.write(json.dumps(event, ensure_ascii=True, default=str) + "\n")
    except OSError:
        pass
