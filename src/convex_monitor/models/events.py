"""Trigger event emitted by the change-detection engine."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from convex_monitor.models.config import EventKind


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass(frozen=True)
class TriggerEvent:
    """One detected change. Never persisted; handed to the host as a flat record."""

    kind: EventKind
    data: dict[str, Any] = field(default_factory=dict)
    timestamp: str = field(default_factory=utc_now_iso)

    def to_dict(self) -> dict[str, Any]:
        return {"event": self.kind.value, **self.data, "timestamp": self.timestamp}
