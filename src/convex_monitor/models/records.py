"""Internal record types for state persistence and poll results."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class PollRecord:
    """One trigger invocation as recorded in the poll log."""

    id: int
    instance_id: str
    event_kind: str
    events_emitted: int
    success: bool
    error: str | None
    duration_ms: int
    created_at: str
