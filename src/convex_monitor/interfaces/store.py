"""StateStore protocol - persists polling state between trigger invocations."""

from __future__ import annotations

from typing import Protocol

from convex_monitor.models.records import PollRecord
from convex_monitor.models.state import PollingState


class StateStore(Protocol):
    """Durable, per-instance storage for PollingState and the poll log."""

    # ── Lifecycle ──────────────────────────────────────────

    async def initialize(self) -> None:
        """Create tables if they don't exist."""
        ...

    async def close(self) -> None:
        ...

    # ── Polling state ──────────────────────────────────────

    async def load_state(self, instance_id: str) -> PollingState:
        """Stored state, or an empty PollingState for a new instance."""
        ...

    async def save_state(self, instance_id: str, state: PollingState) -> None:
        ...

    async def delete_state(self, instance_id: str) -> bool:
        ...

    async def list_instances(self) -> list[str]:
        ...

    # ── Poll log ───────────────────────────────────────────

    async def log_poll(
        self,
        instance_id: str,
        event_kind: str,
        events_emitted: int,
        error: str | None = None,
        duration_ms: int = 0,
    ) -> None:
        ...

    async def get_recent_polls(
        self, instance_id: str | None = None, limit: int = 20
    ) -> list[PollRecord]:
        ...
