"""DataClient protocol - the surface the change-detection engine consumes."""

from __future__ import annotations

from typing import Protocol

from convex_monitor.models.governance import Proposal
from convex_monitor.models.pools import Pool, ProtocolSnapshot, TokenRef


class DataClient(Protocol):
    """Subset of ConvexDataClient needed to evaluate trigger rules."""

    async def get_pools(self) -> list[Pool]:
        ...

    async def get_protocol_snapshot(self) -> ProtocolSnapshot:
        ...

    async def get_prices(self, refs: list[TokenRef]) -> dict[TokenRef, float]:
        ...

    async def get_active_proposals(self) -> list[Proposal]:
        ...
