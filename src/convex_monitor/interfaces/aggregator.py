"""AggregatorSource protocol - required pool, TVL and price data."""

from __future__ import annotations

from typing import Any, Protocol

from convex_monitor.models.pools import Pool


class AggregatorSource(Protocol):
    """Read-only access to the public TVL/yield aggregator.

    Every method raises TransportError when the upstream call fails.
    """

    async def get_protocol(self) -> dict[str, Any]:
        """Protocol metadata: TVL, per-chain TVL, 1h/1d/7d change."""
        ...

    async def get_tvl(self) -> float:
        """Current protocol TVL in USD."""
        ...

    async def get_convex_pools(self, chain: str = "Ethereum") -> list[Pool]:
        """Convex pools on one chain, in upstream order."""
        ...

    async def get_prices(self, keys: list[str]) -> dict[str, float]:
        """Current prices keyed by feed key. Missing feeds map to 0.0."""
        ...

    async def aclose(self) -> None:
        ...
