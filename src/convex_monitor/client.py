"""Unified data client - one method surface over the aggregator and governance sources."""

from __future__ import annotations

import logging

from convex_monitor.constants import GAUGE_VOTE_TITLE_WORDS
from convex_monitor.interfaces.aggregator import AggregatorSource
from convex_monitor.interfaces.governance import GovernanceSource
from convex_monitor.models.config import ClientConfig, DataSource
from convex_monitor.models.governance import Proposal, Vote
from convex_monitor.models.pools import Pool, ProtocolSnapshot, TokenRef
from convex_monitor.sources.defillama import DefiLlamaSource
from convex_monitor.sources.snapshot import SnapshotSource

log = logging.getLogger(__name__)


class ConvexDataClient:
    """Stateless façade over the two read-only data sources.

    Aggregator calls raise TransportError on failure; governance calls never
    raise and return empty results instead. The client holds no mutable
    state and can be shared across trigger instances.
    """

    def __init__(
        self,
        config: ClientConfig | None = None,
        aggregator: AggregatorSource | None = None,
        governance: GovernanceSource | None = None,
    ) -> None:
        self._config = config or ClientConfig()
        self._aggregator = aggregator or DefiLlamaSource(timeout=self._config.timeout)
        if governance is None:
            kwargs = {"api_key": self._config.api_key, "timeout": self._config.timeout}
            if self._config.governance_url:
                kwargs["url"] = self._config.governance_url
            governance = SnapshotSource(**kwargs)
        self._governance = governance

    async def __aenter__(self) -> ConvexDataClient:
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._aggregator.aclose()
        await self._governance.aclose()

    @property
    def preferred_data_source(self) -> DataSource:
        if self._config.data_source == DataSource.THEGRAPH:
            return DataSource.THEGRAPH
        return DataSource.DEFILLAMA

    @property
    def network(self) -> str:
        return self._config.network or "Ethereum"

    @property
    def aggregator(self) -> AggregatorSource:
        return self._aggregator

    @property
    def governance(self) -> GovernanceSource:
        return self._governance

    # ── Pools ──────────────────────────────────────────────

    async def get_pools(self) -> list[Pool]:
        """All Convex pools on the configured chain, in upstream order."""
        return await self._aggregator.get_convex_pools(self.network)

    async def get_top_pools_by_apy(self, limit: int = 10) -> list[Pool]:
        pools = [p for p in await self.get_pools() if p.apy is not None and p.apy > 0]
        pools.sort(key=lambda p: p.apy or 0.0, reverse=True)
        return pools[:limit]

    async def get_top_pools_by_tvl(self, limit: int = 10) -> list[Pool]:
        pools = [p for p in await self.get_pools() if p.tvl_usd > 0]
        pools.sort(key=lambda p: p.tvl_usd, reverse=True)
        return pools[:limit]

    async def get_pool_by_id(self, pool_id: str) -> Pool | None:
        wanted = pool_id.lower()
        for pool in await self.get_pools():
            if pool.pool_id.lower() == wanted:
                return pool
        return None

    # ── Protocol ───────────────────────────────────────────

    async def get_protocol_snapshot(self) -> ProtocolSnapshot:
        return ProtocolSnapshot.from_api(await self._aggregator.get_protocol())

    async def get_tvl(self) -> float:
        return await self._aggregator.get_tvl()

    # ── Prices ─────────────────────────────────────────────

    async def get_price(self, ref: TokenRef) -> float:
        prices = await self.get_prices([ref])
        return prices.get(ref, 0.0)

    async def get_prices(self, refs: list[TokenRef]) -> dict[TokenRef, float]:
        """Prices keyed by the requested refs. Unknown feeds resolve to 0.0."""
        unique = list(dict.fromkeys(refs))
        raw = await self._aggregator.get_prices([r.key for r in unique])
        return {r: float(raw.get(r.key) or 0.0) for r in unique}

    # ── Governance (best effort) ───────────────────────────

    async def get_active_proposals(self) -> list[Proposal]:
        try:
            return await self._governance.get_active_proposals()
        except Exception as exc:
            log.warning("Governance get_active_proposals failed: %s", exc)
            return []

    async def get_all_proposals(self, limit: int = 20) -> list[Proposal]:
        try:
            return await self._governance.get_all_proposals(limit)
        except Exception as exc:
            log.warning("Governance get_all_proposals failed: %s", exc)
            return []

    async def get_proposal_by_id(self, proposal_id: str) -> Proposal | None:
        try:
            return await self._governance.get_proposal(proposal_id)
        except Exception as exc:
            log.warning("Governance get_proposal(%s) failed: %s", proposal_id, exc)
            return None

    async def get_proposal_votes(self, proposal_id: str, limit: int = 100) -> list[Vote]:
        try:
            return await self._governance.get_votes(proposal_id, limit)
        except Exception as exc:
            log.warning("Governance get_votes(%s) failed: %s", proposal_id, exc)
            return []

    async def get_gauge_weight_votes(self, limit: int = 10, scan: int = 50) -> list[Proposal]:
        """Recent proposals whose title marks them as gauge weight votes."""
        proposals = await self.get_all_proposals(scan)
        matches = [
            p for p in proposals
            if any(word in p.title.lower() for word in GAUGE_VOTE_TITLE_WORDS)
        ]
        return matches[:limit]
