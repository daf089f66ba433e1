"""Pool, protocol and price models read from the aggregator."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


def _opt_float(value: Any) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


@dataclass(frozen=True)
class Pool:
    """A yield pool tagged to the Convex project on the aggregator."""

    pool_id: str
    symbol: str
    chain: str
    project: str = ""
    tvl_usd: float = 0.0
    apy: float | None = None
    apy_base: float | None = None
    apy_reward: float | None = None
    reward_tokens: list[str] = field(default_factory=list)
    stablecoin: bool = False
    il_risk: str = ""
    exposure: str = ""
    pool_meta: str | None = None
    underlying_tokens: list[str] = field(default_factory=list)
    volume_usd_1d: float | None = None
    volume_usd_7d: float | None = None
    apy_pct_1d: float | None = None
    apy_pct_7d: float | None = None
    apy_pct_30d: float | None = None
    apy_mean_30d: float | None = None

    @classmethod
    def from_api(cls, raw: dict[str, Any]) -> Pool:
        """Parse one entry of the yields ``/pools`` listing. Nulls are tolerated."""
        return cls(
            pool_id=str(raw.get("pool") or ""),
            symbol=str(raw.get("symbol") or ""),
            chain=str(raw.get("chain") or ""),
            project=str(raw.get("project") or ""),
            tvl_usd=_opt_float(raw.get("tvlUsd")) or 0.0,
            apy=_opt_float(raw.get("apy")),
            apy_base=_opt_float(raw.get("apyBase")),
            apy_reward=_opt_float(raw.get("apyReward")),
            reward_tokens=list(raw.get("rewardTokens") or []),
            stablecoin=bool(raw.get("stablecoin", False)),
            il_risk=str(raw.get("ilRisk") or ""),
            exposure=str(raw.get("exposure") or ""),
            pool_meta=raw.get("poolMeta"),
            underlying_tokens=list(raw.get("underlyingTokens") or []),
            volume_usd_1d=_opt_float(raw.get("volumeUsd1d")),
            volume_usd_7d=_opt_float(raw.get("volumeUsd7d")),
            apy_pct_1d=_opt_float(raw.get("apyPct1D")),
            apy_pct_7d=_opt_float(raw.get("apyPct7D")),
            apy_pct_30d=_opt_float(raw.get("apyPct30D")),
            apy_mean_30d=_opt_float(raw.get("apyMean30d")),
        )

    def to_dict(self) -> dict[str, Any]:
        """Output record shared by the pool listing operations."""
        return {
            "id": self.pool_id,
            "symbol": self.symbol,
            "chain": self.chain,
            "project": self.project,
            "tvlUsd": self.tvl_usd,
            "apy": self.apy,
            "apyBase": self.apy_base,
            "apyReward": self.apy_reward,
            "rewardTokens": list(self.reward_tokens),
            "stablecoin": self.stablecoin,
            "ilRisk": self.il_risk,
            "exposure": self.exposure,
            "poolMeta": self.pool_meta,
            "underlyingTokens": list(self.underlying_tokens),
            "volumeUsd1d": self.volume_usd_1d,
            "volumeUsd7d": self.volume_usd_7d,
            "apyPct1D": self.apy_pct_1d,
            "apyPct7D": self.apy_pct_7d,
            "apyPct30D": self.apy_pct_30d,
            "apyMean30d": self.apy_mean_30d,
        }


@dataclass
class ProtocolSnapshot:
    """Protocol-wide TVL and its recent movement."""

    tvl: float = 0.0
    chain_breakdown: dict[str, float] = field(default_factory=dict)
    change_1h: float | None = None
    change_1d: float | None = None
    change_7d: float | None = None
    slug: str = ""

    @classmethod
    def from_api(cls, raw: dict[str, Any] | None) -> ProtocolSnapshot:
        if not isinstance(raw, dict) or not raw:
            return cls()

        breakdown: dict[str, float] = {}
        chains = raw.get("currentChainTvls")
        if isinstance(chains, dict):
            for chain, value in chains.items():
                tvl = _opt_float(value)
                if tvl is not None:
                    breakdown[str(chain)] = tvl

        # /protocol returns tvl either as a number or as a history list
        tvl = raw.get("tvl")
        if isinstance(tvl, list):
            last = tvl[-1] if tvl else {}
            tvl = last.get("totalLiquidityUSD") if isinstance(last, dict) else None
        current = _opt_float(tvl)
        if current is None:
            current = sum(breakdown.values())

        return cls(
            tvl=current,
            chain_breakdown=breakdown,
            change_1h=_opt_float(raw.get("change_1h")),
            change_1d=_opt_float(raw.get("change_1d")),
            change_7d=_opt_float(raw.get("change_7d")),
            slug=str(raw.get("slug") or ""),
        )

    @property
    def changes(self) -> dict[str, float | None]:
        return {"1h": self.change_1h, "1d": self.change_1d, "7d": self.change_7d}


@dataclass(frozen=True)
class TokenRef:
    """A price-feed reference: either (chain, address) or a coingecko id."""

    key: str  # "ethereum:0x..." or "coingecko:convex-finance"

    @classmethod
    def address(cls, chain: str, address: str) -> TokenRef:
        return cls(f"{chain.lower()}:{address}")

    @classmethod
    def coingecko(cls, gecko_id: str) -> TokenRef:
        return cls(f"coingecko:{gecko_id}")

    def __str__(self) -> str:
        return self.key
