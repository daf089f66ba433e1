"""Pool operations - listings, lookups and rankings."""

from __future__ import annotations

from convex_monitor.client import ConvexDataClient
from convex_monitor.constants import CRV_REWARD_SHARE, PLATFORM_FEE
from convex_monitor.formatting import format_percentage, format_usd
from convex_monitor.models.pools import Pool
from convex_monitor.operations.base import (
    OperationSpec,
    Params,
    Record,
    bool_param,
    float_param,
    int_param,
    str_param,
)

# Candidates fetched before the caller's filters are applied
RANKING_POOL_SIZE = 100


def _not_found(pool_id: str) -> list[Record]:
    return [{"error": "Pool not found", "poolId": pool_id}]


def _apy_str(value: float | None) -> str:
    return format_percentage(value) if value else "N/A"


async def get_all_pools(client: ConvexDataClient, params: Params) -> list[Record]:
    limit = int_param(params, "limit", 50)
    include_inactive = bool_param(params, "includeInactive", False)

    pools = await client.get_pools()
    if not include_inactive:
        pools = [p for p in pools if p.tvl_usd > 0]
    return [p.to_dict() for p in pools[:limit]]


async def get_pool_by_id(client: ConvexDataClient, params: Params) -> list[Record]:
    pool_id = str_param(params, "poolId")
    pool = await client.get_pool_by_id(pool_id)
    if pool is None:
        return _not_found(pool_id)
    return [pool.to_dict()]


async def get_pool_apy(client: ConvexDataClient, params: Params) -> list[Record]:
    pool_id = str_param(params, "poolId")
    pool = await client.get_pool_by_id(pool_id)
    if pool is None:
        return _not_found(pool_id)
    return [{
        "poolId": pool.pool_id,
        "symbol": pool.symbol,
        "totalApy": pool.apy,
        "totalApyFormatted": _apy_str(pool.apy),
        "baseApy": pool.apy_base,
        "baseApyFormatted": _apy_str(pool.apy_base),
        "rewardApy": pool.apy_reward,
        "rewardApyFormatted": _apy_str(pool.apy_reward),
        "rewardTokens": list(pool.reward_tokens),
        "apyChange1d": pool.apy_pct_1d,
        "apyChange7d": pool.apy_pct_7d,
        "apyChange30d": pool.apy_pct_30d,
        "apyMean30d": pool.apy_mean_30d,
    }]


async def get_pool_tvl(client: ConvexDataClient, params: Params) -> list[Record]:
    pool_id = str_param(params, "poolId")
    pool = await client.get_pool_by_id(pool_id)
    if pool is None:
        return _not_found(pool_id)
    return [{
        "poolId": pool.pool_id,
        "symbol": pool.symbol,
        "tvlUsd": pool.tvl_usd,
        "tvlFormatted": format_usd(pool.tvl_usd),
        "chain": pool.chain,
        "exposure": pool.exposure,
        "stablecoin": pool.stablecoin,
        "underlyingTokens": list(pool.underlying_tokens),
        "volumeUsd1d": pool.volume_usd_1d,
        "volumeUsd7d": pool.volume_usd_7d,
    }]


async def get_pool_rewards(client: ConvexDataClient, params: Params) -> list[Record]:
    pool_id = str_param(params, "poolId")
    pool = await client.get_pool_by_id(pool_id)
    if pool is None:
        return _not_found(pool_id)

    reward = pool.apy_reward or 0.0
    base = pool.apy_base or 0.0
    crv = reward * CRV_REWARD_SHARE
    cvx = reward - crv
    net = pool.apy * (100 - PLATFORM_FEE) / 100 if pool.apy else 0.0

    return [{
        "poolId": pool.pool_id,
        "symbol": pool.symbol,
        "totalRewardApy": reward,
        "totalRewardApyFormatted": format_percentage(reward),
        "rewardBreakdown": {
            "crv": {"estimatedApy": crv, "formattedApy": format_percentage(crv)},
            "cvx": {"estimatedApy": cvx, "formattedApy": format_percentage(cvx)},
            "baseApy": {
                "value": base,
                "formattedApy": format_percentage(base),
                "description": "Trading fees APY",
            },
        },
        "rewardTokens": list(pool.reward_tokens) or ["CRV", "CVX"],
        # CRV and CVX are always paid; anything beyond is an extra reward
        "hasExtraRewards": len(pool.reward_tokens) > 2,
        "platformFee": f"{PLATFORM_FEE}%",
        "netApy": net,
        "netApyFormatted": _apy_str(net),
    }]


async def partner_pools(
    client: ConvexDataClient, params: Params, markers: tuple[str, ...]
) -> list[Pool]:
    """Convex pools whose symbol or metadata names a partner protocol, largest first."""
    limit = int_param(params, "limit", 20)
    min_tvl = float_param(params, "minTvl", 0)

    def matches(pool: Pool) -> bool:
        text = f"{pool.symbol} {pool.pool_meta or ''}".lower()
        return any(m in text for m in markers)

    pools = [p for p in await client.get_pools() if matches(p) and p.tvl_usd >= min_tvl]
    pools.sort(key=lambda p: p.tvl_usd, reverse=True)
    return pools[:limit]


def partner_record(pool: Pool) -> Record:
    return {
        "id": pool.pool_id,
        "symbol": pool.symbol,
        "chain": pool.chain,
        "tvlUsd": pool.tvl_usd,
        "tvlFormatted": format_usd(pool.tvl_usd),
        "apy": pool.apy,
        "apyFormatted": format_percentage(pool.apy),
        "apyBase": pool.apy_base,
        "apyReward": pool.apy_reward,
        "rewardTokens": list(pool.reward_tokens),
        "stablecoin": pool.stablecoin,
        "underlyingTokens": list(pool.underlying_tokens),
        "poolMeta": pool.pool_meta,
    }


def _ranked(pools: list[Pool], limit: int) -> list[tuple[int, Pool]]:
    return list(enumerate(pools[:limit], start=1))


async def get_top_pools_by_apy(client: ConvexDataClient, params: Params) -> list[Record]:
    limit = int_param(params, "limit", 10)
    min_tvl = float_param(params, "minTvl", 100_000)
    stablecoins_only = bool_param(params, "stablecoinsOnly", False)

    pools = await client.get_top_pools_by_apy(RANKING_POOL_SIZE)
    pools = [p for p in pools if p.tvl_usd >= min_tvl]
    if stablecoins_only:
        pools = [p for p in pools if p.stablecoin]

    return [
        {
            "rank": rank,
            "id": p.pool_id,
            "symbol": p.symbol,
            "apy": p.apy,
            "apyFormatted": _apy_str(p.apy),
            "apyBase": p.apy_base,
            "apyReward": p.apy_reward,
            "tvlUsd": p.tvl_usd,
            "tvlFormatted": format_usd(p.tvl_usd),
            "chain": p.chain,
            "stablecoin": p.stablecoin,
            "ilRisk": p.il_risk,
            "rewardTokens": list(p.reward_tokens),
            "apyChange7d": p.apy_pct_7d,
            "apyChange30d": p.apy_pct_30d,
        }
        for rank, p in _ranked(pools, limit)
    ]


async def get_top_pools_by_tvl(client: ConvexDataClient, params: Params) -> list[Record]:
    limit = int_param(params, "limit", 10)
    stablecoins_only = bool_param(params, "stablecoinsOnly", False)

    pools = await client.get_top_pools_by_tvl(RANKING_POOL_SIZE)
    if stablecoins_only:
        pools = [p for p in pools if p.stablecoin]

    return [
        {
            "rank": rank,
            "id": p.pool_id,
            "symbol": p.symbol,
            "tvlUsd": p.tvl_usd,
            "tvlFormatted": format_usd(p.tvl_usd),
            "apy": p.apy,
            "apyFormatted": _apy_str(p.apy),
            "apyBase": p.apy_base,
            "apyReward": p.apy_reward,
            "chain": p.chain,
            "stablecoin": p.stablecoin,
            "ilRisk": p.il_risk,
            "volumeUsd1d": p.volume_usd_1d,
            "volumeUsd7d": p.volume_usd_7d,
            "rewardTokens": list(p.reward_tokens),
        }
        for rank, p in _ranked(pools, limit)
    ]


OPERATIONS = {
    "getAllPools": OperationSpec(get_all_pools),
    "getPoolById": OperationSpec(get_pool_by_id, required=("poolId",)),
    "getPoolApy": OperationSpec(get_pool_apy, required=("poolId",)),
    "getPoolTvl": OperationSpec(get_pool_tvl, required=("poolId",)),
    "getPoolRewards": OperationSpec(get_pool_rewards, required=("poolId",)),
    "getTopPoolsByApy": OperationSpec(get_top_pools_by_apy),
    "getTopPoolsByTvl": OperationSpec(get_top_pools_by_tvl),
}
