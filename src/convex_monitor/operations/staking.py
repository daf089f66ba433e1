"""Staking operations - cvxCRV peg and staking TVL."""

from __future__ import annotations

from convex_monitor.client import ConvexDataClient
from convex_monitor.formatting import format_percentage, format_usd
from convex_monitor.operations.base import OperationSpec, Params, Record
from convex_monitor.operations.token import CRV, CVXCRV

PEGGED_WITHIN = 3.0  # percent
ARBITRAGE_ABOVE = 5.0  # percent


async def get_cvxcrv_ratio(client: ConvexDataClient, params: Params) -> list[Record]:
    prices = await client.get_prices([CRV, CVXCRV])
    crv = prices.get(CRV) or 0.0
    cvxcrv = prices.get(CVXCRV) or crv

    ratio = cvxcrv / crv if crv > 0 else 1.0
    deviation = (1 - ratio) * 100
    pegged = abs(deviation) < PEGGED_WITHIN

    if pegged:
        status = "pegged"
        recommendation = "No significant arbitrage opportunity"
    elif deviation > 0:
        status = "discount"
        recommendation = "Consider converting CRV to cvxCRV for arbitrage"
    else:
        status = "premium"
        recommendation = "cvxCRV premium detected, hold or sell"

    if ratio < 1:
        description = "cvxCRV is trading at a discount to CRV"
    elif ratio > 1:
        description = "cvxCRV is trading at a premium to CRV"
    else:
        description = "cvxCRV is at parity with CRV"

    return [{
        "crvPrice": crv,
        "cvxCrvPrice": cvxcrv,
        "ratio": ratio,
        "ratioFormatted": f"{ratio:.4f}",
        "pegStatus": status,
        "pegDeviation": deviation,
        "pegDeviationFormatted": format_percentage(abs(deviation)),
        "isPegged": pegged,
        "arbitrageOpportunity": abs(deviation) > ARBITRAGE_ABOVE,
        "description": description,
        "recommendation": recommendation,
    }]


async def get_staking_tvl(client: ConvexDataClient, params: Params) -> list[Record]:
    total = await client.get_tvl()
    snapshot = await client.get_protocol_snapshot()
    staking_pools = [
        p for p in await client.get_pools()
        if "cvxcrv" in p.symbol.lower() or "cvxcrv" in p.pool_id.lower()
    ]

    staked = sum(p.tvl_usd for p in staking_pools)
    share = staked / total * 100 if total > 0 else 0.0

    return [{
        "cvxCrvStakingTvl": staked,
        "cvxCrvStakingTvlFormatted": format_usd(staked),
        "protocolTotalTvl": total,
        "protocolTotalTvlFormatted": format_usd(total),
        "tvlPercentage": share,
        "tvlPercentageFormatted": format_percentage(share),
        "chainBreakdown": dict(snapshot.chain_breakdown),
        "cvxCrvPools": len(staking_pools),
        "tvlChange1d": snapshot.change_1d,
        "tvlChange7d": snapshot.change_7d,
    }]


OPERATIONS = {
    "getCvxCrvRatio": OperationSpec(get_cvxcrv_ratio),
    "getStakingTvl": OperationSpec(get_staking_tvl),
}
