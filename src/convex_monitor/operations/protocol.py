"""Protocol-wide operations."""

from __future__ import annotations

import asyncio

from convex_monitor.client import ConvexDataClient
from convex_monitor.constants import CONVEX_DEFILLAMA_SLUG
from convex_monitor.formatting import format_usd
from convex_monitor.operations.base import OperationSpec, Params, Record, bool_param, utc_now


async def get_protocol_tvl(client: ConvexDataClient, params: Params) -> list[Record]:
    include_breakdown = bool_param(params, "includeBreakdown", True)

    snapshot, total = await asyncio.gather(client.get_protocol_snapshot(), client.get_tvl())

    result: Record = {
        "protocol": "Convex Finance",
        "totalTvl": total,
        "totalTvlFormatted": format_usd(total),
        "changes": snapshot.changes,
        "timestamp": utc_now(),
    }
    if include_breakdown:
        result["chainBreakdown"] = [
            {"chain": chain, "tvl": tvl, "tvlFormatted": format_usd(tvl)}
            for chain, tvl in snapshot.chain_breakdown.items()
        ]
    result["metadata"] = {
        "source": "DefiLlama",
        "slug": snapshot.slug or CONVEX_DEFILLAMA_SLUG,
        "category": "Yield",
        "updatedAt": utc_now(),
    }
    return [result]


OPERATIONS = {
    "getProtocolTvl": OperationSpec(get_protocol_tvl),
}
