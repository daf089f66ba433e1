"""Frax operations - Convex pools built on Frax assets."""

from __future__ import annotations

from convex_monitor.client import ConvexDataClient
from convex_monitor.operations.base import OperationSpec, Params, Record
from convex_monitor.operations.pool import partner_pools, partner_record

FRAX_MARKERS = ("frax", "fxs")


async def get_frax_pools(client: ConvexDataClient, params: Params) -> list[Record]:
    pools = await partner_pools(client, params, FRAX_MARKERS)
    return [{**partner_record(p), "isFraxPool": True} for p in pools]


OPERATIONS = {
    "getFraxPools": OperationSpec(get_frax_pools),
}
