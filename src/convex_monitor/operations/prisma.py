"""Prisma operations - Convex pools built on Prisma assets."""

from __future__ import annotations

from convex_monitor.client import ConvexDataClient
from convex_monitor.operations.base import OperationSpec, Params, Record
from convex_monitor.operations.pool import partner_pools, partner_record

PRISMA_MARKERS = ("prisma", "mkusd")


async def get_prisma_pools(client: ConvexDataClient, params: Params) -> list[Record]:
    pools = await partner_pools(client, params, PRISMA_MARKERS)
    if not pools:
        return [{
            "message": "No Prisma pools found on Convex",
            "note": "Prisma integration may have limited pool availability",
            "suggestion": "Check Convex website for current Prisma pool offerings",
        }]
    return [{**partner_record(p), "isPrismaPool": True} for p in pools]


OPERATIONS = {
    "getPrismaPools": OperationSpec(get_prisma_pools),
}
