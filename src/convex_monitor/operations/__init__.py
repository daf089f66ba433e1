"""Request/response operations, dispatched by (resource, operation)."""

from __future__ import annotations

import logging
from enum import Enum
from typing import Iterable

from convex_monitor.client import ConvexDataClient
from convex_monitor.errors import ConvexMonitorError, UnknownOperationError
from convex_monitor.operations import frax, pool, prisma, protocol, snapshot, staking, token
from convex_monitor.operations.base import OperationSpec, Params, Record

log = logging.getLogger(__name__)


class Resource(str, Enum):
    POOL = "pool"
    TOKEN = "token"
    STAKING = "staking"
    PROTOCOL = "protocol"
    SNAPSHOT = "snapshot"
    FRAX = "frax"
    PRISMA = "prisma"


REGISTRY: dict[tuple[Resource, str], OperationSpec] = {
    (resource, name): spec
    for resource, module in (
        (Resource.POOL, pool),
        (Resource.TOKEN, token),
        (Resource.STAKING, staking),
        (Resource.PROTOCOL, protocol),
        (Resource.SNAPSHOT, snapshot),
        (Resource.FRAX, frax),
        (Resource.PRISMA, prisma),
    )
    for name, spec in module.OPERATIONS.items()
}


def resolve(resource: str, operation: str) -> OperationSpec:
    """Look up a registered operation or raise UnknownOperationError."""
    try:
        spec = REGISTRY.get((Resource(resource), operation))
    except ValueError:
        spec = None
    if spec is None:
        raise UnknownOperationError(resource, operation)
    return spec


def list_operations() -> list[tuple[str, str]]:
    return sorted((r.value, op) for r, op in REGISTRY)


async def execute(
    resource: str,
    operation: str,
    items: Iterable[Params],
    client: ConvexDataClient,
    continue_on_fail: bool = False,
) -> list[Record]:
    """Run one operation for each parameter item and concatenate the results.

    Unknown operations fail before anything runs. Each item is validated
    before its network calls. With ``continue_on_fail`` a failing item yields
    ``{"error": message}`` and the batch carries on; otherwise the first
    failure propagates.
    """
    spec = resolve(resource, operation)

    results: list[Record] = []
    for params in items:
        try:
            spec.validate(params)
            results.extend(await spec.fn(client, params))
        except ConvexMonitorError as exc:
            if not continue_on_fail:
                raise
            log.warning("%s.%s failed: %s", resource, operation, exc)
            results.append({"error": str(exc)})
    return results


__all__ = ["REGISTRY", "Resource", "execute", "list_operations", "resolve"]
