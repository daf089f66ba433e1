"""Change-detection engine - one poll of one event kind against stored state."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable

from convex_monitor.interfaces.client import DataClient
from convex_monitor.models.config import EventKind, TriggerConfig
from convex_monitor.models.events import TriggerEvent
from convex_monitor.models.state import PollingState
from convex_monitor.trigger import handlers

log = logging.getLogger(__name__)

Handler = Callable[[TriggerConfig, PollingState, DataClient], Awaitable[list[TriggerEvent]]]

HANDLERS: dict[EventKind, Handler] = {
    EventKind.POOL_APY_CHANGED: handlers.pool_apy_changed,
    EventKind.NEW_POOL_ADDED: handlers.new_pool_added,
    EventKind.POOL_TVL_CHANGED: handlers.pool_tvl_changed,
    EventKind.CVXCRV_APR_CHANGED: handlers.cvxcrv_apr_changed,
    EventKind.CVXCRV_PEG_ALERT: handlers.cvxcrv_peg_alert,
    EventKind.NEW_PROPOSAL: handlers.new_proposal,
    EventKind.CVX_PRICE_ALERT: handlers.cvx_price_alert,
    EventKind.PROTOCOL_TVL_CHANGED: handlers.protocol_tvl_changed,
}

_missing = set(EventKind) - set(HANDLERS)
if _missing:
    raise RuntimeError(f"No handler for event kinds: {sorted(k.value for k in _missing)}")


@dataclass
class PollResult:
    """Outcome of one poll: the events to emit and the state to persist."""

    events: list[TriggerEvent] = field(default_factory=list)
    state: PollingState = field(default_factory=PollingState)


class ChangeDetectionEngine:
    """Evaluates one event kind per invocation.

    The engine never mutates the caller's PollingState. It works on a copy
    and hands the updated copy back in the PollResult. Upstream failures
    (TransportError from the aggregator) propagate unchanged, in which case
    there is no result and the stored state stays the last good one.
    """

    def __init__(self, client: DataClient) -> None:
        self._client = client

    async def poll(
        self,
        kind: EventKind,
        config: TriggerConfig,
        state: PollingState,
    ) -> PollResult:
        handler = HANDLERS[kind]
        working = state.copy()
        events = await handler(config, working, self._client)
        if events:
            log.info("%s: %d event(s) detected", kind.value, len(events))
        else:
            log.debug("%s: no change", kind.value)
        return PollResult(events=events, state=working)


async def poll(
    kind: EventKind,
    config: TriggerConfig,
    state: PollingState,
    client: DataClient,
) -> PollResult:
    """Convenience wrapper around ChangeDetectionEngine.poll."""
    return await ChangeDetectionEngine(client).poll(kind, config, state)
