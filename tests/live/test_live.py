"""Smoke tests against the public upstreams."""

from __future__ import annotations

import pytest

from convex_monitor.models.config import EventKind, TriggerConfig
from convex_monitor.models.state import PollingState
from convex_monitor.operations import execute
from convex_monitor.trigger import poll


@pytest.mark.live
async def test_convex_pools_and_tvl(live_client):
    pools = await live_client.get_pools()
    snapshot = await live_client.get_protocol_snapshot()

    assert pools
    assert all(p.project == "convex-finance" for p in pools)
    assert snapshot.tvl > 0
    assert "Ethereum" in snapshot.chain_breakdown


@pytest.mark.live
async def test_prices_operation(live_client):
    [record] = await execute("token", "getCvxPrice", [{}], live_client)

    assert record["cvx"]["price"] > 0
    assert record["crv"]["price"] > 0


@pytest.mark.live
async def test_recent_proposals(live_client):
    proposals = await live_client.get_all_proposals(5)

    assert proposals
    assert all(p.url.startswith("https://snapshot.org/#/cvx.eth/proposal/") for p in proposals)


@pytest.mark.live
@pytest.mark.parametrize("kind", list(EventKind))
async def test_first_poll_seeds_without_events(live_client, kind):
    result = await poll(kind, TriggerConfig(event=kind), PollingState(), live_client)

    assert result.events == []
