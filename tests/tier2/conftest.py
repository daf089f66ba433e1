"""Tier 2 fixtures: local aiohttp servers standing in for DefiLlama and Snapshot."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

import pytest
from aiohttp import web

from convex_monitor.sources.defillama import DefiLlamaSource
from convex_monitor.sources.snapshot import SnapshotSource

LLAMA_PORT = 9301
SNAPSHOT_PORT = 9302


@dataclass
class LlamaUpstream:
    """What the fake DefiLlama serves. Tests mutate it between calls."""

    protocol: dict[str, Any] = field(default_factory=dict)
    tvl: Any = 0.0
    pools: list[dict[str, Any]] = field(default_factory=list)
    coins: dict[str, dict[str, Any]] = field(default_factory=dict)
    failing: dict[str, int] = field(default_factory=dict)  # route -> status
    raw_body: dict[str, str] = field(default_factory=dict)  # route -> non-JSON body
    requests: list[str] = field(default_factory=list)


@dataclass
class SnapshotUpstream:
    """What the fake Snapshot hub serves."""

    proposals: list[dict[str, Any]] = field(default_factory=list)
    votes: dict[str, list[dict[str, Any]]] = field(default_factory=dict)
    errors: list[dict[str, Any]] = field(default_factory=list)
    status: int = 200
    requests: list[dict[str, Any]] = field(default_factory=list)
    headers: list[dict[str, str]] = field(default_factory=list)


async def _serve(app: web.Application, port: int):
    runner = web.AppRunner(app)
    await runner.setup()
    site = web.TCPSite(runner, "127.0.0.1", port)
    await site.start()
    return runner


@pytest.fixture
async def llama_server():
    """Local DefiLlama. Returns (base_url, upstream)."""
    upstream = LlamaUpstream()

    def respond(route: str, payload: Any) -> web.Response:
        upstream.requests.append(route)
        if route in upstream.failing:
            return web.Response(status=upstream.failing[route], text=f"{route} unavailable")
        if route in upstream.raw_body:
            return web.Response(text=upstream.raw_body[route], content_type="text/html")
        return web.json_response(payload)

    async def handle_protocol(request):
        return respond("protocol", {**upstream.protocol, "slug": request.match_info["slug"]})

    async def handle_tvl(request):
        return respond("tvl", upstream.tvl)

    async def handle_pools(request):
        return respond("pools", {"status": "success", "data": upstream.pools})

    async def handle_prices(request):
        wanted = request.match_info["coins"].split(",")
        served = {k: v for k, v in upstream.coins.items() if k.lower() in {w.lower() for w in wanted}}
        return respond("prices", {"coins": served})

    app = web.Application()
    app.router.add_get("/protocol/{slug}", handle_protocol)
    app.router.add_get("/tvl/{slug}", handle_tvl)
    app.router.add_get("/pools", handle_pools)
    app.router.add_get("/prices/current/{coins}", handle_prices)

    runner = await _serve(app, LLAMA_PORT)
    yield f"http://127.0.0.1:{LLAMA_PORT}", upstream
    await runner.cleanup()


@pytest.fixture
async def snapshot_server():
    """Local Snapshot GraphQL hub. Returns (graphql_url, upstream)."""
    upstream = SnapshotUpstream()

    async def handle_graphql(request):
        body = await request.json()
        upstream.requests.append(body)
        upstream.headers.append(dict(request.headers))
        if upstream.status != 200:
            return web.Response(status=upstream.status, text="hub error")
        if upstream.errors:
            return web.json_response({"errors": upstream.errors})

        query = body["query"]
        variables = body.get("variables", {})
        if "votes(" in query:
            votes = upstream.votes.get(variables["proposalId"], [])
            return web.json_response({"data": {"votes": votes[: variables["first"]]}})
        if "proposal(id" in query:
            match = next((p for p in upstream.proposals if p["id"] == variables["id"]), None)
            return web.json_response({"data": {"proposal": match}})

        proposals = upstream.proposals
        if "state" in variables:
            proposals = [p for p in proposals if p["state"] == variables["state"]]
        if "first" in variables:
            proposals = proposals[: variables["first"]]
        return web.json_response({"data": {"proposals": proposals}})

    app = web.Application()
    app.router.add_post("/graphql", handle_graphql)

    runner = await _serve(app, SNAPSHOT_PORT)
    yield f"http://127.0.0.1:{SNAPSHOT_PORT}/graphql", upstream
    await runner.cleanup()


@pytest.fixture
async def llama(llama_server):
    """DefiLlamaSource pointed at the local server."""
    base, _ = llama_server
    source = DefiLlamaSource(
        timeout=5,
        protocol_url=f"{base}/protocol",
        tvl_url=f"{base}/tvl",
        yields_url=f"{base}/pools",
        prices_url=f"{base}/prices/current",
    )
    yield source
    await source.aclose()


@pytest.fixture
async def snapshot(snapshot_server):
    """SnapshotSource pointed at the local hub, with an API key configured."""
    url, _ = snapshot_server
    source = SnapshotSource(url=url, api_key="test-key", timeout=5)
    yield source
    await source.aclose()

