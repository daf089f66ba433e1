"""Live fixtures: the real DefiLlama and Snapshot endpoints.

Run with ``pytest -m live``. Every test is skipped when the upstreams
cannot be reached.
"""

from __future__ import annotations

import httpx
import pytest

from convex_monitor.client import ConvexDataClient
from convex_monitor.constants import DEFILLAMA_TVL_URL, SNAPSHOT_API


@pytest.fixture(scope="session")
def upstreams_available():
    """Skip live tests if DefiLlama or Snapshot is unreachable."""
    try:
        r = httpx.get(f"{DEFILLAMA_TVL_URL}/convex-finance", timeout=10)
        if r.status_code != 200:
            pytest.skip(f"DefiLlama returned HTTP {r.status_code}")
        r = httpx.post(SNAPSHOT_API, json={"query": "{ space(id: \"cvx.eth\") { id } }"}, timeout=10)
        if r.status_code != 200:
            pytest.skip(f"Snapshot returned HTTP {r.status_code}")
    except httpx.HTTPError as exc:
        pytest.skip(f"Upstreams not reachable: {exc}")
    return True


@pytest.fixture
async def live_client(upstreams_available):
    """ConvexDataClient with the default public sources."""
    client = ConvexDataClient()
    yield client
    await client.aclose()
