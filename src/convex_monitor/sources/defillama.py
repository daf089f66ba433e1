"""DefiLlama aggregator source - pools, protocol TVL and token prices."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from convex_monitor.constants import (
    CONVEX_DEFILLAMA_SLUG,
    DEFILLAMA_PRICES_URL,
    DEFILLAMA_PROTOCOL_URL,
    DEFILLAMA_TVL_URL,
    DEFILLAMA_YIELDS_URL,
    REQUEST_TIMEOUT,
)
from convex_monitor.errors import TransportError
from convex_monitor.models.pools import Pool

log = logging.getLogger(__name__)

SOURCE_NAME = "DefiLlama"


class DefiLlamaSource:
    """Read-only DefiLlama client for Convex Finance data.

    All failures (connect errors, timeouts, non-2xx responses, undecodable
    bodies) surface as a single TransportError so callers can abort the
    whole poll cycle.
    """

    def __init__(
        self,
        timeout: float = REQUEST_TIMEOUT,
        protocol_url: str = DEFILLAMA_PROTOCOL_URL,
        tvl_url: str = DEFILLAMA_TVL_URL,
        yields_url: str = DEFILLAMA_YIELDS_URL,
        prices_url: str = DEFILLAMA_PRICES_URL,
        slug: str = CONVEX_DEFILLAMA_SLUG,
        http: httpx.AsyncClient | None = None,
    ) -> None:
        self._protocol_url = protocol_url.rstrip("/")
        self._tvl_url = tvl_url.rstrip("/")
        self._yields_url = yields_url
        self._prices_url = prices_url.rstrip("/")
        self._slug = slug
        self._owns_http = http is None
        self._http = http or httpx.AsyncClient(
            timeout=httpx.Timeout(timeout, connect=10),
            headers={"Accept": "application/json"},
            follow_redirects=True,
        )

    async def aclose(self) -> None:
        if self._owns_http:
            await self._http.aclose()

    async def _get_json(self, url: str, operation: str) -> Any:
        try:
            resp = await self._http.get(url)
            resp.raise_for_status()
            return resp.json()
        except httpx.HTTPStatusError as exc:
            detail = f"HTTP {exc.response.status_code} - {exc.response.text[:200]}"
            raise TransportError(SOURCE_NAME, operation, detail) from exc
        except httpx.TimeoutException as exc:
            raise TransportError(SOURCE_NAME, operation, "timeout") from exc
        except httpx.HTTPError as exc:
            raise TransportError(SOURCE_NAME, operation, f"no response ({exc})") from exc
        except ValueError as exc:
            raise TransportError(SOURCE_NAME, operation, f"invalid JSON: {exc}") from exc

    # ── Protocol ───────────────────────────────────────────

    async def get_protocol(self) -> dict[str, Any]:
        data = await self._get_json(f"{self._protocol_url}/{self._slug}", "get_protocol")
        if not isinstance(data, dict):
            raise TransportError(SOURCE_NAME, "get_protocol", "unexpected payload shape")
        return data

    async def get_tvl(self) -> float:
        data = await self._get_json(f"{self._tvl_url}/{self._slug}", "get_tvl")
        try:
            return float(data)
        except (TypeError, ValueError) as exc:
            raise TransportError(SOURCE_NAME, "get_tvl", f"not a number: {data!r}") from exc

    # ── Pools ──────────────────────────────────────────────

    async def get_all_pools(self) -> list[Pool]:
        data = await self._get_json(self._yields_url, "get_all_pools")
        rows = data.get("data") if isinstance(data, dict) else None
        if not isinstance(rows, list):
            raise TransportError(SOURCE_NAME, "get_all_pools", "missing 'data' list")
        return [Pool.from_api(row) for row in rows if isinstance(row, dict)]

    async def get_convex_pools(self, chain: str = "Ethereum") -> list[Pool]:
        """Convex pools on ``chain``, preserving the upstream order."""
        pools = await self.get_all_pools()
        result = [
            p for p in pools
            if p.project.lower() == self._slug and p.chain.lower() == chain.lower()
        ]
        log.debug("Fetched %d Convex pools on %s (of %d)", len(result), chain, len(pools))
        return result

    # ── Prices ─────────────────────────────────────────────

    async def get_prices(self, keys: list[str]) -> dict[str, float]:
        """Current prices for feed keys like ``ethereum:0x..`` or ``coingecko:id``.

        Keys the upstream does not know resolve to 0.0.
        """
        if not keys:
            return {}
        data = await self._get_json(f"{self._prices_url}/{','.join(keys)}", "get_prices")
        coins = data.get("coins", {}) if isinstance(data, dict) else {}

        # Address keys come back with the casing the upstream prefers
        by_lower = {k.lower(): v for k, v in coins.items() if isinstance(v, dict)}
        prices: dict[str, float] = {}
        for key in keys:
            entry = by_lower.get(key.lower()) or {}
            try:
                prices[key] = float(entry.get("price") or 0)
            except (TypeError, ValueError):
                prices[key] = 0.0
        return prices
