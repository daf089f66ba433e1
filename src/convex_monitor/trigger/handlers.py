"""Per-kind change-detection rules.

Every handler has the same shape: fetch the current observation through the
data client, compare it against ``state``, append events, then overwrite the
tracked field(s) of ``state``. Handlers fetch before touching ``state`` so an
upstream failure leaves it exactly as it was.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from convex_monitor.constants import (
    COINGECKO_CRV,
    COINGECKO_CVX,
    COINGECKO_CVXCRV,
    POOL_APY_SCAN_LIMIT,
)
from convex_monitor.formatting import parse_apy
from convex_monitor.interfaces.client import DataClient
from convex_monitor.models.config import EventKind, PriceCondition, TriggerConfig
from convex_monitor.models.events import TriggerEvent
from convex_monitor.models.pools import TokenRef
from convex_monitor.models.state import PollingState

log = logging.getLogger(__name__)

CVXCRV_APY_KEY = "cvxcrv"

CVX_REF = TokenRef.coingecko(COINGECKO_CVX)
CVXCRV_REF = TokenRef.coingecko(COINGECKO_CVXCRV)
CRV_REF = TokenRef.coingecko(COINGECKO_CRV)


def _percent_change(previous: float, current: float) -> float:
    return (current - previous) * 100 / previous


def _iso(epoch_seconds: int) -> str:
    return datetime.fromtimestamp(epoch_seconds, tz=timezone.utc).isoformat()


# ── Pools ──────────────────────────────────────────────────


async def pool_apy_changed(
    cfg: TriggerConfig, state: PollingState, client: DataClient
) -> list[TriggerEvent]:
    pools = await client.get_pools()
    if cfg.pool_id:
        wanted = cfg.pool_id.lower()
        relevant = [p for p in pools if p.pool_id.lower() == wanted]
    else:
        relevant = pools[:POOL_APY_SCAN_LIMIT]

    if state.last_pool_apys is None:
        state.last_pool_apys = {p.pool_id: parse_apy(p.apy) for p in relevant}
        return []

    events: list[TriggerEvent] = []
    for pool in relevant:
        current = parse_apy(pool.apy)
        previous = state.last_pool_apys.get(pool.pool_id)
        state.last_pool_apys[pool.pool_id] = current
        if previous is None:
            # First sighting of this pool: seed only
            continue
        if abs(current - previous) >= cfg.apy_threshold:
            events.append(TriggerEvent(EventKind.POOL_APY_CHANGED, {
                "poolId": pool.pool_id,
                "symbol": pool.symbol,
                "previousApy": previous,
                "currentApy": current,
                "change": current - previous,
                "tvl": pool.tvl_usd,
            }))
    return events


async def new_pool_added(
    cfg: TriggerConfig, state: PollingState, client: DataClient
) -> list[TriggerEvent]:
    """Count-delta heuristic: the first N pools of the listing are reported as new."""
    pools = await client.get_pools()
    current = len(pools)

    previous = state.last_pool_count
    state.last_pool_count = current
    if previous is None or current <= previous:
        return []

    return [
        TriggerEvent(EventKind.NEW_POOL_ADDED, {
            "poolId": pool.pool_id,
            "symbol": pool.symbol,
            "tvl": pool.tvl_usd,
            "apy": pool.apy,
        })
        for pool in pools[: current - previous]
    ]


# ── TVL ────────────────────────────────────────────────────


async def _tvl_change(
    cfg: TriggerConfig, previous: float | None, client: DataClient
) -> tuple[float, dict | None]:
    """Current TVL plus the change payload when the threshold is crossed."""
    snapshot = await client.get_protocol_snapshot()
    current = snapshot.tvl or 0.0
    if previous is None:
        return current, None
    if previous == 0:
        log.debug("Stored TVL baseline is 0, re-seeding with %s", current)
        return current, None

    change_pct = _percent_change(previous, current)
    if abs(change_pct) < cfg.tvl_threshold:
        return current, None
    return current, {
        "previousTvl": previous,
        "currentTvl": current,
        "changeUsd": current - previous,
        "changePercent": change_pct,
    }


async def pool_tvl_changed(
    cfg: TriggerConfig, state: PollingState, client: DataClient
) -> list[TriggerEvent]:
    current, change = await _tvl_change(cfg, state.last_tvl, client)
    state.last_tvl = current
    if change is None:
        return []
    return [TriggerEvent(EventKind.POOL_TVL_CHANGED, change)]


async def protocol_tvl_changed(
    cfg: TriggerConfig, state: PollingState, client: DataClient
) -> list[TriggerEvent]:
    current, change = await _tvl_change(cfg, state.last_protocol_tvl, client)
    state.last_protocol_tvl = current
    if change is None:
        return []
    change["direction"] = "increase" if change["changePercent"] > 0 else "decrease"
    return [TriggerEvent(EventKind.PROTOCOL_TVL_CHANGED, change)]


# ── cvxCRV ─────────────────────────────────────────────────


async def cvxcrv_apr_changed(
    cfg: TriggerConfig, state: PollingState, client: DataClient
) -> list[TriggerEvent]:
    pools = await client.get_pools()
    pool = next((p for p in pools if CVXCRV_APY_KEY in p.symbol.lower()), None)
    current = parse_apy(pool.apy if pool else None)

    if state.last_apy is None:
        state.last_apy = {}
    previous = state.last_apy.get(CVXCRV_APY_KEY)
    state.last_apy[CVXCRV_APY_KEY] = current
    if previous is None or abs(current - previous) < cfg.apy_threshold:
        return []

    return [TriggerEvent(EventKind.CVXCRV_APR_CHANGED, {
        "previousApr": previous,
        "currentApr": current,
        "change": current - previous,
    })]


async def cvxcrv_peg_alert(
    cfg: TriggerConfig, state: PollingState, client: DataClient
) -> list[TriggerEvent]:
    prices = await client.get_prices([CVXCRV_REF, CRV_REF])
    cvxcrv_price = prices.get(CVXCRV_REF) or 0.0
    crv_price = prices.get(CRV_REF) or 1.0

    ratio = cvxcrv_price / crv_price if crv_price > 0 else 1.0
    deviation = abs(1 - ratio) * 100

    previous = state.last_cvx_crv_ratio
    state.last_cvx_crv_ratio = ratio
    if previous is None or deviation < cfg.peg_threshold:
        return []

    return [TriggerEvent(EventKind.CVXCRV_PEG_ALERT, {
        "cvxCrvPrice": cvxcrv_price,
        "crvPrice": crv_price,
        "ratio": ratio,
        "deviationPercent": deviation,
        "status": "under-peg" if ratio < 1 else "over-peg",
        "previousRatio": previous,
    })]


# ── Governance ─────────────────────────────────────────────


async def new_proposal(
    cfg: TriggerConfig, state: PollingState, client: DataClient
) -> list[TriggerEvent]:
    proposals = await client.get_active_proposals()
    if not proposals:
        # Nothing active (or governance unavailable): keep the baseline as is
        return []

    latest = proposals[0]
    previous = state.last_proposal_id
    state.last_proposal_id = latest.id
    if previous is None or latest.id == previous:
        return []

    return [
        TriggerEvent(EventKind.NEW_PROPOSAL, {
            "proposalId": p.id,
            "title": p.title,
            "author": p.author,
            "choices": list(p.choices),
            "startTime": _iso(p.start),
            "endTime": _iso(p.end),
            "snapshotUrl": p.url,
        })
        for p in proposals
        if p.id != previous
    ]


# ── Price ──────────────────────────────────────────────────


async def cvx_price_alert(
    cfg: TriggerConfig, state: PollingState, client: DataClient
) -> list[TriggerEvent]:
    prices = await client.get_prices([CVX_REF])
    current = prices.get(CVX_REF) or 0.0

    previous = state.last_cvx_price
    state.last_cvx_price = current
    if previous is None:
        return []

    change_pct = _percent_change(previous, current) if previous != 0 else None
    reason = ""
    condition = cfg.price_condition
    if condition == PriceCondition.ABOVE:
        if current > cfg.price_threshold and previous <= cfg.price_threshold:
            reason = f"Price crossed above ${cfg.price_threshold:g}"
    elif condition == PriceCondition.BELOW:
        if current < cfg.price_threshold and previous >= cfg.price_threshold:
            reason = f"Price crossed below ${cfg.price_threshold:g}"
    elif change_pct is not None and abs(change_pct) >= cfg.price_change_threshold:
        reason = f"Price changed by {change_pct:.2f}%"

    if not reason:
        return []
    return [TriggerEvent(EventKind.CVX_PRICE_ALERT, {
        "previousPrice": previous,
        "currentPrice": current,
        "changeUsd": current - previous,
        "changePercent": change_pct,
        "condition": condition.value,
        "reason": reason,
    })]
