"""Per-instance polling state, persisted between trigger invocations."""

from __future__ import annotations

import copy
from dataclasses import dataclass, field, fields
from typing import Any

# dataclass field -> persisted key
_KEYS = {
    "last_pool_count": "lastPoolCount",
    "last_tvl": "lastTvl",
    "last_protocol_tvl": "lastProtocolTvl",
    "last_cvx_price": "lastCvxPrice",
    "last_cvx_crv_ratio": "lastCvxCrvRatio",
    "last_proposal_id": "lastProposalId",
    "last_apy": "lastApy",
    "last_pool_apys": "lastPoolApys",
}


@dataclass
class PollingState:
    """Last observed values per monitored metric.

    ``None`` means the metric has not been observed yet. ``last_tvl`` is the
    poolTvlChanged baseline; protocolTvlChanged keeps its own
    ``last_protocol_tvl`` so the two kinds never overwrite each other.
    """

    last_pool_count: int | None = None
    last_tvl: float | None = None
    last_protocol_tvl: float | None = None
    last_cvx_price: float | None = None
    last_cvx_crv_ratio: float | None = None
    last_proposal_id: str | None = None
    last_apy: dict[str, float] | None = None
    last_pool_apys: dict[str, float] | None = None

    def copy(self) -> PollingState:
        return copy.deepcopy(self)

    def to_dict(self) -> dict[str, Any]:
        """JSON-compatible mapping; unobserved fields are omitted."""
        out: dict[str, Any] = {}
        for f in fields(self):
            value = getattr(self, f.name)
            if value is None:
                continue
            out[_KEYS[f.name]] = dict(value) if isinstance(value, dict) else value
        return out

    @classmethod
    def from_dict(cls, raw: dict[str, Any] | None) -> PollingState:
        state = cls()
        if not raw:
            return state

        if (v := raw.get("lastPoolCount")) is not None:
            state.last_pool_count = int(v)
        if (v := raw.get("lastTvl")) is not None:
            state.last_tvl = float(v)
        if (v := raw.get("lastProtocolTvl")) is not None:
            state.last_protocol_tvl = float(v)
        if (v := raw.get("lastCvxPrice")) is not None:
            state.last_cvx_price = float(v)
        if (v := raw.get("lastCvxCrvRatio")) is not None:
            state.last_cvx_crv_ratio = float(v)
        if (v := raw.get("lastProposalId")) is not None:
            state.last_proposal_id = str(v)
        if (v := raw.get("lastApy")) is not None:
            state.last_apy = {str(k): float(x) for k, x in v.items()}
        if (v := raw.get("lastPoolApys")) is not None:
            state.last_pool_apys = {str(k): float(x) for k, x in v.items()}
        return state
