"""Configuration models for the client, trigger instances and the runner."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Mapping

from convex_monitor.errors import ValidationError


class DataSource(str, Enum):
    """Preferred upstream for pool data."""

    DEFILLAMA = "DefiLlama"
    THEGRAPH = "TheGraph"
    CUSTOM = "Custom"


class EventKind(str, Enum):
    """The closed set of change events a trigger instance can watch."""

    POOL_APY_CHANGED = "poolApyChanged"
    NEW_POOL_ADDED = "newPoolAdded"
    POOL_TVL_CHANGED = "poolTvlChanged"
    CVXCRV_APR_CHANGED = "cvxCrvAprChanged"
    CVXCRV_PEG_ALERT = "cvxCrvPegAlert"
    NEW_PROPOSAL = "newProposal"
    CVX_PRICE_ALERT = "cvxPriceAlert"
    PROTOCOL_TVL_CHANGED = "protocolTvlChanged"


class PriceCondition(str, Enum):
    """How cvxPriceAlert interprets its thresholds."""

    ABOVE = "above"  # upward crossing of price_threshold
    BELOW = "below"  # downward crossing of price_threshold
    CHANGE = "change"  # relative move of at least price_change_threshold %


@dataclass
class ClientConfig:
    """Options for building a ConvexDataClient."""

    data_source: DataSource = DataSource.DEFILLAMA
    network: str = "Ethereum"
    governance_url: str = ""  # empty = public snapshot hub
    api_key: str = ""  # sent to the governance API as x-api-key
    timeout: float = 30.0  # seconds per upstream call


# camelCase option name -> dataclass field
_TRIGGER_KEYS = {
    "event": "event",
    "poolId": "pool_id",
    "apyThreshold": "apy_threshold",
    "tvlThreshold": "tvl_threshold",
    "priceCondition": "price_condition",
    "priceThreshold": "price_threshold",
    "priceChangeThreshold": "price_change_threshold",
    "pegThreshold": "peg_threshold",
}

_NUMERIC_FIELDS = (
    "apy_threshold",
    "tvl_threshold",
    "price_threshold",
    "price_change_threshold",
    "peg_threshold",
)


@dataclass
class TriggerConfig:
    """Settings for a single trigger instance.

    Thresholds are percentage points for APY, percent for TVL, price change
    and peg deviation, and USD for price crossings.
    """

    event: EventKind = EventKind.POOL_APY_CHANGED
    pool_id: str = ""
    apy_threshold: float = 5.0
    tvl_threshold: float = 10.0
    price_condition: PriceCondition = PriceCondition.CHANGE
    price_threshold: float = 5.0
    price_change_threshold: float = 10.0
    peg_threshold: float = 2.0

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> TriggerConfig:
        """Build a validated config from camelCase or snake_case options.

        Raises ValidationError for unknown option keys, unknown event kinds or
        price conditions, and thresholds that are not finite non-negative numbers.
        """
        values: dict[str, Any] = {}
        for key, value in raw.items():
            name = _TRIGGER_KEYS.get(key, key)
            if name not in cls.__dataclass_fields__:
                raise ValidationError(f"Unknown trigger option: {key!r}")
            if value is not None:
                values[name] = value

        cfg = cls()

        if "event" in values:
            try:
                cfg.event = EventKind(values["event"])
            except ValueError:
                raise ValidationError(f"Unknown trigger event: {values['event']!r}") from None

        if "price_condition" in values:
            try:
                cfg.price_condition = PriceCondition(values["price_condition"])
            except ValueError:
                raise ValidationError(
                    f"Unknown price condition: {values['price_condition']!r}"
                ) from None

        if "pool_id" in values:
            cfg.pool_id = str(values["pool_id"]).strip()

        for name in _NUMERIC_FIELDS:
            if name not in values:
                continue
            value = values[name]
            if isinstance(value, bool):
                raise ValidationError(f"{name} must be a number, got {value!r}")
            try:
                number = float(value)
            except (TypeError, ValueError):
                raise ValidationError(f"{name} must be a number, got {value!r}") from None
            if not math.isfinite(number):
                raise ValidationError(f"{name} must be a finite number, got {value!r}")
            if number < 0:
                raise ValidationError(f"{name} must not be negative, got {number}")
            setattr(cfg, name, number)

        return cfg


@dataclass
class RunnerConfig:
    """Polling loop settings."""

    instance_id: str = "default"
    poll_interval: int = 300  # seconds
    error_backoff: int = 60  # seconds


@dataclass
class MonitorConfig:
    """Complete monitor configuration."""

    client: ClientConfig = field(default_factory=ClientConfig)
    trigger: TriggerConfig = field(default_factory=TriggerConfig)
    runner: RunnerConfig = field(default_factory=RunnerConfig)
    log_level: str = "info"
    db_path: str = "~/.convex_monitor/state.db"
