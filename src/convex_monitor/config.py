"""Configuration loading: TOML file + environment variables."""

from __future__ import annotations

import os
from pathlib import Path

try:
    import tomllib  # Python 3.11+
except ModuleNotFoundError:
    import tomli as tomllib  # type: ignore[no-redef]

from convex_monitor.errors import ValidationError
from convex_monitor.models.config import (
    DataSource,
    EventKind,
    MonitorConfig,
    TriggerConfig,
)


def _data_source(value: str) -> DataSource:
    try:
        return DataSource(value)
    except ValueError:
        raise ValidationError(f"Unknown data source: {value!r}") from None


def load_config(
    config_path: str | Path | None = None,
    env_prefix: str = "CONVEX_MONITOR_",
) -> MonitorConfig:
    """Load monitor configuration from a TOML file and env vars.

    Priority (highest wins):
        1. Environment variables (CONVEX_MONITOR_EVENT, etc.)
        2. TOML config file
        3. Defaults from MonitorConfig
    """
    raw: dict = {}
    if config_path is not None:
        p = Path(config_path).expanduser()
        if p.exists():
            with open(p, "rb") as f:
                raw = tomllib.load(f)

    cfg = MonitorConfig()

    # ── Monitor section ────────────────────────────────────
    monitor = raw.get("monitor", {})
    if v := monitor.get("log_level"):
        cfg.log_level = str(v)

    # ── Client section ─────────────────────────────────────
    client = raw.get("client", {})
    if v := client.get("data_source"):
        cfg.client.data_source = _data_source(str(v))
    if v := client.get("network"):
        cfg.client.network = str(v)
    if v := client.get("governance_url"):
        cfg.client.governance_url = str(v)
    if v := client.get("api_key"):
        cfg.client.api_key = str(v)
    if v := client.get("timeout"):
        cfg.client.timeout = float(v)

    # ── Trigger section ────────────────────────────────────
    trigger = raw.get("trigger", {})
    if trigger:
        cfg.trigger = TriggerConfig.from_mapping(trigger)

    # ── Runner section ─────────────────────────────────────
    runner = raw.get("runner", {})
    if v := runner.get("instance_id"):
        cfg.runner.instance_id = str(v)
    if v := runner.get("poll_interval"):
        cfg.runner.poll_interval = int(v)
    if v := runner.get("error_backoff"):
        cfg.runner.error_backoff = int(v)

    # ── Storage section ────────────────────────────────────
    storage = raw.get("storage", {})
    if v := storage.get("db_path"):
        cfg.db_path = str(v)

    # ── Environment variable overrides (highest priority) ──
    if source := os.environ.get(f"{env_prefix}DATA_SOURCE"):
        cfg.client.data_source = _data_source(source)
    if net := os.environ.get(f"{env_prefix}NETWORK"):
        cfg.client.network = net
    if url := os.environ.get(f"{env_prefix}GOVERNANCE_URL"):
        cfg.client.governance_url = url
    if key := os.environ.get(f"{env_prefix}API_KEY"):
        cfg.client.api_key = key
    if event := os.environ.get(f"{env_prefix}EVENT"):
        try:
            cfg.trigger.event = EventKind(event)
        except ValueError:
            raise ValidationError(f"Unknown trigger event: {event!r}") from None
    if pool_id := os.environ.get(f"{env_prefix}POOL_ID"):
        cfg.trigger.pool_id = pool_id
    if instance := os.environ.get(f"{env_prefix}INSTANCE_ID"):
        cfg.runner.instance_id = instance
    if db_path := os.environ.get(f"{env_prefix}DB_PATH"):
        cfg.db_path = db_path

    # Expand ~ in paths
    if cfg.db_path != ":memory:":
        cfg.db_path = str(Path(cfg.db_path).expanduser())

    return cfg
