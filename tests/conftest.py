"""Shared fixtures for convex_monitor tests."""

from __future__ import annotations

import pytest
from pytest_metadata.plugin import metadata_key

from convex_monitor.client import ConvexDataClient
from convex_monitor.constants import SNAPSHOT_API, SNAPSHOT_SPACE
from convex_monitor.models.config import ClientConfig, MonitorConfig, RunnerConfig, TriggerConfig
from convex_monitor.storage.sqlite import SQLiteStateStore

from tests.mocks import MockAggregator, MockGovernance


# ── Report metadata ──────────────────────────────────────────────


def pytest_configure(config):
    """Add upstream info to the HTML report Environment table."""
    meta = config.stash.setdefault(metadata_key, {})
    meta["Aggregator"] = "DefiLlama"
    meta["Governance"] = f"{SNAPSHOT_API} ({SNAPSHOT_SPACE})"


def pytest_html_results_summary(prefix, summary, postfix):
    """Note in the report which suites hit the network."""
    prefix.append(
        '<div style="margin:8px 0;padding:10px;background:#f8f9fa;border:1px solid #dee2e6;'
        'border-radius:4px;font-family:monospace;font-size:13px;">'
        "<strong>Upstreams</strong><br/>"
        "Unit and tier2 suites use mocks and local servers. "
        "Tests marked <code>live</code> call DefiLlama and Snapshot directly."
        "</div>"
    )


def make_test_config(**overrides) -> MonitorConfig:
    """Build a MonitorConfig suitable for testing."""
    cfg = MonitorConfig(
        client=ClientConfig(timeout=5.0),
        trigger=TriggerConfig(),
        runner=RunnerConfig(instance_id="test", poll_interval=1, error_backoff=1),
        db_path=":memory:",
    )
    for key, value in overrides.items():
        setattr(cfg, key, value)
    return cfg


@pytest.fixture
def test_config():
    return make_test_config()


@pytest.fixture
async def store():
    """Initialized in-memory SQLiteStateStore."""
    s = SQLiteStateStore(":memory:")
    await s.initialize()
    yield s
    await s.close()


@pytest.fixture
def aggregator():
    return MockAggregator()


@pytest.fixture
def governance():
    return MockGovernance()


@pytest.fixture
def client(aggregator, governance):
    """ConvexDataClient wired to the mock sources."""
    return ConvexDataClient(ClientConfig(), aggregator=aggregator, governance=governance)
