"""Data models for convex_monitor."""

from convex_monitor.models.config import (
    ClientConfig,
    DataSource,
    EventKind,
    MonitorConfig,
    PriceCondition,
    RunnerConfig,
    TriggerConfig,
)
from convex_monitor.models.events import TriggerEvent
from convex_monitor.models.governance import Proposal, Vote
from convex_monitor.models.pools import Pool, ProtocolSnapshot, TokenRef
from convex_monitor.models.records import PollRecord
from convex_monitor.models.state import PollingState

__all__ = [
    "ClientConfig", "DataSource", "EventKind", "MonitorConfig",
    "PriceCondition", "RunnerConfig", "TriggerConfig",
    "TriggerEvent",
    "Proposal", "Vote",
    "Pool", "ProtocolSnapshot", "TokenRef",
    "PollRecord",
    "PollingState",
]
