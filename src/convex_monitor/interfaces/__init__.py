"""Protocol interfaces for all convex_monitor components."""

from convex_monitor.interfaces.aggregator import AggregatorSource
from convex_monitor.interfaces.client import DataClient
from convex_monitor.interfaces.governance import GovernanceSource
from convex_monitor.interfaces.store import StateStore

__all__ = [
    "AggregatorSource",
    "DataClient",
    "GovernanceSource",
    "StateStore",
]
