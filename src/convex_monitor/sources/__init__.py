from convex_monitor.sources.defillama import DefiLlamaSource
from convex_monitor.sources.snapshot import SnapshotSource

__all__ = ["DefiLlamaSource", "SnapshotSource"]
