from convex_monitor.storage.sqlite import SQLiteStateStore

__all__ = ["SQLiteStateStore"]
