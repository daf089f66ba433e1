"""Polling change-detection engine."""

from convex_monitor.trigger.engine import HANDLERS, ChangeDetectionEngine, PollResult, poll

__all__ = ["HANDLERS", "ChangeDetectionEngine", "PollResult", "poll"]
