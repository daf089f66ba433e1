"""Exception types raised by convex_monitor components."""

from __future__ import annotations


class ConvexMonitorError(Exception):
    """Base class for all convex_monitor errors."""


class TransportError(ConvexMonitorError):
    """A network, HTTP or decoding failure from an upstream data source."""

    def __init__(self, source: str, operation: str, detail: str) -> None:
        self.source = source
        self.operation = operation
        self.detail = detail
        super().__init__(f"{source} request failed during {operation}: {detail}")


class ValidationError(ConvexMonitorError):
    """Configuration or parameters rejected before any network call."""


class UnknownOperationError(ConvexMonitorError):
    """An unrecognized resource/operation combination was requested."""

    def __init__(self, resource: str, operation: str) -> None:
        self.resource = resource
        self.operation = operation
        super().__init__(f"Unknown operation: {resource}.{operation}")
