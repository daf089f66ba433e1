"""Shared plumbing for request/response operations."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Mapping

from convex_monitor.client import ConvexDataClient
from convex_monitor.errors import ValidationError

Params = Mapping[str, Any]
Record = dict[str, Any]
OperationFn = Callable[[ConvexDataClient, Params], Awaitable[list[Record]]]


@dataclass(frozen=True)
class OperationSpec:
    """A registered operation and the parameters it cannot run without."""

    fn: OperationFn
    required: tuple[str, ...] = ()

    def validate(self, params: Params) -> None:
        for name in self.required:
            value = params.get(name)
            if value is None or (isinstance(value, str) and not value.strip()):
                raise ValidationError(f'Required parameter "{name}" is missing or empty')


def int_param(params: Params, name: str, default: int) -> int:
    value = params.get(name)
    if value is None or value == "":
        return default
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError(f'Parameter "{name}" must be an integer, got {value!r}') from None


def float_param(params: Params, name: str, default: float) -> float:
    value = params.get(name)
    if value is None or value == "":
        return default
    try:
        return float(value)
    except (TypeError, ValueError):
        raise ValidationError(f'Parameter "{name}" must be a number, got {value!r}') from None


def bool_param(params: Params, name: str, default: bool) -> bool:
    value = params.get(name)
    if value is None:
        return default
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes", "on")
    return bool(value)


def str_param(params: Params, name: str, default: str = "") -> str:
    value = params.get(name)
    return default if value is None else str(value).strip()


def iso(epoch_seconds: int) -> str:
    return datetime.fromtimestamp(epoch_seconds, tz=timezone.utc).isoformat()


def utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()
