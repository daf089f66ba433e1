"""Display helpers for operation output."""

from __future__ import annotations

from typing import Any


def format_number(value: float, decimals: int = 2) -> str:
    """Compact number with a K/M/B suffix, e.g. 1500000 -> '1.50M'."""
    if value >= 1_000_000_000:
        return f"{value / 1_000_000_000:.{decimals}f}B"
    if value >= 1_000_000:
        return f"{value / 1_000_000:.{decimals}f}M"
    if value >= 1_000:
        return f"{value / 1_000:.{decimals}f}K"
    return f"{value:.{decimals}f}"


def format_usd(value: float, decimals: int = 2) -> str:
    return f"${format_number(value, decimals)}"


def format_percentage(value: float | None, decimals: int = 2) -> str:
    if value is None:
        return f"{0:.{decimals}f}%"
    return f"{value:.{decimals}f}%"


def parse_apy(value: Any) -> float:
    """Best-effort APY parse. None, garbage and NaN all become 0."""
    if value is None or isinstance(value, bool):
        return 0.0
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    return 0.0 if number != number else number
