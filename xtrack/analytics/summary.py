"""Derived views over a list of statistic records.

All functions are pure: the input sequence is never reordered or
modified, and equal inputs always give equal outputs.
"""

import math
from datetime import datetime
from typing import Optional, Sequence

from pydantic import BaseModel, Field

from xtrack.models import StatisticRecord

DEFAULT_TABLE_LIMIT = 10


class ChartPoint(BaseModel):
    """A single point of the P/L and balance chart."""

    label: str = Field(..., description="Short date label, e.g. 'Mar 04'")
    time: str = Field(..., description="Time of day, HH:MM")
    timestamp: datetime = Field(..., description="Source record timestamp")
    pl: float = Field(..., description="Daily P/L")
    balance: float = Field(..., description="Total balance")

    model_config = {"frozen": True}


class WindowSummary(BaseModel):
    """Aggregate figures for the currently loaded window."""

    record_count: int = Field(default=0, ge=0)
    net_profit: float = Field(default=0.0)
    total_trades: int = Field(default=0, ge=0)
    winning_days: int = Field(default=0, ge=0)
    losing_days: int = Field(default=0, ge=0)
    latest_balance: Optional[float] = Field(default=None)

    model_config = {"frozen": True}


def net_profit(records: Sequence[StatisticRecord]) -> float:
    """Sum of daily P/L over the given records.

    Args:
        records: Records in any order.

    Returns:
        Total P/L; 0.0 for no records.
    """
    return math.fsum(r.daily_pl for r in records)


def sort_ascending(records: Sequence[StatisticRecord]) -> list[StatisticRecord]:
    """Oldest first; records sharing a timestamp keep their input order."""
    return sorted(records, key=lambda r: r.timestamp)


def sort_descending(records: Sequence[StatisticRecord]) -> list[StatisticRecord]:
    """Newest first; records sharing a timestamp keep their input order."""
    # sorted(reverse=True) preserves the relative order of equal keys
    return sorted(records, key=lambda r: r.timestamp, reverse=True)


def chart_series(records: Sequence[StatisticRecord]) -> list[ChartPoint]:
    """Build the chart series, oldest point first.

    Args:
        records: Records in any order.

    Returns:
        One ChartPoint per record, ascending by timestamp.
    """
    return [
        ChartPoint(
            label=r.timestamp.strftime("%b %d"),
            time=r.timestamp.strftime("%H:%M"),
            timestamp=r.timestamp,
            pl=r.daily_pl,
            balance=r.total_balance,
        )
        for r in sort_ascending(records)
    ]


def table_rows(
    records: Sequence[StatisticRecord], limit: int = DEFAULT_TABLE_LIMIT
) -> list[StatisticRecord]:
    """Most recent records for the history table.

    Args:
        records: Records in any order.
        limit: Maximum number of rows.

    Returns:
        Up to ``limit`` records, newest first.
    """
    if limit <= 0:
        return []
    return sort_descending(records)[:limit]


def summarize(records: Sequence[StatisticRecord]) -> WindowSummary:
    """Aggregate the loaded window into headline figures."""
    if not records:
        return WindowSummary()

    latest = sort_descending(records)[0]
    return WindowSummary(
        record_count=len(records),
        net_profit=net_profit(records),
        total_trades=sum(r.trades_today for r in records),
        winning_days=sum(1 for r in records if r.daily_pl > 0),
        losing_days=sum(1 for r in records if r.daily_pl < 0),
        latest_balance=latest.total_balance,
    )
