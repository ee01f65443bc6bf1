"""Statistic record and summary data models."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class StatisticRecord(BaseModel):
    """A single point-in-time snapshot reported for an account."""

    id: int = Field(..., description="Record ID")
    account_id: int = Field(..., description="Account the record belongs to")
    timestamp: datetime = Field(..., description="Snapshot timestamp")
    daily_pl: float = Field(..., description="Profit/loss for the day")
    trades_today: int = Field(..., ge=0, description="Trades executed today")
    total_balance: float = Field(..., description="Account balance")
    created_at: Optional[datetime] = Field(default=None, description="Ingestion timestamp")
    updated_at: Optional[datetime] = Field(default=None, description="Last update timestamp")

    model_config = {"frozen": True}


class TodaySummary(BaseModel):
    """Server-side snapshot of today's activity for an account."""

    total_records: int = Field(default=0, ge=0, description="Records reported today")
    latest_balance: float = Field(default=0.0, description="Most recent balance")
    daily_pl: float = Field(default=0.0, description="Most recent daily P/L")
    trades_today: int = Field(default=0, ge=0, description="Most recent trade count")
    latest_update: Optional[datetime] = Field(default=None, description="Most recent timestamp")
    statistics: Optional[list[StatisticRecord]] = Field(
        default=None, description="Today's records, newest first"
    )

    model_config = {"frozen": True}


class OverallSummary(BaseModel):
    """Server-side snapshot across all recorded history."""

    has_data: bool = Field(default=False, description="Whether any record exists")
    current_balance: float = Field(default=0.0, description="Latest known balance")
    latest_pl: Optional[float] = Field(default=None, description="Latest daily P/L")
    latest_trades: Optional[int] = Field(default=None, description="Latest trade count")
    latest_update: Optional[datetime] = Field(default=None, description="Latest timestamp")

    model_config = {"frozen": True}
