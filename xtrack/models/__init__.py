"""Data models for X-Track."""

from xtrack.models.user import AuthResponse, Session, User
from xtrack.models.account import Account
from xtrack.models.statistic import OverallSummary, StatisticRecord, TodaySummary
from xtrack.models.response import NETWORK_ERROR, ApiResponse, PaginationMeta

__all__ = [
    "Account",
    "ApiResponse",
    "AuthResponse",
    "NETWORK_ERROR",
    "OverallSummary",
    "PaginationMeta",
    "Session",
    "StatisticRecord",
    "TodaySummary",
    "User",
]
