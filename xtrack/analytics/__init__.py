"""Time windows and derived views for X-Track analytics."""

from xtrack.analytics.summary import (
    DEFAULT_TABLE_LIMIT,
    ChartPoint,
    WindowSummary,
    chart_series,
    net_profit,
    summarize,
    table_rows,
)
from xtrack.analytics.window import (
    FILTER_RANGES,
    FilterRange,
    PagedQuery,
    QuerySpec,
    RangeQuery,
    check_page_size,
    resolve,
)

__all__ = [
    "DEFAULT_TABLE_LIMIT",
    "FILTER_RANGES",
    "ChartPoint",
    "FilterRange",
    "PagedQuery",
    "QuerySpec",
    "RangeQuery",
    "WindowSummary",
    "chart_series",
    "check_page_size",
    "net_profit",
    "resolve",
    "summarize",
    "table_rows",
]
