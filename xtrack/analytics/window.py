"""Time window resolution for statistic queries.

Maps a dashboard filter to the concrete request used to load records:
a bounded page of the most recent records for ``"all"``, or an
inclusive calendar-day range for ``"7d"`` and ``"30d"``.
"""

from datetime import date, datetime, timedelta
from typing import Literal, Union

from pydantic import BaseModel, Field

FilterRange = Literal["all", "7d", "30d"]

FILTER_RANGES: tuple[str, ...] = ("all", "7d", "30d")

# Number of days covered by each ranged filter
RANGE_DAYS = {
    "7d": 7,
    "30d": 30,
}

# "all" is capped to the most recent page to bound the chart payload
ALL_PAGE_SIZE = 100

# Largest page the API serves
MAX_PAGE_SIZE = 100


class PagedQuery(BaseModel):
    """Request one page of records, newest first."""

    page: int = Field(default=1, ge=1)
    page_size: int = Field(default=ALL_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE)

    model_config = {"frozen": True}


class RangeQuery(BaseModel):
    """Request every record between two calendar days, inclusive."""

    start: date
    end: date

    model_config = {"frozen": True}

    @property
    def start_date(self) -> str:
        return self.start.isoformat()

    @property
    def end_date(self) -> str:
        return self.end.isoformat()

    @property
    def days(self) -> int:
        return (self.end - self.start).days


QuerySpec = Union[PagedQuery, RangeQuery]


def check_page_size(page_size: int) -> int:
    """Return ``page_size``, or raise ValueError if the API would reject it."""
    if isinstance(page_size, bool) or not isinstance(page_size, int) or not 1 <= page_size <= MAX_PAGE_SIZE:
        raise ValueError(f"Invalid page size: {page_size}. Must be between 1 and {MAX_PAGE_SIZE}")
    return page_size


def resolve(filter_range: str, now: datetime, page_size: int = ALL_PAGE_SIZE) -> QuerySpec:
    """Resolve a filter selection into a query.

    Args:
        filter_range: One of "all", "7d", "30d".
        now: Current time; only its calendar day is used for ranges.
        page_size: Page size used for "all".

    Returns:
        PagedQuery for "all", RangeQuery otherwise.

    Raises:
        ValueError: If the filter is not recognised.
    """
    if filter_range == "all":
        return PagedQuery(page=1, page_size=page_size)

    if filter_range not in RANGE_DAYS:
        raise ValueError(f"Invalid filter: {filter_range}. Must be one of {list(FILTER_RANGES)}")

    end = now.date()
    return RangeQuery(start=end - timedelta(days=RANGE_DAYS[filter_range]), end=end)
