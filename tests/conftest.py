"""Shared fixtures for the X-Track test suite."""

import asyncio
import tempfile
from datetime import datetime, timedelta
from pathlib import Path
from typing import Optional

import pytest

from xtrack.models import ApiResponse
from xtrack.services.memory import InMemoryService

NOW = datetime(2024, 3, 15, 12, 0, 0)


def fixed_clock() -> datetime:
    return NOW


class GatedService(InMemoryService):
    """In-memory service whose statistic calls can be held or failed.

    ``hold(name, account_id)`` returns an event; the matching call
    blocks until the event is set, so tests control completion order.
    """

    def __init__(self):
        super().__init__(clock=fixed_clock)
        self._gates: dict[tuple[str, int], asyncio.Event] = {}
        self.failures: dict[str, str] = {}

    def hold(self, name: str, account_id: int) -> asyncio.Event:
        gate = asyncio.Event()
        self._gates[(name, account_id)] = gate
        return gate

    async def _guard(self, name: str, account_id: int) -> Optional[ApiResponse]:
        gate = self._gates.pop((name, account_id), None)
        if gate is not None:
            await gate.wait()
        if name in self.failures:
            return ApiResponse.fail(self.failures[name])
        return None

    async def get_today(self, token, account_id):
        failure = await self._guard("get_today", account_id)
        if failure is not None:
            return failure
        return await super().get_today(token, account_id)

    async def get_overall(self, token, account_id):
        failure = await self._guard("get_overall", account_id)
        if failure is not None:
            return failure
        return await super().get_overall(token, account_id)

    async def get_statistics(self, token, account_id, page=1, page_size=20):
        failure = await self._guard("get_statistics", account_id)
        if failure is not None:
            return failure
        return await super().get_statistics(token, account_id, page, page_size)

    async def get_statistics_range(self, token, account_id, start_date, end_date):
        failure = await self._guard("get_statistics_range", account_id)
        if failure is not None:
            return failure
        return await super().get_statistics_range(token, account_id, start_date, end_date)


def seed_world(service: InMemoryService) -> dict:
    """Two users; alice owns accounts A (3 records) and B (1 record)."""
    admin = service.add_user("root", "rootpass", role="admin")
    alice = service.add_user("alice", "alicepass")
    account_a = service.add_account(alice.id, "Alpha")
    account_b = service.add_account(alice.id, "Beta")
    for days_ago, pl, balance in ((2, 5.0, 100.0), (1, -3.0, 97.0), (0, 10.0, 107.0)):
        service.ingest_statistic(
            account_a.api_token,
            timestamp=NOW - timedelta(days=days_ago),
            daily_pl=pl,
            trades_today=2,
            total_balance=balance,
        )
    service.ingest_statistic(
        account_b.api_token,
        timestamp=NOW - timedelta(days=40),
        daily_pl=50.0,
        trades_today=1,
        total_balance=500.0,
    )
    return {"admin": admin, "alice": alice, "a": account_a, "b": account_b}


def _seeded_service() -> GatedService:
    svc = GatedService()
    svc.world = seed_world(svc)
    return svc


@pytest.fixture(scope="session")
def now() -> datetime:
    """The fixed current time seen by every service and controller."""
    return NOW


@pytest.fixture(scope="session")
def clock():
    """Clock callable returning ``now``."""
    return fixed_clock


@pytest.fixture(scope="session")
def make_service():
    """Factory for fresh seeded services, for tests that need several."""
    return _seeded_service


@pytest.fixture
def service():
    """A gated in-memory service seeded with a small world."""
    return _seeded_service()


@pytest.fixture
def user_session(service):
    """Session of the regular user alice."""
    return asyncio.run(service.login("alice", "alicepass")).data


@pytest.fixture
def admin_session(service):
    """Session of the administrator."""
    return asyncio.run(service.login("root", "rootpass")).data


@pytest.fixture
def temp_dir():
    """Create a temporary directory for testing."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)
