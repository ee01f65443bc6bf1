"""In-memory implementation of the remote data service.

Backs the CLI's demo mode and the test suite. It keeps users, accounts
and statistic records in process memory and applies the same access
rules and envelope conventions as the hosted API.
"""

import asyncio
import hashlib
import math
import random
import secrets
from datetime import date, datetime, time, timedelta
from typing import Callable, Optional

from xtrack.models import (
    Account,
    ApiResponse,
    AuthResponse,
    OverallSummary,
    PaginationMeta,
    StatisticRecord,
    TodaySummary,
    User,
)
from xtrack.services.base import BaseService

MAX_PAGE_SIZE = 100
DEFAULT_PAGE_SIZE = 20


def _hash_password(password: str) -> str:
    return hashlib.sha256(password.encode("utf-8")).hexdigest()


class InMemoryService(BaseService):
    """Offline data service for demos and tests.

    Simulates the hosted API entirely in memory, including per-user
    access checks and optional network latency.
    """

    def __init__(
        self,
        latency: float = 0.0,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        """Initialize the in-memory service.

        Args:
            latency: Seconds to sleep before answering each request.
            clock: Callable returning the current time.
        """
        self.latency = latency
        self._clock = clock or datetime.now
        self._users: dict[int, User] = {}
        self._passwords: dict[int, str] = {}
        self._accounts: dict[int, Account] = {}
        self._statistics: dict[int, list[StatisticRecord]] = {}
        self._sessions: dict[str, int] = {}
        self._next_id = {"user": 1, "account": 1, "statistic": 1}
        self.calls: list[tuple[str, tuple]] = []

    def _allocate(self, kind: str) -> int:
        next_id = self._next_id[kind]
        self._next_id[kind] = next_id + 1
        return next_id

    async def _simulate(self, name: str, *args) -> None:
        self.calls.append((name, args))
        if self.latency > 0:
            await asyncio.sleep(self.latency)
        else:
            await asyncio.sleep(0)

    def _authorize(self, token: str, admin: bool = False) -> Optional[User]:
        user_id = self._sessions.get(token)
        if user_id is None or user_id not in self._users:
            return None
        user = self._users[user_id]
        if admin and user.role != "admin":
            return None
        return user

    def _account_for(self, token: str, account_id: int) -> tuple[Optional[Account], Optional[str]]:
        user = self._authorize(token)
        if user is None:
            return None, "Unauthorized"
        account = self._accounts.get(account_id)
        if account is None:
            return None, "Account not found"
        if user.role != "admin" and account.user_id != user.id:
            return None, "Access denied"
        return account, None

    def _new_token(self) -> str:
        while True:
            token = secrets.token_hex(32)
            if all(a.api_token != token for a in self._accounts.values()):
                return token

    # ==================== Seeding ====================

    def add_user(self, username: str, password: str, role: str = "user") -> User:
        """Register a user directly, bypassing authorization."""
        now = self._clock()
        user = User(
            id=self._allocate("user"),
            username=username,
            role=role,
            created_at=now,
            updated_at=now,
        )
        self._users[user.id] = user
        self._passwords[user.id] = _hash_password(password)
        return user

    def add_account(self, user_id: int, name: str) -> Account:
        """Register an account directly, bypassing authorization."""
        now = self._clock()
        account = Account(
            id=self._allocate("account"),
            user_id=user_id,
            name=name,
            api_token=self._new_token(),
            created_at=now,
            updated_at=now,
        )
        self._accounts[account.id] = account
        self._statistics[account.id] = []
        return account

    def ingest_statistic(
        self,
        api_token: str,
        timestamp: datetime,
        daily_pl: float,
        trades_today: int,
        total_balance: float,
    ) -> ApiResponse[StatisticRecord]:
        """Record a snapshot the way an external data producer would.

        Args:
            api_token: The account's ingestion token.
            timestamp: Snapshot time.
            daily_pl: Profit/loss for the day.
            trades_today: Trades executed so far today.
            total_balance: Current balance.
        """
        account = next((a for a in self._accounts.values() if a.api_token == api_token), None)
        if account is None:
            return ApiResponse.fail("Invalid API token")
        if trades_today < 0 or total_balance < 0:
            return ApiResponse.fail("Invalid request")
        record = StatisticRecord(
            id=self._allocate("statistic"),
            account_id=account.id,
            timestamp=timestamp,
            daily_pl=daily_pl,
            trades_today=trades_today,
            total_balance=total_balance,
            created_at=self._clock(),
        )
        self._statistics[account.id].append(record)
        return ApiResponse.ok(record, message="Statistic ingested successfully")

    def seed_history(self, account: Account, days: int = 45, start_balance: float = 10000.0) -> None:
        """Generate one snapshot per day ending today for an account."""
        now = self._clock()
        balance = start_balance
        for offset in range(days, -1, -1):
            day = now - timedelta(days=offset)
            if offset:
                day = day.replace(hour=16, minute=0, second=0, microsecond=0)
            daily_pl = round(random.uniform(-250.0, 300.0), 2)
            balance = max(0.0, round(balance + daily_pl, 2))
            self.ingest_statistic(
                account.api_token,
                timestamp=day,
                daily_pl=daily_pl,
                trades_today=random.randint(0, 12),
                total_balance=balance,
            )

    # ==================== Auth ====================

    async def login(self, username: str, password: str) -> ApiResponse[AuthResponse]:
        await self._simulate("login", username)
        user = next((u for u in self._users.values() if u.username == username), None)
        if user is None or self._passwords[user.id] != _hash_password(password):
            return ApiResponse.fail("Invalid credentials")
        token = secrets.token_urlsafe(32)
        self._sessions[token] = user.id
        return ApiResponse.ok(AuthResponse(token=token, user=user), message="Login successful")

    # ==================== Users ====================

    async def get_users(self, token: str) -> ApiResponse[list[User]]:
        await self._simulate("get_users")
        if self._authorize(token, admin=True) is None:
            return ApiResponse.fail("Admin access required")
        return ApiResponse.ok(list(self._users.values()))

    async def create_user(
        self, token: str, username: str, password: str, role: str
    ) -> ApiResponse[User]:
        await self._simulate("create_user", username, role)
        if self._authorize(token, admin=True) is None:
            return ApiResponse.fail("Admin access required")
        if role not in ("admin", "user"):
            return ApiResponse.fail("Invalid request: role must be admin or user")
        if len(password) < 6:
            return ApiResponse.fail("Invalid request: password must be at least 6 characters")
        if any(u.username == username for u in self._users.values()):
            return ApiResponse.fail("username already exists")
        return ApiResponse.ok(self.add_user(username, password, role), message="User created successfully")

    async def update_user(
        self,
        token: str,
        user_id: int,
        username: Optional[str] = None,
        password: Optional[str] = None,
        role: Optional[str] = None,
    ) -> ApiResponse[User]:
        await self._simulate("update_user", user_id)
        if self._authorize(token, admin=True) is None:
            return ApiResponse.fail("Admin access required")
        user = self._users.get(user_id)
        if user is None:
            return ApiResponse.fail("User not found")
        if role and role not in ("admin", "user"):
            return ApiResponse.fail("Invalid request: role must be admin or user")
        if password:
            if len(password) < 6:
                return ApiResponse.fail("Invalid request: password must be at least 6 characters")
            self._passwords[user_id] = _hash_password(password)
        updated = user.model_copy(update={
            "username": username or user.username,
            "role": role or user.role,
            "updated_at": self._clock(),
        })
        self._users[user_id] = updated
        return ApiResponse.ok(updated, message="User updated successfully")

    async def delete_user(self, token: str, user_id: int) -> ApiResponse[None]:
        await self._simulate("delete_user", user_id)
        if self._authorize(token, admin=True) is None:
            return ApiResponse.fail("Admin access required")
        if self._users.pop(user_id, None) is None:
            return ApiResponse.fail("User not found")
        self._passwords.pop(user_id, None)
        for account_id in [a.id for a in self._accounts.values() if a.user_id == user_id]:
            self._accounts.pop(account_id)
            self._statistics.pop(account_id, None)
        return ApiResponse.ok(message="User deleted successfully")

    # ==================== Accounts ====================

    async def get_all_accounts(self, token: str) -> ApiResponse[list[Account]]:
        await self._simulate("get_all_accounts")
        if self._authorize(token, admin=True) is None:
            return ApiResponse.fail("Admin access required")
        return ApiResponse.ok([
            a.model_copy(update={"user": self._users.get(a.user_id)})
            for a in self._accounts.values()
        ])

    async def get_my_accounts(self, token: str) -> ApiResponse[list[Account]]:
        await self._simulate("get_my_accounts")
        user = self._authorize(token)
        if user is None:
            return ApiResponse.fail("Unauthorized")
        return ApiResponse.ok([a for a in self._accounts.values() if a.user_id == user.id])

    async def create_account(self, token: str, name: str, user_id: int) -> ApiResponse[Account]:
        await self._simulate("create_account", name, user_id)
        user = self._authorize(token)
        if user is None:
            return ApiResponse.fail("Unauthorized")
        if user.role != "admin" and user.id != user_id:
            return ApiResponse.fail("You can only create accounts for yourself")
        if user_id not in self._users:
            return ApiResponse.fail("user not found")
        if not name.strip():
            return ApiResponse.fail("Invalid request: name is required")
        return ApiResponse.ok(self.add_account(user_id, name), message="Account created successfully")

    async def update_account(self, token: str, account_id: int, name: str) -> ApiResponse[Account]:
        await self._simulate("update_account", account_id, name)
        account, error = self._account_for(token, account_id)
        if error:
            return ApiResponse.fail(error)
        updated = account.model_copy(update={
            "name": name or account.name,
            "updated_at": self._clock(),
        })
        self._accounts[account_id] = updated
        return ApiResponse.ok(updated, message="Account updated successfully")

    async def delete_account(self, token: str, account_id: int) -> ApiResponse[None]:
        await self._simulate("delete_account", account_id)
        _, error = self._account_for(token, account_id)
        if error:
            return ApiResponse.fail(error)
        self._accounts.pop(account_id)
        self._statistics.pop(account_id, None)
        return ApiResponse.ok(message="Account deleted successfully")

    async def regenerate_token(self, token: str, account_id: int) -> ApiResponse[Account]:
        await self._simulate("regenerate_token", account_id)
        account, error = self._account_for(token, account_id)
        if error:
            return ApiResponse.fail(error)
        updated = account.model_copy(update={
            "api_token": self._new_token(),
            "updated_at": self._clock(),
        })
        self._accounts[account_id] = updated
        return ApiResponse.ok(updated, message="Token regenerated successfully")

    # ==================== Statistics ====================

    def _newest_first(self, account_id: int) -> list[StatisticRecord]:
        return sorted(self._statistics.get(account_id, []), key=lambda s: s.timestamp, reverse=True)

    async def get_today(self, token: str, account_id: int) -> ApiResponse[TodaySummary]:
        await self._simulate("get_today", account_id)
        _, error = self._account_for(token, account_id)
        if error:
            return ApiResponse.fail(error)
        today = self._clock().date()
        records = [s for s in self._newest_first(account_id) if s.timestamp.date() == today]
        if not records:
            return ApiResponse.ok(TodaySummary())
        latest = records[0]
        return ApiResponse.ok(TodaySummary(
            total_records=len(records),
            latest_balance=latest.total_balance,
            daily_pl=latest.daily_pl,
            trades_today=latest.trades_today,
            latest_update=latest.timestamp,
            statistics=records,
        ))

    async def get_overall(self, token: str, account_id: int) -> ApiResponse[OverallSummary]:
        await self._simulate("get_overall", account_id)
        _, error = self._account_for(token, account_id)
        if error:
            return ApiResponse.fail(error)
        records = self._newest_first(account_id)
        if not records:
            return ApiResponse.ok(OverallSummary())
        latest = records[0]
        return ApiResponse.ok(OverallSummary(
            has_data=True,
            current_balance=latest.total_balance,
            latest_pl=latest.daily_pl,
            latest_trades=latest.trades_today,
            latest_update=latest.timestamp,
        ))

    @staticmethod
    def _paginate(
        records: list[StatisticRecord], page: int, page_size: int
    ) -> ApiResponse[list[StatisticRecord]]:
        page = max(page, 1)
        if page_size < 1 or page_size > MAX_PAGE_SIZE:
            page_size = DEFAULT_PAGE_SIZE
        offset = (page - 1) * page_size
        pagination = PaginationMeta(
            page=page,
            page_size=page_size,
            total_items=len(records),
            total_pages=math.ceil(len(records) / page_size),
        )
        return ApiResponse.ok(
            records[offset:offset + page_size],
            message="Statistics retrieved successfully",
            pagination=pagination,
        )

    async def get_statistics(
        self, token: str, account_id: int, page: int = 1, page_size: int = DEFAULT_PAGE_SIZE
    ) -> ApiResponse[list[StatisticRecord]]:
        await self._simulate("get_statistics", account_id, page, page_size)
        _, error = self._account_for(token, account_id)
        if error:
            return ApiResponse.fail(error)
        return self._paginate(self._newest_first(account_id), page, page_size)

    async def get_statistics_range(
        self, token: str, account_id: int, start_date: str, end_date: str
    ) -> ApiResponse[list[StatisticRecord]]:
        await self._simulate("get_statistics_range", account_id, start_date, end_date)
        _, error = self._account_for(token, account_id)
        if error:
            return ApiResponse.fail(error)
        try:
            start = datetime.combine(date.fromisoformat(start_date), time.min)
            end = datetime.combine(date.fromisoformat(end_date), time.max)
        except ValueError:
            return ApiResponse.fail("Invalid date format, use YYYY-MM-DD")
        records = [s for s in self._newest_first(account_id) if start <= s.timestamp <= end]
        return self._paginate(records, 1, MAX_PAGE_SIZE)


def build_demo_service(clock: Optional[Callable[[], datetime]] = None) -> InMemoryService:
    """Create an in-memory service seeded with demo users and history.

    Users ``demo``/``demo123`` and ``admin``/``admin123`` are created,
    with two accounts for the demo user.
    """
    service = InMemoryService(latency=0.05, clock=clock)
    service.add_user("admin", "admin123", role="admin")
    demo = service.add_user("demo", "demo123")
    for name, balance in (("Main Portfolio", 25000.0), ("Scalping Bot", 5000.0)):
        account = service.add_account(demo.id, name)
        service.seed_history(account, start_balance=balance)
    return service
