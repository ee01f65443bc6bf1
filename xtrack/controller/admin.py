"""Administrator view across all users and accounts."""

import logging
from datetime import datetime
from typing import Callable, Optional

from pydantic import BaseModel, Field

from xtrack.analytics import summary as aggregator
from xtrack.analytics.summary import ChartPoint
from xtrack.analytics.window import check_page_size
from xtrack.controller.coordinator import FetchCoordinator
from xtrack.controller.state import (
    AccountSelected,
    AccountsLoaded,
    DashboardState,
    RefreshRequested,
    SessionEnded,
    StateStore,
)
from xtrack.models import Account, ApiResponse, Session, StatisticRecord, User
from xtrack.services.base import BaseService, guarded

logger = logging.getLogger(__name__)

# The admin analytics view shows the server's default page
ADMIN_PAGE_SIZE = 20
ADMIN_TABLE_LIMIT = 8


class AdminState(BaseModel):
    """User and account listings shown to administrators."""

    users: tuple[User, ...] = Field(default=())
    accounts: tuple[Account, ...] = Field(default=())
    error: Optional[str] = Field(default=None)

    model_config = {"frozen": True}


class AdminController:
    """Lists users and accounts and inspects any account's analytics.

    Inspecting an account reuses the same generation-gated loading as
    the user dashboard, fixed to the "all" window.
    """

    def __init__(
        self,
        service: BaseService,
        session: Optional[Session],
        clock: Callable[[], datetime] = datetime.now,
        page_size: int = ADMIN_PAGE_SIZE,
        table_limit: int = ADMIN_TABLE_LIMIT,
    ):
        check_page_size(page_size)
        self._service = service
        self._session = session
        self.table_limit = table_limit
        self._state = AdminState()
        self._analytics = StateStore()
        self._coordinator = FetchCoordinator(
            service,
            self._analytics,
            token_provider=lambda: self._session.token if self._session else None,
            clock=clock,
            page_size=page_size,
        )

    @property
    def state(self) -> AdminState:
        return self._state

    @property
    def analytics(self) -> DashboardState:
        return self._analytics.state

    @property
    def inspected_account(self) -> Optional[Account]:
        return self._analytics.state.selected_account

    @property
    def chart_series(self) -> list[ChartPoint]:
        return aggregator.chart_series(self._analytics.state.records)

    @property
    def table_rows(self) -> list[StatisticRecord]:
        return aggregator.table_rows(self._analytics.state.records, self.table_limit)

    @property
    def net_profit(self) -> float:
        return aggregator.net_profit(self._analytics.state.records)

    def _token(self) -> Optional[str]:
        if self._session is None or not self._session.is_admin:
            return None
        return self._session.token

    def _fail(self, error: str) -> ApiResponse:
        self._state = self._state.model_copy(update={"error": error})
        return ApiResponse.fail(error)

    # ==================== Listings ====================

    async def load_users(self) -> ApiResponse[list[User]]:
        token = self._token()
        if token is None:
            return self._fail("Admin access required")
        response = await guarded(self._service.get_users(token), "Loading users")
        if not response.success:
            return self._fail(response.error or "Failed to load users")
        self._state = self._state.model_copy(update={"users": tuple(response.data or ()), "error": None})
        return response

    async def load_accounts(self) -> ApiResponse[list[Account]]:
        token = self._token()
        if token is None:
            return self._fail("Admin access required")
        response = await guarded(self._service.get_all_accounts(token), "Loading accounts")
        if not response.success:
            return self._fail(response.error or "Failed to load accounts")
        accounts = tuple(response.data or ())
        self._state = self._state.model_copy(update={"accounts": accounts, "error": None})
        self._analytics.dispatch(AccountsLoaded(accounts=accounts, auto_select=False))
        return response

    # ==================== User management ====================

    async def create_user(self, username: str, password: str, role: str = "user") -> ApiResponse[User]:
        token = self._token()
        if token is None:
            return self._fail("Admin access required")
        response = await guarded(
            self._service.create_user(token, username, password, role), "Creating user",
        )
        if not response.success:
            return self._fail(response.error or "Operation failed")
        logger.info("Created user %s", username)
        await self.load_users()
        return response

    async def update_user(
        self,
        user_id: int,
        username: Optional[str] = None,
        password: Optional[str] = None,
        role: Optional[str] = None,
    ) -> ApiResponse[User]:
        """Update a user; an empty password leaves it unchanged."""
        token = self._token()
        if token is None:
            return self._fail("Admin access required")
        response = await guarded(
            self._service.update_user(token, user_id, username=username, password=password or None, role=role),
            "Updating user",
        )
        if not response.success:
            return self._fail(response.error or "Operation failed")
        await self.load_users()
        return response

    async def delete_user(self, user_id: int) -> ApiResponse[None]:
        token = self._token()
        if token is None:
            return self._fail("Admin access required")
        response = await guarded(self._service.delete_user(token, user_id), "Deleting user")
        if not response.success:
            return self._fail(response.error or "Failed to delete user")
        logger.info("Deleted user %s", user_id)
        await self.load_users()
        return response

    # ==================== Account analytics ====================

    def view_stats(self, account: Account) -> None:
        """Inspect an account; results of a previous inspection are dropped."""
        if all(a.id != account.id for a in self._analytics.state.accounts):
            accounts = self._analytics.state.accounts + (account,)
            self._analytics.dispatch(AccountsLoaded(accounts=accounts, auto_select=False))
        before = self._analytics.state.generation
        state = self._analytics.dispatch(AccountSelected(account_id=account.id))
        if state.generation != before:
            self._coordinator.launch()

    def back(self) -> None:
        """Leave the analytics view, clearing its data immediately."""
        self._analytics.dispatch(AccountSelected(account_id=None))

    def refresh(self) -> None:
        """Reload the inspected account's analytics."""
        before = self._analytics.state.generation
        state = self._analytics.dispatch(RefreshRequested())
        if state.generation != before:
            self._coordinator.launch()

    async def wait(self) -> None:
        await self._coordinator.wait()

    async def close(self) -> None:
        self._session = None
        self._analytics.dispatch(SessionEnded())
        await self._coordinator.close()
