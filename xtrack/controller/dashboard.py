"""Account dashboard controller: selection state machine and mutations."""

import logging
from datetime import datetime
from typing import Callable, Optional

from xtrack.analytics import summary as aggregator
from xtrack.analytics.summary import DEFAULT_TABLE_LIMIT, ChartPoint, WindowSummary
from xtrack.analytics.window import ALL_PAGE_SIZE, FILTER_RANGES, check_page_size
from xtrack.controller.coordinator import FetchCoordinator
from xtrack.controller.state import (
    AccountCreated,
    AccountDeleted,
    AccountReplaced,
    AccountsLoaded,
    AccountSelected,
    DashboardState,
    Event,
    FilterChanged,
    Listener,
    RefreshRequested,
    Selection,
    SessionEnded,
    StateStore,
)
from xtrack.models import Account, ApiResponse, Session, StatisticRecord
from xtrack.services.base import BaseService, guarded

logger = logging.getLogger(__name__)

NOT_AUTHENTICATED = "Not authenticated"


class DashboardController:
    """Drives the analytics view of a signed-in user.

    Selection changes (picking an account, changing the filter,
    refreshing) are synchronous: they update state immediately and start
    the slice requests in the background. Mutations await the remote
    call, then apply the outcome to state. Remote failures are returned
    as ``ApiResponse`` values and never raised.
    """

    def __init__(
        self,
        service: BaseService,
        session: Optional[Session],
        clock: Callable[[], datetime] = datetime.now,
        page_size: int = ALL_PAGE_SIZE,
        table_limit: int = DEFAULT_TABLE_LIMIT,
        default_filter: str = "all",
    ):
        """Initialize the controller.

        Args:
            service: Remote data service.
            session: Authenticated session owned by this controller.
            clock: Returns the current time.
            page_size: Page size of the "all" window.
            table_limit: Rows shown in the history table.
            default_filter: Filter selected before the user picks one.

        Raises:
            ValueError: If the filter or page size is out of range.
        """
        self._service = service
        self._session = session
        self.table_limit = table_limit
        if default_filter not in FILTER_RANGES:
            raise ValueError(f"Invalid filter: {default_filter}. Must be one of {list(FILTER_RANGES)}")
        check_page_size(page_size)
        self._store = StateStore(DashboardState(selection=Selection(filter_range=default_filter)))
        self._coordinator = FetchCoordinator(
            service,
            self._store,
            token_provider=lambda: self._session.token if self._session else None,
            clock=clock,
            page_size=page_size,
        )

    # ==================== State ====================

    @property
    def session(self) -> Optional[Session]:
        return self._session

    @property
    def state(self) -> DashboardState:
        return self._store.state

    @property
    def accounts(self) -> tuple[Account, ...]:
        return self._store.state.accounts

    @property
    def selected_account(self) -> Optional[Account]:
        return self._store.state.selected_account

    @property
    def busy(self) -> bool:
        return self._store.state.busy

    @property
    def net_profit(self) -> float:
        return aggregator.net_profit(self._store.state.records)

    @property
    def chart_series(self) -> list[ChartPoint]:
        return aggregator.chart_series(self._store.state.records)

    @property
    def table_rows(self) -> list[StatisticRecord]:
        return aggregator.table_rows(self._store.state.records, self.table_limit)

    @property
    def summary(self) -> WindowSummary:
        return aggregator.summarize(self._store.state.records)

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Call ``listener`` with every new state; returns an unsubscribe callable."""
        return self._store.subscribe(listener)

    def _dispatch(self, event: Event) -> DashboardState:
        """Apply an event and start loading if it minted a new generation."""
        before = self._store.state.generation
        state = self._store.dispatch(event)
        if state.generation != before and state.selection.has_account:
            self._coordinator.launch()
        return state

    # ==================== Selection ====================

    def select_account(self, account_id: Optional[int]) -> None:
        """Select an account, or clear the selection with None.

        Clearing empties every slice before returning.
        """
        self._dispatch(AccountSelected(account_id=account_id))

    def set_filter(self, filter_range: str) -> None:
        """Change the time window and reload the selected account.

        Raises:
            ValueError: If the filter is not one of "all", "7d", "30d".
        """
        if filter_range not in FILTER_RANGES:
            raise ValueError(f"Invalid filter: {filter_range}. Must be one of {list(FILTER_RANGES)}")
        self._dispatch(FilterChanged(filter_range=filter_range))

    def refresh(self) -> None:
        """Reload every slice of the current selection."""
        self._dispatch(RefreshRequested())

    async def wait(self) -> None:
        """Wait for all outstanding slice requests."""
        await self._coordinator.wait()

    # ==================== Mutations ====================

    async def load_accounts(self, auto_select: bool = True) -> ApiResponse[list[Account]]:
        """Fetch the user's accounts.

        Args:
            auto_select: Select the first account when none is selected,
                which starts loading its analytics. Pass False when only
                the list is needed.
        """
        if self._session is None:
            return ApiResponse.fail(NOT_AUTHENTICATED)
        response = await guarded(self._service.get_my_accounts(self._session.token), "Loading accounts")
        if response.success:
            self._dispatch(AccountsLoaded(accounts=tuple(response.data or ()), auto_select=auto_select))
        else:
            logger.warning("Failed to load accounts: %s", response.error)
        return response

    async def create_account(self, name: str, owner_id: Optional[int] = None) -> ApiResponse[Account]:
        """Create an account and select it.

        Args:
            name: Account name.
            owner_id: Owner; defaults to the signed-in user.
        """
        if self._session is None:
            return ApiResponse.fail(NOT_AUTHENTICATED)
        owner = owner_id if owner_id is not None else self._session.user_id
        response = await guarded(
            self._service.create_account(self._session.token, name, owner), "Creating account",
        )
        if response.success and response.data is not None:
            logger.info("Created account %s (%s)", response.data.id, response.data.name)
            self._dispatch(AccountCreated(account=response.data))
        return response

    async def delete_account(self, account_id: int) -> ApiResponse[None]:
        """Delete an account.

        The caller is responsible for confirming with the user first.
        If the deleted account was selected, the first remaining account
        is selected instead.
        """
        if self._session is None:
            return ApiResponse.fail(NOT_AUTHENTICATED)
        response = await guarded(
            self._service.delete_account(self._session.token, account_id), "Deleting account",
        )
        if response.success:
            logger.info("Deleted account %s", account_id)
            self._dispatch(AccountDeleted(account_id=account_id))
        return response

    async def rotate_token(self, account_id: int) -> ApiResponse[Account]:
        """Regenerate an account's API token and store the new value."""
        if self._session is None:
            return ApiResponse.fail(NOT_AUTHENTICATED)
        response = await guarded(
            self._service.regenerate_token(self._session.token, account_id), "Rotating token",
        )
        if response.success and response.data is not None:
            logger.info("Rotated API token of account %s", account_id)
            self._dispatch(AccountReplaced(account=response.data))
        return response

    async def rename_account(self, account_id: int, name: str) -> ApiResponse[Account]:
        """Rename an account in place."""
        if self._session is None:
            return ApiResponse.fail(NOT_AUTHENTICATED)
        response = await guarded(
            self._service.update_account(self._session.token, account_id, name), "Renaming account",
        )
        if response.success and response.data is not None:
            self._dispatch(AccountReplaced(account=response.data))
        return response

    # ==================== Lifecycle ====================

    async def close(self) -> None:
        """Dispose of the controller: drop the session and cancel requests."""
        self._session = None
        self._store.dispatch(SessionEnded())
        await self._coordinator.close()
