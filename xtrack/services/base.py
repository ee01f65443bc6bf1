"""Base remote data service interface for X-Track."""

import logging
from abc import ABC, abstractmethod
from typing import Awaitable, Optional

from xtrack.models import (
    NETWORK_ERROR,
    Account,
    ApiResponse,
    AuthResponse,
    OverallSummary,
    StatisticRecord,
    TodaySummary,
    User,
)

logger = logging.getLogger(__name__)


async def guarded(request: Awaitable[ApiResponse], action: str) -> ApiResponse:
    """Await a service call, turning any exception into a failure envelope.

    Args:
        request: The pending service call.
        action: Name of the operation, used in the log message.
    """
    try:
        return await request
    except Exception as e:
        logger.exception("%s raised", action)
        return ApiResponse.fail(str(e) or NETWORK_ERROR)


class BaseService(ABC):
    """Abstract base class for remote data service implementations.

    All implementations (HTTP, in-memory demo, etc.) must inherit from
    this class and implement all abstract methods. Every method resolves
    to an ``ApiResponse`` envelope; implementations must not raise for
    transport or application failures.
    """

    # ==================== Auth ====================

    @abstractmethod
    async def login(self, username: str, password: str) -> ApiResponse[AuthResponse]:
        """Authenticate a user.

        Args:
            username: Login name.
            password: Plain text password.

        Returns:
            Envelope with the token and user on success.
        """

    # ==================== Users (admin) ====================

    @abstractmethod
    async def get_users(self, token: str) -> ApiResponse[list[User]]:
        """List every user."""

    @abstractmethod
    async def create_user(
        self, token: str, username: str, password: str, role: str
    ) -> ApiResponse[User]:
        """Create a user."""

    @abstractmethod
    async def update_user(
        self,
        token: str,
        user_id: int,
        username: Optional[str] = None,
        password: Optional[str] = None,
        role: Optional[str] = None,
    ) -> ApiResponse[User]:
        """Update a user. Fields left as None are unchanged."""

    @abstractmethod
    async def delete_user(self, token: str, user_id: int) -> ApiResponse[None]:
        """Delete a user."""

    # ==================== Accounts ====================

    @abstractmethod
    async def get_all_accounts(self, token: str) -> ApiResponse[list[Account]]:
        """List every account with its owner (admin only)."""

    @abstractmethod
    async def get_my_accounts(self, token: str) -> ApiResponse[list[Account]]:
        """List the accounts owned by the authenticated user."""

    @abstractmethod
    async def create_account(self, token: str, name: str, user_id: int) -> ApiResponse[Account]:
        """Create an account.

        Args:
            token: Session credential.
            name: Account display name.
            user_id: Owner of the new account.

        Returns:
            Envelope with the created account, including its API token.
        """

    @abstractmethod
    async def update_account(self, token: str, account_id: int, name: str) -> ApiResponse[Account]:
        """Rename an account."""

    @abstractmethod
    async def delete_account(self, token: str, account_id: int) -> ApiResponse[None]:
        """Delete an account and its statistics."""

    @abstractmethod
    async def regenerate_token(self, token: str, account_id: int) -> ApiResponse[Account]:
        """Replace an account's API token.

        Returns:
            Envelope with the account carrying its new token.
        """

    # ==================== Statistics ====================

    @abstractmethod
    async def get_today(self, token: str, account_id: int) -> ApiResponse[TodaySummary]:
        """Get today's summary for an account."""

    @abstractmethod
    async def get_overall(self, token: str, account_id: int) -> ApiResponse[OverallSummary]:
        """Get the all-time summary for an account."""

    @abstractmethod
    async def get_statistics(
        self, token: str, account_id: int, page: int = 1, page_size: int = 20
    ) -> ApiResponse[list[StatisticRecord]]:
        """Get a page of records, newest first.

        Args:
            token: Session credential.
            account_id: Account to read.
            page: 1-based page number.
            page_size: Records per page (1-100).
        """

    @abstractmethod
    async def get_statistics_range(
        self, token: str, account_id: int, start_date: str, end_date: str
    ) -> ApiResponse[list[StatisticRecord]]:
        """Get records between two calendar days.

        Args:
            token: Session credential.
            account_id: Account to read.
            start_date: First day, ``YYYY-MM-DD``, inclusive.
            end_date: Last day, ``YYYY-MM-DD``, inclusive.
        """

    async def aclose(self) -> None:
        """Release any transport resources."""
