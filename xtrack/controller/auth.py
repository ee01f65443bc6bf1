"""Session lifecycle: restore on start, login, logout."""

import logging
from typing import Optional

from xtrack.db.store import SessionStore
from xtrack.models import ApiResponse, AuthResponse, Session
from xtrack.services.base import BaseService, guarded

logger = logging.getLogger(__name__)


class AuthManager:
    """Owns the current session and keeps the session store in sync."""

    def __init__(self, service: BaseService, store: SessionStore):
        """Initialize the auth manager.

        Args:
            service: Remote data service used to authenticate.
            store: Persistent session store.
        """
        self._service = service
        self._store = store
        self._session: Optional[Session] = None

    @property
    def session(self) -> Optional[Session]:
        return self._session

    def is_authenticated(self) -> bool:
        return self._session is not None

    def restore(self) -> Optional[Session]:
        """Load a previously persisted session, if any."""
        self._session = self._store.get_session()
        return self._session

    async def login(self, username: str, password: str) -> ApiResponse[AuthResponse]:
        """Authenticate and persist the resulting session.

        Returns:
            The service's envelope; the stored session is only replaced
            on success.
        """
        response = await guarded(self._service.login(username, password), "Login")
        if response.success and response.data is not None:
            self._session = response.data
            self._store.set_session(response.data)
            logger.info("Logged in as %s (%s)", response.data.user.username, response.data.user.role)
        return response

    def logout(self) -> None:
        """Drop the session from memory and storage."""
        if self._session is not None:
            logger.info("Logged out %s", self._session.user.username)
        self._session = None
        self._store.clear_session()
