"""HTTP implementation of the remote data service using httpx."""

import logging
from typing import Any, Optional

import httpx
from pydantic import ValidationError

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
from xtrack.services.base import BaseService

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://xtrack-be.vercel.app/api"
DEFAULT_TIMEOUT = 15.0


class HttpService(BaseService):
    """Remote data service speaking JSON over HTTP.

    Every request resolves to an ``ApiResponse``. Transport errors,
    timeouts and unparseable bodies are folded into a failure envelope
    so callers never see an exception from this class.
    """

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = DEFAULT_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize the HTTP service.

        Args:
            base_url: API root, e.g. ``https://host/api``.
            timeout: Request timeout in seconds.
            transport: Optional httpx transport (used by tests).
        """
        self.base_url = base_url.rstrip("/")
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=httpx.Timeout(timeout),
            transport=transport,
        )

    @staticmethod
    def _headers(token: Optional[str] = None) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        return headers

    async def _request(
        self,
        method: str,
        endpoint: str,
        data_type: Any,
        token: Optional[str] = None,
        json: Optional[dict[str, Any]] = None,
        params: Optional[dict[str, Any]] = None,
    ) -> ApiResponse:
        """Send a request and parse the envelope.

        Args:
            method: HTTP method.
            endpoint: Path relative to the base URL.
            data_type: Type of the ``data`` field of the envelope.
            token: Bearer credential, if any.
            json: Request body.
            params: Query string parameters.

        Returns:
            Parsed envelope, or a failure envelope on any error.
        """
        try:
            response = await self._client.request(
                method,
                endpoint,
                headers=self._headers(token),
                json=json,
                params=params,
            )
        except httpx.HTTPError as e:
            logger.warning("%s %s failed: %s", method, endpoint, e)
            return ApiResponse.fail(NETWORK_ERROR)

        try:
            payload = response.json()
        except ValueError:
            logger.warning("%s %s returned non-JSON body (HTTP %s)", method, endpoint, response.status_code)
            if response.is_success:
                return ApiResponse.fail(NETWORK_ERROR)
            return ApiResponse.fail(f"HTTP {response.status_code}")

        if not isinstance(payload, dict):
            return ApiResponse.fail(NETWORK_ERROR)

        if not payload.get("success", False):
            error = payload.get("error") or payload.get("message") or f"HTTP {response.status_code}"
            return ApiResponse.fail(error)

        try:
            return ApiResponse[data_type].model_validate(payload)
        except ValidationError as e:
            logger.warning("%s %s returned an unexpected payload: %s", method, endpoint, e)
            return ApiResponse.fail("Invalid response from server")

    async def aclose(self) -> None:
        await self._client.aclose()

    # ==================== Auth ====================

    async def login(self, username: str, password: str) -> ApiResponse[AuthResponse]:
        return await self._request(
            "POST", "/auth/login", AuthResponse,
            json={"username": username, "password": password},
        )

    # ==================== Users ====================

    async def get_users(self, token: str) -> ApiResponse[list[User]]:
        return await self._request("GET", "/users", list[User], token=token)

    async def create_user(
        self, token: str, username: str, password: str, role: str
    ) -> ApiResponse[User]:
        return await self._request(
            "POST", "/users", User, token=token,
            json={"username": username, "password": password, "role": role},
        )

    async def update_user(
        self,
        token: str,
        user_id: int,
        username: Optional[str] = None,
        password: Optional[str] = None,
        role: Optional[str] = None,
    ) -> ApiResponse[User]:
        body = {"username": username, "password": password, "role": role}
        return await self._request(
            "PUT", f"/users/{user_id}", User, token=token,
            json={k: v for k, v in body.items() if v},
        )

    async def delete_user(self, token: str, user_id: int) -> ApiResponse[None]:
        return await self._request("DELETE", f"/users/{user_id}", None, token=token)

    # ==================== Accounts ====================

    async def get_all_accounts(self, token: str) -> ApiResponse[list[Account]]:
        return await self._request("GET", "/accounts", list[Account], token=token)

    async def get_my_accounts(self, token: str) -> ApiResponse[list[Account]]:
        return await self._request("GET", "/accounts/me", list[Account], token=token)

    async def create_account(self, token: str, name: str, user_id: int) -> ApiResponse[Account]:
        return await self._request(
            "POST", "/accounts", Account, token=token,
            json={"name": name, "user_id": user_id},
        )

    async def update_account(self, token: str, account_id: int, name: str) -> ApiResponse[Account]:
        return await self._request(
            "PUT", f"/accounts/{account_id}", Account, token=token,
            json={"name": name},
        )

    async def delete_account(self, token: str, account_id: int) -> ApiResponse[None]:
        return await self._request("DELETE", f"/accounts/{account_id}", None, token=token)

    async def regenerate_token(self, token: str, account_id: int) -> ApiResponse[Account]:
        return await self._request(
            "POST", f"/accounts/{account_id}/regenerate-token", Account, token=token,
        )

    # ==================== Statistics ====================

    async def get_today(self, token: str, account_id: int) -> ApiResponse[TodaySummary]:
        return await self._request(
            "GET", f"/statistics/{account_id}/today", TodaySummary, token=token,
        )

    async def get_overall(self, token: str, account_id: int) -> ApiResponse[OverallSummary]:
        return await self._request(
            "GET", f"/statistics/{account_id}/summary", OverallSummary, token=token,
        )

    async def get_statistics(
        self, token: str, account_id: int, page: int = 1, page_size: int = 20
    ) -> ApiResponse[list[StatisticRecord]]:
        return await self._request(
            "GET", f"/statistics/{account_id}", list[StatisticRecord], token=token,
            params={"page": page, "page_size": page_size},
        )

    async def get_statistics_range(
        self, token: str, account_id: int, start_date: str, end_date: str
    ) -> ApiResponse[list[StatisticRecord]]:
        return await self._request(
            "GET", f"/statistics/{account_id}/range", list[StatisticRecord], token=token,
            params={"start_date": start_date, "end_date": end_date},
        )
