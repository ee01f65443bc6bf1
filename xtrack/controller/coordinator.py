"""Concurrent loading of analytics slices with stale-result discard."""

import asyncio
import logging
from datetime import datetime
from typing import Awaitable, Callable, Optional

from xtrack.analytics.window import ALL_PAGE_SIZE, PagedQuery, check_page_size, resolve
from xtrack.controller.state import (
    OVERALL,
    RECORDS,
    TODAY,
    SliceFailed,
    SliceLoaded,
    StateStore,
)
from xtrack.models import ApiResponse
from xtrack.services.base import BaseService, guarded

logger = logging.getLogger(__name__)

Request = Callable[[], Awaitable[ApiResponse]]


class FetchCoordinator:
    """Loads today-summary, overall-summary and records for the selection.

    ``launch()`` starts one task per slice, each tagged with the state's
    generation at launch time. When a task finishes, the generation is
    read again from the store; if it has moved on, the result belongs to
    a superseded selection and is dropped. Slices are committed
    independently as they arrive.
    """

    def __init__(
        self,
        service: BaseService,
        store: StateStore,
        token_provider: Callable[[], Optional[str]],
        clock: Callable[[], datetime] = datetime.now,
        page_size: int = ALL_PAGE_SIZE,
    ):
        """Initialize the coordinator.

        Args:
            service: Remote data service.
            store: State container the results are dispatched into.
            token_provider: Returns the current session credential.
            clock: Returns the current time, used to resolve date ranges.
            page_size: Page size for the "all" filter.
        """
        check_page_size(page_size)
        self._service = service
        self._store = store
        self._token_provider = token_provider
        self._clock = clock
        self.page_size = page_size
        self._tasks: set[asyncio.Task] = set()

    @property
    def in_flight(self) -> int:
        """Number of requests still running, stale ones included."""
        return len(self._tasks)

    def _requests(self, token: str, account_id: int, filter_range: str) -> dict[str, Request]:
        service = self._service
        query = resolve(filter_range, self._clock(), page_size=self.page_size)
        if isinstance(query, PagedQuery):
            def records():
                return service.get_statistics(token, account_id, query.page, query.page_size)
        else:
            def records():
                return service.get_statistics_range(token, account_id, query.start_date, query.end_date)

        return {
            TODAY: lambda: service.get_today(token, account_id),
            OVERALL: lambda: service.get_overall(token, account_id),
            RECORDS: records,
        }

    def launch(self) -> int:
        """Start loading all slices for the current selection.

        Must be called from a running event loop, right after the
        selection change that minted the current generation.

        Returns:
            The generation the requests are tagged with.
        """
        state = self._store.state
        generation = state.generation
        account_id = state.selection.selected_account_id
        if account_id is None:
            return generation

        token = self._token_provider()
        if not token:
            for slice_name in (TODAY, OVERALL, RECORDS):
                self._store.dispatch(SliceFailed(generation=generation, slice=slice_name, error="Not authenticated"))
            return generation

        requests = self._requests(token, account_id, state.selection.filter_range)
        logger.debug(
            "Loading account %s (%s) under generation %s",
            account_id, state.selection.filter_range, generation,
        )
        for slice_name, request in requests.items():
            task = asyncio.create_task(self._run(slice_name, generation, request))
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)
        return generation

    async def _run(self, slice_name: str, generation: int, request: Request) -> None:
        # Called inside the task; one cancelled before it starts makes no request
        response = await guarded(request(), f"Request for {slice_name}")

        current = self._store.state.generation
        if current != generation:
            logger.debug(
                "Discarding stale %s result (generation %s, current %s)",
                slice_name, generation, current,
            )
            return

        if response.success:
            value = response.data
            if slice_name == RECORDS and value is None:
                value = []
            self._store.dispatch(SliceLoaded(generation=generation, slice=slice_name, value=value))
        else:
            error = response.error or "Request failed"
            logger.warning("Failed to load %s: %s", slice_name, error)
            self._store.dispatch(SliceFailed(generation=generation, slice=slice_name, error=error))

    async def wait(self) -> None:
        """Wait until every launched request has finished."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def close(self) -> None:
        """Cancel outstanding requests."""
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._tasks.clear()
