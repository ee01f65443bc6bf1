"""Tests for generation-gated loading of analytics slices.

**Feature: xtrack-analytics**
"""

import asyncio

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from xtrack.controller.coordinator import FetchCoordinator
from xtrack.controller.state import (
    OVERALL,
    RECORDS,
    TODAY,
    AccountSelected,
    FilterChanged,
    RefreshRequested,
    StateStore,
)

REQUESTS = ("get_today", "get_overall", "get_statistics")


async def settle(store: StateStore) -> None:
    """Yield to the loop until the current generation has no pending slices."""
    for _ in range(100):
        if not store.state.busy:
            return
        await asyncio.sleep(0)
    raise AssertionError("current generation never settled")


@pytest.fixture(scope="session")
def make_coordinator(clock):
    """Build a coordinator for a signed-in session on the fixed clock."""
    def build(service, session, store):
        return FetchCoordinator(service, store, token_provider=lambda: session.token, clock=clock)

    return build


class TestStaleResultDiscard:
    """
    **Feature: xtrack-analytics, Property 6: Generation Gating**

    *For any* interleaving, a response launched under an older
    generation is never written into state.
    """

    def test_previous_account_response_dropped(self, make_coordinator, service, user_session):
        async def scenario():
            store = StateStore()
            coordinator = make_coordinator(service, user_session, store)
            account_a, account_b = service.world["a"], service.world["b"]

            gates = [service.hold(name, account_a.id) for name in REQUESTS]
            store.dispatch(AccountSelected(account_id=account_a.id))
            coordinator.launch()
            await asyncio.sleep(0)

            store.dispatch(AccountSelected(account_id=account_b.id))
            coordinator.launch()
            await settle(store)
            settled = store.state

            for gate in gates:
                gate.set()
            await coordinator.wait()
            return settled, store.state

        settled, final = asyncio.run(scenario())

        assert final is settled
        assert final.selection.selected_account_id == 2
        assert [r.daily_pl for r in final.records] == [50.0]
        assert final.overall_summary.current_balance == 500.0
        assert final.today_summary.total_records == 0

    @given(order=st.permutations(list(range(6))))
    @settings(max_examples=30, deadline=None)
    def test_any_completion_order_keeps_latest_selection(self, make_service, make_coordinator, order):
        service = make_service()
        world = service.world
        session = asyncio.run(service.login("alice", "alicepass")).data

        async def scenario():
            store = StateStore()
            coordinator = make_coordinator(service, session, store)
            gates = []
            for account in (world["a"], world["b"]):
                gates.extend(service.hold(name, account.id) for name in REQUESTS)
                store.dispatch(AccountSelected(account_id=account.id))
                coordinator.launch()
                await asyncio.sleep(0)

            for index in order:
                gates[index].set()
                await asyncio.sleep(0)
            await coordinator.wait()
            return store.state

        state = asyncio.run(scenario())

        assert state.selection.selected_account_id == world["b"].id
        assert [r.account_id for r in state.records] == [world["b"].id]
        assert state.overall_summary.current_balance == 500.0
        assert not state.busy

    def test_clearing_selection_wins_over_late_responses(self, make_coordinator, service, user_session):
        async def scenario():
            store = StateStore()
            coordinator = make_coordinator(service, user_session, store)
            account_a = service.world["a"]

            gates = [service.hold(name, account_a.id) for name in REQUESTS]
            store.dispatch(AccountSelected(account_id=account_a.id))
            coordinator.launch()
            await asyncio.sleep(0)

            cleared = store.dispatch(AccountSelected(account_id=None))
            for gate in gates:
                gate.set()
            await coordinator.wait()
            return cleared, store.state

        cleared, final = asyncio.run(scenario())

        assert cleared.records == () and cleared.today_summary is None
        assert final is cleared

    def test_double_refresh_discards_first(self, make_coordinator, service, user_session):
        async def scenario():
            store = StateStore()
            coordinator = make_coordinator(service, user_session, store)
            account_a = service.world["a"]

            store.dispatch(AccountSelected(account_id=account_a.id))
            coordinator.launch()
            await coordinator.wait()

            gate = service.hold("get_today", account_a.id)
            store.dispatch(RefreshRequested())
            first = coordinator.launch()
            await asyncio.sleep(0)
            store.dispatch(RefreshRequested())
            second = coordinator.launch()
            await settle(store)

            notified = []
            store.subscribe(notified.append)
            gate.set()
            await coordinator.wait()
            return first, second, notified

        first, second, notified = asyncio.run(scenario())

        assert second == first + 1
        assert notified == []


class TestQueryShaping:
    def test_all_filter_requests_first_page(self, make_coordinator, service, user_session):
        async def scenario():
            store = StateStore()
            coordinator = make_coordinator(service, user_session, store)
            store.dispatch(AccountSelected(account_id=1))
            coordinator.launch()
            await coordinator.wait()

        asyncio.run(scenario())

        assert ("get_statistics", (1, 1, 100)) in service.calls

    def test_filter_change_requests_thirty_day_range(self, make_coordinator, service, user_session):
        async def scenario():
            store = StateStore()
            coordinator = make_coordinator(service, user_session, store)
            gate = service.hold("get_statistics", 1)
            store.dispatch(AccountSelected(account_id=1))
            coordinator.launch()
            await asyncio.sleep(0)

            store.dispatch(FilterChanged(filter_range="30d"))
            coordinator.launch()
            await settle(store)
            settled = store.state
            gate.set()
            await coordinator.wait()
            return settled, store.state

        settled, final = asyncio.run(scenario())

        assert ("get_statistics_range", (1, "2024-02-14", "2024-03-15")) in service.calls
        assert final is settled
        assert len(final.records) == 3


class TestPartialFailure:
    """
    **Feature: xtrack-analytics, Property 7: Independent Slices**

    A failing slice records its error without blocking the others.
    """

    def test_overall_failure_does_not_block_other_slices(self, make_coordinator, service, user_session):
        service.failures["get_overall"] = "Failed to retrieve overall summary"

        async def scenario():
            store = StateStore()
            coordinator = make_coordinator(service, user_session, store)
            store.dispatch(AccountSelected(account_id=1))
            coordinator.launch()
            await coordinator.wait()
            return store.state

        state = asyncio.run(scenario())

        assert state.errors == {OVERALL: "Failed to retrieve overall summary"}
        assert state.overall_summary is None
        assert state.today_summary.total_records == 1
        assert len(state.records) == 3
        assert not state.busy

    def test_raising_service_becomes_slice_error(self, make_coordinator, service, user_session):
        async def explode(token, account_id):
            raise RuntimeError("connection reset")

        service.get_today = explode

        async def scenario():
            store = StateStore()
            coordinator = make_coordinator(service, user_session, store)
            store.dispatch(AccountSelected(account_id=1))
            coordinator.launch()
            await coordinator.wait()
            return store.state

        state = asyncio.run(scenario())

        assert state.errors[TODAY] == "connection reset"
        assert RECORDS not in state.errors

    def test_missing_token_fails_every_slice(self, service):
        async def scenario():
            store = StateStore()
            coordinator = FetchCoordinator(service, store, token_provider=lambda: None)
            store.dispatch(AccountSelected(account_id=1))
            coordinator.launch()
            await coordinator.wait()
            return store.state

        state = asyncio.run(scenario())

        assert set(state.errors) == {TODAY, OVERALL, RECORDS}
        assert [name for name, _ in service.calls if name.startswith("get_")] == []


class TestLifecycle:
    def test_requests_cancelled_before_start_are_never_sent(self, make_coordinator, service, user_session):
        async def scenario():
            store = StateStore()
            coordinator = make_coordinator(service, user_session, store)
            store.dispatch(AccountSelected(account_id=1))
            coordinator.launch()
            await coordinator.close()
            return coordinator

        coordinator = asyncio.run(scenario())

        assert coordinator.in_flight == 0
        assert [name for name, _ in service.calls if name.startswith("get_")] == []

    @pytest.mark.parametrize("page_size", [0, 101, 200])
    def test_out_of_range_page_size_rejected(self, service, page_size):
        with pytest.raises(ValueError):
            FetchCoordinator(service, StateStore(), token_provider=lambda: "tok", page_size=page_size)
