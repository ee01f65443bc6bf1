"""Property-based tests for the dashboard reducer and state store.

**Feature: xtrack-analytics**
"""

from hypothesis import given, settings
from hypothesis import strategies as st

from xtrack.controller.state import (
    RECORDS,
    SLICES,
    TODAY,
    AccountCreated,
    AccountDeleted,
    AccountReplaced,
    AccountSelected,
    AccountsLoaded,
    DashboardState,
    FilterChanged,
    RefreshRequested,
    SessionEnded,
    SliceFailed,
    SliceLoaded,
    StateStore,
    reduce,
)
from xtrack.models import Account, TodaySummary


def _account(account_id: int, token: str = "tok") -> Account:
    return Account(id=account_id, user_id=1, name=f"Account {account_id}", api_token=token)


A, B, C = _account(1), _account(2), _account(3)


def event_strategy():
    ids = st.sampled_from([1, 2, 3])
    return st.one_of(
        st.builds(AccountsLoaded, accounts=st.lists(st.sampled_from([A, B, C]), unique=True).map(tuple)),
        st.builds(AccountSelected, account_id=st.one_of(st.none(), ids)),
        st.builds(FilterChanged, filter_range=st.sampled_from(["all", "7d", "30d"])),
        st.just(RefreshRequested()),
        st.builds(SliceLoaded, generation=st.integers(0, 20), slice=st.sampled_from(SLICES), value=st.none()),
        st.builds(SliceFailed, generation=st.integers(0, 20), slice=st.sampled_from(SLICES), error=st.just("boom")),
        st.builds(AccountCreated, account=st.sampled_from([A, B, C])),
        st.builds(AccountDeleted, account_id=ids),
        st.builds(AccountReplaced, account=st.sampled_from([A, B, C])),
        st.just(SessionEnded()),
    )


class TestReducerTotality:
    """
    **Feature: xtrack-analytics, Property 5: Total State Transitions**

    *For any* sequence of events, the reducer yields a valid state whose
    generation never decreases.
    """

    @given(events=st.lists(event_strategy(), max_size=30))
    @settings(max_examples=100)
    def test_generation_monotonic_and_state_valid(self, events):
        state = DashboardState()
        for event in events:
            next_state = reduce(state, event)
            assert isinstance(next_state, DashboardState)
            assert next_state.generation >= state.generation
            assert next_state.pending <= frozenset(SLICES)
            if not next_state.selection.has_account:
                assert next_state.records == ()
                assert next_state.today_summary is None
                assert next_state.overall_summary is None
            state = next_state

    @given(events=st.lists(event_strategy(), max_size=20), stale=st.integers(min_value=0))
    @settings(max_examples=50)
    def test_stale_slice_results_are_ignored(self, events, stale):
        state = DashboardState()
        for event in events:
            state = reduce(state, event)
        old_generation = stale % (state.generation + 1)
        if old_generation == state.generation:
            return

        event = SliceLoaded(generation=old_generation, slice=TODAY, value=TodaySummary(total_records=9))
        assert reduce(state, event) is state


class TestSelectionTransitions:
    def test_accounts_loaded_auto_selects_first(self):
        state = reduce(DashboardState(), AccountsLoaded(accounts=(A, B)))

        assert state.selection.selected_account_id == 1
        assert state.generation == 1
        assert state.pending == frozenset(SLICES)

    def test_accounts_loaded_keeps_existing_selection(self):
        state = reduce(DashboardState(), AccountSelected(account_id=2))
        state = reduce(state, AccountsLoaded(accounts=(A, B)))

        assert state.selection.selected_account_id == 2
        assert state.generation == 1

    def test_accounts_loaded_empty_list_selects_nothing(self):
        state = reduce(DashboardState(), AccountsLoaded(accounts=()))

        assert state.selection.selected_account_id is None
        assert state.accounts_loaded

    def test_admin_listing_does_not_auto_select(self):
        state = reduce(DashboardState(), AccountsLoaded(accounts=(A, B), auto_select=False))

        assert state.selection.selected_account_id is None

    def test_selecting_same_account_is_noop(self):
        state = reduce(DashboardState(), AccountSelected(account_id=1))

        assert reduce(state, AccountSelected(account_id=1)) is state

    def test_selecting_none_clears_slices(self):
        state = reduce(DashboardState(), AccountSelected(account_id=1))
        state = reduce(state, SliceLoaded(generation=state.generation, slice=RECORDS, value=[]))
        state = reduce(state, SliceLoaded(generation=state.generation, slice=TODAY, value=TodaySummary()))

        cleared = reduce(state, AccountSelected(account_id=None))

        assert cleared.today_summary is None
        assert cleared.records == ()
        assert cleared.pending == frozenset()
        assert cleared.generation == state.generation + 1

    def test_filter_change_without_account_only_stores_filter(self):
        state = reduce(DashboardState(), FilterChanged(filter_range="7d"))

        assert state.selection.filter_range == "7d"
        assert state.generation == 0

    def test_filter_change_keeps_account_and_bumps_generation(self):
        state = reduce(DashboardState(), AccountSelected(account_id=1))
        state = reduce(state, SliceLoaded(generation=state.generation, slice=TODAY, value=TodaySummary()))

        changed = reduce(state, FilterChanged(filter_range="30d"))

        assert changed.selection.selected_account_id == 1
        assert changed.selection.filter_range == "30d"
        assert changed.generation == state.generation + 1
        assert changed.today_summary is not None

    def test_refresh_without_account_is_noop(self):
        state = DashboardState()

        assert reduce(state, RefreshRequested()) is state

    def test_slice_failure_recorded_per_slice(self):
        state = reduce(DashboardState(), AccountSelected(account_id=1))
        state = reduce(state, SliceFailed(generation=state.generation, slice=RECORDS, error="down"))

        assert state.errors == {RECORDS: "down"}
        assert RECORDS not in state.pending
        assert state.busy


class TestMutationTransitions:
    def test_created_account_appended_and_selected(self):
        state = reduce(DashboardState(), AccountsLoaded(accounts=(A,)))
        state = reduce(state, AccountCreated(account=B))

        assert [a.id for a in state.accounts] == [1, 2]
        assert state.selection.selected_account_id == 2

    def test_deleting_selected_reselects_first_remaining(self):
        state = reduce(DashboardState(), AccountsLoaded(accounts=(A, B, C)))
        state = reduce(state, AccountSelected(account_id=2))

        state = reduce(state, AccountDeleted(account_id=2))

        assert [a.id for a in state.accounts] == [1, 3]
        assert state.selection.selected_account_id == 1

    def test_deleting_last_account_clears_selection(self):
        state = reduce(DashboardState(), AccountsLoaded(accounts=(A,)))

        state = reduce(state, AccountDeleted(account_id=1))

        assert state.accounts == ()
        assert state.selection.selected_account_id is None

    def test_deleting_other_account_keeps_selection_and_generation(self):
        state = reduce(DashboardState(), AccountsLoaded(accounts=(A, B)))

        after = reduce(state, AccountDeleted(account_id=2))

        assert after.selection.selected_account_id == 1
        assert after.generation == state.generation

    def test_replaced_account_keeps_position_and_selection(self):
        state = reduce(DashboardState(), AccountsLoaded(accounts=(A, B)))
        rotated = _account(1, token="new-token")

        after = reduce(state, AccountReplaced(account=rotated))

        assert after.accounts[0].api_token == "new-token"
        assert after.selection == state.selection
        assert after.generation == state.generation

    def test_session_end_resets_but_advances_generation(self):
        state = reduce(DashboardState(), AccountsLoaded(accounts=(A, B)))

        after = reduce(state, SessionEnded())

        assert after.accounts == ()
        assert after.generation == state.generation + 1


class TestStateStore:
    def test_listeners_notified_on_change_only(self):
        store = StateStore()
        seen = []
        store.subscribe(seen.append)

        store.dispatch(AccountSelected(account_id=1))
        store.dispatch(AccountSelected(account_id=1))

        assert len(seen) == 1
        assert seen[0].selection.selected_account_id == 1

    def test_unsubscribe(self):
        store = StateStore()
        seen = []
        unsubscribe = store.subscribe(seen.append)
        unsubscribe()

        store.dispatch(AccountSelected(account_id=1))

        assert seen == []
