"""Immutable dashboard state, the events that change it, and the reducer.

Every change to analytics state goes through ``reduce(state, event)``,
a total function returning a new ``DashboardState``. ``StateStore``
holds the current value and notifies subscribers after each change.
"""

from typing import Any, Callable, Optional, Union

from pydantic import BaseModel, Field

from xtrack.analytics.window import FilterRange
from xtrack.models import Account, OverallSummary, StatisticRecord, TodaySummary

TODAY = "today"
OVERALL = "overall"
RECORDS = "records"

SLICES: tuple[str, ...] = (TODAY, OVERALL, RECORDS)


class Selection(BaseModel):
    """Which account is selected and which window is shown."""

    selected_account_id: Optional[int] = Field(default=None)
    filter_range: FilterRange = Field(default="all")

    model_config = {"frozen": True}

    @property
    def has_account(self) -> bool:
        return self.selected_account_id is not None


class DashboardState(BaseModel):
    """Snapshot of everything the presentation layer renders.

    ``generation`` increases on every selection change or refresh.
    Responses tagged with an older generation are never applied.
    """

    accounts: tuple[Account, ...] = Field(default=())
    accounts_loaded: bool = Field(default=False)
    selection: Selection = Field(default_factory=Selection)
    generation: int = Field(default=0, ge=0)
    today_summary: Optional[TodaySummary] = Field(default=None)
    overall_summary: Optional[OverallSummary] = Field(default=None)
    records: tuple[StatisticRecord, ...] = Field(default=())
    pending: frozenset[str] = Field(default=frozenset())
    errors: dict[str, str] = Field(default_factory=dict)

    model_config = {"frozen": True}

    @property
    def busy(self) -> bool:
        """True while any request of the current generation is outstanding."""
        return bool(self.pending)

    @property
    def selected_account(self) -> Optional[Account]:
        account_id = self.selection.selected_account_id
        return next((a for a in self.accounts if a.id == account_id), None)


# ==================== Events ====================


class AccountsLoaded(BaseModel):
    """The account list was (re)loaded."""

    accounts: tuple[Account, ...]
    auto_select: bool = True

    model_config = {"frozen": True}


class AccountSelected(BaseModel):
    """The user picked an account, or None to clear the selection."""

    account_id: Optional[int]

    model_config = {"frozen": True}


class FilterChanged(BaseModel):
    filter_range: FilterRange

    model_config = {"frozen": True}


class RefreshRequested(BaseModel):
    model_config = {"frozen": True}


class SliceLoaded(BaseModel):
    """A request of ``generation`` succeeded."""

    generation: int
    slice: str
    value: Any = None

    model_config = {"frozen": True}


class SliceFailed(BaseModel):
    """A request of ``generation`` failed."""

    generation: int
    slice: str
    error: str

    model_config = {"frozen": True}


class AccountCreated(BaseModel):
    account: Account

    model_config = {"frozen": True}


class AccountDeleted(BaseModel):
    account_id: int

    model_config = {"frozen": True}


class AccountReplaced(BaseModel):
    """An account changed remotely (new API token or name)."""

    account: Account

    model_config = {"frozen": True}


class SessionEnded(BaseModel):
    model_config = {"frozen": True}


Event = Union[
    AccountsLoaded,
    AccountSelected,
    FilterChanged,
    RefreshRequested,
    SliceLoaded,
    SliceFailed,
    AccountCreated,
    AccountDeleted,
    AccountReplaced,
    SessionEnded,
]


# ==================== Reducer ====================


def _select(
    state: DashboardState,
    account_id: Optional[int],
    filter_range: Optional[str] = None,
    **changes: Any,
) -> DashboardState:
    """Move to a new selection under a fresh generation.

    Clearing the selection empties every slice immediately. Switching to
    a different account also drops the previous account's slices; a
    filter change or refresh on the same account keeps them until the
    new responses arrive.
    """
    selection = Selection(
        selected_account_id=account_id,
        filter_range=filter_range or state.selection.filter_range,
    )
    update: dict[str, Any] = {
        "selection": selection,
        "generation": state.generation + 1,
        "errors": {},
        "pending": frozenset(SLICES) if account_id is not None else frozenset(),
    }
    if account_id is None or account_id != state.selection.selected_account_id:
        update.update(today_summary=None, overall_summary=None, records=())
    update.update(changes)
    return state.model_copy(update=update)


def _apply_slice(state: DashboardState, event: SliceLoaded) -> DashboardState:
    update: dict[str, Any] = {"pending": state.pending - {event.slice}}
    if event.slice == TODAY:
        update["today_summary"] = event.value
    elif event.slice == OVERALL:
        update["overall_summary"] = event.value
    elif event.slice == RECORDS:
        update["records"] = tuple(event.value or ())
    else:
        return state
    errors = dict(state.errors)
    errors.pop(event.slice, None)
    update["errors"] = errors
    return state.model_copy(update=update)


def reduce(state: DashboardState, event: Event) -> DashboardState:
    """Apply an event to a state.

    Args:
        state: Current state.
        event: Event to apply.

    Returns:
        The next state. The same object is returned when the event
        changes nothing, including stale slice results.
    """
    selected = state.selection.selected_account_id

    if isinstance(event, AccountsLoaded):
        accounts = tuple(event.accounts)
        if event.auto_select and selected is None and accounts:
            return _select(state, accounts[0].id, accounts=accounts, accounts_loaded=True)
        return state.model_copy(update={"accounts": accounts, "accounts_loaded": True})

    if isinstance(event, AccountSelected):
        if event.account_id == selected:
            return state
        return _select(state, event.account_id)

    if isinstance(event, FilterChanged):
        if event.filter_range == state.selection.filter_range:
            return state
        if selected is None:
            return state.model_copy(update={
                "selection": state.selection.model_copy(update={"filter_range": event.filter_range}),
            })
        return _select(state, selected, event.filter_range)

    if isinstance(event, RefreshRequested):
        if selected is None:
            return state
        return _select(state, selected)

    if isinstance(event, SliceLoaded):
        if event.generation != state.generation or selected is None:
            return state
        return _apply_slice(state, event)

    if isinstance(event, SliceFailed):
        if event.generation != state.generation or selected is None or event.slice not in SLICES:
            return state
        return state.model_copy(update={
            "pending": state.pending - {event.slice},
            "errors": {**state.errors, event.slice: event.error},
        })

    if isinstance(event, AccountCreated):
        accounts = state.accounts + (event.account,)
        return _select(state, event.account.id, accounts=accounts)

    if isinstance(event, AccountDeleted):
        accounts = tuple(a for a in state.accounts if a.id != event.account_id)
        if selected != event.account_id:
            return state.model_copy(update={"accounts": accounts})
        next_id = accounts[0].id if accounts else None
        return _select(state, next_id, accounts=accounts)

    if isinstance(event, AccountReplaced):
        accounts = tuple(
            event.account if a.id == event.account.id else a for a in state.accounts
        )
        return state.model_copy(update={"accounts": accounts})

    if isinstance(event, SessionEnded):
        return DashboardState(generation=state.generation + 1)

    return state


Listener = Callable[[DashboardState], None]


class StateStore:
    """Holds the current ``DashboardState`` and publishes changes."""

    def __init__(self, state: Optional[DashboardState] = None):
        self._state = state or DashboardState()
        self._listeners: list[Listener] = []

    @property
    def state(self) -> DashboardState:
        return self._state

    def dispatch(self, event: Event) -> DashboardState:
        """Reduce an event into the current state and notify listeners.

        Listeners are only called when the state actually changed.
        """
        new_state = reduce(self._state, event)
        if new_state is not self._state:
            self._state = new_state
            for listener in list(self._listeners):
                listener(new_state)
        return self._state

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a listener.

        Returns:
            A callable that removes the listener.
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe
