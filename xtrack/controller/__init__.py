"""Analytics state controllers for X-Track."""

from xtrack.controller.admin import AdminController, AdminState
from xtrack.controller.auth import AuthManager
from xtrack.controller.coordinator import FetchCoordinator
from xtrack.controller.dashboard import DashboardController
from xtrack.controller.state import DashboardState, Selection, StateStore, reduce

__all__ = [
    "AdminController",
    "AdminState",
    "AuthManager",
    "DashboardController",
    "DashboardState",
    "FetchCoordinator",
    "Selection",
    "StateStore",
    "reduce",
]
