"""Remote data service implementations for X-Track."""

from xtrack.services.base import BaseService, guarded
from xtrack.services.http import HttpService
from xtrack.services.memory import InMemoryService, build_demo_service

__all__ = [
    "BaseService",
    "guarded",
    "HttpService",
    "InMemoryService",
    "build_demo_service",
]
