"""Persistence for X-Track."""

from xtrack.db.store import SessionStore

__all__ = ["SessionStore"]
