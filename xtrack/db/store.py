"""SQLite-backed session store for X-Track."""

import json
import logging
import sqlite3
from pathlib import Path
from typing import Optional

from pydantic import ValidationError

from xtrack.models import Session, User

logger = logging.getLogger(__name__)

TOKEN_KEY = "xtrack_token"
USER_KEY = "xtrack_user"


class SessionStore:
    """Persists the current session as two string entries in SQLite.

    The token and the JSON-encoded user are kept under fixed keys so the
    session survives process restarts until it is explicitly cleared.
    """

    REQUIRED_TABLES = ["kv_store"]

    def __init__(self, db_path: Path):
        """Initialize the session store.

        Args:
            db_path: Path to the SQLite database file.
        """
        self.db_path = db_path
        self._ensure_db_dir()
        self._init_schema()

    def _ensure_db_dir(self) -> None:
        """Ensure the database directory exists."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

    def _get_connection(self) -> sqlite3.Connection:
        """Get a database connection."""
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        return conn

    def _init_schema(self) -> None:
        """Initialize database schema on first run."""
        conn = self._get_connection()
        try:
            cursor = conn.cursor()
            cursor.execute("""
                CREATE TABLE IF NOT EXISTS kv_store (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL
                )
            """)
            conn.commit()
        finally:
            conn.close()

    def get_tables(self) -> list[str]:
        """Get list of all tables in the database."""
        conn = self._get_connection()
        try:
            cursor = conn.cursor()
            cursor.execute(
                "SELECT name FROM sqlite_master WHERE type='table' AND name NOT LIKE 'sqlite_%'"
            )
            return [row["name"] for row in cursor.fetchall()]
        finally:
            conn.close()

    # ==================== Raw entries ====================

    def get_item(self, key: str) -> Optional[str]:
        conn = self._get_connection()
        try:
            cursor = conn.cursor()
            cursor.execute("SELECT value FROM kv_store WHERE key = ?", (key,))
            row = cursor.fetchone()
            return row["value"] if row else None
        finally:
            conn.close()

    def set_item(self, key: str, value: str) -> None:
        conn = self._get_connection()
        try:
            cursor = conn.cursor()
            cursor.execute(
                "INSERT OR REPLACE INTO kv_store (key, value) VALUES (?, ?)",
                (key, value),
            )
            conn.commit()
        finally:
            conn.close()

    def remove_item(self, key: str) -> None:
        conn = self._get_connection()
        try:
            cursor = conn.cursor()
            cursor.execute("DELETE FROM kv_store WHERE key = ?", (key,))
            conn.commit()
        finally:
            conn.close()

    def clear(self) -> None:
        """Remove every stored entry."""
        conn = self._get_connection()
        try:
            conn.execute("DELETE FROM kv_store")
            conn.commit()
        finally:
            conn.close()

    # ==================== Session ====================

    def get_session(self) -> Optional[Session]:
        """Load the persisted session.

        Returns:
            The session, or None if nothing is stored. A corrupt user
            entry wipes the store and returns None.
        """
        token = self.get_item(TOKEN_KEY)
        raw_user = self.get_item(USER_KEY)
        if not token or not raw_user:
            return None

        try:
            user = User.model_validate(json.loads(raw_user))
        except (json.JSONDecodeError, ValidationError):
            logger.warning("Discarding corrupt stored session")
            self.clear()
            return None

        return Session(token=token, user=user)

    def set_session(self, session: Session) -> None:
        """Persist a session, replacing any previous one."""
        self.set_item(TOKEN_KEY, session.token)
        self.set_item(USER_KEY, session.user.model_dump_json())

    def clear_session(self) -> None:
        """Forget the persisted session."""
        self.remove_item(TOKEN_KEY)
        self.remove_item(USER_KEY)
