"""SQLite storage for TripSplit groups."""

import sqlite3
from datetime import datetime
from pathlib import Path
from typing import Protocol

from pydantic import TypeAdapter, ValidationError

from .exceptions import StorageError
from .models import Group

GROUPS_KEY = "groups"

_groups_adapter = TypeAdapter(list[Group])


class GroupRepository(Protocol):
    """Anything that can load and save the full group collection."""

    def load(self) -> list[Group]: ...

    def save(self, groups: list[Group]) -> None: ...


class Database:
    """SQLite key-value store holding the group collection."""

    def __init__(self, db_path: Path):
        """Initialize database connection."""
        self.db_path = db_path
        self.conn = sqlite3.connect(str(db_path))
        self.conn.row_factory = sqlite3.Row
        self._init_schema()

    def _init_schema(self):
        """Initialize database schema."""
        cursor = self.conn.cursor()
        cursor.execute(
            """
            CREATE TABLE IF NOT EXISTS store (
                key TEXT PRIMARY KEY,
                value TEXT NOT NULL,
                updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        """
        )
        self.conn.commit()

    def close(self):
        """Close database connection."""
        self.conn.close()

    # ========================================================================
    # Key-value operations
    # ========================================================================

    def get_config(self, key: str) -> str | None:
        """Get a stored value by key."""
        cursor = self.conn.cursor()
        cursor.execute("SELECT value FROM store WHERE key = ?", (key,))
        row = cursor.fetchone()
        return str(row["value"]) if row else None

    def set_config(self, key: str, value: str):
        """Set a stored value."""
        cursor = self.conn.cursor()
        cursor.execute(
            """
            INSERT INTO store (key, value, updated_at)
            VALUES (?, ?, ?)
            ON CONFLICT(key) DO UPDATE SET
                value = excluded.value,
                updated_at = excluded.updated_at
            """,
            (key, value, datetime.now().isoformat()),
        )
        self.conn.commit()

    # ========================================================================
    # Group collection operations
    # ========================================================================

    def load(self) -> list[Group]:
        """Load every stored group, validating it into domain models."""
        raw = self.get_config(GROUPS_KEY)
        if raw is None:
            return []

        try:
            return _groups_adapter.validate_json(raw)
        except ValidationError as e:
            raise StorageError(
                f"Stored groups in {self.db_path} are not valid: {e}"
            ) from e

    def save(self, groups: list[Group]) -> None:
        """Replace the stored group collection."""
        payload = _groups_adapter.dump_json(groups, by_alias=True)
        self.set_config(GROUPS_KEY, payload.decode())
