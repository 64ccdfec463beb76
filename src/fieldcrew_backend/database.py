"""
SQLite persistence for entity records.

``Database`` owns the connection settings shared by every entity kind and
creates missing tables at start-up. ``EntityStore`` is the CRUD gateway for a
single kind; it converts between JSON-shaped payloads and table rows.
"""

from __future__ import annotations

import json
import logging
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, Iterable, Iterator, List, Optional

from .entities import Column, EntityKind
from .errors import PersistenceError
from .utils import ensure_directory, utcnow_iso

logger = logging.getLogger(__name__)

# Default database path
DEFAULT_DB_PATH = Path("data/fieldcrew.db")

# SQLite INTEGER range; larger ids can never match a row
MIN_ROW_ID = -(2**63)
MAX_ROW_ID = 2**63 - 1


def _storable_id(entity_id: int) -> bool:
    return MIN_ROW_ID <= entity_id <= MAX_ROW_ID


def _to_db_value(column: Column, value: Any) -> Any:
    """Serialize a payload value for storage in the given column."""
    if value is None:
        return None
    if column.kind == "boolean" and isinstance(value, (bool, int)):
        return int(bool(value))
    if column.kind == "json":
        return json.dumps(value)
    return value


def _from_db_value(column: Column, value: Any) -> Any:
    """Deserialize a stored value back to its payload form."""
    if value is None:
        return None
    if column.kind == "boolean":
        # Non-numeric values were stored as given
        return bool(value) if isinstance(value, int) else value
    if column.kind == "json":
        return json.loads(value)
    return value


class Database:
    """
    SQLite database shared by all entity stores.

    Thread-safe: every operation opens its own connection; SQLite handles
    concurrent access with WAL mode.
    """

    def __init__(self, db_path: Path = DEFAULT_DB_PATH, timeout: float = 30.0):
        self.db_path = db_path
        self.timeout = timeout
        ensure_directory(db_path.parent)

    @contextmanager
    def connection(self) -> Iterator[sqlite3.Connection]:
        """
        Yield a configured connection, committing on success.

        Raises:
            PersistenceError: If connecting or any statement fails; the
                transaction is rolled back first.
        """
        try:
            conn = sqlite3.connect(str(self.db_path), timeout=self.timeout)
        except sqlite3.Error as exc:
            raise PersistenceError(f"Could not open database {self.db_path}: {exc}") from exc

        conn.row_factory = sqlite3.Row
        try:
            conn.execute("PRAGMA journal_mode=WAL")
            yield conn
            conn.commit()
        except (sqlite3.Error, OverflowError) as exc:
            conn.rollback()
            raise PersistenceError(str(exc)) from exc
        finally:
            conn.close()

    def init_schema(self, kinds: Iterable[EntityKind]) -> None:
        """Create a table for every kind that doesn't have one yet."""
        with self.connection() as conn:
            for kind in kinds:
                columns = ",\n                    ".join(column.ddl() for column in kind.columns)
                conn.execute(f"""
                    CREATE TABLE IF NOT EXISTS {kind.table} (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    {columns},
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                    )
                """)
        logger.info(f"Database schema ready at {self.db_path}")


class EntityStore:
    """
    CRUD gateway for one entity kind.

    Not-found is signalled by ``None`` (or ``False`` for delete); every store
    failure is raised as ``PersistenceError``.
    """

    def __init__(self, database: Database, kind: EntityKind):
        self.database = database
        self.kind = kind
        self._column_list = ", ".join(kind.attribute_names)

    def _values(self, attributes: Dict[str, Any]) -> List[Any]:
        return [_to_db_value(column, attributes.get(column.name)) for column in self.kind.columns]

    def _row_to_dict(self, row: sqlite3.Row) -> Dict[str, Any]:
        """Convert a database row to an entity dictionary."""
        entity: Dict[str, Any] = {"id": row["id"]}
        for column in self.kind.columns:
            entity[column.name] = _from_db_value(column, row[column.name])
        entity["created_at"] = row["created_at"]
        entity["updated_at"] = row["updated_at"]
        return entity

    def _fetch(self, conn: sqlite3.Connection, entity_id: int) -> Optional[Dict[str, Any]]:
        row = conn.execute(
            f"SELECT * FROM {self.kind.table} WHERE id = ?", (entity_id,)
        ).fetchone()
        return self._row_to_dict(row) if row else None

    def create(self, attributes: Dict[str, Any]) -> Dict[str, Any]:
        """
        Insert a new row from the supplied attributes.

        Args:
            attributes: Payload keyed by attribute name; undeclared keys are
                ignored and missing attributes are stored as NULL

        Returns:
            The stored entity including its generated id and timestamps
        """
        now = utcnow_iso()
        placeholders = ", ".join("?" for _ in self.kind.columns)
        with self.database.connection() as conn:
            cursor = conn.execute(
                f"INSERT INTO {self.kind.table} ({self._column_list}, created_at, updated_at) "
                f"VALUES ({placeholders}, ?, ?)",
                [*self._values(attributes), now, now],
            )
            return self._fetch(conn, cursor.lastrowid)  # type: ignore[return-value]

    def get_all(self) -> List[Dict[str, Any]]:
        """Return every row in insertion order."""
        with self.database.connection() as conn:
            rows = conn.execute(f"SELECT * FROM {self.kind.table} ORDER BY id").fetchall()
            return [self._row_to_dict(row) for row in rows]

    def get_by_id(self, entity_id: int) -> Optional[Dict[str, Any]]:
        if not _storable_id(entity_id):
            return None
        with self.database.connection() as conn:
            return self._fetch(conn, entity_id)

    def update(self, entity_id: int, attributes: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """
        Replace every attribute of an existing row and refresh updated_at.

        Returns:
            The row as read back after the write, or None if no row matched
        """
        if not _storable_id(entity_id):
            return None
        assignments = ", ".join(f"{name} = ?" for name in self.kind.attribute_names)
        with self.database.connection() as conn:
            cursor = conn.execute(
                f"UPDATE {self.kind.table} SET {assignments}, updated_at = ? WHERE id = ?",
                [*self._values(attributes), utcnow_iso(), entity_id],
            )
            if cursor.rowcount == 0:
                return None
            return self._fetch(conn, entity_id)

    def delete(self, entity_id: int) -> bool:
        """
        Delete a row.

        Returns:
            True if deleted, False if not found
        """
        if not _storable_id(entity_id):
            return False
        with self.database.connection() as conn:
            cursor = conn.execute(f"DELETE FROM {self.kind.table} WHERE id = ?", (entity_id,))
            return cursor.rowcount > 0
