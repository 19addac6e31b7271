"""
Storage Backend Module

Provides abstract storage interface and implementations for in-memory (testing)
and SQLite (persistence). All monetary values stored as Decimal strings.
Records are JSON documents grouped into named tables.
"""

from abc import ABC, abstractmethod
from typing import Dict, Iterable, List, Optional, Any, Tuple, Union
from datetime import datetime, timezone
from pathlib import Path
from contextlib import contextmanager
import sqlite3
import json
import re
import threading

from .errors import PersistenceUnavailableError


_TABLE_NAME = re.compile(r'^[A-Za-z_][A-Za-z0-9_]*$')


def _check_table(table: str) -> str:
    if not _TABLE_NAME.match(table):
        raise ValueError(f"Invalid table name: {table!r}")
    return table


class StorageInterface(ABC):
    """Abstract interface for storage backends"""

    @abstractmethod
    def save(self, table: str, record_id: str, data: Dict[str, Any]) -> None:
        """Save a record to storage"""
        pass

    @abstractmethod
    def load(self, table: str, record_id: str) -> Optional[Dict[str, Any]]:
        """Load a record from storage"""
        pass

    @abstractmethod
    def load_all(self, table: str) -> List[Dict[str, Any]]:
        """Load all records from a table, in insertion order"""
        pass

    @abstractmethod
    def count(self, table: str) -> int:
        """Count records in table"""
        pass

    @abstractmethod
    def clear_table(self, table: str) -> None:
        """Clear all records from a table"""
        pass

    @abstractmethod
    def close(self) -> None:
        """Close storage connection"""
        pass

    def begin_transaction(self) -> None:
        """Start a database transaction (default no-op)"""
        pass

    def commit(self) -> None:
        """Commit current transaction (default no-op)"""
        pass

    def rollback(self) -> None:
        """Rollback current transaction (default no-op)"""
        pass

    @contextmanager
    def atomic(self):
        """Context manager for atomic operations"""
        self.begin_transaction()
        try:
            yield
            self.commit()
        except Exception:
            self.rollback()
            raise

    def replace_table(self, table: str, records: Iterable[Tuple[str, Dict[str, Any]]]) -> None:
        """Replace a table's contents with (record_id, data) pairs, keeping their order"""
        self.clear_table(table)
        for record_id, data in records:
            self.save(table, record_id, data)


class InMemoryStorage(StorageInterface):
    """In-memory storage implementation for testing"""

    def __init__(self):
        self._data: Dict[str, Dict[str, Dict[str, Any]]] = {}
        self._lock = threading.RLock()
        self._backup: Optional[Dict[str, Dict[str, Dict[str, Any]]]] = None

    def _ensure_table(self, table: str) -> None:
        """Ensure table exists"""
        if table not in self._data:
            self._data[table] = {}

    def save(self, table: str, record_id: str, data: Dict[str, Any]) -> None:
        """Save a record to memory"""
        with self._lock:
            self._ensure_table(table)
            # Deep copy to prevent external mutation
            self._data[table][record_id] = json.loads(json.dumps(data, default=str))

    def load(self, table: str, record_id: str) -> Optional[Dict[str, Any]]:
        """Load a record from memory"""
        with self._lock:
            self._ensure_table(table)
            record = self._data[table].get(record_id)
            if record is not None:
                # Deep copy to prevent external mutation
                return json.loads(json.dumps(record))
            return None

    def load_all(self, table: str) -> List[Dict[str, Any]]:
        """Load all records from a table"""
        with self._lock:
            self._ensure_table(table)
            return [json.loads(json.dumps(record)) for record in self._data[table].values()]

    def count(self, table: str) -> int:
        """Count records in table"""
        with self._lock:
            self._ensure_table(table)
            return len(self._data[table])

    def clear_table(self, table: str) -> None:
        """Clear all records from a table"""
        with self._lock:
            self._data[table] = {}

    def begin_transaction(self) -> None:
        """Snapshot current data so rollback can restore it"""
        self._lock.acquire()
        self._backup = json.loads(json.dumps(self._data))

    def commit(self) -> None:
        self._backup = None
        self._lock.release()

    def rollback(self) -> None:
        if self._backup is not None:
            self._data = self._backup
        self._backup = None
        self._lock.release()

    def close(self) -> None:
        """Close storage (no-op for in-memory)"""
        pass


class SQLiteStorage(StorageInterface):
    """SQLite storage implementation for persistence"""

    def __init__(self, db_path: Union[str, Path] = ":memory:"):
        self.db_path = str(db_path)
        self._lock = threading.RLock()
        self._in_transaction = False
        self._tables = set()
        self._connection = None

        try:
            # Set isolation_level to 'DEFERRED' to enable manual transaction control
            self._connection = sqlite3.connect(self.db_path, check_same_thread=False, isolation_level='DEFERRED')
            self._connection.row_factory = sqlite3.Row

            # Enable WAL mode for better concurrent access
            if self.db_path != ":memory:":
                self._connection.execute("PRAGMA journal_mode = WAL")
                self._connection.execute("PRAGMA synchronous = NORMAL")
                self._connection.commit()

            # Reading the schema fails fast on a file that is not a database
            self._connection.execute("SELECT name FROM sqlite_master LIMIT 1").fetchall()
        except sqlite3.Error as e:
            if self._connection is not None:
                self._connection.close()
                self._connection = None
            raise PersistenceUnavailableError(f"Cannot open SQLite database {self.db_path}: {e}") from e

    def _ensure_table(self, table: str) -> None:
        """Ensure table exists with proper schema"""
        table = _check_table(table)
        if table in self._tables:
            return
        with self._lock:
            self._connection.execute(f"""
                CREATE TABLE IF NOT EXISTS {table} (
                    id TEXT PRIMARY KEY,
                    data TEXT NOT NULL,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )
            """)
            if not self._in_transaction:
                self._connection.commit()
            self._tables.add(table)

    def save(self, table: str, record_id: str, data: Dict[str, Any]) -> None:
        """Save a record to SQLite"""
        with self._lock:
            self._ensure_table(table)

            now = datetime.now(timezone.utc).isoformat()
            data_json = json.dumps(data, default=str)

            # Upsert keeps the original row (and its position) for updates
            self._connection.execute(f"""
                INSERT INTO {table} (id, data, created_at, updated_at)
                VALUES (?, ?, ?, ?)
                ON CONFLICT(id) DO UPDATE SET
                    data = excluded.data,
                    updated_at = excluded.updated_at
            """, (record_id, data_json, now, now))

            # Only commit if not in transaction
            if not self._in_transaction:
                self._connection.commit()

    def load(self, table: str, record_id: str) -> Optional[Dict[str, Any]]:
        """Load a record from SQLite"""
        with self._lock:
            self._ensure_table(table)
            cursor = self._connection.execute(f"""
                SELECT data FROM {table} WHERE id = ?
            """, (record_id,))
            row = cursor.fetchone()
            if row:
                return json.loads(row['data'])
            return None

    def load_all(self, table: str) -> List[Dict[str, Any]]:
        """Load all records from a table"""
        with self._lock:
            self._ensure_table(table)
            cursor = self._connection.execute(f"""
                SELECT data FROM {table} ORDER BY rowid
            """)
            return [json.loads(row['data']) for row in cursor.fetchall()]

    def count(self, table: str) -> int:
        """Count records in table"""
        with self._lock:
            self._ensure_table(table)
            cursor = self._connection.execute(f"""
                SELECT COUNT(*) as count FROM {table}
            """)
            return cursor.fetchone()['count']

    def clear_table(self, table: str) -> None:
        """Clear all records from a table"""
        with self._lock:
            self._ensure_table(table)
            self._connection.execute(f"DELETE FROM {table}")

            # Only commit if not in transaction
            if not self._in_transaction:
                self._connection.commit()

    def begin_transaction(self) -> None:
        """Start a database transaction"""
        self._lock.acquire()
        if not self._in_transaction:
            # SQLite with isolation_level='DEFERRED' automatically starts transactions
            # We just need to track the state
            self._in_transaction = True

    def commit(self) -> None:
        """Commit current transaction"""
        try:
            if self._in_transaction:
                self._connection.commit()
                self._in_transaction = False
        finally:
            self._lock.release()

    def rollback(self) -> None:
        """Rollback current transaction"""
        try:
            if self._in_transaction:
                self._connection.rollback()
                self._in_transaction = False
                # Tables created inside the rolled-back transaction are gone
                self._tables.clear()
        finally:
            self._lock.release()

    def close(self) -> None:
        """Close SQLite connection"""
        with self._lock:
            if self._connection:
                self._connection.close()
                self._connection = None
