"""
Storage Backend Module

Provides the snapshot storage interface and implementations for in-memory
(testing), flat files (default) and SQLite. Each store persists itself as one
named snapshot that is rewritten in full on every change; per-account reports
are stored as plain text next to the snapshots.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, Optional, Union
from datetime import datetime, timezone
import os
import sqlite3
import json
import tempfile
import threading
from pathlib import Path

from .errors import PersistenceError


class SnapshotStorage(ABC):
    """Abstract interface for snapshot storage backends"""

    @abstractmethod
    def write_snapshot(self, name: str, payload: Any) -> None:
        """Replace the named snapshot with a JSON-serializable payload"""
        pass

    @abstractmethod
    def read_snapshot(self, name: str) -> Optional[Any]:
        """Load the named snapshot, None if it was never written"""
        pass

    @abstractmethod
    def write_report(self, name: str, text: str) -> None:
        """Replace the named plain-text report"""
        pass

    @abstractmethod
    def read_report(self, name: str) -> Optional[str]:
        """Load the named report, None if it was never written"""
        pass

    @abstractmethod
    def close(self) -> None:
        """Close storage connection"""
        pass


class InMemoryStorage(SnapshotStorage):
    """In-memory storage implementation for testing"""

    def __init__(self):
        self._snapshots: Dict[str, str] = {}
        self._reports: Dict[str, str] = {}
        self._lock = threading.RLock()

    def write_snapshot(self, name: str, payload: Any) -> None:
        with self._lock:
            # Serialize to prevent external mutation and catch unencodable payloads
            try:
                self._snapshots[name] = json.dumps(payload)
            except (TypeError, ValueError) as e:
                raise PersistenceError(f"Cannot serialize snapshot '{name}': {e}", e)

    def read_snapshot(self, name: str) -> Optional[Any]:
        with self._lock:
            data = self._snapshots.get(name)
            if data is None:
                return None
            return json.loads(data)

    def write_report(self, name: str, text: str) -> None:
        with self._lock:
            self._reports[name] = text

    def read_report(self, name: str) -> Optional[str]:
        with self._lock:
            return self._reports.get(name)

    def close(self) -> None:
        """Close storage (no-op for in-memory)"""
        pass


class FileStorage(SnapshotStorage):
    """
    Flat-file storage

    Snapshots live at <base_dir>/<name>.json and reports at
    <base_dir>/<reports_dir>/<name>.txt. Every write goes to a temporary file
    in the target directory and is then renamed over the old file, so a failed
    write leaves the previous snapshot intact.
    """

    def __init__(self, base_dir: Union[str, Path] = ".", reports_dir: str = "transactions"):
        self.base_dir = Path(base_dir)
        self.reports_path = self.base_dir / reports_dir
        self._lock = threading.RLock()

    def snapshot_path(self, name: str) -> Path:
        return self.base_dir / f"{name}.json"

    def report_path(self, name: str) -> Path:
        return self.reports_path / f"{name}.txt"

    def _atomic_write(self, path: Path, text: str) -> None:
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=str(path.parent), prefix=f".{path.name}.", suffix=".tmp")
        except OSError as e:
            raise PersistenceError(f"Cannot write {path}: {e}", e)

        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(text)
                handle.flush()
                os.fsync(handle.fileno())
            os.replace(tmp_name, path)
        except OSError as e:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise PersistenceError(f"Cannot write {path}: {e}", e)

    def write_snapshot(self, name: str, payload: Any) -> None:
        try:
            text = json.dumps(payload, indent=2)
        except (TypeError, ValueError) as e:
            raise PersistenceError(f"Cannot serialize snapshot '{name}': {e}", e)
        with self._lock:
            self._atomic_write(self.snapshot_path(name), text)

    def read_snapshot(self, name: str) -> Optional[Any]:
        path = self.snapshot_path(name)
        with self._lock:
            try:
                with open(path, "r", encoding="utf-8") as handle:
                    return json.load(handle)
            except FileNotFoundError:
                return None
            except (OSError, ValueError) as e:
                raise PersistenceError(f"Cannot read {path}: {e}", e)

    def write_report(self, name: str, text: str) -> None:
        with self._lock:
            self._atomic_write(self.report_path(name), text)

    def read_report(self, name: str) -> Optional[str]:
        path = self.report_path(name)
        with self._lock:
            try:
                with open(path, "r", encoding="utf-8") as handle:
                    return handle.read()
            except FileNotFoundError:
                return None
            except OSError as e:
                raise PersistenceError(f"Cannot read {path}: {e}", e)

    def close(self) -> None:
        """Close storage (no-op for flat files)"""
        pass


class SQLiteStorage(SnapshotStorage):
    """SQLite storage implementation for persistence"""

    def __init__(self, db_path: Union[str, Path] = ":memory:"):
        self.db_path = str(db_path)
        try:
            self._connection = sqlite3.connect(self.db_path, check_same_thread=False)
        except sqlite3.Error as e:
            raise PersistenceError(f"Cannot open database {self.db_path}: {e}", e)
        self._connection.row_factory = sqlite3.Row
        self._lock = threading.RLock()
        self._ensure_tables()

    def _ensure_tables(self) -> None:
        """Ensure snapshot and report tables exist"""
        with self._lock:
            self._connection.execute("""
                CREATE TABLE IF NOT EXISTS snapshots (
                    name TEXT PRIMARY KEY,
                    data TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )
            """)
            self._connection.execute("""
                CREATE TABLE IF NOT EXISTS reports (
                    name TEXT PRIMARY KEY,
                    body TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )
            """)
            self._connection.commit()

    def _replace(self, table: str, column: str, name: str, value: str) -> None:
        now = datetime.now(timezone.utc).isoformat()
        with self._lock:
            if self._connection is None:
                raise PersistenceError(f"Database {self.db_path} is closed")
            try:
                self._connection.execute(f"""
                    INSERT OR REPLACE INTO {table} (name, {column}, updated_at)
                    VALUES (?, ?, ?)
                """, (name, value, now))
                self._connection.commit()
            except sqlite3.Error as e:
                self._connection.rollback()
                raise PersistenceError(f"Cannot write {table}/{name}: {e}", e)

    def _select(self, table: str, column: str, name: str) -> Optional[str]:
        with self._lock:
            if self._connection is None:
                raise PersistenceError(f"Database {self.db_path} is closed")
            try:
                cursor = self._connection.execute(f"""
                    SELECT {column} FROM {table} WHERE name = ?
                """, (name,))
                row = cursor.fetchone()
            except sqlite3.Error as e:
                raise PersistenceError(f"Cannot read {table}/{name}: {e}", e)
            if row:
                return row[column]
            return None

    def write_snapshot(self, name: str, payload: Any) -> None:
        try:
            data_json = json.dumps(payload)
        except (TypeError, ValueError) as e:
            raise PersistenceError(f"Cannot serialize snapshot '{name}': {e}", e)
        self._replace("snapshots", "data", name, data_json)

    def read_snapshot(self, name: str) -> Optional[Any]:
        data = self._select("snapshots", "data", name)
        if data is None:
            return None
        try:
            return json.loads(data)
        except ValueError as e:
            raise PersistenceError(f"Corrupt snapshot '{name}': {e}", e)

    def write_report(self, name: str, text: str) -> None:
        self._replace("reports", "body", name, text)

    def read_report(self, name: str) -> Optional[str]:
        return self._select("reports", "body", name)

    def close(self) -> None:
        """Close SQLite connection"""
        with self._lock:
            if self._connection:
                self._connection.close()
                self._connection = None


def create_storage(config) -> SnapshotStorage:
    """Build the storage backend named by config.storage_backend"""
    backend = config.storage_backend.lower()

    if backend == "memory":
        return InMemoryStorage()
    if backend == "file":
        return FileStorage(config.data_dir, reports_dir=config.reports_dir)
    if backend == "sqlite":
        db_path = config.sqlite_path
        if db_path != ":memory:" and not os.path.isabs(db_path):
            db_path = os.path.join(config.data_dir, db_path)
        return SQLiteStorage(db_path)

    raise ValueError(f"Unknown storage backend: {config.storage_backend}")
