"""
Storage Backend Module

Table/record persistence seam for the repositories and the audit trail, plus
the in-memory reference backend. Records are plain JSON-compatible dicts;
money travels as Decimal strings.
"""

from abc import ABC, abstractmethod
from typing import Dict, List, Optional, Any
from decimal import Decimal
from datetime import date, datetime
from enum import Enum
import json
import threading
from dataclasses import dataclass, asdict
from contextlib import contextmanager


@dataclass
class StorageRecord:
    """Common identity and timestamps of every persisted entity"""
    id: str
    created_at: datetime
    updated_at: datetime

    def to_dict(self) -> Dict[str, Any]:
        """Flatten to JSON-compatible values (Decimal -> str, dates -> ISO, Enum -> value)"""
        result = asdict(self)
        for key, value in result.items():
            if isinstance(value, Decimal):
                result[key] = str(value)
            elif isinstance(value, (datetime, date)):
                result[key] = value.isoformat()
            elif isinstance(value, Enum):
                result[key] = value.value
        return result


class StorageInterface(ABC):
    """Backend contract used by repositories and the audit trail"""

    @abstractmethod
    def save(self, table: str, record_id: str, data: Dict[str, Any]) -> None:
        """Insert or replace one record"""

    @abstractmethod
    def load(self, table: str, record_id: str) -> Optional[Dict[str, Any]]:
        """One record by ID, or None"""

    @abstractmethod
    def load_all(self, table: str) -> List[Dict[str, Any]]:
        """Every record of a table"""

    @abstractmethod
    def exists(self, table: str, record_id: str) -> bool:
        """Whether a record ID is present"""

    @abstractmethod
    def find(self, table: str, filters: Dict[str, Any]) -> List[Dict[str, Any]]:
        """Records whose fields equal every filter value"""

    @abstractmethod
    def count(self, table: str) -> int:
        """Number of records in a table"""

    def begin_transaction(self) -> None:
        pass

    def commit(self) -> None:
        pass

    def rollback(self) -> None:
        pass

    @contextmanager
    def atomic(self):
        """
        Run a block as one unit: commit on success, roll back on any exception.

        Blocks may nest; an inner block commits into the enclosing one.
        """
        self.begin_transaction()
        try:
            yield
        except Exception:
            self.rollback()
            raise
        self.commit()


class InMemoryStorage(StorageInterface):
    """
    Process-local backend.

    A transaction holds the re-entrant lock from begin to commit/rollback, so
    other threads wait while one thread runs an atomic block. Each nesting
    level keeps its own snapshot for rollback.
    """

    def __init__(self):
        self._tables: Dict[str, Dict[str, Dict[str, Any]]] = {}
        self._lock = threading.RLock()
        self._snapshots: List[str] = []

    @staticmethod
    def _copy(record: Dict[str, Any]) -> Dict[str, Any]:
        return json.loads(json.dumps(record, default=str))

    def _table(self, table: str) -> Dict[str, Dict[str, Any]]:
        return self._tables.setdefault(table, {})

    def save(self, table: str, record_id: str, data: Dict[str, Any]) -> None:
        with self._lock:
            self._table(table)[record_id] = self._copy(data)

    def load(self, table: str, record_id: str) -> Optional[Dict[str, Any]]:
        with self._lock:
            record = self._table(table).get(record_id)
            return self._copy(record) if record else None

    def load_all(self, table: str) -> List[Dict[str, Any]]:
        with self._lock:
            return [self._copy(record) for record in self._table(table).values()]

    def exists(self, table: str, record_id: str) -> bool:
        with self._lock:
            return record_id in self._table(table)

    def find(self, table: str, filters: Dict[str, Any]) -> List[Dict[str, Any]]:
        with self._lock:
            return [
                self._copy(record)
                for record in self._table(table).values()
                if all(record.get(key) == value for key, value in filters.items())
            ]

    def count(self, table: str) -> int:
        with self._lock:
            return len(self._table(table))

    def begin_transaction(self) -> None:
        self._lock.acquire()
        self._snapshots.append(json.dumps(self._tables))

    def commit(self) -> None:
        self._snapshots.pop()
        self._lock.release()

    def rollback(self) -> None:
        self._tables = json.loads(self._snapshots.pop())
        self._lock.release()
