# clinicbook/db/store.py
from __future__ import annotations

import json
import threading
from abc import ABC, abstractmethod
from contextlib import contextmanager
from typing import Any, Iterable, Iterator, Optional

from sqlalchemy import String, Text, delete, text
from sqlalchemy.orm import Mapped, Session, mapped_column, sessionmaker

from clinicbook.db.base import Base, ReprMixin, TimestampMixin

# Logical keys of the persisted state
USERS = "users"
APPOINTMENTS = "appointments"
CURRENT_SESSION = "current_session"
INITIALIZED = "initialized"


class KVEntry(TimestampMixin, ReprMixin, Base):
    """
    One named value of the store. One row = one whole collection,
    serialised as JSON text.
    """
    __tablename__ = "kv_entries"

    key: Mapped[str] = mapped_column(String(64), primary_key=True)
    value: Mapped[str] = mapped_column(Text, nullable=False)


class KeyValueStore(ABC):
    """
    Named JSON values with whole-value replacement.

    Callers read-modify-write entire collections. Any read that decides a
    later write (slot free, email unused) must run inside `transaction()`,
    since FastAPI serves sync routes from a threadpool.
    """

    def __init__(self) -> None:
        self._lock = threading.RLock()

    @contextmanager
    def transaction(self) -> Iterator["KeyValueStore"]:
        """
        Serialise a read-modify-write against every other writer of this
        store. Re-entrant, so services and repositories can both take it.
        """
        with self._lock:
            yield self

    @abstractmethod
    def get_value(self, key: str) -> Optional[Any]:
        """Return the decoded value, or None when the key is absent."""

    @abstractmethod
    def set_value(self, key: str, value: Any) -> None:
        ...

    @abstractmethod
    def delete(self, key: str) -> None:
        ...

    @abstractmethod
    def clear(self) -> None:
        ...

    def ping(self) -> bool:
        return True

    def get_collection(self, name: str) -> list[dict]:
        # First run: absent key reads as an empty collection
        value = self.get_value(name)
        return list(value) if isinstance(value, list) else []

    def set_collection(self, name: str, records: Iterable[dict]) -> None:
        self.set_value(name, list(records))


class MemoryStore(KeyValueStore):
    """Dict-backed store. Values still go through JSON so callers never share references."""

    def __init__(self) -> None:
        super().__init__()
        self._data: dict[str, str] = {}

    def get_value(self, key: str) -> Optional[Any]:
        raw = self._data.get(key)
        return json.loads(raw) if raw is not None else None

    def set_value(self, key: str, value: Any) -> None:
        self._data[key] = json.dumps(value)

    def delete(self, key: str) -> None:
        self._data.pop(key, None)

    def clear(self) -> None:
        self._data.clear()


class SqlStore(KeyValueStore):
    """Durable store over a single SQLAlchemy table."""

    def __init__(self, session_factory: sessionmaker[Session]) -> None:
        super().__init__()
        self._session_factory = session_factory

    def get_value(self, key: str) -> Optional[Any]:
        with self._session_factory() as session:
            row = session.get(KVEntry, key)
            return json.loads(row.value) if row is not None else None

    def set_value(self, key: str, value: Any) -> None:
        payload = json.dumps(value)
        with self._session_factory() as session:
            row = session.get(KVEntry, key)
            if row is None:
                session.add(KVEntry(key=key, value=payload))
            else:
                row.value = payload
            session.commit()

    def delete(self, key: str) -> None:
        with self._session_factory() as session:
            session.execute(delete(KVEntry).where(KVEntry.key == key))
            session.commit()

    def clear(self) -> None:
        with self._session_factory() as session:
            session.execute(delete(KVEntry))
            session.commit()

    def ping(self) -> bool:
        with self._session_factory() as session:
            session.execute(text("SELECT 1"))
        return True


__all__ = [
    "USERS",
    "APPOINTMENTS",
    "CURRENT_SESSION",
    "INITIALIZED",
    "KVEntry",
    "KeyValueStore",
    "MemoryStore",
    "SqlStore",
]
