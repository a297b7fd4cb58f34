"""
Key-value store capability
String values under opaque string keys, in memory or in a SQL table
"""

import logging
import threading
from abc import ABC, abstractmethod
from typing import Dict, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from .connection import DEFAULT_DB_URL, KeyValueEntry, get_db_connection

logger = logging.getLogger(__name__)


class StoreError(Exception):
    """Base class for persistence failures"""


class StoreReadFailure(StoreError):
    """The backing store could not be read"""


class StoreWriteFailure(StoreError):
    """The backing store could not be written"""


class MalformedStoredData(StoreReadFailure):
    """A stored value could not be parsed"""


class KeyValueStore(ABC):
    """get / set / remove on string keys"""

    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        """Return the stored value, or None if the key is absent."""

    @abstractmethod
    def set(self, key: str, value: str):
        """Store value under key, replacing any previous value."""

    @abstractmethod
    def remove(self, key: str):
        """Delete key; removing an absent key is a no-op."""


class InMemoryKeyValueStore(KeyValueStore):
    """Dict-backed store; contents live as long as the object."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._lock = threading.Lock()
        self._data: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            return self._data.get(key)

    def set(self, key: str, value: str):
        if not isinstance(value, str):
            raise StoreWriteFailure(f"Value for '{key}' must be a string")
        with self._lock:
            self._data[key] = value

    def remove(self, key: str):
        with self._lock:
            self._data.pop(key, None)

    def keys(self):
        with self._lock:
            return sorted(self._data)

    def __repr__(self):
        return f"<InMemoryKeyValueStore(keys={len(self._data)})>"


class SQLKeyValueStore(KeyValueStore):
    """
    Key-value store backed by the key_value_store table

    Every call runs in its own transaction: writes commit immediately and
    roll back on failure. SQLAlchemy errors surface as StoreReadFailure or
    StoreWriteFailure.

    Usage:
        store = SQLKeyValueStore.connect('sqlite:///motion_meter.db')
        store.set('measurements', '[]')
        store.close()
    """

    def __init__(self, session: Session):
        self.session = session
        self._lock = threading.Lock()

    @classmethod
    def connect(cls, url: str = DEFAULT_DB_URL) -> 'SQLKeyValueStore':
        try:
            _, session = get_db_connection(url)
        except SQLAlchemyError as e:
            logger.error(f"✗ Failed to open key-value store at {url}: {e}")
            raise StoreReadFailure(str(e)) from e
        return cls(session)

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            try:
                entry = self.session.get(KeyValueEntry, key)
                return entry.value if entry is not None else None
            except SQLAlchemyError as e:
                self.session.rollback()
                logger.error(f"Error reading key '{key}': {e}")
                raise StoreReadFailure(str(e)) from e

    def set(self, key: str, value: str):
        if not isinstance(value, str):
            raise StoreWriteFailure(f"Value for '{key}' must be a string")
        with self._lock:
            try:
                entry = self.session.get(KeyValueEntry, key)
                if entry is None:
                    self.session.add(KeyValueEntry(key=key, value=value))
                else:
                    entry.value = value
                self.session.commit()
            except SQLAlchemyError as e:
                self.session.rollback()
                logger.error(f"✗ Failed to write key '{key}': {e}")
                raise StoreWriteFailure(str(e)) from e

    def remove(self, key: str):
        with self._lock:
            try:
                entry = self.session.get(KeyValueEntry, key)
                if entry is not None:
                    self.session.delete(entry)
                    self.session.commit()
            except SQLAlchemyError as e:
                self.session.rollback()
                logger.error(f"✗ Failed to remove key '{key}': {e}")
                raise StoreWriteFailure(str(e)) from e

    def close(self):
        with self._lock:
            self.session.close()

    def __repr__(self):
        return f"<SQLKeyValueStore(bind={self.session.bind})>"
