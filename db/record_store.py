"""
Measurement history persistence
Bounded, newest-first list of records stored as one JSON array
"""

import json
import logging
from typing import List, Tuple

from motion_meter.measurement.models import Record
from .kv_store import (
    KeyValueStore,
    MalformedStoredData,
    StoreReadFailure,
    StoreWriteFailure,
)

logger = logging.getLogger(__name__)

MEASUREMENTS_KEY = 'measurements'
MAX_HISTORY = 20


class RecordStore:
    """
    Record history on top of a key-value store

    Every mutating call re-reads the stored array, changes it and writes the
    whole array back; nothing is cached between calls. Unreadable or
    malformed history is treated as empty (fail-open).

    Usage:
        store = RecordStore(kv_store)
        store.append(record)
        records = store.list()
    """

    def __init__(self, kv_store: KeyValueStore, max_records: int = MAX_HISTORY,
                 key: str = MEASUREMENTS_KEY):
        if max_records < 1:
            raise ValueError(f"max_records must be >= 1, got {max_records}")
        self.kv_store = kv_store
        self.max_records = max_records
        self.key = key

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def append(self, record: Record):
        """
        Insert record at the front and keep only the newest max_records.

        Raises:
            StoreWriteFailure: if the history cannot be written back
        """
        records = self.list()
        records.insert(0, record)
        dropped = len(records) - self.max_records
        self._write(records[:self.max_records])
        logger.info(f"✓ Saved measurement {record.id} ({record.distance_cm:.1f} cm, {record.accuracy.value})")
        if dropped > 0:
            logger.debug(f"History capped at {self.max_records}, dropped {dropped} oldest")

    def list(self) -> List[Record]:
        """
        Current history, newest first.

        Returns:
            List of records; empty if nothing is stored or the stored value
            cannot be read or parsed.
        """
        try:
            records, skipped = self._read()
        except StoreReadFailure as e:
            logger.warning(f"⚠ Could not read measurement history, treating as empty: {e}")
            return []
        if skipped:
            logger.warning(f"⚠ Skipped {skipped} malformed measurement entries")
        return records

    def get(self, record_id: str):
        """Return the record with matching id, or None."""
        for record in self.list():
            if record.id == record_id:
                return record
        return None

    def delete(self, record_id: str):
        """
        Remove the record with matching id. No-op if absent.

        Raises:
            StoreWriteFailure: if the history cannot be written back
        """
        records = self.list()
        remaining = [r for r in records if r.id != record_id]
        if len(remaining) == len(records):
            logger.debug(f"Delete of unknown measurement {record_id} ignored")
            return
        self._write(remaining)
        logger.info(f"✓ Deleted measurement {record_id}")

    def clear_all(self):
        """
        Empty the history entirely.

        Raises:
            StoreWriteFailure: if the key cannot be removed
        """
        try:
            self.kv_store.remove(self.key)
        except StoreWriteFailure:
            raise
        except Exception as e:
            raise StoreWriteFailure(str(e)) from e
        logger.info("✓ Cleared all measurements")

    def __len__(self):
        return len(self.list())

    # ------------------------------------------------------------------
    # Private: serialization
    # ------------------------------------------------------------------

    def _read(self) -> Tuple[List[Record], int]:
        try:
            raw = self.kv_store.get(self.key)
        except StoreReadFailure:
            raise
        except Exception as e:
            raise StoreReadFailure(str(e)) from e

        if raw is None:
            return [], 0

        try:
            data = json.loads(raw)
        except (TypeError, ValueError) as e:
            raise MalformedStoredData(f"'{self.key}' is not valid JSON: {e}") from e
        if not isinstance(data, list):
            raise MalformedStoredData(f"'{self.key}' is not a JSON array")

        records = []
        skipped = 0
        for item in data:
            try:
                records.append(Record.from_dict(item))
            except ValueError as e:
                skipped += 1
                logger.debug(f"Malformed measurement entry: {e}")
        return records, skipped

    def _write(self, records: List[Record]):
        payload = json.dumps([r.to_dict() for r in records], ensure_ascii=False)
        try:
            self.kv_store.set(self.key, payload)
        except StoreWriteFailure:
            raise
        except Exception as e:
            logger.error(f"✗ Failed to write measurement history: {e}")
            raise StoreWriteFailure(str(e)) from e

    def __repr__(self):
        return f"<RecordStore(key={self.key!r}, max={self.max_records})>"
