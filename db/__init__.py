# Motion Meter - DB package
# Persistence for measurement history and app settings.
#
# Modules:
#   connection      - SQLAlchemy engine/session helper and the key_value_store table
#   kv_store        - KeyValueStore capability: in-memory and SQL-backed stores, store errors
#   record_store    - RecordStore: newest-first history of measurements, capped at 20
#   settings_store  - SettingsStore / AppSettings: appSettings object with defaults

from .kv_store import (
    InMemoryKeyValueStore,
    KeyValueStore,
    MalformedStoredData,
    SQLKeyValueStore,
    StoreError,
    StoreReadFailure,
    StoreWriteFailure,
)
from .record_store import RecordStore
from .settings_store import AppSettings, SettingsStore

__all__ = [
    'InMemoryKeyValueStore',
    'KeyValueStore',
    'MalformedStoredData',
    'SQLKeyValueStore',
    'StoreError',
    'StoreReadFailure',
    'StoreWriteFailure',
    'RecordStore',
    'AppSettings',
    'SettingsStore',
]
