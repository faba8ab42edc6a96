from .local_store import (
    LOCAL_KEYS,
    InMemoryKeyValueStore,
    JsonFileKeyValueStore,
    KeyValueStore,
    LocalPersistence,
    LocalSnapshot,
)

__all__ = [
    "LOCAL_KEYS",
    "InMemoryKeyValueStore",
    "JsonFileKeyValueStore",
    "KeyValueStore",
    "LocalPersistence",
    "LocalSnapshot",
]
