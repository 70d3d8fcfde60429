from clearcase.storage.incident_store import IncidentStore, SqliteIncidentStore
from clearcase.storage.kv_store import JsonFileStore, KeyValueStore, MemoryStore

__all__ = [
    "IncidentStore",
    "JsonFileStore",
    "KeyValueStore",
    "MemoryStore",
    "SqliteIncidentStore",
]
