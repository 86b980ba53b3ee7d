"""Memory package for corpus persistence."""

from memory.kv_store import KeyValueStore, InMemoryKeyValueStore, SQLiteKeyValueStore
from memory.corpus_store import CorpusStore, DEFAULT_STORAGE_KEY

__all__ = [
    "KeyValueStore",
    "InMemoryKeyValueStore",
    "SQLiteKeyValueStore",
    "CorpusStore",
    "DEFAULT_STORAGE_KEY",
]
