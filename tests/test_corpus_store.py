"""Tests for the Corpus Store and its key-value capability."""

import json

import pytest

from clerk.error_handling import CorpusStoreError
from clerk.models import DEFAULT_TAG
from memory.corpus_store import DEFAULT_STORAGE_KEY, CorpusStore
from memory.kv_store import InMemoryKeyValueStore, SQLiteKeyValueStore
from tests.conftest import FailingWriteStore


class CountingStore(InMemoryKeyValueStore):
    """In-memory store that counts writes."""

    def __init__(self, initial=None):
        super().__init__(initial)
        self.writes = 0

    def set(self, key, value):
        self.writes += 1
        super().set(key, value)


# =============================================================================
# Loading
# =============================================================================


def test_load_missing_slot_is_empty(corpus_store):
    assert corpus_store.load() == []
    assert len(corpus_store) == 0


@pytest.mark.parametrize("blob", [
    "not json at all",
    "{\"id\": \"a1\"}",
    "[{\"id\": \"a1\", \"title\": \"Case One\"}]",
    "[{\"id\": \"a1\", \"title\": \"Case One\", \"content\": \"x\", \"dateAdded\": \"yesterday\"}]",
])
def test_malformed_blob_yields_empty_store(blob):
    storage = InMemoryKeyValueStore({DEFAULT_STORAGE_KEY: blob})

    store = CorpusStore(storage).initialize()

    assert store.records == []


def test_load_browser_style_blob():
    blob = json.dumps([
        {
            "id": "a1",
            "title": "Case One",
            "content": "Sentenced to two years.",
            "dateAdded": "2024-05-01T12:00:00.000Z",
            "tags": ["Enviado"],
        },
        {
            "id": "b2",
            "title": "Case Two",
            "content": "Acquitted.",
            "dateAdded": "2024-04-01T08:30:00.000Z",
        },
    ])
    store = CorpusStore(InMemoryKeyValueStore({DEFAULT_STORAGE_KEY: blob})).initialize()

    records = store.records
    assert [r.id for r in records] == ["a1", "b2"]
    assert records[0].date_added.year == 2024
    assert records[0].tags == ["Enviado"]
    assert records[1].tags == [DEFAULT_TAG]


# =============================================================================
# Mutations
# =============================================================================


def test_insert_is_newest_first_and_persisted(storage, corpus_store, make_record):
    corpus_store.insert(make_record(id="first", title="First"))
    corpus_store.insert(make_record(id="second", title="Second"))

    assert [r.id for r in corpus_store.records] == ["second", "first"]

    persisted = json.loads(storage.get(DEFAULT_STORAGE_KEY))
    assert [r["id"] for r in persisted] == ["second", "first"]
    assert set(persisted[0]) == {"id", "title", "content", "dateAdded", "tags"}


def test_insert_duplicate_id_rejected(corpus_store, make_record):
    corpus_store.insert(make_record(id="a1"))

    with pytest.raises(CorpusStoreError):
        corpus_store.insert(make_record(id="a1", title="Another"))

    assert len(corpus_store) == 1


def test_remove_existing_record(storage, corpus_store, make_record):
    corpus_store.insert(make_record(id="a1"))
    corpus_store.insert(make_record(id="b2"))

    assert corpus_store.remove("a1") is True

    assert [r.id for r in corpus_store.records] == ["b2"]
    assert [r["id"] for r in json.loads(storage.get(DEFAULT_STORAGE_KEY))] == ["b2"]


def test_remove_unknown_id_leaves_store_unchanged_but_persists(make_record):
    storage = CountingStore()
    store = CorpusStore(storage).initialize()
    store.insert(make_record(id="a1"))
    before = store.records
    writes_before = storage.writes

    assert store.remove("does-not-exist") is False

    assert store.records == before
    assert storage.writes == writes_before + 1


def test_failed_write_leaves_memory_unchanged(make_record):
    storage = FailingWriteStore(failures=1)
    store = CorpusStore(storage).initialize()

    with pytest.raises(CorpusStoreError):
        store.insert(make_record(id="a1"))

    assert store.records == []
    assert storage.get(DEFAULT_STORAGE_KEY) is None

    store.insert(make_record(id="b2"))
    assert [r["id"] for r in json.loads(storage.get(DEFAULT_STORAGE_KEY))] == ["b2"]


def test_failed_remove_keeps_record(make_record):
    storage = FailingWriteStore(failures=0)
    store = CorpusStore(storage).initialize()
    store.insert(make_record(id="a1"))
    storage.failures = 1

    with pytest.raises(CorpusStoreError):
        store.remove("a1")

    assert [r.id for r in store.records] == ["a1"]
    assert [r["id"] for r in json.loads(storage.get(DEFAULT_STORAGE_KEY))] == ["a1"]


def test_save_load_round_trip(storage, corpus_store, make_record):
    corpus_store.insert(make_record(id="a1", title="Case One"))
    corpus_store.insert(make_record(id="b2", title="Case Two", tags=[]))

    corpus_store.save(corpus_store.load())

    reloaded = CorpusStore(storage).initialize()
    assert reloaded.records == corpus_store.records


def test_records_returns_a_copy(corpus_store, make_record):
    corpus_store.insert(make_record())

    corpus_store.records.clear()

    assert len(corpus_store) == 1


def test_close_persists_and_blocks_mutation(storage, corpus_store, make_record):
    corpus_store.insert(make_record(id="a1"))
    storage.delete(DEFAULT_STORAGE_KEY)

    corpus_store.close()

    assert json.loads(storage.get(DEFAULT_STORAGE_KEY))[0]["id"] == "a1"
    with pytest.raises(CorpusStoreError):
        corpus_store.insert(make_record(id="b2"))


# =============================================================================
# SQLite key-value store
# =============================================================================


def test_sqlite_store_survives_restart(tmp_path, make_record):
    db_path = str(tmp_path / "corpus.db")

    store = CorpusStore(SQLiteKeyValueStore(db_path)).initialize()
    store.insert(make_record(id="a1", title="Case One"))
    store.close()

    reopened = CorpusStore(SQLiteKeyValueStore(db_path)).initialize()
    assert [r.title for r in reopened.records] == ["Case One"]


def test_sqlite_store_get_set_delete(tmp_path):
    kv = SQLiteKeyValueStore(str(tmp_path / "nested" / "kv.db"))

    assert kv.get("missing") is None
    kv.set("k", "v1")
    kv.set("k", "v2")
    assert kv.get("k") == "v2"
    kv.delete("k")
    assert kv.get("k") is None
