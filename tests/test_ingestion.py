"""Tests for the Ingestion Agent and text helpers."""

import asyncio
import json
import uuid
from datetime import datetime

import pytest

from clerk.agents import IngestionAgent
from clerk.error_handling import DocumentParsingError
from clerk.models import UPLOAD_TAG
from memory.corpus_store import DEFAULT_STORAGE_KEY, CorpusStore
from tests.conftest import FailingWriteStore, FakeUpload, wait_until
from tools.text_reader import FileValidator, decode_text, derive_title


# =============================================================================
# Helpers
# =============================================================================


@pytest.mark.parametrize("filename,expected", [
    ("State v. Doe.txt", "State v. Doe"),
    ("ruling.md", "ruling"),
    ("archive.tar.gz", "archive.tar"),
    ("no_extension", "no_extension"),
    (".txt", ".txt"),
])
def test_derive_title(filename, expected):
    assert derive_title(filename) == expected


def test_decode_text_drops_bom():
    assert decode_text("\ufeffSentença".encode("utf-8")) == "Sentença"


def test_decode_text_rejects_invalid_utf8():
    with pytest.raises(DocumentParsingError):
        decode_text(b"\xff\xfe\xfa")


def test_file_validator_only_warns():
    validator = FileValidator(allowed_extensions=[".txt"])

    assert validator.validate_file("a.txt", 10)["warnings"] == []
    assert validator.validate_file("a.pdf", 10)["warnings"]
    assert validator.validate_file("a.txt", 0)["warnings"] == ["File is empty"]


# =============================================================================
# Ingestion
# =============================================================================


@pytest.mark.asyncio
async def test_ingest_single_file_builds_record(corpus_store):
    agent = IngestionAgent(corpus_store)

    report = await agent.ingest_files([FakeUpload("Case One.txt", b"The defendant...")])

    assert report["failed"] == []
    record = corpus_store.records[0]
    assert record.title == "Case One"
    assert record.content == "The defendant..."
    assert record.tags == [UPLOAD_TAG]
    assert isinstance(record.date_added, datetime)
    assert record.date_added.tzinfo is not None
    uuid.UUID(record.id)


@pytest.mark.asyncio
async def test_ingest_assigns_unique_ids(corpus_store):
    agent = IngestionAgent(corpus_store)
    uploads = [FakeUpload(f"case{i}.txt", f"text {i}".encode()) for i in range(5)]

    await agent.ingest_files(uploads)

    ids = [r.id for r in corpus_store.records]
    assert len(ids) == 5
    assert len(set(ids)) == 5


@pytest.mark.asyncio
async def test_store_order_follows_completion_when_later_file_finishes_first(corpus_store):
    agent = IngestionAgent(corpus_store)
    a = FakeUpload("a.txt", b"Decision A", gate=asyncio.Event())
    b = FakeUpload("b.txt", b"Decision B", gate=asyncio.Event())

    task = asyncio.ensure_future(agent.ingest_files([a, b]))
    await asyncio.sleep(0)
    b.gate.set()
    await wait_until(lambda: len(corpus_store) == 1)
    a.gate.set()
    report = await task

    # b was inserted first, then a was prepended in front of it
    assert [r.title for r in report["ingested"]] == ["b", "a"]
    assert [r.title for r in corpus_store.records] == ["a", "b"]


@pytest.mark.asyncio
async def test_store_order_follows_completion_when_first_file_finishes_first(corpus_store):
    agent = IngestionAgent(corpus_store)
    a = FakeUpload("a.txt", b"Decision A", gate=asyncio.Event())
    b = FakeUpload("b.txt", b"Decision B", gate=asyncio.Event())

    task = asyncio.ensure_future(agent.ingest_files([a, b]))
    await asyncio.sleep(0)
    a.gate.set()
    await wait_until(lambda: len(corpus_store) == 1)
    b.gate.set()
    report = await task

    assert [r.title for r in report["ingested"]] == ["a", "b"]
    assert [r.title for r in corpus_store.records] == ["b", "a"]


@pytest.mark.asyncio
async def test_multi_file_batch_ingests_every_file(corpus_store):
    agent = IngestionAgent(corpus_store)

    await agent.ingest_files([FakeUpload("a.txt", b"A"), FakeUpload("b.txt", b"B")])

    # Completion order is not fixed, only membership is
    assert sorted(r.title for r in corpus_store.records) == ["a", "b"]


@pytest.mark.asyncio
async def test_undecodable_file_fails_alone(corpus_store):
    agent = IngestionAgent(corpus_store)

    report = await agent.ingest_files([
        FakeUpload("good.txt", b"Valid text"),
        FakeUpload("bad.txt", b"\xff\xfe\xfa"),
    ])

    assert [r.title for r in corpus_store.records] == ["good"]
    assert [f["filename"] for f in report["failed"]] == ["bad.txt"]


@pytest.mark.asyncio
async def test_read_failure_fails_alone(corpus_store):
    agent = IngestionAgent(corpus_store)

    report = await agent.ingest_files([
        FakeUpload("broken.txt", b"", error=OSError("disk unplugged")),
        FakeUpload("good.txt", b"Valid text"),
    ])

    assert [r.title for r in corpus_store.records] == ["good"]
    assert report["failed"][0]["filename"] == "broken.txt"
    assert "disk unplugged" in report["failed"][0]["error"]


@pytest.mark.asyncio
async def test_storage_failure_fails_alone():
    storage = FailingWriteStore(failures=1)
    store = CorpusStore(storage).initialize()
    agent = IngestionAgent(store)

    report = await agent.ingest_files([FakeUpload("a.txt", b"A"), FakeUpload("b.txt", b"B")])

    assert len(report["ingested"]) == 1
    assert len(report["failed"]) == 1
    assert "disk full" in report["failed"][0]["error"]
    # Memory and the persisted snapshot agree on the surviving record
    persisted = json.loads(storage.get(DEFAULT_STORAGE_KEY))
    assert [r.id for r in store.records] == [r["id"] for r in persisted]
    assert store.records == report["ingested"]


@pytest.mark.asyncio
async def test_off_list_extension_is_ingested_with_warning(corpus_store):
    agent = IngestionAgent(corpus_store, allowed_extensions=[".txt", ".md"])

    report = await agent.ingest_files([FakeUpload("ruling.rtf", b"Text")])

    assert len(corpus_store) == 1
    assert report["warnings"][0]["filename"] == "ruling.rtf"


@pytest.mark.asyncio
async def test_empty_batch(corpus_store):
    agent = IngestionAgent(corpus_store)

    report = await agent.ingest_files([])

    assert report == {"ingested": [], "failed": [], "warnings": []}
