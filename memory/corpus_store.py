"""Corpus Store: the judge's ordered collection of prior decisions.

The whole corpus is kept as one JSON array under a fixed key of a
KeyValueStore. Records are ordered newest-first by insertion, and every
mutation rewrites the full array, so each insert or remove costs O(n) in the
size of the corpus.
"""

from typing import List, Optional

import msgspec
from loguru import logger

from clerk.error_handling import CorpusStoreError, JudicialClerkError
from clerk.models import DecisionRecord
from memory.kv_store import KeyValueStore

DEFAULT_STORAGE_KEY = "judicial_corpus_v1"

_encoder = msgspec.json.Encoder()
_decoder = msgspec.json.Decoder(List[DecisionRecord])


class CorpusStore:
    """Ordered, persisted collection of DecisionRecords.

    Lifecycle: ``initialize()`` rehydrates the records from storage at
    startup, every ``insert``/``remove`` persists the full snapshot, and
    ``close()`` writes a final snapshot and releases the storage.
    """

    def __init__(self, storage: KeyValueStore, storage_key: str = DEFAULT_STORAGE_KEY):
        """Initialize the store.

        Args:
            storage: Key-value capability holding the persisted blob
            storage_key: Key of the slot the corpus is persisted under
        """
        self.storage = storage
        self.storage_key = storage_key
        self._records: List[DecisionRecord] = []
        self._closed = False

    def initialize(self) -> "CorpusStore":
        """Load the persisted corpus into memory."""
        self._records = self.load()
        self._closed = False
        logger.info(
            "CorpusStore initialized",
            storage_key=self.storage_key,
            record_count=len(self._records)
        )
        return self

    def load(self) -> List[DecisionRecord]:
        """Read and decode the persisted corpus.

        Returns:
            The stored records in persisted order, or an empty list when the
            slot is absent, unreadable or malformed.
        """
        try:
            blob = self.storage.get(self.storage_key)
        except JudicialClerkError as e:
            logger.error(f"Error loading saved decisions: {e}")
            return []

        if not blob:
            return []

        try:
            return _decoder.decode(blob)
        except (msgspec.DecodeError, msgspec.ValidationError) as e:
            logger.error(
                "Error loading saved decisions: {error}",
                error=str(e),
                storage_key=self.storage_key,
                blob_length=len(blob)
            )
            return []

    def save(self, records: List[DecisionRecord]) -> None:
        """Serialize the full ordered sequence and overwrite the slot."""
        self.storage.set(self.storage_key, _encoder.encode(records).decode("utf-8"))

    def insert(self, record: DecisionRecord) -> None:
        """Prepend a record (newest-first) and persist.

        Memory is only updated once the snapshot has been written.

        Raises:
            CorpusStoreError: If a record with the same id is already stored,
                or if the snapshot could not be written
        """
        self._ensure_open()
        if self.get(record.id) is not None:
            raise CorpusStoreError(f"Duplicate decision id: {record.id}")

        updated = [record] + self._records
        self.save(updated)
        self._records = updated
        logger.info(
            "Decision added: {title}",
            title=record.title,
            decision_id=record.id,
            record_count=len(self._records)
        )

    def remove(self, decision_id: str) -> bool:
        """Drop the record with ``decision_id`` and persist.

        The snapshot is written even when nothing matched.

        Returns:
            True if a record was removed

        Raises:
            CorpusStoreError: If the snapshot could not be written
        """
        self._ensure_open()
        remaining = [r for r in self._records if r.id != decision_id]
        removed = len(remaining) != len(self._records)
        self.save(remaining)
        self._records = remaining

        if removed:
            logger.info("Decision removed", decision_id=decision_id, record_count=len(self._records))
        else:
            logger.debug("Remove requested for unknown decision", decision_id=decision_id)
        return removed

    def get(self, decision_id: str) -> Optional[DecisionRecord]:
        for record in self._records:
            if record.id == decision_id:
                return record
        return None

    @property
    def records(self) -> List[DecisionRecord]:
        """Snapshot of the corpus, newest first."""
        return list(self._records)

    def __len__(self) -> int:
        return len(self._records)

    def close(self) -> None:
        """Write a final snapshot and release the storage."""
        if self._closed:
            return
        self.save(self._records)
        self.storage.close()
        self._closed = True
        logger.info("CorpusStore closed", record_count=len(self._records))

    def _ensure_open(self) -> None:
        if self._closed:
            raise CorpusStoreError("Corpus store is closed")
