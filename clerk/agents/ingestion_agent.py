"""Ingestion Agent for turning uploaded decision files into corpus records.

Every file in a batch is read as its own asyncio task. Records are inserted
into the Corpus Store as soon as their read completes, so the resulting
store order follows completion order rather than the order the files were
submitted in.
"""

import asyncio
import os
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Protocol, Union

from loguru import logger

from clerk.error_handling import CorpusStoreError, DocumentParsingError, handle_errors
from clerk.logging_config import get_component_logger, log_agent_execution
from clerk.models import UPLOAD_TAG, DecisionRecord
from memory.corpus_store import CorpusStore
from tools.text_reader import FileValidator, decode_text, derive_title


class UploadedFile(Protocol):
    """File-like upload: a name plus an async read (FastAPI's UploadFile fits)."""

    filename: Optional[str]

    async def read(self) -> Union[bytes, str]:
        ...


class IngestionAgent:
    """Agent responsible for decision ingestion.

    This agent:
    1. Reads each uploaded file concurrently
    2. Decodes the content as UTF-8 text
    3. Derives the title, id, timestamp and default tag
    4. Inserts each record into the Corpus Store as its read completes
    """

    def __init__(
        self,
        corpus_store: CorpusStore,
        allowed_extensions: Optional[List[str]] = None
    ):
        """Initialize the Ingestion Agent.

        Args:
            corpus_store: Store receiving the new records
            allowed_extensions: Suggested extensions (defaults to ALLOWED_FILE_TYPES env var)
        """
        self.corpus_store = corpus_store

        if allowed_extensions is None:
            allowed_types_str = os.getenv("ALLOWED_FILE_TYPES", "txt,md")
            allowed_extensions = ['.' + ext.strip().lstrip('.') for ext in allowed_types_str.split(',') if ext.strip()]
        self.file_validator = FileValidator(allowed_extensions=allowed_extensions)

        logger.info("Ingestion Agent initialized", allowed_extensions=self.file_validator.allowed_extensions)

    @log_agent_execution("IngestionAgent")
    async def ingest_files(self, files: Iterable[UploadedFile]) -> Dict[str, Any]:
        """Ingest a batch of uploaded files.

        A file that cannot be read, decoded or stored is skipped and reported
        without affecting the rest of the batch.

        Args:
            files: File-like objects to ingest

        Returns:
            Dictionary containing:
                - ingested: DecisionRecords in the order they were inserted
                - failed: {"filename", "error"} for each skipped file
                - warnings: {"filename", "warnings"} for off-list or empty files
        """
        ingested: List[DecisionRecord] = []
        failed: List[Dict[str, str]] = []
        warnings: List[Dict[str, Any]] = []

        tasks = [asyncio.ensure_future(self._read(upload)) for upload in files]

        for next_done in asyncio.as_completed(tasks):
            filename, content, error = await next_done
            file_logger = get_component_logger("IngestionAgent", filename=filename)

            if error is None:
                try:
                    record, file_warnings = self._build_record(filename, content)
                    self.corpus_store.insert(record)
                except (DocumentParsingError, CorpusStoreError) as e:
                    error = e
                else:
                    ingested.append(record)
                    if file_warnings:
                        warnings.append({"filename": filename, "warnings": file_warnings})
                    file_logger.info("Decision ingested", decision_id=record.id, content_length=len(record.content))
                    continue

            file_logger.warning(f"Skipping file: {error}")
            failed.append({"filename": filename, "error": str(error)})

        logger.info(
            "Ingestion batch complete",
            ingested_count=len(ingested),
            failed_count=len(failed)
        )

        return {"ingested": ingested, "failed": failed, "warnings": warnings}

    async def _read(self, upload: UploadedFile):
        """Read one upload; failures are returned, not raised, to keep the batch going."""
        filename = upload.filename or "untitled"
        try:
            content = await upload.read()
        except Exception as e:
            return filename, None, DocumentParsingError(f"Failed to read {filename}: {e}")
        return filename, content, None

    @handle_errors(DocumentParsingError)
    def _build_record(self, filename: str, content: Union[bytes, str]):
        """Decode content and assemble a DecisionRecord."""
        text = decode_text(content)
        validation = self.file_validator.validate_file(filename, len(text))

        record = DecisionRecord(
            id=str(uuid.uuid4()),
            title=derive_title(filename),
            content=text,
            date_added=datetime.now(timezone.utc),
            tags=[UPLOAD_TAG]
        )
        return record, validation["warnings"]
