"""Shared fixtures: in-memory storage, fake model backends, controllable uploads."""

import asyncio
import json
import os
import tempfile
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Union

import pytest

os.environ.setdefault("LOG_DIR", tempfile.mkdtemp(prefix="judicial_clerk_logs_"))
os.environ.setdefault("LOG_LEVEL", "WARNING")

from clerk.backends import GenerativeBackend
from clerk.error_handling import CorpusStoreError
from clerk.models import DecisionRecord
from memory.corpus_store import CorpusStore
from memory.kv_store import InMemoryKeyValueStore


VALID_REPLY = {
    "suggestedSentence": "Two years of imprisonment, open regime, replaced by community service.",
    "reasoning": "Consistent with the leniency shown to first-time offenders in Case One.",
    "comparativePrecedents": ["Case One"],
    "draftJudgment": "In the case of State v. Doe, this court finds...",
}


# =============================================================================
# Fakes
# =============================================================================


class FakeBackend(GenerativeBackend):
    """Backend returning a canned reply, or raising a canned error."""

    def __init__(
        self,
        reply: Union[str, Dict[str, Any], None] = None,
        error: Optional[Exception] = None,
        has_credential: bool = True,
        gate: Optional[asyncio.Event] = None,
        delay: float = 0.0,
    ):
        if reply is None:
            reply = VALID_REPLY
        self.reply = reply if isinstance(reply, str) else json.dumps(reply)
        self.error = error
        self._has_credential = has_credential
        self.gate = gate
        self.delay = delay
        self.calls: List[Dict[str, Any]] = []

    async def generate(self, prompt: str, response_schema: Dict[str, Any]) -> str:
        self.calls.append({"prompt": prompt, "response_schema": response_schema})
        if self.gate is not None:
            await self.gate.wait()
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.reply

    @property
    def has_credential(self) -> bool:
        return self._has_credential

    @property
    def model_id(self) -> str:
        return "fake"


class FakeUpload:
    """Upload whose read can be held until ``gate`` is set."""

    def __init__(
        self,
        filename: str,
        content: Union[bytes, str],
        gate: Optional[asyncio.Event] = None,
        error: Optional[Exception] = None,
    ):
        self.filename = filename
        self.content = content
        self.gate = gate
        self.error = error

    async def read(self):
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        return self.content


class FailingWriteStore(InMemoryKeyValueStore):
    """In-memory store whose first ``failures`` writes raise CorpusStoreError."""

    def __init__(self, failures: int = 1):
        super().__init__()
        self.failures = failures

    def set(self, key: str, value: str) -> None:
        if self.failures > 0:
            self.failures -= 1
            raise CorpusStoreError("disk full")
        super().set(key, value)


async def wait_until(condition, attempts: int = 200) -> None:
    """Yield to the event loop until ``condition()`` holds."""
    for _ in range(attempts):
        if condition():
            return
        await asyncio.sleep(0)
    raise AssertionError("condition not reached")


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def storage() -> InMemoryKeyValueStore:
    return InMemoryKeyValueStore()


@pytest.fixture
def corpus_store(storage) -> CorpusStore:
    return CorpusStore(storage).initialize()


@pytest.fixture
def make_record():
    """Factory for DecisionRecords with sensible defaults."""
    def _make(
        id: str = "a1",
        title: str = "Case One",
        content: str = "The defendant is sentenced to...",
        tags: Optional[List[str]] = None,
    ) -> DecisionRecord:
        return DecisionRecord(
            id=id,
            title=title,
            content=content,
            date_added=datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc),
            tags=tags if tags is not None else ["uploaded"],
        )
    return _make


@pytest.fixture
def fake_backend() -> FakeBackend:
    return FakeBackend()
