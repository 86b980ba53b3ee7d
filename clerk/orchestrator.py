"""
Judicial Clerk Orchestrator - wires the corpus, ingestion and analysis.

Flow:
    Upload -> IngestionAgent -> CorpusStore (persisted)
    CaseDraft + CorpusStore -> AnalysisRequestBuilder -> AnalysisAgent -> AnalysisResult

The orchestrator also holds the state the views render: the case draft being
edited, the latest analysis result and whether an analysis is pending. It
never writes analysis output back into the corpus.
"""

import os
from typing import Any, Dict, Iterable, List, Optional

import msgspec
from loguru import logger

from clerk.agents import AnalysisAgent, AnalysisRequestBuilder, IngestionAgent
from clerk.agents.ingestion_agent import UploadedFile
from clerk.agents.prompt_builder import validate_draft
from clerk.backends import DEFAULT_MODEL, GeminiBackend, GenerativeBackend
from clerk.error_handling import (
    AnalysisInProgressError,
    EmptyCorpusError,
    JudicialClerkError,
    ServiceUnavailableError,
)
from clerk.models import AnalysisResult, CaseDraft, DecisionRecord
from memory.corpus_store import DEFAULT_STORAGE_KEY, CorpusStore
from memory.kv_store import KeyValueStore, SQLiteKeyValueStore

BLOCKER_CREDENTIAL_MISSING = "credential_missing"
BLOCKER_ANALYSIS_PENDING = "analysis_pending"
BLOCKER_EMPTY_CORPUS = "empty_corpus"


class JudicialClerkOrchestrator:
    """Coordinates corpus management and case analysis for one judge."""

    def __init__(
        self,
        corpus_store: CorpusStore,
        ingestion_agent: IngestionAgent,
        request_builder: AnalysisRequestBuilder,
        analysis_agent: AnalysisAgent
    ):
        """Initialize the orchestrator with already-constructed components.

        Args:
            corpus_store: Initialized Corpus Store
            ingestion_agent: Agent inserting uploads into ``corpus_store``
            request_builder: Prompt and schema builder
            analysis_agent: Agent calling the generative model
        """
        self.corpus_store = corpus_store
        self.ingestion_agent = ingestion_agent
        self.request_builder = request_builder
        self.analysis_agent = analysis_agent

        self.case_draft = CaseDraft()
        self.analysis_result: Optional[AnalysisResult] = None
        self.is_analyzing = False
        self._reset_count = 0

        logger.info(
            "JudicialClerkOrchestrator initialized",
            decision_count=len(corpus_store),
            service_available=analysis_agent.service_available
        )

    # Corpus

    def list_decisions(self) -> List[DecisionRecord]:
        return self.corpus_store.records

    async def ingest_files(self, files: Iterable[UploadedFile]) -> Dict[str, Any]:
        return await self.ingestion_agent.ingest_files(files)

    def delete_decision(self, decision_id: str) -> bool:
        return self.corpus_store.remove(decision_id)

    # Case draft

    def update_draft(self, **fields: str) -> CaseDraft:
        """Apply field edits to the case draft.

        Raises:
            ValueError: If a field name is not part of CaseDraft
        """
        known = set(CaseDraft.__struct_fields__)
        unknown = set(fields) - known
        if unknown:
            raise ValueError(f"Unknown case fields: {', '.join(sorted(unknown))}")

        self.case_draft = msgspec.structs.replace(self.case_draft, **fields)
        return self.case_draft

    def reset(self) -> None:
        """Clear the draft and discard the current result."""
        self.case_draft = CaseDraft()
        self.analysis_result = None
        self._reset_count += 1
        logger.info("Case draft reset")

    def submission_blockers(self) -> List[str]:
        """Reasons the submit action is currently disabled."""
        blockers = []
        if not self.analysis_agent.service_available:
            blockers.append(BLOCKER_CREDENTIAL_MISSING)
        if self.is_analyzing:
            blockers.append(BLOCKER_ANALYSIS_PENDING)
        if len(self.corpus_store) == 0:
            blockers.append(BLOCKER_EMPTY_CORPUS)
        return blockers

    async def submit(self) -> AnalysisResult:
        """Analyze the current draft against the corpus.

        The draft is left untouched whatever the outcome, so a failed
        submission can be retried without re-entering data.
        A result arriving after ``reset()`` is returned but not kept.

        Raises:
            CaseDraftValidationError: Required fields are empty
            AnalysisInProgressError: Another analysis is pending
            EmptyCorpusError: No decisions have been uploaded
            LLMError: The analysis agent failed (see AnalysisAgent)
        """
        validate_draft(self.case_draft)

        if self.is_analyzing:
            raise AnalysisInProgressError()
        if len(self.corpus_store) == 0:
            raise EmptyCorpusError()
        if not self.analysis_agent.service_available:
            raise ServiceUnavailableError("GOOGLE_API_KEY is not configured")

        self.is_analyzing = True
        self.analysis_result = None
        reset_count = self._reset_count
        try:
            request = self.request_builder.build(self.corpus_store.records, self.case_draft)
            result = await self.analysis_agent.analyze(request.prompt, request.response_schema)
        except JudicialClerkError as e:
            logger.error("Case analysis failed: {error}", error=str(e), error_type=type(e).__name__)
            raise
        finally:
            self.is_analyzing = False

        if reset_count != self._reset_count:
            logger.info("Discarding analysis result for a draft that was reset")
            return result

        self.analysis_result = result
        logger.info(
            "Case analysis completed",
            precedent_count=len(result.comparative_precedents)
        )
        return result

    def status(self) -> Dict[str, Any]:
        return {
            "decision_count": len(self.corpus_store),
            "api_key_missing": not self.analysis_agent.backend.has_credential,
            "credential_check": self.analysis_agent.credential_check,
            "model": self.analysis_agent.backend.model_id,
            "is_analyzing": self.is_analyzing,
            "has_result": self.analysis_result is not None,
            "submission_blockers": self.submission_blockers(),
        }

    def close(self) -> None:
        self.corpus_store.close()
        logger.info("JudicialClerkOrchestrator closed")


def create_orchestrator(
    storage: Optional[KeyValueStore] = None,
    backend: Optional[GenerativeBackend] = None,
    api_key: Optional[str] = None,
    model_name: Optional[str] = None,
    credential_check: Optional[bool] = None
) -> JudicialClerkOrchestrator:
    """Factory function to create a fully wired orchestrator.

    Unspecified components are built from environment settings.

    Args:
        storage: Key-value store for the corpus (defaults to SQLite at CORPUS_DB_PATH)
        backend: Generative backend (defaults to Gemini)
        api_key: Google API key (defaults to GOOGLE_API_KEY env var)
        model_name: Gemini model (defaults to GEMINI_MODEL env var)
        credential_check: Credential check profile (defaults to CREDENTIAL_CHECK_ENABLED)

    Returns:
        JudicialClerkOrchestrator with its corpus loaded
    """
    if storage is None:
        storage = SQLiteKeyValueStore(os.getenv("CORPUS_DB_PATH", "judicial_corpus.db"))

    corpus_store = CorpusStore(
        storage,
        storage_key=os.getenv("CORPUS_STORAGE_KEY", DEFAULT_STORAGE_KEY)
    ).initialize()

    if backend is None:
        backend = GeminiBackend(
            api_key=api_key,
            model_name=model_name or os.getenv("GEMINI_MODEL", DEFAULT_MODEL)
        )

    return JudicialClerkOrchestrator(
        corpus_store=corpus_store,
        ingestion_agent=IngestionAgent(corpus_store),
        request_builder=AnalysisRequestBuilder(),
        analysis_agent=AnalysisAgent(backend, credential_check=credential_check)
    )
