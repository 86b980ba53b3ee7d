"""Judicial Clerk Assistant - corpus-conditioned sentencing proposals."""

from clerk.models import (
    DecisionRecord,
    CaseDraft,
    AnalysisResult,
    AnalysisRequest,
)

from clerk.logging_config import (
    setup_logging,
    get_component_logger,
    log_agent_execution,
    log_tool_execution,
)

from clerk.error_handling import (
    JudicialClerkError,
    DocumentParsingError,
    CorpusStoreError,
    CaseDraftValidationError,
    EmptyCorpusError,
    AnalysisInProgressError,
    LLMError,
    ServiceUnavailableError,
    AuthenticationError,
    AnalysisRequestError,
    UnparsableResponseError,
    handle_errors,
)

__version__ = "0.1.0"

__all__ = [
    # Models
    "DecisionRecord",
    "CaseDraft",
    "AnalysisResult",
    "AnalysisRequest",
    # Logging
    "setup_logging",
    "get_component_logger",
    "log_agent_execution",
    "log_tool_execution",
    # Error Handling
    "JudicialClerkError",
    "DocumentParsingError",
    "CorpusStoreError",
    "CaseDraftValidationError",
    "EmptyCorpusError",
    "AnalysisInProgressError",
    "LLMError",
    "ServiceUnavailableError",
    "AuthenticationError",
    "AnalysisRequestError",
    "UnparsableResponseError",
    "handle_errors",
]
