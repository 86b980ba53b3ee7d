"""
FastAPI Backend for the Judicial Clerk Assistant.

This module provides the REST API behind the three browser views:
- Corpus browser: list and delete stored decisions
- Upload: multi-file ingestion of prior decisions
- New case: edit the case draft, request an analysis, read the result

Architecture:
    Browser -> FastAPI -> Orchestrator -> (IngestionAgent | AnalysisAgent) -> CorpusStore / Gemini
"""

import os
from datetime import datetime
from typing import Any, Dict, List, Optional

import msgspec
from dotenv import load_dotenv
from fastapi import Depends, FastAPI, File, HTTPException, Request, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from loguru import logger
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from api.security import (
    get_security_headers,
    get_tls_config,
    log_audit_event,
    validate_environment_security,
)
from clerk.error_handling import (
    AnalysisInProgressError,
    AnalysisRequestError,
    AuthenticationError,
    CaseDraftValidationError,
    CorpusStoreError,
    DocumentParsingError,
    EmptyCorpusError,
    JudicialClerkError,
    ServiceUnavailableError,
    UnparsableResponseError,
)
from clerk.logging_config import setup_logging
from clerk.models import AnalysisResult
from clerk.orchestrator import JudicialClerkOrchestrator, create_orchestrator

load_dotenv()

setup_logging(
    log_dir=os.getenv("LOG_DIR", "logs"),
    level=os.getenv("LOG_LEVEL", "INFO"),
    rotation="100 MB",
    retention="30 days",
)


# =============================================================================
# FastAPI Application Setup
# =============================================================================

app = FastAPI(
    title="Judicial Clerk Assistant",
    description="Sentencing proposals and draft judgments written in the style of the judge's own prior decisions",
    version="0.1.0",
)

# CORS configuration for frontend communication
cors_origins = os.getenv(
    "CORS_ORIGINS", "http://localhost:3000,http://localhost:8000"
).split(",")
app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["Content-Disposition"],
)


@app.middleware("http")
async def add_security_headers(request, call_next):
    """Inject security headers (CSP, X-Frame-Options, etc.) into all responses."""
    response = await call_next(request)
    security_headers = get_security_headers()
    for header, value in security_headers.items():
        response.headers[header] = value
    return response


# =============================================================================
# Orchestrator Dependency
# =============================================================================


def get_orchestrator(request: Request) -> JudicialClerkOrchestrator:
    """Return the orchestrator created at startup."""
    orchestrator = getattr(request.app.state, "orchestrator", None)
    if orchestrator is None:
        raise HTTPException(status_code=503, detail="Service not initialized")
    return orchestrator


# =============================================================================
# Error Mapping
# =============================================================================

_ERROR_STATUS_CODES = {
    CaseDraftValidationError: 422,
    EmptyCorpusError: 409,
    AnalysisInProgressError: 409,
    ServiceUnavailableError: 503,
    AuthenticationError: 502,
    AnalysisRequestError: 502,
    UnparsableResponseError: 502,
    DocumentParsingError: 400,
    CorpusStoreError: 500,
}


def status_code_for(error: JudicialClerkError) -> int:
    for cls in type(error).__mro__:
        if cls in _ERROR_STATUS_CODES:
            return _ERROR_STATUS_CODES[cls]
    return 500


@app.exception_handler(JudicialClerkError)
async def judicial_clerk_error_handler(request: Request, exc: JudicialClerkError):
    """Render domain errors with their user-facing message."""
    content: Dict[str, Any] = {
        "error": type(exc).__name__,
        "detail": exc.user_message,
    }
    if isinstance(exc, CaseDraftValidationError):
        content["missing_fields"] = exc.missing_fields

    return JSONResponse(status_code=status_code_for(exc), content=content)


# =============================================================================
# Request/Response Models
# =============================================================================


class CaseDraftUpdate(BaseModel):
    """Partial case draft edit; omitted fields are left unchanged."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    parties: Optional[str] = None
    charges: Optional[str] = None
    facts: Optional[str] = None
    mitigating_factors: Optional[str] = None
    aggravating_factors: Optional[str] = None


class UploadResponse(BaseModel):
    """Outcome of a multi-file upload."""

    ingested: List[Dict[str, Any]]
    failed: List[Dict[str, str]]
    warnings: List[Dict[str, Any]]
    decision_count: int


class CaseResponse(BaseModel):
    """Current case draft and latest analysis result."""

    draft: Dict[str, Any]
    result: Optional[Dict[str, Any]] = None
    is_analyzing: bool
    submission_blockers: List[str]


def _case_response(orch: JudicialClerkOrchestrator) -> CaseResponse:
    return CaseResponse(
        draft=msgspec.to_builtins(orch.case_draft),
        result=msgspec.to_builtins(orch.analysis_result) if orch.analysis_result else None,
        is_analyzing=orch.is_analyzing,
        submission_blockers=orch.submission_blockers(),
    )


def _require_result(orch: JudicialClerkOrchestrator) -> AnalysisResult:
    if orch.analysis_result is None:
        raise HTTPException(status_code=404, detail="No analysis result available")
    return orch.analysis_result


# =============================================================================
# API Endpoints
# =============================================================================


@app.get("/")
async def root():
    """Root endpoint with API information."""
    return {
        "name": "Judicial Clerk Assistant API",
        "version": "0.1.0",
        "status": "running",
        "endpoints": {
            "status": "/status",
            "decisions": "/decisions",
            "upload": "/decisions/upload",
            "case": "/case",
            "analyze": "/case/analyze",
        },
    }


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "timestamp": datetime.now().isoformat()}


@app.get("/status")
async def get_status(orch: JudicialClerkOrchestrator = Depends(get_orchestrator)):
    """Credential banner state, corpus size and submit blockers."""
    return orch.status()


@app.get("/decisions")
async def list_decisions(orch: JudicialClerkOrchestrator = Depends(get_orchestrator)):
    """List stored decisions, newest first."""
    return msgspec.to_builtins(orch.list_decisions())


@app.post("/decisions/upload", response_model=UploadResponse)
async def upload_decisions(
    files: List[UploadFile] = File(...),
    orch: JudicialClerkOrchestrator = Depends(get_orchestrator),
):
    """Upload prior decisions as plain-text files.

    Each file is ingested independently; files that cannot be decoded are
    reported under ``failed`` and do not block the others.
    """
    logger.info(f"Received upload request with {len(files)} file(s)")

    report = await orch.ingest_files(files)

    log_audit_event(
        "decisions_uploaded",
        {
            "ingested": [r.id for r in report["ingested"]],
            "failed": [f["filename"] for f in report["failed"]],
        },
    )

    return UploadResponse(
        ingested=msgspec.to_builtins(report["ingested"]),
        failed=report["failed"],
        warnings=report["warnings"],
        decision_count=len(orch.corpus_store),
    )


@app.delete("/decisions/{decision_id}")
async def delete_decision(
    decision_id: str,
    orch: JudicialClerkOrchestrator = Depends(get_orchestrator),
):
    """Delete a stored decision. Irreversible."""
    if not orch.delete_decision(decision_id):
        raise HTTPException(status_code=404, detail=f"Decision not found: {decision_id}")

    log_audit_event("decision_deleted", {"decision_id": decision_id})
    return {"message": "Decision deleted successfully", "decision_id": decision_id}


@app.get("/case", response_model=CaseResponse)
async def get_case(orch: JudicialClerkOrchestrator = Depends(get_orchestrator)):
    """Current case draft and result."""
    return _case_response(orch)


@app.put("/case", response_model=CaseResponse)
async def update_case(
    update: CaseDraftUpdate,
    orch: JudicialClerkOrchestrator = Depends(get_orchestrator),
):
    """Apply field edits to the case draft."""
    orch.update_draft(**update.model_dump(exclude_unset=True, exclude_none=True))
    return _case_response(orch)


@app.post("/case/analyze")
async def analyze_case(orch: JudicialClerkOrchestrator = Depends(get_orchestrator)):
    """Generate a sentencing proposal for the current draft.

    Failures leave the draft intact so the judge can resubmit.
    """
    result = await orch.submit()
    return {"status": "completed", "result": msgspec.to_builtins(result)}


@app.post("/case/reset", response_model=CaseResponse)
async def reset_case(orch: JudicialClerkOrchestrator = Depends(get_orchestrator)):
    """Start a new case: clear the draft and discard the result."""
    orch.reset()
    return _case_response(orch)


@app.get("/case/result/draft")
async def get_draft_judgment(orch: JudicialClerkOrchestrator = Depends(get_orchestrator)):
    """Draft judgment as plain text, for copying into the judge's editor."""
    result = _require_result(orch)
    return Response(content=result.draft_judgment, media_type="text/plain; charset=utf-8")


@app.get("/case/result/markdown")
async def get_result_markdown(orch: JudicialClerkOrchestrator = Depends(get_orchestrator)):
    """Analysis result as a Markdown report."""
    result = _require_result(orch)
    draft = orch.case_draft

    md = "# Sentencing Proposal\n\n"
    md += f"**Parties:** {draft.parties}\n\n"
    md += f"**Charges:** {draft.charges}\n\n"
    md += f"**Generated:** {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}\n\n"
    md += "---\n\n"
    md += f"## Suggested Sentence\n\n{result.suggested_sentence}\n\n"
    md += f"## Reasoning\n\n{result.reasoning}\n\n"

    if result.comparative_precedents:
        md += "## Related Precedents\n\n"
        for precedent in result.comparative_precedents:
            md += f"- {precedent}\n"
        md += "\n"

    md += f"## Draft Judgment\n\n{result.draft_judgment}\n\n"
    md += "---\n\n"
    md += (
        "*This proposal is a support tool. The final decision and its legal review "
        "remain the sole responsibility of the judge.*\n"
    )

    return Response(content=md, media_type="text/markdown; charset=utf-8")


# =============================================================================
# Application Lifecycle Events
# =============================================================================


@app.on_event("startup")
async def startup_event():
    """Validate configuration and load the corpus on startup."""
    logger.info("Starting Judicial Clerk API")

    security_validation = validate_environment_security()

    if not security_validation["valid"]:
        for error in security_validation["errors"]:
            logger.error(f"Configuration error: {error}")
        raise ValueError(
            "Configuration validation failed. Check environment configuration:\n"
            + "\n".join(f"  - {error}" for error in security_validation["errors"])
        )

    for warning in security_validation["warnings"]:
        logger.warning(f"Configuration warning: {warning}")

    app.state.orchestrator = create_orchestrator()

    tls_config = get_tls_config()
    if tls_config:
        logger.info("TLS/SSL enabled")

    logger.info("API startup complete")


@app.on_event("shutdown")
async def shutdown_event():
    """Persist the corpus and release storage."""
    logger.info("Shutting down Judicial Clerk API")

    orchestrator = getattr(app.state, "orchestrator", None)
    if orchestrator is not None:
        orchestrator.close()
        app.state.orchestrator = None
