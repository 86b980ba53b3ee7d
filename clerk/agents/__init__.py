"""Agents for the Judicial Clerk pipeline."""

from clerk.agents.ingestion_agent import IngestionAgent
from clerk.agents.prompt_builder import AnalysisRequestBuilder
from clerk.agents.analysis_agent import AnalysisAgent

__all__ = [
    "IngestionAgent",
    "AnalysisRequestBuilder",
    "AnalysisAgent",
]
