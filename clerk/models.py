"""
Data Models - msgspec Structs for efficient serialization.

These models define the core data structures passed between the ingestion,
prompt building and analysis agents and persisted in the Corpus Store.
Field names are snake_case in Python and camelCase on the wire, matching the
layout of the persisted corpus blob and the model's response contract.
"""

from datetime import datetime
from typing import Any, Dict, List

import msgspec
from msgspec import Struct

DEFAULT_TAG = "General"
UPLOAD_TAG = "uploaded"
REQUIRED_CASE_FIELDS = ("parties", "charges", "facts")


def _default_tags() -> List[str]:
    return [DEFAULT_TAG]


class DecisionRecord(Struct, rename="camel"):
    """One prior ruling used as style context."""
    id: str
    title: str
    content: str
    date_added: datetime
    tags: List[str] = msgspec.field(default_factory=_default_tags)


class CaseDraft(Struct, rename="camel"):
    """The new case pending analysis. Never persisted."""
    parties: str = ""
    charges: str = ""
    facts: str = ""
    mitigating_factors: str = ""
    aggravating_factors: str = ""

    def missing_fields(self) -> List[str]:
        """Required fields that are empty or whitespace-only."""
        return [name for name in REQUIRED_CASE_FIELDS if not getattr(self, name).strip()]


class AnalysisResult(Struct, rename="camel"):
    """Structured model reply. Every field is required."""
    suggested_sentence: str
    reasoning: str
    comparative_precedents: List[str]
    draft_judgment: str


class AnalysisRequest(Struct):
    """Prompt plus the response-shape contract handed to the analysis agent."""
    prompt: str
    response_schema: Dict[str, Any]


def wire_field_names(struct_type: type) -> List[str]:
    """Encoded (camelCase) field names of a Struct type, in declaration order."""
    return [field.encode_name for field in msgspec.structs.fields(struct_type)]
