"""Analysis Request Builder.

Turns the decision corpus and a case draft into a single prompt plus the
response schema that constrains the model to the AnalysisResult shape.

The entire corpus is embedded verbatim on every request. There is no
truncation or retrieval step, so a large enough corpus will exceed the
model's input limit; the builder only logs a warning when the estimated
token count crosses the configured threshold.
"""

import os
from typing import Any, Dict, List, Optional
from loguru import logger

from clerk.error_handling import CaseDraftValidationError
from clerk.models import AnalysisRequest, AnalysisResult, CaseDraft, DecisionRecord, wire_field_names

NO_DECISIONS_SENTINEL = "No previous decisions uploaded yet."
RECORD_SEPARATOR = "\n\n---\n\n"
NOT_PROVIDED = "Not provided"

# Rough estimate used for the size warning only
CHARS_PER_TOKEN = 4

_FIELD_DESCRIPTIONS = {
    "suggestedSentence": (
        "The specific sentencing recommendation (e.g. fine, term of imprisonment, "
        "custody regime, community service)."
    ),
    "reasoning": (
        "Detailed legal reasoning connecting the new case to the patterns found "
        "in the previous decisions."
    ),
    "comparativePrecedents": (
        "Titles or references of the corpus decisions that were most relevant "
        "to this proposal."
    ),
    "draftJudgment": "A formal draft of the judicial decision in the style established by the judge.",
}


def validate_draft(draft: CaseDraft) -> None:
    """Reject a draft whose required fields are empty.

    Raises:
        CaseDraftValidationError: Naming every missing field
    """
    missing = draft.missing_fields()
    if missing:
        raise CaseDraftValidationError(missing)


def build_response_schema() -> Dict[str, Any]:
    """Gemini response schema mirroring AnalysisResult; every field required."""
    properties = {}
    for name in wire_field_names(AnalysisResult):
        if name == "comparativePrecedents":
            prop = {"type": "ARRAY", "items": {"type": "STRING"}}
        else:
            prop = {"type": "STRING"}
        prop["description"] = _FIELD_DESCRIPTIONS[name]
        properties[name] = prop

    return {
        "type": "OBJECT",
        "properties": properties,
        "required": wire_field_names(AnalysisResult),
    }


class AnalysisRequestBuilder:
    """Composes the corpus-conditioned analysis prompt."""

    def __init__(
        self,
        language: Optional[str] = None,
        token_warning_threshold: Optional[int] = None
    ):
        """Initialize the builder.

        Args:
            language: Language the model must answer in (defaults to ANALYSIS_LANGUAGE env var)
            token_warning_threshold: Estimated prompt tokens above which a warning is logged
        """
        self.language = language or os.getenv("ANALYSIS_LANGUAGE", "English")
        if token_warning_threshold is None:
            token_warning_threshold = int(os.getenv("PROMPT_TOKEN_WARNING", "900000"))
        self.token_warning_threshold = token_warning_threshold
        self.response_schema = build_response_schema()

    def build(self, corpus: List[DecisionRecord], draft: CaseDraft) -> AnalysisRequest:
        """Build the prompt and schema for one analysis.

        Args:
            corpus: Every stored decision, in store order
            draft: The case under analysis (required fields must be filled)

        Returns:
            AnalysisRequest with prompt and response schema
        """
        validate_draft(draft)

        prompt = f"""You are an experienced judicial clerk assisting a judge.
Your task is to analyze a NEW CASE and suggest a sentence and a draft judgment based on the PREVIOUS DECISIONS provided by the judge.

Keep the legal reasoning, technical terminology, writing style and the severity or leniency found in the previous decisions of the corpus consistent.

### CONTEXT OF PREVIOUS DECISIONS (JUDGE'S STYLE):
{self.render_corpus(corpus)}

### NEW CASE DETAILS:
{self.render_case(draft)}

Provide your output strictly in JSON format and in {self.language}."""

        estimated_tokens = len(prompt) // CHARS_PER_TOKEN
        if estimated_tokens > self.token_warning_threshold:
            logger.warning(
                "Analysis prompt is close to the model input limit",
                estimated_tokens=estimated_tokens,
                threshold=self.token_warning_threshold,
                decision_count=len(corpus)
            )
        else:
            logger.debug(
                "Analysis prompt built",
                estimated_tokens=estimated_tokens,
                decision_count=len(corpus)
            )

        return AnalysisRequest(prompt=prompt, response_schema=self.response_schema)

    @staticmethod
    def render_corpus(corpus: List[DecisionRecord]) -> str:
        if not corpus:
            return NO_DECISIONS_SENTINEL

        return RECORD_SEPARATOR.join(
            f"[Decision ID: {d.id}]\nTitle: {d.title}\nContent: {d.content}"
            for d in corpus
        )

    @staticmethod
    def render_case(draft: CaseDraft) -> str:
        return "\n".join([
            f"Parties: {draft.parties}",
            f"Charges: {draft.charges}",
            f"Facts: {draft.facts}",
            f"Mitigating Factors: {draft.mitigating_factors or NOT_PROVIDED}",
            f"Aggravating Factors: {draft.aggravating_factors or NOT_PROVIDED}",
        ])
