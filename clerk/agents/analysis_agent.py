"""Analysis Agent - sends the built request to the model and checks the reply.

The agent is stateless and reentrant: it imposes no queueing or concurrency
limit and never retries. Each call either returns a fully populated
AnalysisResult or raises one of the LLMError subclasses:

- ServiceUnavailableError: no usable credential (credential check enabled)
- AuthenticationError: the provider rejected the credential
- AnalysisRequestError: transport, provider or timeout failure
- UnparsableResponseError: the reply does not decode into AnalysisResult
"""

import asyncio
import os
from typing import Any, Dict, Optional

import msgspec
from loguru import logger

from clerk.backends import GenerativeBackend
from clerk.error_handling import (
    AnalysisRequestError,
    LLMError,
    ServiceUnavailableError,
    UnparsableResponseError,
)
from clerk.logging_config import get_component_logger, log_agent_execution
from clerk.models import AnalysisResult

_result_decoder = msgspec.json.Decoder(AnalysisResult)


def strip_code_fences(text: str) -> str:
    """Remove a surrounding Markdown code block, if the model added one."""
    cleaned = text.strip()
    if cleaned.startswith("```json"):
        cleaned = cleaned[7:]
    if cleaned.startswith("```"):
        cleaned = cleaned[3:]
    if cleaned.endswith("```"):
        cleaned = cleaned[:-3]
    return cleaned.strip()


class AnalysisAgent:
    """Runs one corpus-conditioned analysis against a generative backend."""

    def __init__(
        self,
        backend: GenerativeBackend,
        credential_check: Optional[bool] = None,
        timeout_seconds: Optional[float] = None
    ):
        """Initialize the Analysis Agent.

        Args:
            backend: Generative backend performing the model call
            credential_check: Refuse to call the backend without a credential
                (defaults to CREDENTIAL_CHECK_ENABLED env var, true)
            timeout_seconds: Abort the call after this many seconds; 0 or None
                waits indefinitely (defaults to ANALYSIS_TIMEOUT_SECONDS env var)
        """
        self.backend = backend

        if credential_check is None:
            credential_check = os.getenv("CREDENTIAL_CHECK_ENABLED", "true").lower() == "true"
        self.credential_check = credential_check

        if timeout_seconds is None:
            timeout_seconds = float(os.getenv("ANALYSIS_TIMEOUT_SECONDS", "0"))
        self.timeout_seconds = timeout_seconds or None

        logger.info(
            "Analysis Agent initialized",
            model=backend.model_id,
            credential_check=self.credential_check,
            timeout_seconds=self.timeout_seconds
        )

    @property
    def service_available(self) -> bool:
        """False when the credential check is on and no credential is configured."""
        return not self.credential_check or self.backend.has_credential

    @log_agent_execution("AnalysisAgent")
    async def analyze(self, prompt: str, response_schema: Dict[str, Any]) -> AnalysisResult:
        """Send the prompt and schema to the model and parse its reply.

        Args:
            prompt: Prompt built by the AnalysisRequestBuilder
            response_schema: Response-shape contract for the model

        Returns:
            Fully populated AnalysisResult

        Raises:
            LLMError: One of its subclasses, see module docstring
        """
        agent_logger = get_component_logger("AnalysisAgent", model=self.backend.model_id)

        if not self.service_available:
            raise ServiceUnavailableError("GOOGLE_API_KEY is not configured")

        agent_logger.info("Requesting analysis", prompt_length=len(prompt))

        try:
            if self.timeout_seconds:
                text = await asyncio.wait_for(
                    self.backend.generate(prompt, response_schema),
                    timeout=self.timeout_seconds
                )
            else:
                text = await self.backend.generate(prompt, response_schema)
        except LLMError:
            raise
        except asyncio.TimeoutError as e:
            raise AnalysisRequestError(
                f"Analysis request timed out after {self.timeout_seconds}s"
            ) from e
        except Exception as e:
            raise AnalysisRequestError(f"Analysis request failed: {e}") from e

        agent_logger.info("Received model reply", response_length=len(text or ""))
        return self._parse_result(text, agent_logger)

    def _parse_result(self, text: Optional[str], agent_logger) -> AnalysisResult:
        """Decode reply text into an AnalysisResult.

        Raises:
            UnparsableResponseError: If the text is empty, not JSON, or lacks a field
        """
        if not text or not text.strip():
            raise UnparsableResponseError("Model returned an empty reply")

        try:
            return _result_decoder.decode(strip_code_fences(text).encode("utf-8"))
        except (msgspec.DecodeError, msgspec.ValidationError) as e:
            agent_logger.error(f"Failed to process AI response: {e}")
            agent_logger.debug(f"Response text: {text[:500]}")
            raise UnparsableResponseError(f"Unparsable model reply: {e}") from e
