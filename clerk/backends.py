"""Generative model backends for the analysis agent.

A backend is the only component that talks to the external model. It
receives the prompt and the response schema and hands back the raw reply
text; parsing and shape checks happen in the analysis agent, so any backend
(including the fakes used in tests) can be swapped in.
"""

import os
import re
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

from google import genai
from google.genai import errors, types
from loguru import logger

from clerk.error_handling import (
    AnalysisRequestError,
    AuthenticationError,
    ServiceUnavailableError,
)

DEFAULT_MODEL = "gemini-2.5-pro"

_PLACEHOLDER_KEYS = {
    "your_gemini_api_key_here",
    "your_api_key_here",
    "placeholder",
    "test_key",
    "demo_key",
    "undefined",
    "none",
}


def validate_api_key_format(api_key: Optional[str]) -> bool:
    """Return True if ``api_key`` looks like a usable Google API key."""
    if not api_key:
        return False

    if api_key.strip().lower() in _PLACEHOLDER_KEYS:
        return False

    if api_key.startswith("AIza") and len(api_key) == 39:
        return True

    if len(api_key) >= 20 and re.match(r'^[A-Za-z0-9_-]+$', api_key):
        return True

    return False


class GenerativeBackend(ABC):
    """Abstract base class for generative model backends."""

    @abstractmethod
    async def generate(self, prompt: str, response_schema: Dict[str, Any]) -> str:
        """Send the prompt constrained by ``response_schema``; return reply text."""

    @property
    @abstractmethod
    def has_credential(self) -> bool:
        """Whether a usable credential is configured."""

    @property
    @abstractmethod
    def model_id(self) -> str:
        """Model identifier string."""


def _is_auth_failure(error: errors.APIError) -> bool:
    if error.code in (401, 403):
        return True
    text = f"{error.status} {error.message}"
    return "API_KEY_INVALID" in text or "API key not valid" in text


class GeminiBackend(GenerativeBackend):
    """Backend calling Google Gemini through the google-genai SDK."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        model_name: str = DEFAULT_MODEL,
        temperature: float = 0.4
    ):
        """Initialize the Gemini backend.

        The SDK client is created on first use, so a backend without a key
        can be constructed and report ``has_credential == False``.

        Args:
            api_key: Google API key for Gemini (defaults to GOOGLE_API_KEY env var)
            model_name: Gemini model used for analysis
            temperature: Sampling temperature
        """
        self.api_key = api_key or os.getenv("GOOGLE_API_KEY")
        self.model_name = model_name
        self.temperature = temperature
        self._client: Optional[genai.Client] = None

        if not self.has_credential:
            logger.warning("No usable GOOGLE_API_KEY configured - case analysis will be unavailable")

    @property
    def has_credential(self) -> bool:
        return validate_api_key_format(self.api_key)

    @property
    def model_id(self) -> str:
        return self.model_name

    def _get_client(self) -> genai.Client:
        if self._client is None:
            try:
                self._client = genai.Client(api_key=self.api_key)
            except ValueError as e:
                raise ServiceUnavailableError(f"Gemini client could not be created: {e}") from e
        return self._client

    async def generate(self, prompt: str, response_schema: Dict[str, Any]) -> str:
        client = self._get_client()

        try:
            response = await client.aio.models.generate_content(
                model=self.model_name,
                contents=prompt,
                config=types.GenerateContentConfig(
                    temperature=self.temperature,
                    response_mime_type="application/json",
                    response_schema=response_schema
                )
            )
        except errors.APIError as e:
            if _is_auth_failure(e):
                raise AuthenticationError(f"Gemini rejected the API key ({e.code}): {e.message}") from e
            raise AnalysisRequestError(f"Gemini request failed ({e.code}): {e.message}") from e

        return response.text or ""
