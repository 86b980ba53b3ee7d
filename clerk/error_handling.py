"""Error handling for the Judicial Clerk system.

Provides custom exceptions and error handling decorators. Every exception
carries a ``user_message`` suitable for display to the judge; analysis
failures are never retried automatically.
"""

from functools import wraps
from typing import Any, Callable, Iterable, Optional, Type
from loguru import logger


# Custom Exception Classes

class JudicialClerkError(Exception):
    """Base exception for all Judicial Clerk errors."""

    user_message = "An unexpected error occurred."

    def __init__(self, message: Optional[str] = None, user_message: Optional[str] = None):
        super().__init__(message or self.user_message)
        if user_message:
            self.user_message = user_message


class DocumentParsingError(JudicialClerkError):
    """Raised when an uploaded file cannot be read or decoded as text."""

    user_message = "The file could not be read as plain text."


class CorpusStoreError(JudicialClerkError):
    """Raised when a corpus mutation violates the store's invariants."""

    user_message = "The decision corpus could not be updated."


class CaseDraftValidationError(JudicialClerkError):
    """Raised when a case draft is submitted without its required fields."""

    user_message = "Parties, charges and facts are required."

    def __init__(self, missing_fields: Iterable[str]):
        self.missing_fields = list(missing_fields)
        super().__init__(f"Missing required case fields: {', '.join(self.missing_fields)}")


class EmptyCorpusError(JudicialClerkError):
    """Raised when analysis is requested before any decision was uploaded."""

    user_message = "Upload previous decisions to get started."


class AnalysisInProgressError(JudicialClerkError):
    """Raised when a submission arrives while another analysis is pending."""

    user_message = "An analysis is already being drafted. Please wait for it to finish."


class LLMError(JudicialClerkError):
    """Raised when a generative model call fails."""

    user_message = "Failed to analyze the case."


class ServiceUnavailableError(LLMError):
    """Raised when no usable API credential is configured."""

    user_message = "API key not configured! The system cannot analyze cases."


class AuthenticationError(LLMError):
    """Raised when the provider rejects the configured credential."""

    user_message = "Invalid API key. Check the GOOGLE_API_KEY configuration."


class AnalysisRequestError(LLMError):
    """Raised on transport or provider failures other than authentication."""

    user_message = "Failed to analyze the case. Check your connection or the API key and try again."


class UnparsableResponseError(LLMError):
    """Raised when the model reply does not decode into an AnalysisResult."""

    user_message = "Could not generate the sentencing proposal."


def handle_errors(
    error_type: Type[JudicialClerkError],
    default_return: Any = None,
    reraise: bool = True
) -> Callable:
    """Decorator to handle errors and convert them to custom exception types.

    Args:
        error_type: Custom exception type to raise
        default_return: Default value to return on error (if not reraising)
        reraise: Whether to reraise the exception after logging

    Returns:
        Decorated function with error handling
    """
    def decorator(func: Callable) -> Callable:
        @wraps(func)
        def wrapper(*args, **kwargs) -> Any:
            try:
                return func(*args, **kwargs)

            except JudicialClerkError:
                # Already a custom exception, just reraise
                raise

            except Exception as e:
                logger.error(
                    f"Error in {func.__name__}",
                    error=str(e),
                    error_type=type(e).__name__
                )

                if reraise:
                    raise error_type(f"Error in {func.__name__}: {str(e)}") from e
                else:
                    return default_return

        return wrapper
    return decorator
