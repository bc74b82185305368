"""
Custom exceptions for the quiz generator package.
"""

from typing import Any, Optional


class QuizGeneratorError(Exception):
    """Base exception for quiz generator errors."""
    pass


class ConfigurationError(QuizGeneratorError):
    """Raised when generation options or credentials are invalid."""
    pass


class APIError(QuizGeneratorError):
    """Base exception for LLM API errors."""
    pass


class ContentGenerationError(APIError):
    """Raised when content generation fails."""
    pass


class EmptyResponseError(APIError):
    """Raised when the response stream produced no text."""
    pass


class JSONExtractionError(QuizGeneratorError):
    """Raised when no JSON object can be located in a response."""
    pass


class QuizParsingError(QuizGeneratorError):
    """Raised when a response cannot be turned into a quiz after all repairs.

    The ``analysis`` attribute holds a ``FailureAnalysis`` describing why.
    """

    def __init__(self, message: str, analysis: Any = None,
                 original_error: Optional[BaseException] = None):
        super().__init__(message)
        self.analysis = analysis
        self.original_error = original_error


class GenerationFailedError(QuizGeneratorError):
    """Raised in strict mode when no unit of work produced any question."""
    pass


class InvalidRequestError(QuizGeneratorError):
    """Raised when a generation request is malformed."""
    pass


class InvalidDocumentError(InvalidRequestError):
    """Raised when a document cannot be used for generation."""
    pass


class DocumentTooLargeError(InvalidDocumentError):
    """Raised when a document exceeds the size accepted for generation."""
    pass


TRUNCATION_INDICATORS = (
    "json appears to be truncated",
    "incomplete response from ai",
    "unexpected end of json",
    "unterminated string",
    "unexpected token",
    "malformed json",
    "parsing error",
    "expecting",
)


def is_truncation_error(error: Optional[BaseException]) -> bool:
    """Return True if an error most likely comes from a cut-off response.

    Checks the message for known truncation phrases and, for parse errors,
    the attached failure analysis.
    """
    if error is None:
        return False

    analysis = getattr(error, "analysis", None)
    if analysis is not None:
        if getattr(analysis, "appears_truncated", False):
            return True
        summary = (getattr(analysis, "summary", "") or "").lower()
        if "truncated" in summary:
            return True

    message = str(error).lower()
    return any(indicator in message for indicator in TRUNCATION_INDICATORS)
