"""API client modules for Gemini"""

from .client import CallResult, GeminiAPIClient, LLMCallWrapper, PromptParts
from .response_handler import ResponseHandler

__all__ = [
    "CallResult",
    "GeminiAPIClient",
    "LLMCallWrapper",
    "PromptParts",
    "ResponseHandler"
]
