"""
Gemini API client for quiz generation.

Two layers:
- GeminiAPIClient adapts the google-genai SDK into a plain chunk stream.
- LLMCallWrapper issues one unit-of-work call: concatenates the stream,
  retries with linear backoff, reports progress and saves debug copies.

Each GeminiAPIClient owns its own `genai.Client`, so per-document calls can
run concurrently from worker threads.
"""

import json
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, Iterator, List, Optional, Protocol, Tuple

from google import genai  # google-genai unified SDK
from google.genai import types as genai_types

from config import build_client, create_model
from ..models import DocumentRef
from ..parsers.truncation import TITLE_PATTERN
from ..utils.exceptions import APIError, ConfigurationError, ContentGenerationError, EmptyResponseError
from ..utils.logging import get_logger
from ..utils.progress import ProgressReporter
from .response_handler import ResponseHandler

logger = get_logger(__name__)


@dataclass(frozen=True)
class PromptParts:
    """A text instruction followed by zero or more document payloads."""

    text: str
    documents: Tuple[DocumentRef, ...] = ()


@dataclass
class CallResult:
    response_text: str
    suggested_title: Optional[str] = None


class StreamingBackend(Protocol):
    def generate_stream(self, parts: PromptParts) -> Iterable[str]:
        ...


class GeminiAPIClient:
    """Client for interacting with Google Gemini API."""

    def __init__(self, model: Any = None, api_key: Optional[str] = None, *,
                 safety_threshold: Optional[str] = None,
                 client: Optional[genai.Client] = None):
        """
        Initialize the Gemini API client.

        Args:
            model: Model alias/id, or a dict from config.create_model
            api_key: Optional API key (defaults to GEMINI_API_KEY)
            safety_threshold: Block threshold for the four harm categories
            client: Pre-built genai.Client (mainly for tests)

        Raises:
            ConfigurationError: If no API key is available
        """
        if isinstance(model, dict):
            model_config = model
        else:
            try:
                model_config = create_model(model, safety_threshold)
            except ValueError as e:
                raise ConfigurationError(str(e))

        self.model_name: str = model_config["model_name"]
        self.generation_config: Dict[str, Any] = dict(model_config.get("generation_config") or {})
        self.safety_settings = model_config.get("safety_settings")

        if client is not None:
            self._client = client
        else:
            try:
                self._client = build_client(api_key)
            except ValueError as e:
                raise ConfigurationError(str(e))

    def _build_config(self) -> genai_types.GenerateContentConfig:
        return genai_types.GenerateContentConfig(
            response_mime_type="application/json",
            safety_settings=self.safety_settings,
            **self.generation_config,
        )

    @staticmethod
    def build_contents(parts: PromptParts) -> List[genai_types.Content]:
        """Text instruction first, then one inline-data part per document."""
        content_parts = [genai_types.Part.from_text(text=parts.text)]
        for document in parts.documents:
            content_parts.append(
                genai_types.Part.from_bytes(data=document.raw_bytes(), mime_type=document.mime_type)
            )
        return [genai_types.Content(role="user", parts=content_parts)]

    def generate_stream(self, parts: PromptParts) -> Iterator[str]:
        """
        Stream text chunks for one request.

        Raises:
            ContentGenerationError: If the prompt or response is blocked
        """
        stream = self._client.models.generate_content_stream(
            model=self.model_name,
            contents=self.build_contents(parts),
            config=self._build_config(),
        )
        received = 0
        for chunk in stream:
            self._check_prompt_feedback(chunk)
            text = chunk.text
            if text:
                received += len(text)
                yield text
            self._check_finish_reason(chunk, received)

    @staticmethod
    def _check_prompt_feedback(chunk: Any) -> None:
        feedback = getattr(chunk, "prompt_feedback", None)
        block_reason = getattr(feedback, "block_reason", None) if feedback is not None else None
        if block_reason:
            msg = f"Prompt blocked: block_reason={block_reason}"
            logger.warning(msg)
            raise ContentGenerationError(msg)

    @staticmethod
    def _check_finish_reason(chunk: Any, received: int) -> None:
        candidates = getattr(chunk, "candidates", None) or []
        if not candidates or candidates[0].finish_reason is None:
            return
        finish_reason = str(candidates[0].finish_reason)
        if 'MAX_TOKENS' in finish_reason:
            logger.warning(f"Response truncated due to token limit (length: {received})")
        elif 'SAFETY' in finish_reason:
            logger.warning("Response blocked due to safety concerns")
            raise ContentGenerationError("Response blocked due to safety")


def extract_suggested_title(response_text: str) -> Optional[str]:
    """Best-effort title lookup; any failure yields None."""
    try:
        return _lookup_title(response_text or "")
    except Exception as e:
        logger.debug(f"Title extraction skipped: {e}")
        return None


def _lookup_title(response_text: str) -> Optional[str]:
    start = response_text.find("{")
    end = response_text.rfind("}")
    if start != -1 and end > start:
        try:
            data = json.loads(response_text[start:end + 1], strict=False)
        except (ValueError, RecursionError):
            data = None
        if isinstance(data, dict) and isinstance(data.get("title"), str) and data["title"].strip():
            return data["title"].strip()
    match = TITLE_PATTERN.search(response_text)
    return match.group(1).strip() if match else None


class LLMCallWrapper:
    """Issues one streaming generation call per unit of work."""

    def __init__(self, backend: StreamingBackend, max_retries: int = 2,
                 rate_limit_delay_ms: int = 1500,
                 progress: Optional[ProgressReporter] = None,
                 response_handler: Optional[ResponseHandler] = None,
                 sleep: Callable[[float], None] = time.sleep):
        """
        Args:
            backend: Anything with generate_stream(parts) yielding text chunks
            max_retries: Retries after the first attempt
            rate_limit_delay_ms: Base backoff; attempt n waits n times this
            progress: Progress channel for status messages
            response_handler: Debug response capture
            sleep: Sleep function (injectable for tests)
        """
        self.backend = backend
        self.max_retries = max_retries
        self.rate_limit_delay_ms = rate_limit_delay_ms
        self.progress = progress or ProgressReporter()
        self.response_handler = response_handler or ResponseHandler()
        self._sleep = sleep

    def _stream_text(self, parts: PromptParts) -> str:
        return "".join(self.backend.generate_stream(parts))

    def call(self, parts: PromptParts, descriptor: str, attempt: int = 1) -> CallResult:
        """
        Send one request and return the concatenated response.

        Args:
            parts: Prompt text plus document payloads
            descriptor: Human-readable unit label used in progress and logs
            attempt: Attempt number to start from

        Returns:
            CallResult with the raw text and a suggested title if one was found

        Raises:
            APIError: When every attempt failed
        """
        while True:
            self.progress.emit(f"Generating questions for {descriptor} (attempt {attempt})...")
            try:
                response_text = self._stream_text(parts)
                if not response_text.strip():
                    raise EmptyResponseError(f"Empty response from API for {descriptor}")
            except Exception as e:
                logger.error(f"Content generation failed for {descriptor} "
                             f"(attempt {attempt}/{self.max_retries + 1}): {e}")
                if attempt <= self.max_retries:
                    delay = self.rate_limit_delay_ms * attempt / 1000.0
                    self.progress.emit(f"Request for {descriptor} failed, retrying in {delay:.1f}s...")
                    logger.info(f"Retrying {descriptor} in {delay:.1f} seconds...")
                    self._sleep(delay)
                    attempt += 1
                    continue
                self.progress.emit(f"Request for {descriptor} failed after {attempt} attempts")
                if isinstance(e, APIError):
                    raise
                raise ContentGenerationError(
                    f"Failed to generate content for {descriptor} after {attempt} attempts: {e}"
                ) from e

            self.progress.emit(f"Received response for {descriptor} ({len(response_text)} characters)")
            logger.debug(f"Response for {descriptor}: {len(response_text)} characters")
            self.response_handler.save_response(response_text, descriptor, attempt)
            return CallResult(response_text, extract_suggested_title(response_text))
