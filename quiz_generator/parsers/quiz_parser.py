"""
Resilient parser for LLM-generated quiz JSON.

Pipeline per call: extract the brace span, clean whitespace, run the
correction passes, parse, normalize the schema. Each parser instance owns
its own CorrectionStats.
"""

import json
import threading
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

from .corrections import apply_corrections, build_passes, clean_whitespace, extract_json_span
from .diagnostics import FailureAnalysis, analyze_parsing_failure
from .schema import normalize_quiz, to_questions
from ..models import Question
from ..utils.exceptions import JSONExtractionError, QuizParsingError
from ..utils.logging import get_logger

logger = get_logger(__name__)

FALLBACK_STATUS = "fallback"


@dataclass
class CorrectionStats:
    total_attempts: int = 0
    successful_corrections: int = 0
    failed_corrections: int = 0
    correction_types: Dict[str, int] = field(default_factory=dict)

    def track(self, label: str, count: int = 1) -> None:
        self.correction_types[label] = self.correction_types.get(label, 0) + count

    @property
    def success_rate(self) -> float:
        if not self.total_attempts:
            return 0.0
        return self.successful_corrections / self.total_attempts * 100

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_attempts": self.total_attempts,
            "successful_corrections": self.successful_corrections,
            "failed_corrections": self.failed_corrections,
            "correction_types": dict(self.correction_types),
        }


def is_fallback(data: Dict[str, Any]) -> bool:
    """True if ``data`` is the empty structure returned for an unparseable response."""
    metadata = data.get("metadata") if isinstance(data, dict) else None
    return isinstance(metadata, dict) and metadata.get("status") == FALLBACK_STATUS


def fallback_analysis(data: Dict[str, Any]) -> Optional[FailureAnalysis]:
    if not is_fallback(data):
        return None
    return data["metadata"].get("analysis")


class QuizJSONParser:
    """Extracts, repairs and validates quiz JSON produced by an LLM."""

    def __init__(self, enable_logging: bool = False, throw_on_unrecoverable: bool = False,
                 disabled_passes: Optional[Iterable[str]] = None):
        """
        Initialize the parser.

        Args:
            enable_logging: Log per-call statistics and previews at INFO
            throw_on_unrecoverable: Raise QuizParsingError instead of returning a fallback
            disabled_passes: Correction pass labels to skip
        """
        self.enable_logging = enable_logging
        self.throw_on_unrecoverable = throw_on_unrecoverable
        self.passes = build_passes(disabled_passes)
        self._stats = CorrectionStats()
        # Per-document units share one parser across worker threads
        self._lock = threading.Lock()

    def _track(self, label: str, count: int = 1) -> None:
        with self._lock:
            self._stats.track(label, count)
        logger.debug(f"Applied correction {label} x{count}")

    def parse_quiz_json(self, raw_response: str) -> Dict[str, Any]:
        """
        Parse and correct one raw LLM response.

        Args:
            raw_response: Raw response text

        Returns:
            Dict with a "questions" list (plus "title" when present), or the
            fallback structure when lenient and nothing could be recovered

        Raises:
            QuizParsingError: If strict and the response is unrecoverable
        """
        raw_response = raw_response or ""
        with self._lock:
            self._stats.total_attempts += 1

        logger.debug(f"Raw LLM response length: {len(raw_response)}")
        logger.debug(f"Raw response preview: {raw_response[:200]}...")

        corrected: Optional[str] = None
        try:
            cleaned = clean_whitespace(extract_json_span(raw_response))
            corrected = apply_corrections(cleaned, self.passes, on_correction=self._track)
            data = json.loads(corrected, strict=False)
            data = normalize_quiz(data, track=self._track)
        except (JSONExtractionError, QuizParsingError, ValueError, RecursionError) as e:
            return self._handle_failure(raw_response, corrected, e)

        with self._lock:
            self._stats.successful_corrections += 1
        logger.debug(f"Successfully parsed quiz with {len(data['questions'])} questions")
        self.log_stats()
        return data

    def to_questions(self, data: Dict[str, Any]) -> List[Question]:
        """Convert parsed quiz data into Question objects with four options each."""
        return to_questions(data, track=self._track)

    def parse_questions(self, raw_response: str) -> List[Question]:
        return self.to_questions(self.parse_quiz_json(raw_response))

    def _handle_failure(self, raw_response: str, corrected: Optional[str],
                        error: Exception) -> Dict[str, Any]:
        with self._lock:
            self._stats.failed_corrections += 1
        logger.error(f"Failed to parse quiz JSON: {error}")

        analysis = analyze_parsing_failure(raw_response, corrected, error)
        logger.debug(f"Failure analysis: {analysis.to_dict()}")
        if corrected is not None:
            logger.debug(f"Problematic JSON (first 500 chars): {corrected[:500]}")
            logger.debug(f"Problematic JSON (last 500 chars): {corrected[-500:]}")
        else:
            logger.debug("JSON parsing failed before corrections could be applied")
        logger.debug(f"Attempted corrections: {list(self._stats.correction_types)}")
        self.log_stats()

        if self.throw_on_unrecoverable:
            raise QuizParsingError(
                f"Unable to parse quiz JSON after corrections: {error}. Analysis: {analysis.summary}",
                analysis=analysis,
                original_error=error,
            ) from error

        return self.create_fallback_structure(analysis)

    def create_fallback_structure(self, analysis: Optional[FailureAnalysis] = None) -> Dict[str, Any]:
        logger.warning("Creating fallback quiz structure")
        return {
            "questions": [],
            "metadata": {
                "generated": datetime.now().isoformat(),
                "status": FALLBACK_STATUS,
                "error": "Unable to parse original response",
                "analysis": analysis,
            },
        }

    def get_stats(self) -> Dict[str, Any]:
        with self._lock:
            return self._stats.to_dict()

    def reset_stats(self) -> None:
        with self._lock:
            self._stats = CorrectionStats()

    def log_stats(self) -> None:
        with self._lock:
            summary = {
                "total_attempts": self._stats.total_attempts,
                "success_rate": f"{self._stats.success_rate:.1f}%",
                "correction_types": dict(self._stats.correction_types),
            }
        if self.enable_logging:
            logger.info(f"Parser statistics: {summary}")
        else:
            logger.debug(f"Parser statistics: {summary}")
