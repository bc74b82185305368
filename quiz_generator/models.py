"""
Data model shared by the parser, orchestrator and callers.
"""

import base64
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence

from .utils.exceptions import InvalidDocumentError, InvalidRequestError


class Strategy(str, Enum):
    """Partitioning scheme used to split a request across LLM calls."""

    AUTO = "auto"
    PER_DOCUMENT = "perDocument"
    BATCHED = "batched"
    HYBRID = "hybrid"
    BALANCED = "balanced"

    @classmethod
    def parse(cls, value: Any) -> "Strategy":
        if isinstance(value, cls):
            return value
        text = str(value or "auto").strip()
        for member in cls:
            if text == member.value or text.lower() == member.value.lower():
                return member
        aliases = {"per_document": cls.PER_DOCUMENT, "per-document": cls.PER_DOCUMENT}
        if text.lower() in aliases:
            return aliases[text.lower()]
        raise ValueError(f"Unknown strategy: {value}")


class Difficulty(str, Enum):
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


OPTION_IDS = ("A", "B", "C", "D")


@dataclass(frozen=True)
class DocumentRef:
    """A caller-supplied source document.

    ``data`` is the base64-encoded payload; the core never decodes it except
    to hand bytes to the LLM SDK.
    """

    id: str
    title: str
    mime_type: str
    data: str

    @property
    def payload_size(self) -> int:
        """Length of the encoded payload, used by the size heuristics."""
        return len(self.data or "")

    def raw_bytes(self) -> bytes:
        try:
            return base64.b64decode(self.data, validate=True)
        except (ValueError, TypeError) as e:
            raise InvalidDocumentError(f"Document {self.id} payload is not valid base64: {e}")

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "title": self.title, "mime_type": self.mime_type}


@dataclass
class GenerationRequest:
    documents: Sequence[DocumentRef]
    total_questions: int
    strategy_hint: Strategy = Strategy.AUTO

    def __post_init__(self):
        self.documents = list(self.documents or [])
        if not isinstance(self.total_questions, int) or isinstance(self.total_questions, bool) \
                or self.total_questions <= 0:
            raise InvalidRequestError(
                f"total_questions must be a positive integer, got {self.total_questions!r}"
            )
        try:
            self.strategy_hint = Strategy.parse(self.strategy_hint)
        except ValueError as e:
            raise InvalidRequestError(str(e))
        for doc in self.documents:
            if not isinstance(doc, DocumentRef):
                raise InvalidDocumentError(f"Expected DocumentRef, got {type(doc).__name__}")


@dataclass
class Option:
    id: str
    text: str

    def to_dict(self) -> Dict[str, str]:
        return {"id": self.id, "text": self.text}


@dataclass
class Question:
    text: str
    options: List[Option]
    correct_answer_id: str
    explanation: str = ""
    difficulty: Difficulty = Difficulty.MEDIUM

    def to_dict(self) -> Dict[str, Any]:
        return {
            "text": self.text,
            "options": [option.to_dict() for option in self.options],
            "correct_answer_id": self.correct_answer_id,
            "explanation": self.explanation,
            "difficulty": self.difficulty.value,
        }

    def searchable_text(self) -> str:
        """Question text, option texts and explanation joined and lowercased."""
        parts = [self.text] + [option.text for option in self.options] + [self.explanation]
        return " ".join(part for part in parts if part).lower()


@dataclass
class GenerationMetadata:
    strategy_used: str
    requested_count: int
    raw_generated_count: int = 0
    selected_count: int = 0
    suggested_title: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "strategy_used": self.strategy_used,
            "requested_count": self.requested_count,
            "raw_generated_count": self.raw_generated_count,
            "selected_count": self.selected_count,
            "suggested_title": self.suggested_title,
        }


@dataclass
class GenerationResult:
    questions: List[Question] = field(default_factory=list)
    metadata: Optional[GenerationMetadata] = None

    def display_title(self, documents: Sequence[DocumentRef] = ()) -> str:
        """Suggested title, else the single document's title, else a generic one."""
        if self.metadata is not None and self.metadata.suggested_title:
            return self.metadata.suggested_title
        if len(documents) == 1 and documents[0].title:
            return documents[0].title
        return f"Quiz from {len(documents)} document(s)"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "questions": [q.to_dict() for q in self.questions],
            "metadata": self.metadata.to_dict() if self.metadata else None,
        }
