"""
Unit-of-work outcomes and the reduced-count retry ladders.
"""

import math
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Sequence, Tuple

from constants import (
    BALANCED_RETRY_FLOOR,
    BALANCED_RETRY_RATIO,
    MINIMUM_RETRY_COUNT,
    SINGLE_DOCUMENT_RETRY_FLOOR,
    SINGLE_DOCUMENT_RETRY_RATIO,
)
from ..models import Question


class OutcomeKind(str, Enum):
    OK = "ok"
    RECOVERABLE = "recoverable"
    FATAL = "fatal"


@dataclass(frozen=True)
class UnitOutcome:
    """Result of one LLM call scoped to a document or a batch."""

    kind: OutcomeKind
    questions: Tuple[Question, ...] = ()
    suggested_title: Optional[str] = None
    reason: str = ""
    suggested_retry_count: Optional[int] = None

    @classmethod
    def ok(cls, questions: Sequence[Question], suggested_title: Optional[str] = None) -> "UnitOutcome":
        return cls(OutcomeKind.OK, questions=tuple(questions), suggested_title=suggested_title)

    @classmethod
    def recoverable(cls, reason: str, suggested_retry_count: int) -> "UnitOutcome":
        return cls(OutcomeKind.RECOVERABLE, reason=reason, suggested_retry_count=suggested_retry_count)

    @classmethod
    def fatal(cls, reason: str) -> "UnitOutcome":
        return cls(OutcomeKind.FATAL, reason=reason)

    @property
    def is_ok(self) -> bool:
        return self.kind is OutcomeKind.OK

    @property
    def is_recoverable(self) -> bool:
        return self.kind is OutcomeKind.RECOVERABLE

    @property
    def is_fatal(self) -> bool:
        return self.kind is OutcomeKind.FATAL


def single_document_retry_count(current: int, retries_done: int) -> Optional[int]:
    """
    Next question count after a truncated single-document call.

    First retry: 30% of the count (at least 3), or straight to 2 for counts
    of 3 or less. Second retry: 2. None means give up.
    """
    if retries_done == 0:
        if current > SINGLE_DOCUMENT_RETRY_FLOOR:
            return max(SINGLE_DOCUMENT_RETRY_FLOOR, math.floor(current * SINGLE_DOCUMENT_RETRY_RATIO))
        if current > MINIMUM_RETRY_COUNT:
            return MINIMUM_RETRY_COUNT
        return None
    if retries_done == 1 and current > MINIMUM_RETRY_COUNT:
        return MINIMUM_RETRY_COUNT
    return None


def balanced_retry_count(current: int, retries_done: int) -> Optional[int]:
    """Next count after a truncated balanced call: 60% (at least 10) while above 10."""
    if current > BALANCED_RETRY_FLOOR:
        return max(BALANCED_RETRY_FLOOR, math.floor(current * BALANCED_RETRY_RATIO))
    return None


def no_retry(current: int, retries_done: int) -> Optional[int]:
    return None
