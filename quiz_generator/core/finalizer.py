"""
Quality filter: relevance-filter the pooled questions and trim to the target.
"""

from typing import AbstractSet, List, Optional, Sequence

from ..models import GenerationMetadata, GenerationResult, Question
from ..utils.logging import get_logger

logger = get_logger(__name__)


def is_relevant(question: Question, keywords: Optional[AbstractSet[str]]) -> bool:
    """True if any keyword occurs in the question text, options or explanation."""
    if not keywords:
        return True
    haystack = question.searchable_text()
    return any(keyword in haystack for keyword in keywords)


def finalize_quiz(questions: Sequence[Question], target_count: int, strategy: str,
                  suggested_title: Optional[str] = None,
                  keywords: Optional[AbstractSet[str]] = None) -> GenerationResult:
    """
    Filter and trim the aggregate question pool.

    Never pads: the result may hold fewer than ``target_count`` questions.

    Args:
        questions: Every question produced by the units of work
        target_count: Requested number of questions
        strategy: Strategy label recorded in the metadata
        suggested_title: Title proposed by the model, if any
        keywords: Domain keywords; falsy disables the relevance filter

    Returns:
        GenerationResult with at most target_count questions
    """
    valid = [q for q in questions if q is not None and q.text]
    relevant = [q for q in valid if is_relevant(q, keywords)]
    dropped = len(valid) - len(relevant)
    if dropped:
        logger.info(f"Relevance filter removed {dropped} of {len(valid)} questions")

    selected: List[Question] = relevant[:max(0, target_count)]
    if len(selected) < target_count:
        logger.warning(f"Only {len(selected)} of {target_count} requested questions available")

    return GenerationResult(
        questions=selected,
        metadata=GenerationMetadata(
            strategy_used=strategy,
            requested_count=target_count,
            raw_generated_count=len(questions),
            selected_count=len(selected),
            suggested_title=suggested_title,
        ),
    )
