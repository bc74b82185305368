"""Core generation modules"""

from .finalizer import finalize_quiz
from .orchestrator import ScalableQuizGenerator, adjust_question_count_for_document
from .outcome import UnitOutcome

__all__ = [
    "finalize_quiz",
    "ScalableQuizGenerator",
    "adjust_question_count_for_document",
    "UnitOutcome"
]
