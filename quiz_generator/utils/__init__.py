"""Utility modules for quiz generation"""

from .exceptions import QuizGeneratorError, is_truncation_error
from .logging import get_logger
from .progress import ProgressCollector, ProgressReporter

__all__ = [
    "QuizGeneratorError",
    "is_truncation_error",
    "get_logger",
    "ProgressCollector",
    "ProgressReporter"
]
