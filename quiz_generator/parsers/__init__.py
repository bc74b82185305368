"""Response parsing and correction modules"""

from .quiz_parser import CorrectionStats, QuizJSONParser
from .diagnostics import FailureAnalysis

__all__ = [
    "CorrectionStats",
    "QuizJSONParser",
    "FailureAnalysis"
]
