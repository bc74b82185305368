"""Quiz Generator - turns source documents into validated multiple-choice exams"""

from quiz_generator.core.orchestrator import ScalableQuizGenerator
from quiz_generator.models import DocumentRef, GenerationRequest, GenerationResult, Question, Strategy
from quiz_generator.parsers.quiz_parser import QuizJSONParser
from quiz_generator.strategies.selector import select_strategy
from quiz_generator.utils.config import GenerationOptions

__version__ = "1.0.0"
__all__ = [
    "ScalableQuizGenerator",
    "DocumentRef",
    "GenerationRequest",
    "GenerationResult",
    "Question",
    "Strategy",
    "QuizJSONParser",
    "select_strategy",
    "GenerationOptions"
]
