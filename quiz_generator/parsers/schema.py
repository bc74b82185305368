"""
Schema normalization for parsed quiz data.

``normalize_quiz`` repairs the raw dict shape (missing arrays, ids, text);
``to_questions`` turns the repaired dicts into Question objects with
exactly four options each.
"""

from typing import Any, Callable, Dict, List, Optional

from ..models import Difficulty, OPTION_IDS, Option, Question
from ..utils.exceptions import QuizParsingError
from ..utils.logging import get_logger

logger = get_logger(__name__)

Tracker = Callable[[str], None]

ANSWER_KEYS = ("correct_answer_id", "correct_answer", "correct", "answer")
QUESTION_TEXT_KEYS = ("text", "question", "question_text")
DIFFICULTY_ALIASES = {
    "easy": Difficulty.EASY,
    "beginner": Difficulty.EASY,
    "medium": Difficulty.MEDIUM,
    "intermediate": Difficulty.MEDIUM,
    "moderate": Difficulty.MEDIUM,
    "hard": Difficulty.HARD,
    "difficult": Difficulty.HARD,
    "advanced": Difficulty.HARD,
}


def _noop(label: str) -> None:
    return None


def normalize_option(option: Any, question_index: int, option_index: int,
                     track: Tracker = _noop) -> Optional[Dict[str, Any]]:
    if not isinstance(option, dict):
        logger.debug(f"Removing invalid option at Q{question_index}:O{option_index}")
        return None

    if not option.get("id"):
        option["id"] = chr(65 + option_index)
        track("missing_option_id")

    if not option.get("text"):
        keys = list(option.keys())
        if len(keys) == 2 and "text" not in keys:
            other_key = next(k for k in keys if k != "id")
            if isinstance(option[other_key], str) and option[other_key]:
                option["text"] = option.pop(other_key)
                track("moved_text_from_other_field")
        if not option.get("text"):
            option["text"] = f"Option {option['id']}"
            track("missing_option_text")

    return option


def normalize_question(question: Any, index: int, track: Tracker = _noop) -> Optional[Dict[str, Any]]:
    if not isinstance(question, dict):
        logger.debug(f"Removing invalid question at index {index}")
        return None

    if not isinstance(question.get("options"), list):
        logger.debug(f"Creating missing options array for question {index}")
        question["options"] = []
        track("missing_options_array")

    options = []
    for option_index, option in enumerate(question["options"]):
        normalized = normalize_option(option, index, option_index, track)
        if normalized is not None:
            options.append(normalized)
    question["options"] = options

    if not question.get("text") and not question.get("question"):
        logger.debug(f"Question {index} missing text/question field")
        question["text"] = f"Question {index + 1}"
        track("missing_question_text")

    return question


def normalize_quiz(data: Any, track: Tracker = _noop) -> Dict[str, Any]:
    """
    Ensure the quiz dict has a questions array of well-formed question dicts.

    Args:
        data: Parsed JSON value
        track: Called with a label for every default that was filled in

    Returns:
        The same dict, repaired in place

    Raises:
        QuizParsingError: If the parsed value is not an object
    """
    if not isinstance(data, dict):
        raise QuizParsingError(f"Parsed data is not a valid object: {type(data).__name__}")

    if not isinstance(data.get("questions"), list):
        logger.debug("Creating missing questions array")
        data["questions"] = []
        track("missing_questions_array")

    questions = []
    for index, question in enumerate(data["questions"]):
        normalized = normalize_question(question, index, track)
        if normalized is not None:
            questions.append(normalized)
    data["questions"] = questions
    return data


def normalize_difficulty(value: Any) -> Difficulty:
    if isinstance(value, Difficulty):
        return value
    return DIFFICULTY_ALIASES.get(str(value or "").strip().lower(), Difficulty.MEDIUM)


def _question_text(raw: Dict[str, Any]) -> str:
    for key in QUESTION_TEXT_KEYS:
        value = raw.get(key)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return ""


def _resolve_answer(raw: Dict[str, Any], original_ids: List[str],
                    options: List[Option], track: Tracker) -> str:
    """Map the declared answer onto one of the final option ids."""
    declared = None
    for key in ANSWER_KEYS:
        value = raw.get(key)
        if isinstance(value, (str, int)) and str(value).strip():
            declared = str(value).strip()
            break

    if declared is not None:
        upper = declared.upper()
        for original_id, option in zip(original_ids, options):
            if original_id.upper() == upper:
                return option.id
        # Some responses name the answer by its text
        for option in options:
            if option.text.strip().lower() == declared.lower():
                track("answer_matched_by_text")
                return option.id

    track("defaulted_correct_answer")
    return options[0].id


def to_question(raw: Dict[str, Any], track: Tracker = _noop) -> Optional[Question]:
    """
    Convert one normalized question dict into a Question.

    Returns None when fewer than four usable options exist. Extra options are
    dropped and ids are reassigned A-D by position when they are missing,
    duplicated or outside A-D.
    """
    text = _question_text(raw)
    candidates = [opt for opt in raw.get("options") or []
                  if isinstance(opt, dict) and str(opt.get("text") or "").strip()]
    if not text or len(candidates) < len(OPTION_IDS):
        return None

    if len(candidates) > len(OPTION_IDS):
        track("trimmed_extra_options")
    candidates = candidates[:len(OPTION_IDS)]

    original_ids = [str(opt.get("id") or "").strip() for opt in candidates]
    if sorted(i.upper() for i in original_ids) != list(OPTION_IDS):
        track("reassigned_option_ids")
        final_ids = list(OPTION_IDS)
    else:
        final_ids = [i.upper() for i in original_ids]

    options = [Option(id=option_id, text=str(opt["text"]).strip())
               for option_id, opt in zip(final_ids, candidates)]

    return Question(
        text=text,
        options=options,
        correct_answer_id=_resolve_answer(raw, original_ids, options, track),
        explanation=str(raw.get("explanation") or "").strip(),
        difficulty=normalize_difficulty(raw.get("difficulty")),
    )


def to_questions(data: Dict[str, Any], track: Tracker = _noop) -> List[Question]:
    questions = []
    for index, raw in enumerate(data.get("questions") or []):
        if not isinstance(raw, dict):
            continue
        question = to_question(raw, track)
        if question is None:
            logger.debug(f"Dropping question {index}: missing text or fewer than 4 options")
            track("dropped_incomplete_question")
            continue
        questions.append(question)
    return questions
