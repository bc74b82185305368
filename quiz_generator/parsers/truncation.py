"""
Truncation detection and recovery for cut-off LLM responses.

Responses hit output-token limits mid-object. Two recovery paths exist:
partial extraction keeps only the complete question objects, structural
closing trims the dangling fragment and closes whatever is still open.
"""

import json
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from ..utils.logging import get_logger

logger = get_logger(__name__)

QUESTION_START_PATTERN = re.compile(r'\{\s*"text"\s*:\s*"[^"]*"')
TITLE_PATTERN = re.compile(r'"title"\s*:\s*"([^"]+)"', re.IGNORECASE)
DEFAULT_EXTRACTED_TITLE = "Extracted Quiz"
MIN_OPTIONS = 4

# Endings that cannot close a JSON document
_DANGLING_ENDINGS = (
    re.compile(r',\s*$'),
    re.compile(r':\s*$'),
    re.compile(r'\[\s*$'),
    re.compile(r'\{\s*$'),
)
_CLOSERS = {"{": "}", "[": "]"}
_SEPARATORS = (",", ":")
_STRUCTURAL_CHARS = frozenset('{}[],:"\\')
_COMPLETE_LITERAL = re.compile(r"(?:true|false|null|-?(?:0|[1-9]\d*)(?:\.\d+)?(?:[eE][+-]?\d+)?)\Z")


@dataclass
class StructureScan:
    """Result of a string-aware scan over JSON-ish text.

    ``safe_cut`` is the end of the last complete value, opener or closer:
    cutting there and closing ``open_stack`` yields well-formed JSON.
    """

    open_stack: List[str] = field(default_factory=list)
    in_string: bool = False
    safe_cut: int = 0
    unmatched_closers: int = 0

    @property
    def balanced(self) -> bool:
        return not self.open_stack and self.unmatched_closers == 0


def _is_literal_char(ch: str) -> bool:
    return not ch.isspace() and ch not in _STRUCTURAL_CHARS


def scan_structure(text: str) -> StructureScan:
    """
    Walk the text once, tracking open braces/brackets outside of strings.

    A bare literal or number only counts as a complete value once it reads as
    a whole token, so ``tru`` or ``2.`` at a cut point is never kept.

    Args:
        text: Candidate JSON text

    Returns:
        StructureScan describing what is still open at the end of the text
    """
    scan = StructureScan()
    escape = False
    previous = ""
    token_start: Optional[int] = None
    for i, ch in enumerate(text):
        if escape:
            escape = False
            continue
        if token_start is not None and not _is_literal_char(ch):
            if _COMPLETE_LITERAL.match(text[token_start:i]):
                scan.safe_cut = i
            token_start = None
        if ch == "\\":
            # Outside strings this is a stray \" left by the model; skip it too
            escape = True
            continue
        if ch == '"':
            scan.in_string = not scan.in_string
            if scan.in_string:
                continue
            in_object = bool(scan.open_stack) and scan.open_stack[-1] == "{"
            if in_object and previous in ("{", ","):
                previous = "key"
            else:
                previous = "value"
                scan.safe_cut = i + 1
            continue
        if scan.in_string or ch.isspace():
            continue
        if ch in _CLOSERS:
            scan.open_stack.append(ch)
            previous = ch
            scan.safe_cut = i + 1
        elif ch in ("}", "]"):
            if scan.open_stack and _CLOSERS[scan.open_stack[-1]] == ch:
                scan.open_stack.pop()
            else:
                scan.unmatched_closers += 1
            previous = "value"
            scan.safe_cut = i + 1
        elif ch in _SEPARATORS:
            previous = ch
        elif token_start is None:
            token_start = i
            previous = "value"
    if token_start is not None and _COMPLETE_LITERAL.match(text[token_start:]):
        scan.safe_cut = len(text)
    return scan


def detect_truncation(text: str) -> bool:
    """
    Decide whether a JSON response looks cut off.

    True when braces/brackets are unbalanced, when the text ends inside an
    open string, or when it ends in a comma, colon or opening bracket/brace.
    """
    trimmed = (text or "").strip()
    if not trimmed:
        return False
    scan = scan_structure(trimmed)
    if not scan.balanced or scan.in_string:
        return True
    return any(pattern.search(trimmed) for pattern in _DANGLING_ENDINGS)


def find_matching_brace(text: str, start: int) -> int:
    """Index of the brace closing the object opened at ``start``, or -1."""
    depth = 0
    in_string = False
    escape = False
    for i in range(start, len(text)):
        ch = text[i]
        if escape:
            escape = False
            continue
        if ch == "\\":
            escape = True
            continue
        if ch == '"':
            in_string = not in_string
            continue
        if in_string:
            continue
        if ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return i
    return -1


def is_complete_question(candidate: Any) -> bool:
    """A question is complete when it has text, 4+ usable options, an answer and an explanation."""
    if not isinstance(candidate, dict):
        return False
    options = candidate.get("options")
    if not candidate.get("text") or not isinstance(options, list) or len(options) < MIN_OPTIONS:
        return False
    if not candidate.get("correct_answer_id") or not candidate.get("explanation"):
        return False
    return all(isinstance(opt, dict) and opt.get("id") and opt.get("text") for opt in options)


def extract_complete_questions(text: str) -> Optional[Dict[str, Any]]:
    """
    Pull every fully formed question object out of a truncated response.

    Args:
        text: Truncated JSON text

    Returns:
        {"title": ..., "questions": [...]} or None if no complete question exists
    """
    questions: List[Dict[str, Any]] = []
    for match in QUESTION_START_PATTERN.finditer(text):
        start = match.start()
        end = find_matching_brace(text, start)
        if end <= start:
            continue
        try:
            candidate = json.loads(text[start:end + 1], strict=False)
        except (ValueError, RecursionError) as e:
            logger.debug(f"Skipping malformed question at {start}: {e}")
            continue
        if is_complete_question(candidate):
            questions.append(candidate)
            logger.debug(f"Found complete question: {candidate['text'][:50]!r}")

    if not questions:
        logger.debug("No complete questions found in truncated JSON")
        return None

    title_match = TITLE_PATTERN.search(text)
    return {
        "title": title_match.group(1) if title_match else DEFAULT_EXTRACTED_TITLE,
        "questions": questions,
    }


def remove_incomplete_trailing_content(text: str) -> str:
    """Drop an unterminated string, a dangling key or separator, and anything after the last complete value."""
    cleaned = text.strip()
    scan = scan_structure(cleaned)
    if scan.safe_cut:
        cleaned = cleaned[:scan.safe_cut]
    return cleaned


def close_unfinished_structures(text: str) -> str:
    """Append the closers for every brace/bracket still open, innermost first."""
    scan = scan_structure(text)
    closers = "".join(_CLOSERS[opener] for opener in reversed(scan.open_stack))
    return text + closers


def close_truncated_json(text: str) -> str:
    return close_unfinished_structures(remove_incomplete_trailing_content(text))
