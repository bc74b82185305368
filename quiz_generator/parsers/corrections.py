"""
Ordered, named correction passes applied to LLM JSON before parsing.

Every pass is a pure ``text -> (text, count)`` transform; ``count`` is the
number of repairs it made so the parser can record it per label.
"""

import json
import re
from dataclasses import dataclass
from typing import Callable, Iterable, List, Optional, Sequence, Tuple

from .truncation import close_truncated_json, detect_truncation, extract_complete_questions
from ..utils.exceptions import JSONExtractionError

PassResult = Tuple[str, int]

CODE_FENCE_PATTERN = re.compile(r'```(?:json)?\s*|\s*```', re.IGNORECASE)
CONTROL_CHARS_PATTERN = re.compile(r'[\x00-\x08\x0b\x0c\x0e-\x1f\x7f-\x9f]')

# {"id": "A": "Engine check"}
MALFORMED_OPTION_ID_COLON_TEXT = re.compile(r'\{"id":\s*"([A-Z])"\s*:\s*"([^"]+)"\}')
# {"id": "A": "text": "Engine check"}
MALFORMED_OPTION_ID_COLON_TEXT_COLON = re.compile(
    r'\{"id":\s*"([A-Z])"\s*:\s*"text"\s*:\s*"([^"]+)"\}'
)
# Same two shapes with free whitespace and escaped characters in the content
MALFORMED_OPTION_FLEXIBLE = re.compile(
    r'\{\s*"id"\s*:\s*"([A-Z])"\s*:\s*(?:"text"\s*:\s*)?"((?:[^"\\]|\\.)*)"\s*\}'
)
# {"id": "B", "text": "text": "Oil level"}
MALFORMED_OPTION_DUPLICATED_TEXT_KEY = re.compile(
    r'\{\s*"id"\s*:\s*"([A-Z])"\s*,\s*"text"\s*:\s*"text"\s*:\s*"((?:[^"\\]|\\.)*)"\s*\}'
)

DOUBLE_COLONS = re.compile(r'::+')
MISSING_COMMA_OBJECTS = re.compile(r'\}\s*\{')
MISSING_COMMA_ARRAYS = re.compile(r'\]\s*\[')
TRAILING_COMMAS = re.compile(r',\s*([}\]])')
ESCAPED_QUOTED_VALUE = re.compile(r': ?\\"([^\\]*)\\"([,}\]])')


def extract_json_span(raw: str) -> str:
    """
    Remove markdown fences and slice from the first '{' to the last '}'.

    Raises:
        JSONExtractionError: If no brace span exists
    """
    cleaned = CODE_FENCE_PATTERN.sub("", raw or "")
    start = cleaned.find("{")
    end = cleaned.rfind("}")
    if start == -1 or end == -1 or start >= end:
        raise JSONExtractionError("No valid JSON object found in response")
    return cleaned[start:end + 1]


def clean_whitespace(text: str) -> str:
    """Strip control characters, normalize line endings and expand tabs."""
    text = CONTROL_CHARS_PATTERN.sub("", text)
    text = text.replace("\r\n", "\n").replace("\r", "\n")
    return text.replace("\t", "  ")


def _normalized_option(option_id: str, text: str) -> str:
    return f'{{"id": "{option_id}", "text": "{text}"}}'


def _replace_options(pattern: "re.Pattern", text: str) -> PassResult:
    return pattern.subn(lambda m: _normalized_option(m.group(1), m.group(2)), text)


def recover_partial_questions(text: str) -> PassResult:
    """Replace a truncated response with its complete question objects, if any."""
    if not detect_truncation(text):
        return text, 0
    partial = extract_complete_questions(text)
    if partial is None:
        return text, 0
    return json.dumps(partial, ensure_ascii=False), 1


def close_truncated_structures(text: str) -> PassResult:
    """Trim the dangling fragment of a truncated response and close open structures."""
    if not detect_truncation(text):
        return text, 0
    recovered = close_truncated_json(text)
    return recovered, int(recovered != text)


def fix_option_id_colon_text(text: str) -> PassResult:
    return _replace_options(MALFORMED_OPTION_ID_COLON_TEXT, text)


def fix_option_id_colon_text_colon(text: str) -> PassResult:
    return _replace_options(MALFORMED_OPTION_ID_COLON_TEXT_COLON, text)


def fix_option_flexible(text: str) -> PassResult:
    return _replace_options(MALFORMED_OPTION_FLEXIBLE, text)


def fix_option_duplicated_text_key(text: str) -> PassResult:
    return _replace_options(MALFORMED_OPTION_DUPLICATED_TEXT_KEY, text)


def fix_double_colons(text: str) -> PassResult:
    return DOUBLE_COLONS.subn(":", text)


def fix_missing_commas(text: str) -> PassResult:
    text, objects = MISSING_COMMA_OBJECTS.subn("}, {", text)
    text, arrays = MISSING_COMMA_ARRAYS.subn("], [", text)
    return text, objects + arrays


def fix_trailing_commas(text: str) -> PassResult:
    return TRAILING_COMMAS.subn(r"\1", text)


def fix_escaped_quotes_in_values(text: str) -> PassResult:
    return ESCAPED_QUOTED_VALUE.subn(r': "\1"\2', text)


@dataclass(frozen=True)
class CorrectionPass:
    """One named transform; ``label`` is the key used in correction statistics."""

    label: str
    transform: Callable[[str], PassResult]
    enabled: bool = True

    def __call__(self, text: str) -> PassResult:
        return self.transform(text)


DEFAULT_PASSES: Tuple[CorrectionPass, ...] = (
    CorrectionPass("partial_parsing_success", recover_partial_questions),
    CorrectionPass("truncated_json_recovery", close_truncated_structures),
    CorrectionPass("pattern1_id_colon_text", fix_option_id_colon_text),
    CorrectionPass("pattern2_id_colon_text_colon", fix_option_id_colon_text_colon),
    CorrectionPass("pattern3_flexible_id_content", fix_option_flexible),
    CorrectionPass("pattern4_duplicated_text_key", fix_option_duplicated_text_key),
    CorrectionPass("double_colons", fix_double_colons),
    CorrectionPass("missing_commas", fix_missing_commas),
    CorrectionPass("trailing_commas", fix_trailing_commas),
    CorrectionPass("escaped_quotes_in_values", fix_escaped_quotes_in_values),
)

PASS_LABELS = tuple(p.label for p in DEFAULT_PASSES)


def build_passes(disabled: Optional[Iterable[str]] = None,
                 passes: Sequence[CorrectionPass] = DEFAULT_PASSES) -> List[CorrectionPass]:
    """
    Return the pass list with the named labels switched off.

    Raises:
        ValueError: If a disabled label does not name a pass
    """
    disabled = set(disabled or ())
    unknown = disabled - {p.label for p in passes}
    if unknown:
        raise ValueError(f"Unknown correction passes: {sorted(unknown)}")
    return [
        CorrectionPass(p.label, p.transform, enabled=p.label not in disabled)
        for p in passes
    ]


def apply_corrections(text: str, passes: Sequence[CorrectionPass] = DEFAULT_PASSES,
                      on_correction: Optional[Callable[[str, int], None]] = None) -> str:
    """
    Run every enabled pass in order.

    Args:
        text: Extracted and cleaned JSON text
        passes: Ordered pass list
        on_correction: Called with (label, count) for every pass that changed something

    Returns:
        Corrected text
    """
    for correction in passes:
        if not correction.enabled:
            continue
        text, count = correction(text)
        if count and on_correction is not None:
            on_correction(correction.label, count)
    return text
