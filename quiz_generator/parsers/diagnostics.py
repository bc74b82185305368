"""
Failure analysis for responses that could not be parsed.
"""

import re
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional

from .truncation import detect_truncation

TRUNCATED_SUMMARY = "JSON appears to be truncated - incomplete response from AI"
SYNTAX_SUMMARY = "JSON contains syntax errors that could not be automatically corrected"
STRUCTURE_SUMMARY = "JSON structure does not match expected quiz format"
UNKNOWN_SUMMARY = "Unknown JSON parsing error"

_TRAILING_COMMA = re.compile(r',\s*[}\]]')
_MISSING_COMMA = re.compile(r'}\s*{|]\s*\[')
_NEWLINE_IN_STRING = re.compile(r'"[^"]*\n[^"]*"')


@dataclass
class FailureAnalysis:
    summary: str = ""
    appears_truncated: bool = False
    syntax_issues: List[str] = field(default_factory=list)
    structure_issues: List[str] = field(default_factory=list)
    recommendations: List[str] = field(default_factory=list)
    raw_response_length: int = 0
    corrected_json_length: int = 0
    error_message: str = ""
    error_type: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def identify_syntax_issues(text: str) -> List[str]:
    issues = []
    if text.count('"') % 2 != 0:
        issues.append("Unmatched quotes detected")
    if _TRAILING_COMMA.search(text):
        issues.append("Trailing commas found")
    if _MISSING_COMMA.search(text):
        issues.append("Missing commas between objects/arrays")
    if _NEWLINE_IN_STRING.search(text):
        issues.append("Unescaped newlines in strings")
    return issues


def identify_structure_issues(text: str) -> List[str]:
    issues = []
    if '"questions"' not in text:
        issues.append('Missing "questions" array')
    if '"text"' not in text and '"question"' not in text:
        issues.append("Questions missing text/question property")
    if '"options"' not in text:
        issues.append("Questions missing options array")
    if '"correct_answer' not in text and '"correct"' not in text:
        issues.append("Questions missing correct_answer property")
    return issues


def analyze_parsing_failure(raw_response: str, corrected_json: Optional[str],
                            error: BaseException) -> FailureAnalysis:
    """
    Explain why a response could not be parsed.

    Args:
        raw_response: The untouched LLM response
        corrected_json: Text after correction passes (None if extraction failed)
        error: The exception that ended parsing

    Returns:
        FailureAnalysis with a summary and remediation suggestions
    """
    analysis = FailureAnalysis(
        raw_response_length=len(raw_response or ""),
        corrected_json_length=len(corrected_json or ""),
        error_message=str(error),
        error_type=type(error).__name__,
    )

    analysis.appears_truncated = detect_truncation(corrected_json or "") \
        or detect_truncation(raw_response or "")
    if analysis.appears_truncated:
        analysis.summary = TRUNCATED_SUMMARY
        analysis.recommendations.extend([
            "Consider reducing the number of questions requested",
            "Try splitting the request into smaller batches",
            "Check AI model token limits and response size constraints",
        ])

    if corrected_json:
        analysis.syntax_issues = identify_syntax_issues(corrected_json)
        if analysis.syntax_issues:
            analysis.summary = analysis.summary or SYNTAX_SUMMARY
            analysis.recommendations.append("Review AI prompt to ensure proper JSON format instructions")

    analysis.structure_issues = identify_structure_issues(corrected_json or raw_response or "")
    if analysis.structure_issues and not analysis.summary:
        analysis.summary = STRUCTURE_SUMMARY
        analysis.recommendations.append("Verify AI prompt includes proper quiz structure examples")

    if not analysis.summary:
        analysis.summary = UNKNOWN_SUMMARY
        analysis.recommendations.append("Enable detailed logging for more diagnostic information")

    return analysis
