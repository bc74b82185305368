import json

from conftest import question_dict, quiz_json, truncated_quiz_json
from quiz_generator.parsers.truncation import (
    DEFAULT_EXTRACTED_TITLE,
    close_truncated_json,
    detect_truncation,
    extract_complete_questions,
    find_matching_brace,
    is_complete_question,
    scan_structure,
)


def test_complete_json_is_not_truncated():
    assert not detect_truncation(quiz_json(3))


def test_detects_unbalanced_and_dangling_endings():
    assert detect_truncation('{"questions": [')
    assert detect_truncation('{"a": "unterminated')
    assert detect_truncation('{"a": 1,')
    assert detect_truncation('{"a":')


def test_braces_inside_strings_are_ignored():
    text = '{"text": "Use {braces} and [brackets] freely", "n": 1}'
    assert not detect_truncation(text)
    assert scan_structure(text).balanced


def test_empty_text_is_not_truncated():
    assert not detect_truncation("   ")


def test_find_matching_brace_respects_escapes():
    text = '{"text": "a \\"}\\" b"} trailing'
    assert find_matching_brace(text, 0) == text.index("} trailing")


def test_partial_extraction_keeps_only_complete_questions():
    for k in (1, 3):
        recovered = extract_complete_questions(truncated_quiz_json(k, title="Weather Basics"))
        assert recovered["title"] == "Weather Basics"
        assert len(recovered["questions"]) == k
        assert all(q["text"] != "Cut off question about flight?" for q in recovered["questions"])


def test_partial_extraction_without_complete_questions():
    assert extract_complete_questions('{"questions": [{"text": "Q1", "options": [') is None


def test_partial_extraction_defaults_title():
    text = json.dumps({"questions": [question_dict(1)]})[:-2]
    assert extract_complete_questions(text)["title"] == DEFAULT_EXTRACTED_TITLE


def test_question_needs_four_options_answer_and_explanation():
    question = question_dict(1)
    assert is_complete_question(question)
    assert not is_complete_question({**question, "options": question["options"][:3]})
    assert not is_complete_question({**question, "explanation": ""})
    assert not is_complete_question({k: v for k, v in question.items() if k != "correct_answer_id"})


def test_structural_closing_drops_unterminated_string():
    text = '{"title": "T", "questions": [{"text": "Q1", "options": [{"id": "A", "text": "Li'
    closed = close_truncated_json(text)
    assert json.loads(closed) == {"title": "T", "questions": [{"text": "Q1", "options": [{"id": "A"}]}]}


def test_structural_closing_uses_nesting_order():
    closed = close_truncated_json('{"a": [{"b": [1, 2], "c": 3},')
    assert closed == '{"a": [{"b": [1, 2], "c": 3}]}'
    assert json.loads(closed) == {"a": [{"b": [1, 2], "c": 3}]}


def test_structural_closing_drops_partial_literals():
    cases = {
        '{"a": 1, "b": tru': {"a": 1},
        '{"a": [1, 2.': {"a": [1]},
        '{"a": -': {},
        '{"a": [true, nul': {"a": [True]},
        '{"a": 1.5e3, "b": fals': {"a": 1500.0},
    }
    for text, expected in cases.items():
        assert json.loads(close_truncated_json(text)) == expected


def test_complete_trailing_literal_is_kept():
    assert json.loads(close_truncated_json('{"a": [1, null')) == {"a": [1, None]}


def test_partial_extraction_ignores_deeply_nested_payloads():
    nested = '{"text": "Q1", "options": ' + "[" * 5000 + "]" * 5000 + "}"
    assert extract_complete_questions('{"questions": [' + nested) is None
