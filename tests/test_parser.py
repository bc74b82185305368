import json

import pytest

from conftest import question_dict, quiz_json, truncated_quiz_json
from quiz_generator.parsers.diagnostics import TRUNCATED_SUMMARY, analyze_parsing_failure
from quiz_generator.parsers.quiz_parser import QuizJSONParser, fallback_analysis, is_fallback
from quiz_generator.parsers.schema import normalize_quiz
from quiz_generator.utils.exceptions import QuizParsingError, is_truncation_error

TRAILING_COMMA_RESPONSE = (
    '{"questions":[{"text":"Q1","options":[{"id":"A","text":"x"},],'
    '"correct_answer_id":"A","explanation":"e"}]}'
)


def test_parses_clean_response_inside_code_fence():
    parser = QuizJSONParser()
    data = parser.parse_quiz_json("```json\n" + quiz_json(2, title="Radio Procedures") + "\n```")
    assert data["title"] == "Radio Procedures"
    assert len(data["questions"]) == 2
    assert parser.get_stats()["successful_corrections"] == 1


def test_trailing_comma_response_yields_one_question():
    parser = QuizJSONParser()
    data = parser.parse_quiz_json(TRAILING_COMMA_RESPONSE)
    assert len(data["questions"]) == 1
    assert parser.get_stats()["correction_types"]["trailing_commas"] == 1


def test_malformed_options_are_normalized():
    raw = ('{"questions": [{"text": "Which check comes first?", "options": ['
           '{"id":"A":"Engine check"}, {"id":"B","text":"text":"Oil level"}, '
           '{"id": "C", "text": "Fuel"}, {"id": "D", "text": "Flaps"}], '
           '"correct_answer_id": "A", "explanation": "Checklist order"}]}')
    parser = QuizJSONParser()
    questions = parser.parse_questions(raw)
    assert [(o.id, o.text) for o in questions[0].options] == [
        ("A", "Engine check"), ("B", "Oil level"), ("C", "Fuel"), ("D", "Flaps"),
    ]
    types = parser.get_stats()["correction_types"]
    assert types["pattern1_id_colon_text"] == 1
    assert types["pattern4_duplicated_text_key"] == 1


def test_truncated_response_recovers_complete_questions():
    parser = QuizJSONParser()
    data = parser.parse_quiz_json(truncated_quiz_json(2))
    assert len(data["questions"]) == 2
    assert parser.get_stats()["correction_types"]["partial_parsing_success"] == 1


def test_truncated_response_without_complete_questions_is_closed():
    parser = QuizJSONParser()
    data = parser.parse_quiz_json('{"title": "T", "questions": [{"text": "Q1", "options": [{"id": "A", "text": "x"}')
    assert data["questions"][0]["text"] == "Q1"
    assert parser.get_stats()["correction_types"]["truncated_json_recovery"] == 1


def test_schema_defaults_are_filled_and_tracked():
    raw = json.dumps({"questions": [
        {"options": [{"text": "one"}, {"id": "B", "label": "two"}, {"id": "C"}, "junk"]},
        "not a question",
    ]})
    parser = QuizJSONParser()
    data = parser.parse_quiz_json(raw)
    assert len(data["questions"]) == 1
    question = data["questions"][0]
    assert question["text"] == "Question 1"
    assert question["options"] == [
        {"text": "one", "id": "A"},
        {"id": "B", "text": "two"},
        {"id": "C", "text": "Option C"},
    ]
    types = parser.get_stats()["correction_types"]
    assert types["missing_option_id"] == 1
    assert types["moved_text_from_other_field"] == 1
    assert types["missing_option_text"] == 1
    assert types["missing_question_text"] == 1


def test_missing_questions_array_is_created():
    parser = QuizJSONParser()
    assert parser.parse_quiz_json('{"title": "Empty"}')["questions"] == []
    assert parser.get_stats()["correction_types"]["missing_questions_array"] == 1


def test_to_questions_enforces_four_unique_options():
    raw = question_dict(1)
    raw["options"].append({"id": "E", "text": "Extra"})
    short = question_dict(2)
    short["options"] = short["options"][:3]
    duplicated = question_dict(3)
    for option in duplicated["options"]:
        option["id"] = "A"
    duplicated["correct_answer_id"] = "Answer 3C"

    parser = QuizJSONParser()
    questions = parser.to_questions({"questions": [raw, short, duplicated]})

    assert len(questions) == 2
    for question in questions:
        ids = [o.id for o in question.options]
        assert ids == ["A", "B", "C", "D"]
    assert questions[0].correct_answer_id == "B"
    assert questions[1].correct_answer_id == "C"
    types = parser.get_stats()["correction_types"]
    assert types["trimmed_extra_options"] == 1
    assert types["dropped_incomplete_question"] == 1
    assert types["reassigned_option_ids"] == 1
    assert types["answer_matched_by_text"] == 1


def test_answer_aliases_and_difficulty_normalization():
    raw = question_dict(1)
    del raw["correct_answer_id"]
    raw["correct_answer"] = "d"
    raw["difficulty"] = "Advanced"
    question = QuizJSONParser().to_questions({"questions": [raw]})[0]
    assert question.correct_answer_id == "D"
    assert question.difficulty.value == "hard"


def test_unknown_answer_defaults_to_first_option():
    raw = question_dict(1)
    raw["correct_answer_id"] = "Z"
    parser = QuizJSONParser()
    assert parser.to_questions({"questions": [raw]})[0].correct_answer_id == "A"
    assert parser.get_stats()["correction_types"]["defaulted_correct_answer"] == 1


def test_lenient_mode_returns_fallback_with_analysis():
    parser = QuizJSONParser()
    data = parser.parse_quiz_json("The model refused to answer.")
    assert is_fallback(data)
    assert data["questions"] == []
    assert data["metadata"]["status"] == "fallback"
    analysis = fallback_analysis(data)
    assert analysis.error_type == "JSONExtractionError"
    assert parser.get_stats()["failed_corrections"] == 1


def test_strict_mode_raises_with_analysis():
    parser = QuizJSONParser(throw_on_unrecoverable=True)
    with pytest.raises(QuizParsingError) as excinfo:
        parser.parse_quiz_json('{"questions": [{"text": "Q1" "options": oops}]}')
    error = excinfo.value
    assert "Unable to parse quiz JSON after corrections" in str(error)
    assert error.analysis is not None
    assert error.analysis.structure_issues


DEEPLY_NESTED_RESPONSE = '{"questions": ' + "[" * 5000 + "]" * 5000 + "}"


def test_deeply_nested_response_falls_back_in_lenient_mode():
    parser = QuizJSONParser()
    data = parser.parse_quiz_json(DEEPLY_NESTED_RESPONSE)
    assert is_fallback(data)
    analysis = fallback_analysis(data)
    assert analysis.error_type == "RecursionError"
    assert not analysis.appears_truncated
    assert parser.get_stats()["failed_corrections"] == 1


def test_deeply_nested_response_raises_parsing_error_in_strict_mode():
    parser = QuizJSONParser(throw_on_unrecoverable=True)
    with pytest.raises(QuizParsingError):
        parser.parse_quiz_json(DEEPLY_NESTED_RESPONSE)


def test_normalize_rejects_non_object():
    with pytest.raises(QuizParsingError):
        normalize_quiz([{"text": "Q1"}])


def test_stats_accumulate_per_instance_and_reset():
    first, second = QuizJSONParser(), QuizJSONParser()
    first.parse_quiz_json(quiz_json(1))
    first.parse_quiz_json("nothing here")
    stats = first.get_stats()
    assert stats["total_attempts"] == 2
    assert stats["successful_corrections"] == 1
    assert stats["failed_corrections"] == 1
    assert second.get_stats()["total_attempts"] == 0
    first.reset_stats()
    assert first.get_stats() == {
        "total_attempts": 0,
        "successful_corrections": 0,
        "failed_corrections": 0,
        "correction_types": {},
    }


def test_disabled_pass_changes_outcome():
    parser = QuizJSONParser(disabled_passes=["trailing_commas"])
    assert is_fallback(parser.parse_quiz_json(TRAILING_COMMA_RESPONSE))


def test_failure_analysis_flags_truncation():
    analysis = analyze_parsing_failure('{"questions": [{"text": "Q', None, ValueError("boom"))
    assert analysis.appears_truncated
    assert analysis.summary == TRUNCATED_SUMMARY
    assert any("reducing the number of questions" in r for r in analysis.recommendations)
    assert is_truncation_error(QuizParsingError("x", analysis=analysis))


def test_failure_analysis_lists_syntax_issues():
    analysis = analyze_parsing_failure("{}", '{"a": [1,], "b": "x"} {"c": "d"}', ValueError("bad"))
    assert "Trailing commas found" in analysis.syntax_issues
    assert "Missing commas between objects/arrays" in analysis.syntax_issues
    assert 'Missing "questions" array' in analysis.structure_issues
    assert analysis.to_dict()["error_type"] == "ValueError"
