import pytest

from quiz_generator.core.finalizer import finalize_quiz, is_relevant
from quiz_generator.models import Option, Question
from quiz_generator.utils.config import AVIATION_KEYWORDS


def make_question(text, explanation=""):
    return Question(
        text=text,
        options=[Option(id=i, text=f"Choice {i}") for i in "ABCD"],
        correct_answer_id="A",
        explanation=explanation,
    )


@pytest.mark.parametrize("target", [0, 1, 3, 5, 8])
def test_output_never_exceeds_target(target):
    pool = [make_question(f"Which runway light {i}?") for i in range(5)]
    result = finalize_quiz(pool, target, "balanced", keywords=AVIATION_KEYWORDS)
    assert len(result.questions) == min(target, 5)
    assert result.metadata.selected_count == len(result.questions)
    assert result.metadata.raw_generated_count == 5
    assert result.metadata.requested_count == target


def test_relevance_filter_drops_off_domain_questions():
    pool = [
        make_question("What is the capital of France?"),
        make_question("Which instrument shows altitude?"),
        make_question("Pick one", explanation="The METAR reports visibility"),
    ]
    result = finalize_quiz(pool, 10, "batched", keywords=AVIATION_KEYWORDS)
    assert [q.text for q in result.questions] == ["Which instrument shows altitude?", "Pick one"]


def test_filter_is_disabled_without_keywords():
    pool = [make_question("What is the capital of France?")]
    assert len(finalize_quiz(pool, 5, "balanced", keywords=None).questions) == 1
    assert is_relevant(pool[0], frozenset())


def test_questions_without_text_are_discarded_and_title_kept():
    result = finalize_quiz([make_question(""), make_question("Fuel?")], 5, "single",
                           suggested_title="Fuel Systems")
    assert len(result.questions) == 1
    assert result.metadata.suggested_title == "Fuel Systems"
    assert result.metadata.strategy_used == "single"
