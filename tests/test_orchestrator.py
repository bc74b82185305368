import pytest

from conftest import FakeBackend, make_document, quiz_json, requested_count, truncated_quiz_json
from quiz_generator.core.orchestrator import ScalableQuizGenerator, adjust_question_count_for_document
from quiz_generator.models import GenerationRequest, Strategy
from quiz_generator.utils.config import GenerationOptions
from quiz_generator.utils.exceptions import GenerationFailedError
from quiz_generator.utils.progress import ProgressCollector

CUT_OFF = ('{"title": "T", "questions": [{"text": "Q1", "options": '
           '[{"id": "A", "text": "Lift"}, {"id": "B", "te')
CUT_OFF_UNREPAIRABLE = '{"questions": [{"text": "Q1" "options": [{"id": "A", "te'


def echo_handler(parts):
    """Answer with exactly as many questions as the prompt asks for."""
    doc_id = parts.documents[0].id if parts.documents else "x"
    return quiz_json(requested_count(parts), title=f"Quiz {doc_id}")


def docs(count, **kwargs):
    return [make_document(f"d{i}", **kwargs) for i in range(1, count + 1)]


def test_three_documents_six_questions_is_one_balanced_call(make_generator):
    backend = FakeBackend(handler=echo_handler)
    result = make_generator(backend).generate(GenerationRequest(docs(3), 6))
    assert result.metadata.strategy_used == "balanced"
    assert len(backend.calls) == 1
    assert len(backend.calls[0].documents) == 3
    assert backend.requested_counts == [6]
    assert len(result.questions) <= 6
    assert result.metadata.suggested_title == "Quiz d1"


def test_manual_title_caps_single_document_before_first_call(make_generator):
    backend = FakeBackend(handler=echo_handler)
    document = make_document("d1", title="Pilot Operating Manual")
    result = make_generator(backend).generate(GenerationRequest([document], 10))
    assert backend.requested_counts == [5]
    assert result.metadata.strategy_used == "single"
    assert result.metadata.selected_count == 5


def test_adjust_question_count_for_payload_size():
    small = make_document("d1", title="Notes")
    large = make_document("d2", content=b"x" * 800_000)
    very_large = make_document("d3", content=b"x" * 1_600_000)
    assert adjust_question_count_for_document(small, 10) == 10
    assert adjust_question_count_for_document(large, 10) == 5
    assert adjust_question_count_for_document(very_large, 10) == 3
    assert adjust_question_count_for_document(make_document("d4", title="User Guide"), 4) == 4


def test_per_document_runs_in_concurrency_batches(make_generator, sleeps):
    backend = FakeBackend(handler=echo_handler)
    generator = make_generator(backend, strategy="perDocument", concurrent_requests=3)
    result = generator.generate(GenerationRequest(docs(4), 8))
    assert result.metadata.strategy_used == "perDocument"
    assert sorted(backend.requested_counts) == [2, 2, 2, 2]
    assert len(result.questions) == 8
    assert sleeps == [1.5]


def test_per_document_failure_does_not_abort_siblings(make_generator):
    def handler(parts):
        if parts.documents[0].id == "d2":
            return RuntimeError("quota exceeded")
        return echo_handler(parts)

    backend = FakeBackend(handler=handler)
    generator = make_generator(backend, strategy="perDocument", max_retries=0)
    collector = ProgressCollector()
    result = generator.generate(GenerationRequest(docs(3), 6), on_progress=collector)
    assert len(result.questions) == 4
    assert any("quota exceeded" in message for message in collector.messages)


def test_batched_groups_documents(make_generator, sleeps):
    backend = FakeBackend(handler=echo_handler)
    generator = make_generator(backend, strategy="batched", max_documents_per_batch=5)
    result = generator.generate(GenerationRequest(docs(7), 14))
    assert [len(parts.documents) for parts in backend.calls] == [5, 2]
    assert backend.requested_counts == [7, 7]
    assert len(result.questions) == 14
    assert sleeps == [1.5]


def test_batched_units_are_not_retried_on_truncation(make_generator):
    backend = FakeBackend(handler=lambda parts: CUT_OFF)
    generator = make_generator(backend, strategy="batched", max_documents_per_batch=5)
    result = generator.generate(GenerationRequest(docs(6), 12))
    assert len(backend.calls) == 2
    assert result.questions == []


def test_hybrid_splits_documents_between_modes(make_generator):
    backend = FakeBackend(handler=echo_handler)
    generator = make_generator(backend, strategy="hybrid")
    result = generator.generate(GenerationRequest(docs(6), 8))
    individual = [c for c in backend.calls if len(c.documents) == 1]
    grouped = [c for c in backend.calls if len(c.documents) > 1]
    assert len(individual) == 3
    assert [requested_count(c) for c in individual] == [2, 2, 2]
    assert [requested_count(c) for c in grouped] == [4]
    assert result.metadata.raw_generated_count == 10
    assert len(result.questions) == 8


def test_single_document_truncation_retries_with_fewer_questions(make_generator):
    backend = FakeBackend(handler=lambda parts: CUT_OFF if requested_count(parts) > 3 else echo_handler(parts))
    collector = ProgressCollector()
    result = make_generator(backend).generate(GenerationRequest(docs(1), 10), on_progress=collector)
    assert backend.requested_counts == [10, 3]
    assert len(result.questions) == 3
    assert any("Truncation detected" in message for message in collector.messages)
    assert "IMPORTANT: Ensure perfect JSON formatting" in backend.calls[1].text


def test_single_document_ladder_reaches_floor_of_two(make_generator):
    backend = FakeBackend(handler=lambda parts: CUT_OFF if requested_count(parts) > 2 else echo_handler(parts))
    result = make_generator(backend).generate(GenerationRequest(docs(1), 10))
    assert backend.requested_counts == [10, 3, 2]
    assert len(result.questions) == 2


def test_exhausted_ladder_yields_empty_result_in_lenient_mode(make_generator):
    backend = FakeBackend(handler=lambda parts: CUT_OFF)
    result = make_generator(backend).generate(GenerationRequest(docs(1), 10))
    assert backend.requested_counts == [10, 3, 2]
    assert result.questions == []
    assert result.metadata.selected_count == 0


def test_exhausted_ladder_raises_in_strict_mode(make_generator):
    backend = FakeBackend(handler=lambda parts: CUT_OFF)
    generator = make_generator(backend, throw_on_unrecoverable=True)
    with pytest.raises(GenerationFailedError):
        generator.generate(GenerationRequest(docs(1), 10))


def test_lenient_fallback_marked_truncated_is_retried(make_generator):
    backend = FakeBackend(handler=lambda parts: CUT_OFF_UNREPAIRABLE if requested_count(parts) > 3
                          else echo_handler(parts))
    result = make_generator(backend).generate(GenerationRequest(docs(1), 6))
    assert backend.requested_counts == [6, 3]
    assert len(result.questions) == 3


def test_partial_extraction_keeps_complete_questions_without_retry(make_generator):
    backend = FakeBackend(handler=lambda parts: truncated_quiz_json(4))
    result = make_generator(backend).generate(GenerationRequest(docs(1), 5))
    assert backend.requested_counts == [5]
    assert len(result.questions) == 4


def test_balanced_truncation_uses_sixty_percent_ladder(make_generator):
    backend = FakeBackend(handler=lambda parts: CUT_OFF if requested_count(parts) > 12 else echo_handler(parts))
    result = make_generator(backend).generate(GenerationRequest(docs(3), 20))
    assert backend.requested_counts == [20, 12]
    assert len(result.questions) == 12


def test_unparseable_response_is_fatal_without_retry(make_generator):
    backend = FakeBackend(handler=lambda parts: "I cannot help with that.")
    result = make_generator(backend).generate(GenerationRequest(docs(1), 10))
    assert len(backend.calls) == 1
    assert result.questions == []


def test_no_documents_returns_empty_result(make_generator):
    backend = FakeBackend(handler=echo_handler)
    result = make_generator(backend).generate(GenerationRequest([], 5))
    assert backend.calls == []
    assert result.metadata.strategy_used == "none"
    assert result.questions == []


def test_request_hint_beats_configured_strategy(make_generator):
    backend = FakeBackend(handler=echo_handler)
    generator = make_generator(backend, strategy="batched")
    request = GenerationRequest(docs(3), 6, strategy_hint=Strategy.PER_DOCUMENT)
    assert generator.resolve_strategy(request) is Strategy.PER_DOCUMENT
    assert generator.resolve_strategy(GenerationRequest(docs(3), 6)) is Strategy.BATCHED
    auto = make_generator(backend)
    assert auto.resolve_strategy(GenerationRequest(docs(3), 6)) is Strategy.BALANCED


def test_relevance_filter_applies_to_pooled_questions(make_generator):
    backend = FakeBackend(handler=lambda parts: quiz_json(requested_count(parts), topic="cooking"))
    assert make_generator(backend).generate(GenerationRequest(docs(1), 3)).questions == []

    unfiltered = ScalableQuizGenerator(
        backend=FakeBackend(handler=lambda parts: quiz_json(requested_count(parts), topic="cooking")),
        options=GenerationOptions(domain_keywords=None),
        sleep=lambda _: None,
    )
    assert len(unfiltered.generate(GenerationRequest(docs(1), 3)).questions) == 3


def test_progress_subscriber_is_scoped_to_the_call(make_generator):
    backend = FakeBackend(handler=echo_handler)
    generator = make_generator(backend)
    collector = ProgressCollector()
    generator.generate(GenerationRequest(docs(1), 2), on_progress=collector)
    seen = len(collector.messages)
    assert collector.messages[0] == "Starting scalable exam generation for 1 document(s)..."
    assert any(m.startswith("Generating questions for") for m in collector.messages)
    generator.generate(GenerationRequest(docs(1), 2))
    assert len(collector.messages) == seen


def test_every_question_has_four_distinct_options(make_generator):
    backend = FakeBackend(handler=echo_handler)
    result = make_generator(backend).generate(GenerationRequest(docs(8), 12))
    assert result.questions
    for question in result.questions:
        ids = [option.id for option in question.options]
        assert len(ids) == 4 and len(set(ids)) == 4


DEEPLY_NESTED = '{"questions": ' + "[" * 5000 + "]" * 5000 + "}"


def test_deeply_nested_response_does_not_abort_the_request(make_generator):
    backend = FakeBackend(handler=lambda parts: DEEPLY_NESTED)
    collector = ProgressCollector()
    result = make_generator(backend).generate(GenerationRequest(docs(2), 4), on_progress=collector)
    assert result.metadata.strategy_used == "balanced"
    assert result.questions == []
    assert len(backend.calls) == 1

    single = make_generator(FakeBackend(handler=lambda parts: DEEPLY_NESTED))
    assert single.generate(GenerationRequest(docs(1), 3)).questions == []


def test_deeply_nested_batch_leaves_sibling_batches_intact(make_generator):
    def handler(parts):
        if parts.documents[0].id == "d1":
            return DEEPLY_NESTED
        return echo_handler(parts)

    generator = make_generator(FakeBackend(handler=handler), strategy="batched", max_documents_per_batch=5)
    result = generator.generate(GenerationRequest(docs(7), 14))
    assert len(result.questions) == 7


def test_deeply_nested_response_fails_cleanly_in_strict_mode(make_generator):
    backend = FakeBackend(handler=lambda parts: DEEPLY_NESTED)
    generator = make_generator(backend, throw_on_unrecoverable=True)
    with pytest.raises(GenerationFailedError):
        generator.generate(GenerationRequest(docs(2), 4))
