"""
Generation orchestrator: executes a strategy over the documents of a request,
drives reduced-count retries and pools the results for the finalizer.
"""

import math
import time
from typing import Callable, List, Optional, Sequence

from constants import (
    LARGE_DOCUMENT_PAYLOAD_CHARS,
    LARGE_DOCUMENT_QUESTION_CAP,
    LARGE_DOCUMENT_TITLE_MARKERS,
    VERY_LARGE_DOCUMENT_PAYLOAD_CHARS,
    VERY_LARGE_DOCUMENT_QUESTION_CAP,
)
from prompt_builder import PromptBuilder

from .finalizer import finalize_quiz
from .outcome import UnitOutcome, balanced_retry_count, no_retry, single_document_retry_count
from ..api.client import GeminiAPIClient, LLMCallWrapper, PromptParts, StreamingBackend
from ..api.response_handler import ResponseHandler
from ..models import DocumentRef, GenerationMetadata, GenerationRequest, GenerationResult, Question, Strategy
from ..parallel.executor import ParallelExecutor, chunked
from ..parsers.quiz_parser import QuizJSONParser, fallback_analysis, is_fallback
from ..parsers.truncation import detect_truncation
from ..strategies.selector import select_strategy
from ..utils.config import GenerationOptions
from ..utils.exceptions import GenerationFailedError, QuizGeneratorError, is_truncation_error
from ..utils.logging import get_logger, set_verbose_logging
from ..utils.progress import ProgressCallback, ProgressReporter

logger = get_logger(__name__)

RetryLadder = Callable[[int, int], Optional[int]]

SINGLE_DOCUMENT_STRATEGY = "single"
NO_DOCUMENTS_STRATEGY = "none"


def adjust_question_count_for_document(document: DocumentRef, count: int) -> int:
    """
    Cap the requested count for documents likely to produce truncated output.

    Large documents (title mentions a manual, guide or documentation, or the
    encoded payload exceeds ~1MB) are capped at 5; payloads above ~2MB at 3.
    """
    title = (document.title or "").lower()
    size = document.payload_size
    is_large = any(marker in title for marker in LARGE_DOCUMENT_TITLE_MARKERS) \
        or size > LARGE_DOCUMENT_PAYLOAD_CHARS

    adjusted = count
    if is_large and adjusted > LARGE_DOCUMENT_QUESTION_CAP:
        adjusted = LARGE_DOCUMENT_QUESTION_CAP
    if size > VERY_LARGE_DOCUMENT_PAYLOAD_CHARS and adjusted > VERY_LARGE_DOCUMENT_QUESTION_CAP:
        adjusted = VERY_LARGE_DOCUMENT_QUESTION_CAP
    return adjusted


class ScalableQuizGenerator:
    """Turns a GenerationRequest into a GenerationResult."""

    def __init__(self, backend: Optional[StreamingBackend] = None,
                 options: Optional[GenerationOptions] = None,
                 progress: Optional[ProgressReporter] = None,
                 parser: Optional[QuizJSONParser] = None,
                 sleep: Callable[[float], None] = time.sleep,
                 api_key: Optional[str] = None):
        """
        Initialize the generator.

        Args:
            backend: Streaming LLM backend (defaults to a GeminiAPIClient)
            options: Generation options (defaults to the environment settings)
            progress: Progress channel shared with the caller
            parser: Parser instance (its statistics live as long as it does)
            sleep: Sleep function used for rate limiting and backoff
            api_key: Gemini API key when the default backend is built
        """
        self.options = options or GenerationOptions.from_settings()
        if self.options.enable_logging:
            set_verbose_logging(True)

        self.backend = backend if backend is not None else GeminiAPIClient(
            model=self.options.model, api_key=api_key
        )
        self.progress = progress or ProgressReporter()
        self.parser = parser or QuizJSONParser(
            enable_logging=self.options.enable_logging,
            throw_on_unrecoverable=self.options.throw_on_unrecoverable,
        )
        self.llm = LLMCallWrapper(
            self.backend,
            max_retries=self.options.max_retries,
            rate_limit_delay_ms=self.options.rate_limit_delay_ms,
            progress=self.progress,
            response_handler=ResponseHandler(self.options.debug_output_dir),
            sleep=sleep,
        )
        self.executor = ParallelExecutor(max_workers=self.options.concurrent_requests)
        self._sleep = sleep
        logger.debug(f"Initialized with model: {getattr(self.backend, 'model_name', 'custom')}, "
                     f"strategy: {self.options.strategy.value}")

    def _emit(self, message: str) -> None:
        self.progress.emit(message)

    def _rate_limit_pause(self) -> None:
        if self.options.rate_limit_delay_ms > 0:
            self._sleep(self.options.rate_limit_delay)

    def resolve_strategy(self, request: GenerationRequest) -> Strategy:
        """Request hint first, then the configured strategy, then the selector."""
        for candidate in (request.strategy_hint, self.options.strategy):
            if candidate is not Strategy.AUTO:
                return candidate
        return select_strategy(
            len(request.documents),
            request.total_questions,
            questions_per_document=self.options.questions_per_document,
            max_documents_per_batch=self.options.max_documents_per_batch,
        )

    def generate(self, request: GenerationRequest,
                 on_progress: Optional[ProgressCallback] = None) -> GenerationResult:
        """
        Generate a quiz for the request.

        Args:
            request: Documents, target count and strategy hint
            on_progress: Extra progress subscriber for this call only

        Returns:
            GenerationResult with at most request.total_questions questions

        Raises:
            GenerationFailedError: In strict mode, when no unit produced questions
        """
        if on_progress is not None:
            self.progress.subscribe(on_progress)
        try:
            return self._generate(request)
        finally:
            if on_progress is not None:
                self.progress.unsubscribe(on_progress)

    def _generate(self, request: GenerationRequest) -> GenerationResult:
        documents = list(request.documents)
        total = request.total_questions
        logger.info(f"Generating {total} questions from {len(documents)} documents")
        self._emit(f"Starting scalable exam generation for {len(documents)} document(s)...")

        if not documents:
            logger.warning("No documents provided")
            return GenerationResult(
                questions=[],
                metadata=GenerationMetadata(strategy_used=NO_DOCUMENTS_STRATEGY, requested_count=total),
            )

        if len(documents) == 1:
            self._emit("Single document detected. Generating questions directly...")
            outcome = self.generate_from_single_document(documents[0], total, 0)
            return self._finish([outcome], total, SINGLE_DOCUMENT_STRATEGY, outcome.suggested_title)

        strategy = self.resolve_strategy(request)
        logger.info(f"Using strategy: {strategy.value}")
        self._emit(f"Determined strategy: {strategy.value}. Proceeding with generation...")

        if strategy is Strategy.PER_DOCUMENT:
            outcomes = self._run_per_document(documents, total)
        elif strategy is Strategy.BATCHED:
            outcomes = self._run_batched(documents, total)
        elif strategy is Strategy.HYBRID:
            outcomes = self._run_hybrid(documents, total)
        else:
            outcomes = [self._run_balanced(documents, total)]

        title = outcomes[0].suggested_title if strategy is Strategy.BALANCED else None
        return self._finish(outcomes, total, strategy.value, title)

    def _finish(self, outcomes: Sequence[UnitOutcome], total: int, strategy: str,
                suggested_title: Optional[str]) -> GenerationResult:
        if self.options.throw_on_unrecoverable and outcomes and not any(o.is_ok for o in outcomes):
            reasons = "; ".join(o.reason for o in outcomes if o.reason)
            raise GenerationFailedError(f"No questions could be generated: {reasons}")

        pooled: List[Question] = []
        for outcome in outcomes:
            pooled.extend(outcome.questions)

        result = finalize_quiz(pooled, total, strategy, suggested_title, self.options.domain_keywords)
        self._emit(f"Generated {result.metadata.selected_count} of {total} requested questions.")
        self.parser.log_stats()
        return result

    # --- Strategies ---

    def _run_per_document(self, documents: Sequence[DocumentRef], total: int) -> List[UnitOutcome]:
        questions_per_doc = max(1, math.ceil(total / len(documents)))
        self._emit(f"Using per-document strategy for {len(documents)} documents, "
                   f"targeting {total} questions (~{questions_per_doc} each)...")

        indexed = list(enumerate(documents))
        batches = chunked(indexed, self.options.concurrent_requests)
        outcomes: List[UnitOutcome] = []

        for batch_number, batch in enumerate(batches):
            self._emit(f"Processing documents {batch[0][0] + 1}-{batch[-1][0] + 1} "
                       f"of {len(documents)} (batch {batch_number + 1}/{len(batches)})...")
            settled = self.executor.execute_all_settled(
                lambda item: self.generate_from_single_document(item[1], questions_per_doc, item[0]),
                batch,
                task_name=f"Per-document batch {batch_number + 1}",
            )
            for task, (index, document) in zip(settled, batch):
                if task.ok:
                    outcomes.append(task.value)
                else:
                    logger.error(f"Document {document.id} failed: {task.error}")
                    self._emit(f"Error processing document {document.title or document.id}: {task.error}")
                    outcomes.append(UnitOutcome.fatal(str(task.error)))

            if batch_number < len(batches) - 1:
                self._rate_limit_pause()

        return outcomes

    def _run_batched(self, documents: Sequence[DocumentRef], total: int) -> List[UnitOutcome]:
        groups = chunked(documents, self.options.max_documents_per_batch)
        per_batch = max(1, math.ceil(total / len(groups)))
        self._emit(f"Using batched strategy for {len(documents)} documents, targeting {total} questions...")

        outcomes: List[UnitOutcome] = []
        for batch_index, group in enumerate(groups):
            self._emit(f"Processing batch {batch_index + 1}/{len(groups)} with {len(group)} documents, "
                       f"aiming for {per_batch} questions.")
            outcome = self.generate_from_document_batch(group, per_batch, batch_index)
            if outcome.is_ok:
                logger.debug(f"Batch {batch_index + 1} yielded {len(outcome.questions)} questions")
            else:
                self._emit(f"Error processing batch {batch_index + 1}: {outcome.reason}")
            outcomes.append(outcome)

            if batch_index < len(groups) - 1:
                self._rate_limit_pause()

        return outcomes

    def _run_hybrid(self, documents: Sequence[DocumentRef], total: int) -> List[UnitOutcome]:
        split_index = math.ceil(len(documents) / 2)
        first_half, second_half = documents[:split_index], documents[split_index:]
        first_count = math.ceil(total * len(first_half) / len(documents))
        second_count = total - first_count
        self._emit(f"Using hybrid strategy: {len(first_half)} documents individually, "
                   f"{len(second_half)} in batches.")

        outcomes: List[UnitOutcome] = []
        if first_half and first_count > 0:
            logger.debug(f"Hybrid part 1 (per-document): {len(first_half)} docs, {first_count} questions")
            outcomes.extend(self._run_per_document(first_half, first_count))
        if second_half and second_count > 0:
            logger.debug(f"Hybrid part 2 (batched): {len(second_half)} docs, {second_count} questions")
            outcomes.extend(self._run_batched(second_half, second_count))
        return outcomes

    def _run_balanced(self, documents: Sequence[DocumentRef], total: int) -> UnitOutcome:
        self._emit(f"Using balanced strategy: one request for {len(documents)} documents, "
                   f"{total} questions...")
        return self._run_unit(
            descriptor=f"{len(documents)} documents (balanced)",
            count=total,
            documents=documents,
            build_prompt=lambda n: PromptBuilder.build_balanced_prompt(documents, n),
            ladder=balanced_retry_count,
        )

    # --- Units of work ---

    def generate_from_single_document(self, document: DocumentRef, count: int, index: int = 0) -> UnitOutcome:
        """Request ``count`` questions from one document, retrying smaller on truncation."""
        label = document.title or f"Document {index + 1}"
        adjusted = adjust_question_count_for_document(document, count)
        if adjusted != count:
            logger.info(f"Proactively reduced questions from {count} to {adjusted} for large document {document.id}")
            self._emit(f"Adjusted to {adjusted} questions for large document \"{label}\"...")

        return self._run_unit(
            descriptor=f"document \"{label}\"",
            count=adjusted,
            documents=[document],
            build_prompt=lambda n: PromptBuilder.build_single_document_prompt(document, n, index),
            ladder=single_document_retry_count,
        )

    def generate_from_document_batch(self, documents: Sequence[DocumentRef], count: int,
                                     batch_index: int) -> UnitOutcome:
        return self._run_unit(
            descriptor=f"batch {batch_index + 1}",
            count=count,
            documents=documents,
            build_prompt=lambda n: PromptBuilder.build_batch_prompt(documents, n, batch_index),
            ladder=no_retry,
        )

    def _run_unit(self, descriptor: str, count: int, documents: Sequence[DocumentRef],
                  build_prompt: Callable[[int], str], ladder: RetryLadder) -> UnitOutcome:
        """Run one unit of work as a retry state machine over UnitOutcome."""
        retries_done = 0
        while True:
            self._emit(f"Preparing to generate {count} questions for {descriptor}...")
            prompt = PromptBuilder.with_retry_variation(build_prompt(count), retries_done)
            parts = PromptParts(text=prompt, documents=tuple(documents))
            outcome = self._attempt_unit(parts, descriptor, count, ladder, retries_done)

            if outcome.is_ok:
                self._emit(f"Successfully parsed {len(outcome.questions)} questions for {descriptor}.")
                return outcome
            if outcome.is_fatal:
                logger.error(f"Generation failed for {descriptor}: {outcome.reason}")
                self._emit(f"Failed to generate questions for {descriptor}: {outcome.reason}")
                return outcome

            logger.warning(f"Truncation detected for {descriptor}. Retrying with "
                           f"{outcome.suggested_retry_count} questions instead of {count}")
            self._emit(f"Truncation detected. Retrying with {outcome.suggested_retry_count} "
                       f"questions for {descriptor}...")
            count = outcome.suggested_retry_count
            retries_done += 1

    def _attempt_unit(self, parts: PromptParts, descriptor: str, count: int,
                      ladder: RetryLadder, retries_done: int) -> UnitOutcome:
        def truncated(reason: str) -> UnitOutcome:
            next_count = ladder(count, retries_done)
            if next_count is None:
                return UnitOutcome.fatal(f"{reason} (no smaller retry available)")
            return UnitOutcome.recoverable(reason, next_count)

        try:
            call = self.llm.call(parts, descriptor)
            self._emit(f"AI response received for {descriptor}. Parsing questions...")
            data = self.parser.parse_quiz_json(call.response_text)
        except QuizGeneratorError as e:
            if is_truncation_error(e):
                return truncated(str(e))
            return UnitOutcome.fatal(str(e))

        if is_fallback(data):
            analysis = fallback_analysis(data)
            if analysis is not None and analysis.appears_truncated:
                return truncated(analysis.summary)
            summary = analysis.summary if analysis is not None else "Unable to parse response"
            return UnitOutcome.fatal(summary)

        questions = self.parser.to_questions(data)
        if not questions:
            if detect_truncation(call.response_text):
                return truncated("Response was cut off before any complete question")
            return UnitOutcome.fatal("No questions parsed from response")
        return UnitOutcome.ok(questions, call.suggested_title or data.get("title"))
