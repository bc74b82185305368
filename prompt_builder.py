"""
Centralized prompt building for quiz generation
"""
from typing import Sequence

from constants import (
    BASE_REQUIREMENTS,
    BALANCED_INTRO,
    BATCH_INTRO,
    DEFAULT_SUBJECT,
    RETRY_VARIATIONS,
    SINGLE_DOCUMENT_INTRO,
)


class PromptBuilder:
    """Builds prompts for the different generation units"""

    @staticmethod
    def build_base_requirements(count: int, subject: str = DEFAULT_SUBJECT) -> str:
        return BASE_REQUIREMENTS.format(count=count, subject=subject, subject_upper=subject.upper())

    @staticmethod
    def _document_list(documents: Sequence, label: str = "Document") -> str:
        return "\n".join(
            f"  - {label} {i + 1} (ID: '{doc.id}', Title: '{doc.title}')"
            for i, doc in enumerate(documents)
        )

    @staticmethod
    def build_single_document_prompt(document, count: int, index: int = 0,
                                     subject: str = DEFAULT_SUBJECT) -> str:
        """Build prompt for one document

        Args:
            document: DocumentRef the questions come from
            count: Number of questions to request
            index: Position of the document in the request

        Returns:
            Complete prompt string
        """
        intro = SINGLE_DOCUMENT_INTRO.format(
            count=count,
            position=index + 1,
            doc_id=document.id,
            title=document.title or f"Document {index + 1}",
        )
        return f"{intro}\n\n{PromptBuilder.build_base_requirements(count, subject)}\n"

    @staticmethod
    def build_balanced_prompt(documents: Sequence, count: int, subject: str = DEFAULT_SUBJECT) -> str:
        """Build prompt for one call carrying every document"""
        intro = BALANCED_INTRO.format(
            count=count,
            document_count=len(documents),
            document_list=PromptBuilder._document_list(documents),
        )
        return f"{intro}\n\n{PromptBuilder.build_base_requirements(count, subject)}\n"

    @staticmethod
    def build_batch_prompt(documents: Sequence, count: int, batch_index: int,
                           subject: str = DEFAULT_SUBJECT) -> str:
        """Build prompt for one document batch

        Args:
            documents: Documents in this batch
            count: Questions requested from the whole batch
            batch_index: Zero-based batch number

        Returns:
            Complete prompt string
        """
        intro = BATCH_INTRO.format(
            batch_number=batch_index + 1,
            count=count,
            document_count=len(documents),
            per_document=max(1, count // max(1, len(documents))),
            document_list=PromptBuilder._document_list(documents, "Document in Batch"),
        )
        return f"{intro}\n\n{PromptBuilder.build_base_requirements(count, subject)}\n"

    @staticmethod
    def with_retry_variation(prompt: str, retry_number: int) -> str:
        """Append a formatting reminder for the given retry (1-based); 0 leaves the prompt as is."""
        if retry_number <= 0:
            return prompt
        return prompt + RETRY_VARIATIONS[(retry_number - 1) % len(RETRY_VARIATIONS)]
