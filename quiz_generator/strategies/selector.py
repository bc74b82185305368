"""
Strategy selection: how to split documents and the question target across calls.
"""

from ..models import Strategy


def select_strategy(document_count: int, question_count: int,
                    questions_per_document: int = 3,
                    max_documents_per_batch: int = 5) -> Strategy:
    """
    Choose a partitioning strategy. Rules are evaluated in order.

    Args:
        document_count: Number of documents (d)
        question_count: Target number of questions (q)
        questions_per_document: Typical yield of one document
        max_documents_per_batch: Most documents one call may carry

    Returns:
        One of BALANCED, PER_DOCUMENT, BATCHED, HYBRID (never AUTO)
    """
    d, q = document_count, question_count
    if d <= 0:
        return Strategy.BALANCED
    if d == 1:
        return Strategy.PER_DOCUMENT

    ratio = q / d
    if ratio < 1 and q < d:
        return Strategy.BALANCED
    if d <= max_documents_per_batch:
        return Strategy.BALANCED
    if ratio >= questions_per_document and d > max_documents_per_batch:
        return Strategy.BATCHED
    if ratio < questions_per_document / 2 and d > max_documents_per_batch * 1.5:
        return Strategy.PER_DOCUMENT
    return Strategy.HYBRID
