import base64
import json
import re
import threading

import pytest

from quiz_generator.core.orchestrator import ScalableQuizGenerator
from quiz_generator.models import DocumentRef
from quiz_generator.utils.config import GenerationOptions

REQUESTED_COUNT = re.compile(r"EXACTLY (\d+) multiple-choice")


def question_dict(number, topic="aircraft engine"):
    return {
        "text": f"Question {number}: what does the {topic} checklist require?",
        "options": [
            {"id": "A", "text": f"Answer {number}A"},
            {"id": "B", "text": f"Answer {number}B"},
            {"id": "C", "text": f"Answer {number}C"},
            {"id": "D", "text": f"Answer {number}D"},
        ],
        "correct_answer_id": "B",
        "explanation": f"The {topic} manual says so.",
        "difficulty": "medium",
    }


def quiz_json(count, title="Aviation Quiz", start=1, topic="aircraft engine"):
    return json.dumps({
        "title": title,
        "questions": [question_dict(start + i, topic) for i in range(count)],
    })


def truncated_quiz_json(complete, title="Aviation Quiz"):
    """``complete`` full questions followed by a question cut off mid-option."""
    full = quiz_json(complete, title)
    prefix = full[:-2]  # drop closing "]}"
    return prefix + ', {"text": "Cut off question about flight?", "options": [{"id": "A", "text": "Lift'


def requested_count(parts):
    match = REQUESTED_COUNT.search(parts.text)
    return int(match.group(1)) if match else 0


class FakeBackend:
    """Streaming backend returning scripted responses or calling a handler."""

    def __init__(self, responses=None, handler=None, chunk_size=40):
        self.responses = list(responses or [])
        self.handler = handler
        self.chunk_size = chunk_size
        self.calls = []
        self._lock = threading.Lock()

    def generate_stream(self, parts):
        with self._lock:
            self.calls.append(parts)
            if self.handler is not None:
                result = self.handler(parts)
            else:
                result = self.responses.pop(0)
        if isinstance(result, BaseException):
            raise result
        for i in range(0, len(result), self.chunk_size):
            yield result[i:i + self.chunk_size]

    @property
    def requested_counts(self):
        return [requested_count(parts) for parts in self.calls]


def make_document(doc_id, title=None, content=b"%PDF-1.4 aviation content", mime_type="application/pdf"):
    return DocumentRef(
        id=doc_id,
        title=title if title is not None else f"Doc {doc_id}",
        mime_type=mime_type,
        data=base64.b64encode(content).decode("ascii"),
    )


@pytest.fixture
def documents():
    return [make_document(f"d{i}") for i in range(1, 4)]


@pytest.fixture
def sleeps():
    return []


@pytest.fixture
def make_generator(sleeps):
    def factory(backend, **option_overrides):
        options = GenerationOptions(rate_limit_delay_ms=1500, **option_overrides)
        return ScalableQuizGenerator(backend=backend, options=options, sleep=sleeps.append)
    return factory
