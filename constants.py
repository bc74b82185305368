"""
Constants for the quiz generator - prompt text and tuning values
"""

DEFAULT_SUBJECT = "aviation"

# Shared requirements block appended to every prompt
BASE_REQUIREMENTS = """You are an {subject_upper} EDUCATION expert. Generate EXACTLY {count} multiple-choice questions from the {subject} content in the provided documents.

CONTENT REQUIREMENTS:
- Questions MUST be directly related to {subject} topics covered by the documents
- Questions MUST be based on the specific content in the provided documents
- DO NOT generate questions about unrelated topics or general knowledge
- If documents contain unrelated content, IGNORE it and focus on the {subject} sections

QUESTION LIMIT ENFORCEMENT:
- Generate EXACTLY {count} questions, NO MORE, NO LESS
- Count your questions before responding

RULES:
- 4 options per question (A, B, C, D)
- Include correct_answer_id, a brief explanation and a difficulty (easy, medium or hard)
- Questions must have a "text" field
- Return ONLY valid JSON, no markdown, no code blocks
- Ensure all JSON strings are properly escaped
- No trailing commas anywhere in the JSON

JSON FORMAT:
{{
  "title": "Exam Title",
  "questions": [
    {{
      "text": "Question text here?",
      "options": [
        {{"id": "A", "text": "Option A"}},
        {{"id": "B", "text": "Option B"}},
        {{"id": "C", "text": "Option C"}},
        {{"id": "D", "text": "Option D"}}
      ],
      "correct_answer_id": "B",
      "explanation": "Why B is correct",
      "difficulty": "medium"
    }}
  ]
}}"""

SINGLE_DOCUMENT_INTRO = """Generate {count} multiple-choice questions from the provided document (Document {position}, ID: '{doc_id}', Title: '{title}').
Focus on the most important concepts in this document."""

BALANCED_INTRO = """Generate a total of {count} multiple-choice questions from the {document_count} provided document files.
Ensure a balanced representation of questions from all documents if possible. Prioritize accuracy and relevance to each document's specific content.

Provided Documents:
{document_list}"""

BATCH_INTRO = """You are processing Batch {batch_number}.
Generate a total of {count} multiple-choice questions from the {document_count} document files in this batch.
Aim to generate approximately {per_document} questions from EACH document in this batch.

Documents in this Batch:
{document_list}"""

# Appended on reduced-count retries, cycling by retry number
RETRY_VARIATIONS = (
    "\nIMPORTANT: Ensure perfect JSON formatting in your response.",
    "\nREMINDER: Double-check option object structure before responding.",
    "\nNOTE: Previous attempt had formatting issues. Be extra careful with JSON syntax.",
)

# Proactive per-document question caps
LARGE_DOCUMENT_TITLE_MARKERS = ("manual", "guide", "documentation")
LARGE_DOCUMENT_PAYLOAD_CHARS = 1_000_000
VERY_LARGE_DOCUMENT_PAYLOAD_CHARS = 2_000_000
LARGE_DOCUMENT_QUESTION_CAP = 5
VERY_LARGE_DOCUMENT_QUESTION_CAP = 3

# Reduced-count retry ladders
SINGLE_DOCUMENT_RETRY_RATIO = 0.3
SINGLE_DOCUMENT_RETRY_FLOOR = 3
MINIMUM_RETRY_COUNT = 2
BALANCED_RETRY_RATIO = 0.6
BALANCED_RETRY_FLOOR = 10
