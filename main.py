#!/usr/bin/env python3

import argparse
import json
import sys
from pathlib import Path
from typing import List, Optional

from path_validator import PathValidator
from settings import settings
from quiz_generator.core.orchestrator import ScalableQuizGenerator
from quiz_generator.models import GenerationRequest, Strategy
from quiz_generator.utils.config import GenerationOptions
from quiz_generator.utils.documents import load_documents
from quiz_generator.utils.exceptions import QuizGeneratorError
from quiz_generator.utils.logging import setup_file_logging


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Generate a multiple-choice exam from source documents")
    parser.add_argument("documents", nargs="+", help="Document files or directories")
    parser.add_argument("-n", "--questions", type=int, default=10,
                        help="Number of questions to generate (default: 10)")
    parser.add_argument("--strategy", choices=[s.value for s in Strategy], default=None,
                        help="Generation strategy (default: from QUIZ_STRATEGY or auto)")
    parser.add_argument("--questions-per-document", type=int, default=None,
                        help="Typical question yield per document (default: 3)")
    parser.add_argument("--max-documents-per-batch", type=int, default=None,
                        help="Most documents sent in one request (default: 5)")
    parser.add_argument("--model", default=None,
                        help="Gemini model alias (flash, flash-lite, pro) or full model id")
    parser.add_argument("--max-retries", type=int, default=None, help="Retries per request (default: 2)")
    parser.add_argument("--concurrent-requests", type=int, default=None,
                        help="Parallel per-document requests (default: 3)")
    parser.add_argument("--rate-limit-delay", type=int, default=None,
                        help="Delay between batches in milliseconds (default: 1500)")
    parser.add_argument("--enable-logging", action="store_true", help="Verbose parser and generation logs")
    parser.add_argument("--strict", action="store_true",
                        help="Fail instead of returning fewer questions when nothing can be parsed")
    parser.add_argument("--debug-output-dir", default=None, help="Save every raw response here")
    parser.add_argument("--log-dir", default=None, help="Also write logs to a file in this directory")
    parser.add_argument("-o", "--output", default=None, help="Write the quiz JSON here instead of stdout")
    return parser


def options_from_args(args: argparse.Namespace, base: Optional[GenerationOptions] = None) -> GenerationOptions:
    """Overlay command line flags on the environment-derived options."""
    base = base or GenerationOptions.from_settings()
    return base.with_overrides(
        strategy=args.strategy,
        questions_per_document=args.questions_per_document,
        max_documents_per_batch=args.max_documents_per_batch,
        model=args.model,
        max_retries=args.max_retries,
        concurrent_requests=args.concurrent_requests,
        rate_limit_delay_ms=args.rate_limit_delay,
        enable_logging=True if args.enable_logging else None,
        throw_on_unrecoverable=True if args.strict else None,
        debug_output_dir=args.debug_output_dir,
    )


def write_output(payload: dict, output: Optional[str]) -> None:
    text = json.dumps(payload, ensure_ascii=False, indent=2)
    if output is None:
        print(text)
        return
    output_path = Path(output)
    safe_path = PathValidator.validate_safe_path(output_path.parent, PathValidator.sanitize_filename(output_path.name))
    safe_path.parent.mkdir(parents=True, exist_ok=True)
    safe_path.write_text(text, encoding="utf-8")
    print(f"Quiz written to {safe_path}", file=sys.stderr)


def main(argv: Optional[List[str]] = None, generator: Optional[ScalableQuizGenerator] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.questions <= 0:
        parser.error("--questions must be positive")

    if args.log_dir:
        log_path = setup_file_logging(args.log_dir)
        print(f"Logging to {log_path}", file=sys.stderr)

    try:
        options = options_from_args(args)
    except QuizGeneratorError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2

    for item in args.documents:
        path = Path(item)
        if path.is_file() and not PathValidator.validate_document_filename(path.name):
            print(f"Warning: unsupported document type: {path.name}", file=sys.stderr)

    documents, skipped = load_documents(args.documents, max_size_mb=settings.MAX_DOCUMENT_SIZE_MB)
    for message in skipped:
        print(message, file=sys.stderr)
    if not documents:
        print("Error: no usable documents found", file=sys.stderr)
        return 1

    print(f"Loaded {len(documents)} document(s)", file=sys.stderr)

    try:
        generator = generator or ScalableQuizGenerator(options=options)
        request = GenerationRequest(documents=documents, total_questions=args.questions)
        result = generator.generate(request, on_progress=lambda message: print(f"  {message}", file=sys.stderr))
    except QuizGeneratorError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    payload = {"title": result.display_title(documents), **result.to_dict()}
    write_output(payload, args.output)

    selected = result.metadata.selected_count
    if selected < args.questions:
        print(f"Generated {selected} of {args.questions} requested questions", file=sys.stderr)
    return 0


if __name__ == "__main__":
    sys.exit(main())
