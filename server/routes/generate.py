import base64
import binascii
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile
from pydantic import BaseModel, Field
from starlette.concurrency import run_in_threadpool

from path_validator import PathValidator
from quiz_generator.models import DocumentRef, GenerationRequest
from quiz_generator.utils.config import GenerationOptions
from quiz_generator.utils.documents import document_from_bytes
from quiz_generator.utils.exceptions import (
    ConfigurationError,
    DocumentTooLargeError,
    GenerationFailedError,
    InvalidDocumentError,
    InvalidRequestError,
    QuizGeneratorError,
)
from quiz_generator.utils.logging import get_logger
from quiz_generator.utils.progress import ProgressCollector

from ..core import MAX_FILE_SIZE_MB, GeneratorFactory, get_base_options, get_generator_factory

logger = get_logger(__name__)

router = APIRouter(prefix="/api")


class DocumentPayload(BaseModel):
    id: Optional[str] = None
    title: Optional[str] = None
    mime_type: Optional[str] = None
    data: str = Field(..., description="Base64-encoded document content")


class GenerationOverrides(BaseModel):
    strategy: Optional[str] = None
    questions_per_document: Optional[int] = Field(None, ge=1)
    max_documents_per_batch: Optional[int] = Field(None, ge=1)
    model: Optional[str] = None
    max_retries: Optional[int] = Field(None, ge=0)
    concurrent_requests: Optional[int] = Field(None, ge=1)
    rate_limit_delay_ms: Optional[int] = Field(None, ge=0)
    enable_logging: Optional[bool] = None
    throw_on_unrecoverable: Optional[bool] = None


class GenerateQuizRequest(GenerationOverrides):
    documents: List[DocumentPayload] = Field(default_factory=list)
    total_questions: int = Field(10, ge=1)


def _decode_document(payload: DocumentPayload, index: int) -> DocumentRef:
    name = payload.title or payload.id or f"document-{index + 1}"
    try:
        content = base64.b64decode(payload.data, validate=True)
    except (binascii.Error, ValueError) as e:
        raise InvalidRequestError(f"Document {name} is not valid base64: {e}")
    return document_from_bytes(
        content,
        name,
        title=payload.title or name,
        doc_id=payload.id or f"doc-{index + 1}",
        mime_type=payload.mime_type,
        max_size_mb=MAX_FILE_SIZE_MB,
    )


def _run_generation(factory: GeneratorFactory, options: GenerationOptions,
                    documents: List[DocumentRef], total_questions: int,
                    skipped: Optional[List[str]] = None) -> Dict[str, Any]:
    """Run one blocking generation call and shape the response body."""
    collector = ProgressCollector()
    for message in skipped or []:
        collector(message)
    try:
        generator = factory(options)
        request = GenerationRequest(documents=documents, total_questions=total_questions)
        result = generator.generate(request, on_progress=collector)
    except DocumentTooLargeError as e:
        raise HTTPException(status_code=413, detail=str(e))
    except InvalidRequestError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except ConfigurationError as e:
        logger.error(f"Generator is not configured: {e}")
        raise HTTPException(status_code=503, detail=str(e))
    except GenerationFailedError as e:
        raise HTTPException(status_code=502, detail=str(e))
    except QuizGeneratorError as e:
        logger.error(f"Quiz generation failed: {e}")
        raise HTTPException(status_code=502, detail=f"Quiz generation failed: {e}")

    body = result.to_dict()
    body["title"] = result.display_title(documents)
    body["progress"] = collector.messages
    return body


def _ensure_usable(documents: List[DocumentRef], errors: List[InvalidDocumentError]) -> None:
    """Reject the request only when every submitted document was unusable."""
    if documents or not errors:
        return
    status = 413 if all(isinstance(e, DocumentTooLargeError) for e in errors) else 400
    raise HTTPException(status_code=status, detail="; ".join(str(e) for e in errors))


def _options_for(base: GenerationOptions, overrides: GenerationOverrides) -> GenerationOptions:
    try:
        return base.with_overrides(**overrides.model_dump(include=set(GenerationOverrides.model_fields)))
    except ConfigurationError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.post("/generate-quiz")
def generate_quiz(
    body: GenerateQuizRequest,
    base_options: GenerationOptions = Depends(get_base_options),
    factory: GeneratorFactory = Depends(get_generator_factory),
):
    """Generate a quiz from base64-encoded documents."""
    options = _options_for(base_options, body)
    documents: List[DocumentRef] = []
    errors: List[InvalidDocumentError] = []
    skipped: List[str] = []
    for index, payload in enumerate(body.documents):
        try:
            documents.append(_decode_document(payload, index))
        except InvalidDocumentError as e:
            logger.warning(f"Skipping document {index + 1}: {e}")
            errors.append(e)
            skipped.append(f"Skipped document {index + 1}: {e}")
        except InvalidRequestError as e:
            raise HTTPException(status_code=400, detail=str(e))
    _ensure_usable(documents, errors)
    return _run_generation(factory, options, documents, body.total_questions, skipped)


@router.post("/generate-quiz/upload")
async def generate_quiz_upload(
    files: list[UploadFile] = File(...),
    total_questions: int = Form(10, ge=1),
    strategy: Optional[str] = Form(None),
    model: Optional[str] = Form(None),
    strict: bool = Form(False),
    enable_logging: bool = Form(False),
    base_options: GenerationOptions = Depends(get_base_options),
    factory: GeneratorFactory = Depends(get_generator_factory),
):
    """Generate a quiz from uploaded files (multipart form)."""
    overrides = GenerationOverrides(strategy=strategy, model=model,
                                    throw_on_unrecoverable=True if strict else None,
                                    enable_logging=True if enable_logging else None)
    options = _options_for(base_options, overrides)

    documents: List[DocumentRef] = []
    errors: List[InvalidDocumentError] = []
    skipped: List[str] = []
    for index, upload in enumerate(files):
        filename = upload.filename or f"document-{index + 1}"
        if not PathValidator.validate_document_filename(filename):
            raise HTTPException(status_code=400, detail=f"Unsupported document: {filename}")
        content = await upload.read()
        try:
            documents.append(document_from_bytes(
                content,
                PathValidator.sanitize_filename(filename),
                doc_id=f"doc-{index + 1}",
                mime_type=upload.content_type if upload.content_type != "application/octet-stream" else None,
                max_size_mb=MAX_FILE_SIZE_MB,
            ))
        except InvalidDocumentError as e:
            logger.warning(f"Skipping upload {filename}: {e}")
            errors.append(e)
            skipped.append(f"Skipped {filename}: {e}")
    _ensure_usable(documents, errors)

    return await run_in_threadpool(_run_generation, factory, options, documents, total_questions, skipped)
