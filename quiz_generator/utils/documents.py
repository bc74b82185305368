"""
Document loading helpers: turn files or raw bytes into DocumentRef payloads.
"""

import base64
import mimetypes
import uuid
from pathlib import Path
from typing import Iterable, List, Optional, Tuple

from ..models import DocumentRef
from .exceptions import DocumentTooLargeError, InvalidDocumentError
from .logging import get_logger

logger = get_logger(__name__)

DEFAULT_MIME_TYPE = "application/pdf"
DEFAULT_MAX_SIZE_MB = 10
WARN_SIZE_MB = 5
SUPPORTED_EXTENSIONS = {".pdf", ".txt", ".md", ".html", ".htm", ".csv", ".png", ".jpg", ".jpeg"}


def guess_mime_type(filename: str) -> str:
    mime_type, _ = mimetypes.guess_type(filename)
    return mime_type or DEFAULT_MIME_TYPE


def document_from_bytes(content: bytes, filename: str,
                        title: Optional[str] = None,
                        doc_id: Optional[str] = None,
                        mime_type: Optional[str] = None,
                        max_size_mb: int = DEFAULT_MAX_SIZE_MB) -> DocumentRef:
    """
    Build a DocumentRef from raw bytes.

    Args:
        content: File contents
        filename: Original file name (used for MIME type and default title)
        title: Display title (defaults to the file stem)
        doc_id: Identifier (defaults to a random UUID)
        mime_type: Explicit MIME type
        max_size_mb: Size limit in megabytes

    Returns:
        DocumentRef with a base64-encoded payload

    Raises:
        InvalidDocumentError: If the content is empty
        DocumentTooLargeError: If the content exceeds max_size_mb
    """
    if not content:
        raise InvalidDocumentError(f"Document {filename} is empty")

    size_mb = len(content) / (1024 * 1024)
    if size_mb > max_size_mb:
        raise DocumentTooLargeError(
            f"Document {filename} is {size_mb:.1f}MB, exceeding the {max_size_mb}MB limit"
        )
    if size_mb > WARN_SIZE_MB:
        logger.warning(f"Large document {filename} ({size_mb:.1f}MB) may lead to truncated responses")

    return DocumentRef(
        id=doc_id or uuid.uuid4().hex,
        title=title or Path(filename).stem,
        mime_type=mime_type or guess_mime_type(filename),
        data=base64.b64encode(content).decode("ascii"),
    )


def load_document(path: str, title: Optional[str] = None,
                  max_size_mb: int = DEFAULT_MAX_SIZE_MB) -> DocumentRef:
    """Read a file from disk into a DocumentRef."""
    file_path = Path(path)
    if not file_path.is_file():
        raise InvalidDocumentError(f"Document not found: {path}")
    return document_from_bytes(
        file_path.read_bytes(),
        file_path.name,
        title=title,
        doc_id=file_path.stem,
        max_size_mb=max_size_mb,
    )


def collect_document_paths(inputs: Iterable[str]) -> List[Path]:
    """Expand files and directories into a sorted list of supported files."""
    paths: List[Path] = []
    for item in inputs:
        candidate = Path(item)
        if candidate.is_dir():
            paths.extend(
                sorted(p for p in candidate.iterdir()
                       if p.is_file() and p.suffix.lower() in SUPPORTED_EXTENSIONS)
            )
        else:
            paths.append(candidate)
    return paths


def load_documents(paths: Iterable[str],
                   max_size_mb: int = DEFAULT_MAX_SIZE_MB) -> Tuple[List[DocumentRef], List[str]]:
    """
    Load several documents, skipping the ones that cannot be used.

    Returns:
        (documents, skipped) where skipped holds one message per rejected file
    """
    documents: List[DocumentRef] = []
    skipped: List[str] = []
    for path in collect_document_paths(paths):
        try:
            documents.append(load_document(str(path), max_size_mb=max_size_mb))
        except InvalidDocumentError as e:
            logger.warning(f"Skipping {path}: {e}")
            skipped.append(f"Skipped {path.name}: {e}")
    return documents, skipped
