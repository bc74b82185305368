"""
Path and filename validation for document inputs and quiz outputs
"""
from pathlib import Path
from typing import Iterable, Union

from quiz_generator.utils.documents import SUPPORTED_EXTENSIONS

MAX_FILENAME_LENGTH = 255
DANGEROUS_CHARS = ['<', '>', ':', '"', '|', '?', '*', '\0']


class PathValidator:
    """Validates file paths used by the CLI and the HTTP upload route"""

    @staticmethod
    def validate_safe_path(base_dir: Union[str, Path], filename: str) -> Path:
        """Ensure filename doesn't escape base directory

        Args:
            base_dir: Base directory path
            filename: Filename to validate

        Returns:
            Full path if valid

        Raises:
            ValueError: If path would escape base directory
        """
        base_dir = Path(base_dir).resolve()
        full_path = (base_dir / filename).resolve()

        try:
            full_path.relative_to(base_dir)
        except ValueError:
            raise ValueError(f"Invalid filename: {filename} - path traversal detected")

        return full_path

    @staticmethod
    def validate_document_filename(filename: str,
                                   allowed_extensions: Iterable[str] = SUPPORTED_EXTENSIONS) -> bool:
        """Check that an uploaded filename is plain and has a supported extension

        Args:
            filename: Filename to validate
            allowed_extensions: Lowercase extensions including the dot

        Returns:
            True if valid document filename
        """
        if not filename or len(filename) > MAX_FILENAME_LENGTH:
            return False

        if '..' in filename or '/' in filename or '\\' in filename:
            return False

        return Path(filename).suffix.lower() in set(allowed_extensions)

    @staticmethod
    def sanitize_filename(filename: str) -> str:
        """Replace path separators and shell-hostile characters with underscores"""
        sanitized = filename.replace('/', '_').replace('\\', '_').replace('..', '_')
        for char in DANGEROUS_CHARS:
            sanitized = sanitized.replace(char, '_')
        return sanitized[:MAX_FILENAME_LENGTH]
