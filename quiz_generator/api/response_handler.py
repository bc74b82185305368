"""Saving raw LLM responses for post-mortem debugging"""

import json
import re
import threading
from datetime import datetime
from pathlib import Path
from typing import Optional

from ..utils.logging import get_logger

logger = get_logger(__name__)

_UNSAFE_FILENAME_CHARS = re.compile(r'[^A-Za-z0-9._-]+')


class ResponseHandler:
    """Writes every raw response to a debug directory as JSON."""

    def __init__(self, debug_dir: Optional[str] = None):
        """
        Initialize response handler

        Args:
            debug_dir: Target directory; None disables saving
        """
        self.debug_dir = Path(debug_dir) if debug_dir else None
        self._counter = 0
        self._lock = threading.Lock()

    @property
    def enabled(self) -> bool:
        return self.debug_dir is not None

    def save_response(self, response_text: str, descriptor: str, attempt: int = 1,
                      finish_reason: Optional[str] = None) -> Optional[Path]:
        """Save one response. Failures are logged and never raised.

        Args:
            response_text: Raw response text from the API
            descriptor: Unit-of-work label (document id or batch index)
            attempt: Call attempt number
            finish_reason: Finish reason reported by the stream, if any

        Returns:
            Path of the written file, or None
        """
        if self.debug_dir is None:
            return None

        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S_%f")
        with self._lock:
            self._counter += 1
            sequence = self._counter
        safe_descriptor = _UNSAFE_FILENAME_CHARS.sub("_", descriptor)[:80]
        filename = f"{timestamp}_{sequence:04d}_{safe_descriptor}_attempt{attempt}_response.json"

        debug_data = {
            "timestamp": timestamp,
            "descriptor": descriptor,
            "attempt": attempt,
            "response_text": response_text,
            "response_length": len(response_text),
        }
        if finish_reason:
            debug_data["finish_reason"] = finish_reason

        try:
            self.debug_dir.mkdir(parents=True, exist_ok=True)
            filepath = self.debug_dir / filename
            with open(filepath, 'w', encoding='utf-8') as f:
                json.dump(debug_data, f, ensure_ascii=False, indent=2)
            logger.debug(f"Debug response saved to {filepath}")
            return filepath
        except OSError as e:
            logger.error(f"Failed to save debug response: {str(e)}")
            return None
