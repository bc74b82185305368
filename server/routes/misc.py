from fastapi import APIRouter

import config
from quiz_generator import __version__
from quiz_generator.models import Strategy

from ..core import MAX_FILE_SIZE_MB

router = APIRouter()


@router.get("/health")
def health_check():
    """Health check endpoint for monitoring."""
    return {
        "status": "healthy",
        "version": __version__,
        "api_key_configured": bool(config.API_KEY),
    }


@router.get("/config")
def get_config():
    """Expose server capabilities for clients."""
    return {
        "models": sorted(config.MODEL_NAMES),
        "default_model": config.DEFAULT_MODEL,
        "strategies": [s.value for s in Strategy],
        "max_file_size_mb": MAX_FILE_SIZE_MB,
    }
