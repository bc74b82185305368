import os
from google import genai  # google-genai unified SDK
from google.genai import types as genai_types
from dotenv import load_dotenv
from typing import Optional, List, Dict, Any

load_dotenv()

from settings import settings  # noqa: E402

# A missing key is reported by build_client, not at import.
API_KEY = os.getenv('GEMINI_API_KEY') or settings.GEMINI_API_KEY

# Model name mapping
MODEL_NAMES = {
    "flash": "gemini-2.5-flash",
    "flash-lite": "gemini-2.5-flash-lite",
    "pro": "gemini-2.5-pro",
}
DEFAULT_MODEL = MODEL_NAMES["flash"]

HARM_CATEGORIES = [
    "HARM_CATEGORY_HARASSMENT",
    "HARM_CATEGORY_HATE_SPEECH",
    "HARM_CATEGORY_SEXUALLY_EXPLICIT",
    "HARM_CATEGORY_DANGEROUS_CONTENT",
]

BLOCK_THRESHOLDS = {
    "BLOCK_NONE",
    "BLOCK_ONLY_HIGH",
    "BLOCK_MEDIUM_AND_ABOVE",
    "BLOCK_LOW_AND_ABOVE",
}

# Base configuration
GENERATION_CONFIG = {
    "temperature": settings.TEMPERATURE,
    "top_p": settings.TOP_P,
    "top_k": settings.TOP_K,
}


def resolve_model_name(model: Optional[str]) -> str:
    """Map an alias such as "flash" or "pro" to a model id; full ids pass through."""
    if not model:
        return MODEL_NAMES.get(settings.GEMINI_MODEL, settings.GEMINI_MODEL or DEFAULT_MODEL)
    return MODEL_NAMES.get(model, model)


def build_safety_settings(threshold: Optional[str] = None) -> List[genai_types.SafetySetting]:
    """
    Build safety settings for the four harm categories.

    Args:
        threshold: Block threshold name applied to every category

    Returns:
        List suitable for GenerateContentConfig.safety_settings
    """
    threshold = (threshold or settings.SAFETY_BLOCK_THRESHOLD).upper()
    if threshold not in BLOCK_THRESHOLDS:
        raise ValueError(f"Unknown safety threshold: {threshold}")
    return [
        genai_types.SafetySetting(category=category, threshold=threshold)
        for category in HARM_CATEGORIES
    ]


def create_model(model_type: Optional[str] = None,
                 safety_threshold: Optional[str] = None) -> Dict[str, Any]:
    """
    Create a Gemini model configuration.

    Args:
        model_type: Alias ("flash", "flash-lite", "pro") or full model id

    Returns:
        Dict with model_name, generation_config and safety_settings
    """
    return {
        "model_name": resolve_model_name(model_type),
        "generation_config": GENERATION_CONFIG.copy(),
        "safety_settings": build_safety_settings(safety_threshold),
    }


def build_client(api_key: Optional[str] = None) -> genai.Client:
    """Create and return a scoped google-genai Client.

    Raises:
        ValueError: If no API key is configured
    """
    key_to_use = api_key or API_KEY
    if not key_to_use:
        raise ValueError("Please set GEMINI_API_KEY in the environment or .env file")
    return genai.Client(api_key=key_to_use)
