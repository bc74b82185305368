"""
Centralized application settings using Pydantic Settings.

This module exposes a single `settings` instance that other modules can import.
Values come from the environment and an optional `.env` file.
"""

from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Gemini / Model
    GEMINI_API_KEY: Optional[str] = Field(default=None)
    GEMINI_MODEL: str = "flash"
    SAFETY_BLOCK_THRESHOLD: str = "BLOCK_MEDIUM_AND_ABOVE"
    TEMPERATURE: float = 0.7
    TOP_P: float = 0.9
    TOP_K: int = 40

    # Generation strategy
    QUIZ_STRATEGY: str = "auto"
    QUESTIONS_PER_DOCUMENT: int = 3
    MAX_DOCUMENTS_PER_BATCH: int = 5
    MAX_RETRIES: int = 2
    CONCURRENT_REQUESTS: int = 3
    RATE_LIMIT_DELAY_MS: int = 1500

    # Parser behaviour
    ENABLE_LOGGING: bool = False
    THROW_ON_UNRECOVERABLE: bool = False
    DEBUG_OUTPUT_DIR: Optional[str] = None

    # Documents
    MAX_DOCUMENT_SIZE_MB: int = 10


settings = Settings()
