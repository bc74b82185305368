"""
Generation options for the quiz generator.
"""

from dataclasses import dataclass, field, replace
from typing import Any, FrozenSet, Iterable, Optional

from ..models import Strategy
from .exceptions import ConfigurationError
from .logging import get_logger

logger = get_logger(__name__)

AVIATION_KEYWORDS: FrozenSet[str] = frozenset({
    "aircraft", "airplane", "flight", "pilot", "aviation", "airport", "runway",
    "airspace", "altitude", "navigation", "weather", "wind", "turbulence",
    "landing", "takeoff", "engine", "fuel", "radio", "communication", "atc",
    "control tower", "instrument", "vfr", "ifr", "regulation", "far", "faa",
    "airworthiness", "maintenance", "aerodynamics", "lift", "drag", "thrust",
    "weight", "stall", "spin", "crosswind", "headwind", "tailwind",
    "visibility", "ceiling", "metar", "taf",
})


@dataclass
class GenerationOptions:
    """Caller-tunable behaviour of one generator instance.

    ``domain_keywords`` drives the relevance filter applied before trimming;
    pass ``None`` or an empty set to disable the filter.
    """

    strategy: Strategy = Strategy.AUTO
    questions_per_document: int = 3
    max_documents_per_batch: int = 5
    model: Optional[str] = None
    max_retries: int = 2
    concurrent_requests: int = 3
    rate_limit_delay_ms: int = 1500
    enable_logging: bool = False
    throw_on_unrecoverable: bool = False
    domain_keywords: Optional[FrozenSet[str]] = field(default=AVIATION_KEYWORDS)
    debug_output_dir: Optional[str] = None

    def __post_init__(self):
        try:
            self.strategy = Strategy.parse(self.strategy)
        except ValueError as e:
            raise ConfigurationError(str(e))

        for name in ("questions_per_document", "max_documents_per_batch", "concurrent_requests"):
            value = getattr(self, name)
            if not isinstance(value, int) or isinstance(value, bool) or value < 1:
                raise ConfigurationError(f"{name} must be a positive integer, got {value!r}")
        for name in ("max_retries", "rate_limit_delay_ms"):
            value = getattr(self, name)
            if not isinstance(value, int) or isinstance(value, bool) or value < 0:
                raise ConfigurationError(f"{name} must be a non-negative integer, got {value!r}")

        if self.domain_keywords:
            self.domain_keywords = frozenset(k.lower() for k in self.domain_keywords)

    @property
    def rate_limit_delay(self) -> float:
        """Delay between batches in seconds."""
        return self.rate_limit_delay_ms / 1000.0

    def with_overrides(self, **overrides: Any) -> "GenerationOptions":
        """Return a copy with the given (non-None) fields replaced."""
        changes = {k: v for k, v in overrides.items() if v is not None}
        return replace(self, **changes)

    @classmethod
    def from_settings(cls, settings: Any = None,
                      domain_keywords: Optional[Iterable[str]] = AVIATION_KEYWORDS) -> "GenerationOptions":
        """
        Build options from the application settings.

        Args:
            settings: Settings object (defaults to the global settings instance)
            domain_keywords: Relevance keyword set

        Returns:
            Validated GenerationOptions
        """
        if settings is None:
            from settings import settings  # local import to avoid cycles

        options = cls(
            strategy=settings.QUIZ_STRATEGY,
            questions_per_document=settings.QUESTIONS_PER_DOCUMENT,
            max_documents_per_batch=settings.MAX_DOCUMENTS_PER_BATCH,
            model=settings.GEMINI_MODEL,
            max_retries=settings.MAX_RETRIES,
            concurrent_requests=settings.CONCURRENT_REQUESTS,
            rate_limit_delay_ms=settings.RATE_LIMIT_DELAY_MS,
            enable_logging=settings.ENABLE_LOGGING,
            throw_on_unrecoverable=settings.THROW_ON_UNRECOVERABLE,
            domain_keywords=frozenset(domain_keywords) if domain_keywords else None,
            debug_output_dir=settings.DEBUG_OUTPUT_DIR,
        )
        logger.debug(f"Loaded generation options: strategy={options.strategy.value}, "
                     f"retries={options.max_retries}, concurrency={options.concurrent_requests}")
        return options
