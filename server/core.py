from typing import Callable

from settings import settings as app_settings
from quiz_generator.core.orchestrator import ScalableQuizGenerator
from quiz_generator.utils.config import GenerationOptions

# Per-document size limit for uploads and inline payloads
MAX_FILE_SIZE_MB = app_settings.MAX_DOCUMENT_SIZE_MB
MAX_FILE_SIZE = MAX_FILE_SIZE_MB * 1024 * 1024

GeneratorFactory = Callable[[GenerationOptions], ScalableQuizGenerator]


def get_base_options() -> GenerationOptions:
    """Options derived from the environment, before per-request overrides."""
    return GenerationOptions.from_settings()


def get_generator_factory() -> GeneratorFactory:
    """Dependency returning a callable that builds a generator for given options.

    Tests override this to inject a fake streaming backend.
    """
    return lambda options: ScalableQuizGenerator(options=options)
