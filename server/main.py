from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

import config
from quiz_generator import __version__
from quiz_generator.utils.logging import get_logger

from .routes import generate, misc

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Application startup")
    if not config.API_KEY:
        logger.warning("GEMINI_API_KEY is not set; generation requests will fail until it is configured")
    yield
    logger.info("Application shutdown")


def create_app() -> FastAPI:
    app = FastAPI(title="Quiz Generator API", version=__version__, lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.include_router(misc.router)
    app.include_router(generate.router)
    return app
