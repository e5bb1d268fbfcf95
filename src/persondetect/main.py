"""FastAPI application entry point."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from persondetect.api.routes import router
from persondetect.config import LOG_FORMAT, get_settings
from persondetect.runtime import load_runtime

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan: load the model on startup, release it on shutdown."""
    settings = get_settings()
    app.state.settings = settings

    logging.basicConfig(level=logging.INFO, format=LOG_FORMAT)

    logger.info(
        "Starting PersonDetect (device=%s, max_concurrent=%s, model=%s, target=%s)",
        settings.device,
        settings.max_concurrent,
        settings.detection_model,
        settings.target_label,
    )

    runtime = load_runtime(settings)
    app.state.model_manager = runtime.model_manager
    app.state.inference_pool = runtime.inference_pool
    app.state.predictor = runtime.predictor

    logger.info("PersonDetect ready")
    yield

    logger.info("Shutting down PersonDetect")
    runtime.shutdown()
    logger.info("PersonDetect shutdown complete")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    application = FastAPI(
        title="PersonDetect",
        description="Detects whether exactly one person appears in a photo",
        version="0.1.0",
        lifespan=lifespan,
    )

    application.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    application.include_router(router)
    return application


app = create_app()


def serve() -> None:
    """Run the API with uvicorn on the configured host and port."""
    settings = get_settings()
    uvicorn.run("persondetect.main:app", host=settings.host, port=settings.port)
