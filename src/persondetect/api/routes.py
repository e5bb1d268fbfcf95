"""API route definitions."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from fastapi import APIRouter, Depends, HTTPException, Request, UploadFile, status

from persondetect.api.middleware import verify_api_key
from persondetect.api.schemas import (
    BoxSchema,
    DetectPersonResponse,
    ErrorResponse,
    HealthResponse,
    ModelInfo,
    ModelsResponse,
    PredictionItemSchema,
)
from persondetect.formatter import format_prediction, outcome_for
from persondetect.ml.model_manager import MODEL_REGISTRY
from persondetect.ml.preprocessing import ImageDecodeError
from persondetect.predictor import InferenceError

if TYPE_CHECKING:
    from persondetect.config import Settings
    from persondetect.ml.inference import InferencePool
    from persondetect.ml.model_manager import ModelManager
    from persondetect.predictor import Prediction, Predictor

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1", dependencies=[Depends(verify_api_key)])


def _get_settings(request: Request) -> Settings:
    settings: Settings = request.app.state.settings
    return settings


def _get_inference_pool(request: Request) -> InferencePool:
    pool: InferencePool = request.app.state.inference_pool
    return pool


def _get_predictor(request: Request) -> Predictor:
    predictor: Predictor = request.app.state.predictor
    return predictor


def _get_model_manager(request: Request) -> ModelManager:
    manager: ModelManager = request.app.state.model_manager
    return manager


def _to_response(prediction: Prediction, target_label: str) -> DetectPersonResponse:
    items = [
        PredictionItemSchema(
            name=item.name,
            confidence=item.confidence,
            box=None
            if item.box is None
            else BoxSchema(x=item.box.x, y=item.box.y, width=item.box.width, height=item.box.height),
        )
        for item in prediction.items
    ]
    count = prediction.count(target_label)
    return DetectPersonResponse(
        predictions=items,
        person_count=count,
        outcome=outcome_for(count),
        message=format_prediction(prediction, target_label),
    )


@router.post(
    "/detect-person",
    response_model=DetectPersonResponse,
    responses={
        status.HTTP_400_BAD_REQUEST: {"model": ErrorResponse},
        status.HTTP_413_REQUEST_ENTITY_TOO_LARGE: {"model": ErrorResponse},
        status.HTTP_500_INTERNAL_SERVER_ERROR: {"model": ErrorResponse},
        status.HTTP_503_SERVICE_UNAVAILABLE: {"model": ErrorResponse},
    },
    summary="Detect whether exactly one person is in an image",
)
async def detect_person(request: Request, file: UploadFile) -> DetectPersonResponse:
    """Run object detection on an uploaded image and summarize the result."""
    settings = _get_settings(request)
    predictor = _get_predictor(request)

    image_bytes = await file.read(settings.max_file_size + 1)
    if len(image_bytes) > settings.max_file_size:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail=f"File exceeds {settings.max_file_size} bytes",
        )

    try:
        prediction = await predictor.predict(image_bytes)
    except ImageDecodeError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except TimeoutError as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Inference queue is full, try again later",
        ) from exc
    except InferenceError as exc:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc)) from exc

    logger.info("Detected %d objects in %s", len(prediction.items), file.filename)
    return _to_response(prediction, settings.target_label)


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Health check",
)
async def health(request: Request) -> HealthResponse:
    """Return service health status."""
    settings = _get_settings(request)
    pool = _get_inference_pool(request)
    return HealthResponse(
        status="ok",
        gpu=settings.device == "cuda",
        models_loaded=_get_model_manager(request).get_loaded_models(),
        concurrent_requests=pool.active_count,
        queue_depth=pool.queue_depth,
    )


@router.get(
    "/models",
    response_model=ModelsResponse,
    summary="List available models",
)
async def list_models(request: Request) -> ModelsResponse:
    """Return known detection models, marking the configured one active."""
    settings = _get_settings(request)
    return ModelsResponse(
        models=[
            ModelInfo(
                name=spec.name,
                status="active" if spec.name == settings.detection_model else "available",
                license=spec.license,
            )
            for spec in MODEL_REGISTRY.values()
        ]
    )
