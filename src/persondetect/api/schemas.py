"""Pydantic request/response schemas for the PersonDetect API."""

from __future__ import annotations

from pydantic import BaseModel, Field

from persondetect.formatter import Outcome


class BoxSchema(BaseModel):
    """Relative bounding box of a detected object."""

    x: float = Field(description="Relative bounding box x position (0.0-1.0)")
    y: float = Field(description="Relative bounding box y position (0.0-1.0)")
    width: float = Field(description="Relative bounding box width (0.0-1.0)")
    height: float = Field(description="Relative bounding box height (0.0-1.0)")


class PredictionItemSchema(BaseModel):
    """A single detected object: its top label and confidence."""

    name: str
    confidence: float = Field(ge=0.0, le=1.0)
    box: BoxSchema | None = None


class DetectPersonResponse(BaseModel):
    """Response for the person detection endpoint."""

    predictions: list[PredictionItemSchema]
    person_count: int
    outcome: Outcome
    message: str = Field(description="Human-readable summary, one line pair per detection")


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = "ok"
    gpu: bool
    models_loaded: list[str]
    concurrent_requests: int
    queue_depth: int


class ModelInfo(BaseModel):
    """Information about an available model."""

    name: str
    status: str = Field(description="Model status: 'active' or 'available'")
    license: str


class ModelsResponse(BaseModel):
    """Response for the models listing endpoint."""

    models: list[ModelInfo]


class ErrorResponse(BaseModel):
    """Standard error response."""

    detail: str
