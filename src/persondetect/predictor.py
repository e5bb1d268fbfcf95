"""Predictor: one awaitable detection per submitted image."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

import numpy as np

from persondetect.ml.preprocessing import ImageDecodeError

if TYPE_CHECKING:
    from numpy.typing import NDArray

    from persondetect.ml.inference import InferencePool
    from persondetect.ml.object_detector import BoundingBox, ObjectDetector
    from persondetect.ml.preprocessing import ImagePreprocessor

logger = logging.getLogger(__name__)


class InferenceError(RuntimeError):
    """Raised when the model fails to produce detections for an image."""


@dataclass(frozen=True)
class PredictionItem:
    """A label and confidence for one detected object."""

    name: str
    confidence: float
    box: BoundingBox | None = None


@dataclass(frozen=True)
class Prediction:
    """All items from a single inference request, in detection order.

    An empty ``items`` tuple means the model ran and found nothing.
    """

    items: tuple[PredictionItem, ...] = ()

    def count(self, label: str) -> int:
        return sum(1 for item in self.items if item.name == label)


class Predictor:
    """Runs the detection model for one image at a time on the inference pool."""

    def __init__(
        self,
        detector: ObjectDetector,
        pool: InferencePool,
        preprocessor: ImagePreprocessor,
    ) -> None:
        self._detector = detector
        self._pool = pool
        self._preprocessor = preprocessor

    @property
    def model_name(self) -> str:
        return self._detector.model_name

    async def predict(self, image: bytes | NDArray[np.uint8]) -> Prediction:
        """Detect objects in an image.

        Args:
            image: Encoded image bytes, or an HxWx3 RGB uint8 array.

        Raises:
            ImageDecodeError: If the image cannot be converted to RGB.
            InferenceError: If the model fails while running.
            TimeoutError: If the inference pool is saturated.
        """
        return await self._pool.run(self._predict_sync, image)

    def _predict_sync(self, image: bytes | NDArray[np.uint8]) -> Prediction:
        if isinstance(image, (bytes, bytearray)):
            pixels = self._preprocessor.decode_image(bytes(image))
        else:
            pixels = np.asarray(image)
            if pixels.dtype != np.uint8:
                raise ImageDecodeError(f"Expected a uint8 RGB array, got dtype {pixels.dtype}")
            if pixels.ndim != 3 or pixels.shape[2] != 3:
                raise ImageDecodeError(f"Expected an HxWx3 RGB array, got shape {pixels.shape}")

        try:
            detections = self._detector.detect(pixels)
        except Exception as exc:
            logger.exception("Model %s was unable to make a prediction", self.model_name)
            raise InferenceError(f"Detection failed: {exc}") from exc

        items = tuple(
            PredictionItem(name=det.label, confidence=det.confidence, box=det.box) for det in detections
        )
        logger.debug("Model %s returned %d detections", self.model_name, len(items))
        return Prediction(items=items)
