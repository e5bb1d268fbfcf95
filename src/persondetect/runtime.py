"""Wiring for the detection stack shared by the API and the CLI."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from persondetect.ml.inference import InferencePool
from persondetect.ml.model_manager import OnnxModelManager
from persondetect.ml.object_detector import YoloDetector
from persondetect.ml.preprocessing import ImagePreprocessor
from persondetect.predictor import Predictor

if TYPE_CHECKING:
    from persondetect.config import Settings

logger = logging.getLogger(__name__)


@dataclass
class Runtime:
    model_manager: OnnxModelManager
    inference_pool: InferencePool
    predictor: Predictor

    def shutdown(self) -> None:
        self.inference_pool.shutdown()
        self.model_manager.shutdown()


def load_runtime(settings: Settings) -> Runtime:
    """Load the configured detection model and build the predictor.

    Any failure here (unknown model, download error, bad ONNX file) is
    fatal and propagates to the caller.
    """
    model_manager = OnnxModelManager(settings)
    session = model_manager.get_session(settings.detection_model)
    detector = YoloDetector(
        session,
        settings.detection_model,
        confidence_threshold=settings.confidence_threshold,
        iou_threshold=settings.iou_threshold,
        max_detections=settings.max_detections,
    )
    pool = InferencePool(settings)
    predictor = Predictor(detector, pool, ImagePreprocessor(settings.max_image_pixels))
    logger.info("Detection model %s ready", settings.detection_model)
    return Runtime(model_manager=model_manager, inference_pool=pool, predictor=predictor)
