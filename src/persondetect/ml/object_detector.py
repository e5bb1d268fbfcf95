"""Object detection over ONNX YOLOv8-family models.

The model output is a ``(1, 4 + C, N)`` tensor: N candidate boxes in
centre format (cx, cy, w, h, input pixel space) followed by C class scores.
Each surviving candidate is reported with its top-ranked label only.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol

import numpy as np

from persondetect.ml.labels import COCO_LABELS, label_for
from persondetect.ml.preprocessing import scale_fill

if TYPE_CHECKING:
    from numpy.typing import NDArray
    from onnxruntime import InferenceSession

logger = logging.getLogger(__name__)

DEFAULT_INPUT_SIZE = 640


@dataclass(frozen=True)
class BoundingBox:
    """Box relative to the image, all values in 0.0-1.0."""

    x: float
    y: float
    width: float
    height: float


@dataclass(frozen=True)
class Detection:
    """A single detected object with its top-ranked label."""

    label: str
    confidence: float
    box: BoundingBox


class ObjectDetector(Protocol):
    """Protocol for object detection models."""

    @property
    def model_name(self) -> str:
        """Return the model identifier string."""
        ...

    def detect(self, image: NDArray[np.uint8]) -> list[Detection]:
        """Detect objects in an image.

        Args:
            image: HxWx3 RGB uint8 array.

        Returns:
            Detections ordered by confidence (descending).
        """
        ...


def non_max_suppression(
    boxes: NDArray[np.float32], scores: NDArray[np.float32], iou_threshold: float
) -> NDArray[np.intp]:
    """Greedy NMS over xyxy boxes; returns kept indices, best score first."""
    x1, y1, x2, y2 = boxes[:, 0], boxes[:, 1], boxes[:, 2], boxes[:, 3]
    areas = np.clip(x2 - x1, 0, None) * np.clip(y2 - y1, 0, None)
    order = np.argsort(-scores, kind="stable")

    keep: list[int] = []
    while order.size > 0:
        best = int(order[0])
        keep.append(best)
        rest = order[1:]

        inter_w = np.clip(np.minimum(x2[best], x2[rest]) - np.maximum(x1[best], x1[rest]), 0, None)
        inter_h = np.clip(np.minimum(y2[best], y2[rest]) - np.maximum(y1[best], y1[rest]), 0, None)
        inter = inter_w * inter_h
        union = areas[best] + areas[rest] - inter
        iou = np.divide(inter, union, out=np.zeros_like(inter), where=union > 0)

        order = rest[iou <= iou_threshold]

    return np.asarray(keep, dtype=np.intp)


def decode_yolo_output(
    output: NDArray[np.float32],
    input_width: int,
    input_height: int,
    *,
    confidence_threshold: float,
    iou_threshold: float,
    max_detections: int,
    labels: tuple[str, ...] = COCO_LABELS,
) -> list[Detection]:
    """Turn a raw YOLOv8 output tensor into labelled detections."""
    if output.ndim != 3 or output.shape[0] != 1 or output.shape[1] <= 4:
        raise ValueError(f"Unexpected detection output shape {output.shape}")

    candidates = output[0].T  # (N, 4 + C)
    class_scores = candidates[:, 4:]
    class_ids = class_scores.argmax(axis=1)
    confidences = class_scores[np.arange(len(class_ids)), class_ids]

    mask = confidences >= confidence_threshold
    if not mask.any():
        return []

    centres = candidates[mask, :4]
    class_ids = class_ids[mask]
    confidences = confidences[mask]

    xyxy = np.empty_like(centres)
    xyxy[:, 0] = centres[:, 0] - centres[:, 2] / 2
    xyxy[:, 1] = centres[:, 1] - centres[:, 3] / 2
    xyxy[:, 2] = centres[:, 0] + centres[:, 2] / 2
    xyxy[:, 3] = centres[:, 1] + centres[:, 3] / 2

    # Shift each class into its own region so NMS never merges across classes.
    offset = class_ids[:, np.newaxis].astype(np.float32) * float(max(input_width, input_height) + 1)
    kept = non_max_suppression(xyxy + offset, confidences, iou_threshold)[:max_detections]

    detections: list[Detection] = []
    for idx in kept:
        bx1, by1, bx2, by2 = np.clip(xyxy[idx], 0, [input_width, input_height, input_width, input_height])
        detections.append(
            Detection(
                label=label_for(int(class_ids[idx]), labels),
                confidence=float(np.clip(confidences[idx], 0.0, 1.0)),
                box=BoundingBox(
                    x=float(bx1 / input_width),
                    y=float(by1 / input_height),
                    width=float((bx2 - bx1) / input_width),
                    height=float((by2 - by1) / input_height),
                ),
            )
        )
    return detections


class YoloDetector:
    """Runs a YOLOv8 ONNX session over scale-filled images."""

    def __init__(
        self,
        session: InferenceSession,
        model_name: str,
        *,
        confidence_threshold: float = 0.25,
        iou_threshold: float = 0.45,
        max_detections: int = 100,
    ) -> None:
        self._session = session
        self._model_name = model_name
        self._confidence_threshold = confidence_threshold
        self._iou_threshold = iou_threshold
        self._max_detections = max_detections

        model_input = session.get_inputs()[0]
        self._input_name: str = model_input.name
        self._input_height, self._input_width = self._input_size(model_input.shape)
        logger.info(
            "Detector %s expects %sx%s input",
            model_name,
            self._input_width,
            self._input_height,
        )

    @property
    def model_name(self) -> str:
        return self._model_name

    def detect(self, image: NDArray[np.uint8]) -> list[Detection]:
        tensor = scale_fill(image, self._input_width, self._input_height)
        outputs = self._session.run(None, {self._input_name: tensor})
        return decode_yolo_output(
            np.asarray(outputs[0], dtype=np.float32),
            self._input_width,
            self._input_height,
            confidence_threshold=self._confidence_threshold,
            iou_threshold=self._iou_threshold,
            max_detections=self._max_detections,
        )

    @staticmethod
    def _input_size(shape: list[int | str | None]) -> tuple[int, int]:
        # Dynamic axes come back as names or None.
        height, width = shape[2], shape[3]
        if not isinstance(height, int) or not isinstance(width, int):
            return DEFAULT_INPUT_SIZE, DEFAULT_INPUT_SIZE
        return height, width
