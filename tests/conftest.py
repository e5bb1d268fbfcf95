"""Shared fakes for the PersonDetect test suite."""

from __future__ import annotations

import io
import struct
from typing import TYPE_CHECKING

import pytest
from PIL import Image

from persondetect.ml.object_detector import BoundingBox, Detection

if TYPE_CHECKING:
    import numpy as np
    from numpy.typing import NDArray


def make_image_bytes(
    width: int = 32,
    height: int = 24,
    color: tuple[int, int, int] = (255, 0, 0),
    fmt: str = "PNG",
) -> bytes:
    buf = io.BytesIO()
    Image.new("RGB", (width, height), color).save(buf, format=fmt)
    return buf.getvalue()


def truncated_ihdr_png() -> bytes:
    """A PNG with a valid signature whose IHDR chunk is only 4 bytes long."""
    return b"\x89PNG\r\n\x1a\n" + struct.pack(">I", 4) + b"IHDR" + b"\x00\x00\x00\x10" + b"\x00\x00\x00\x00"


def detection(label: str, confidence: float) -> Detection:
    return Detection(label=label, confidence=confidence, box=BoundingBox(x=0.1, y=0.2, width=0.3, height=0.4))


class FakeDetector:
    """Stands in for YoloDetector; records the image shapes it was given."""

    def __init__(self, detections: list[Detection] | None = None, error: Exception | None = None) -> None:
        self._detections = detections or []
        self._error = error
        self.seen_shapes: list[tuple[int, ...]] = []

    @property
    def model_name(self) -> str:
        return "fake_detector"

    def detect(self, image: NDArray[np.uint8]) -> list[Detection]:
        self.seen_shapes.append(image.shape)
        if self._error is not None:
            raise self._error
        return list(self._detections)


@pytest.fixture()
def image_bytes() -> bytes:
    return make_image_bytes()
