"""Tests for the async Predictor."""

from __future__ import annotations

from typing import TYPE_CHECKING

import numpy as np
import pytest

from conftest import FakeDetector, detection
from persondetect.config import Settings
from persondetect.ml.inference import InferencePool
from persondetect.ml.preprocessing import ImageDecodeError, ImagePreprocessor
from persondetect.predictor import InferenceError, Prediction, PredictionItem, Predictor

if TYPE_CHECKING:
    from collections.abc import Iterator


@pytest.fixture()
def pool() -> Iterator[InferencePool]:
    inference_pool = InferencePool(Settings(max_concurrent=1))
    yield inference_pool
    inference_pool.shutdown()


def _predictor(detector: FakeDetector, pool: InferencePool) -> Predictor:
    return Predictor(detector, pool, ImagePreprocessor(max_image_pixels=1_000_000))


class TestPrediction:
    def test_count_matches_exact_label(self) -> None:
        prediction = Prediction(
            items=(
                PredictionItem(name="person", confidence=0.9),
                PredictionItem(name="Person", confidence=0.8),
                PredictionItem(name="dog", confidence=0.7),
            )
        )
        assert prediction.count("person") == 1
        assert prediction.count("cat") == 0

    def test_items_are_immutable(self) -> None:
        item = PredictionItem(name="person", confidence=0.9)
        with pytest.raises(AttributeError):
            item.name = "dog"  # type: ignore[misc]


class TestPredictor:
    async def test_predict_from_bytes_preserves_order(self, pool: InferencePool, image_bytes: bytes) -> None:
        detector = FakeDetector([detection("person", 0.9), detection("dog", 0.4)])
        prediction = await _predictor(detector, pool).predict(image_bytes)

        assert [(i.name, i.confidence) for i in prediction.items] == [("person", 0.9), ("dog", 0.4)]
        assert prediction.items[0].box is not None
        assert detector.seen_shapes == [(24, 32, 3)]

    async def test_predict_from_array(self, pool: InferencePool) -> None:
        detector = FakeDetector([detection("person", 0.6)])
        prediction = await _predictor(detector, pool).predict(np.zeros((5, 6, 3), dtype=np.uint8))
        assert prediction.count("person") == 1
        assert detector.seen_shapes == [(5, 6, 3)]

    async def test_no_detections_is_an_empty_result(self, pool: InferencePool, image_bytes: bytes) -> None:
        prediction = await _predictor(FakeDetector(), pool).predict(image_bytes)
        assert prediction == Prediction(items=())

    async def test_undecodable_bytes_raise_decode_error(self, pool: InferencePool) -> None:
        detector = FakeDetector()
        with pytest.raises(ImageDecodeError):
            await _predictor(detector, pool).predict(b"garbage")
        assert detector.seen_shapes == []

    async def test_wrong_array_shape_raises_decode_error(self, pool: InferencePool) -> None:
        with pytest.raises(ImageDecodeError, match="HxWx3"):
            await _predictor(FakeDetector(), pool).predict(np.zeros((4, 4), dtype=np.uint8))

    async def test_non_uint8_array_raises_decode_error(self, pool: InferencePool) -> None:
        detector = FakeDetector()
        with pytest.raises(ImageDecodeError, match="uint8"):
            await _predictor(detector, pool).predict(np.full((4, 4, 3), 0.5, dtype=np.float32))
        assert detector.seen_shapes == []

    async def test_model_failure_raises_inference_error(self, pool: InferencePool, image_bytes: bytes) -> None:
        detector = FakeDetector(error=RuntimeError("session exploded"))
        with pytest.raises(InferenceError, match="session exploded") as exc_info:
            await _predictor(detector, pool).predict(image_bytes)
        assert isinstance(exc_info.value.__cause__, RuntimeError)

    def test_model_name_comes_from_detector(self, pool: InferencePool) -> None:
        assert _predictor(FakeDetector(), pool).model_name == "fake_detector"
