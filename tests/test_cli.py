"""Tests for the command-line entry point."""

from __future__ import annotations

from typing import TYPE_CHECKING
from unittest.mock import MagicMock, patch

import pytest

from conftest import FakeDetector, detection, make_image_bytes
from persondetect.cli import main
from persondetect.config import Settings
from persondetect.ml.inference import InferencePool
from persondetect.ml.preprocessing import ImagePreprocessor
from persondetect.predictor import Predictor
from persondetect.runtime import Runtime

if TYPE_CHECKING:
    from pathlib import Path


def _fake_runtime(detector: FakeDetector) -> Runtime:
    pool = InferencePool(Settings(max_concurrent=1))
    return Runtime(
        model_manager=MagicMock(),
        inference_pool=pool,
        predictor=Predictor(detector, pool, ImagePreprocessor(max_image_pixels=1_000_000)),
    )


class TestCli:
    def test_prints_summary(self, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        image = tmp_path / "photo.png"
        image.write_bytes(make_image_bytes())
        runtime = _fake_runtime(FakeDetector([detection("person", 0.95)]))

        with patch("persondetect.cli.load_runtime", return_value=runtime):
            exit_code = main([str(image)])

        assert exit_code == 0
        assert capsys.readouterr().out == "Person detected\nwith 0.95 confidence.\n\nSUCCESS\n"
        runtime.model_manager.shutdown.assert_called_once()

    def test_undecodable_file_fails(self, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        image = tmp_path / "photo.png"
        image.write_bytes(b"not a picture")

        with patch("persondetect.cli.load_runtime", return_value=_fake_runtime(FakeDetector())):
            exit_code = main([str(image)])

        assert exit_code == 1
        assert capsys.readouterr().err.startswith("FAILED: ")

    def test_missing_file_is_usage_error(self, tmp_path: Path) -> None:
        with pytest.raises(SystemExit) as exc_info:
            main([str(tmp_path / "nope.jpg")])
        assert exc_info.value.code == 2
