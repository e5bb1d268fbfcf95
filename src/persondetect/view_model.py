"""Display state for the most recently submitted image.

A new submission resets the summary and supersedes whatever is still in
flight: the older task is cancelled, so its result never reaches ``result``.
Failures move the view to ``FAILED`` with a message instead of leaving the
summary empty.
"""

from __future__ import annotations

import asyncio
import logging
from enum import StrEnum
from typing import TYPE_CHECKING

from persondetect.formatter import TARGET_LABEL, format_prediction
from persondetect.ml.preprocessing import ImageDecodeError
from persondetect.predictor import InferenceError

if TYPE_CHECKING:
    from collections.abc import Callable

    import numpy as np
    from numpy.typing import NDArray

    from persondetect.predictor import Prediction, Predictor

logger = logging.getLogger(__name__)


class ViewState(StrEnum):
    IDLE = "idle"
    PENDING = "pending"
    READY = "ready"
    FAILED = "failed"


class DetectionViewModel:
    """Holds the summary string for the current image and keeps it up to date."""

    def __init__(self, predictor: Predictor, target_label: str = TARGET_LABEL) -> None:
        self._predictor = predictor
        self._target_label = target_label
        self._task: asyncio.Task[None] | None = None
        self._listeners: list[Callable[[DetectionViewModel], None]] = []

        self.result: str = ""
        self.person_count: int = 0
        self.state: ViewState = ViewState.IDLE
        self.error: str | None = None
        self.prediction: Prediction | None = None

    def subscribe(self, listener: Callable[[DetectionViewModel], None]) -> None:
        """Call ``listener`` after every state change."""
        self._listeners.append(listener)

    def picked(self, image: bytes | NDArray[np.uint8] | None) -> asyncio.Task[None] | None:
        """Start detection for a newly picked image.

        Must be called from a running event loop. ``None`` is ignored.
        Returns the task that will update the display state.
        """
        if image is None:
            return None

        if self._task is not None and not self._task.done():
            logger.info("Superseding in-flight detection")
            self._task.cancel()

        self.person_count = 0
        self.result = ""
        self.error = None
        self.prediction = None
        self._set_state(ViewState.PENDING)

        self._task = asyncio.create_task(self._run(image))
        return self._task

    async def wait(self) -> None:
        """Wait until the latest submission, if any, has settled."""
        while self._task is not None:
            task = self._task
            try:
                await task
            except asyncio.CancelledError:
                if task is self._task:
                    raise
                continue
            if task is self._task:
                return

    async def _run(self, image: bytes | NDArray[np.uint8]) -> None:
        try:
            prediction = await self._predictor.predict(image)
        except (ImageDecodeError, InferenceError, TimeoutError) as exc:
            logger.warning("Detection failed: %s", exc)
            self._fail(exc)
            return
        except Exception as exc:
            logger.exception("Unexpected error while detecting")
            self._fail(exc)
            return

        self.prediction = prediction
        self.person_count = prediction.count(self._target_label)
        self.result = format_prediction(prediction, self._target_label)
        self._set_state(ViewState.READY)

    def _fail(self, exc: BaseException) -> None:
        self.error = str(exc) or type(exc).__name__
        self._set_state(ViewState.FAILED)

    def _set_state(self, state: ViewState) -> None:
        self.state = state
        for listener in self._listeners:
            listener(self)
