"""Turns a prediction into the summary shown to the user."""

from __future__ import annotations

import re
from enum import StrEnum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from persondetect.predictor import Prediction, PredictionItem

TARGET_LABEL = "person"


class Outcome(StrEnum):
    MISTAKE = "MISTAKE"
    SUCCESS = "SUCCESS"
    MORE_THAN_ONE = "MORE THAN ONE PERSON"


def outcome_for(count: int) -> Outcome:
    """Map the number of target-label detections to the summary outcome."""
    if count <= 0:
        return Outcome.MISTAKE
    if count == 1:
        return Outcome.SUCCESS
    return Outcome.MORE_THAN_ONE


_WORD = re.compile(r"\S+")


def capitalize_words(text: str) -> str:
    """Upper-case the first letter of each word, lower-case the rest; whitespace is kept as is."""
    return _WORD.sub(lambda match: match.group(0).capitalize(), text)


def describe_item(item: PredictionItem) -> str:
    return f"{capitalize_words(item.name)} detected\nwith {item.confidence:.2f} confidence.\n"


def format_prediction(prediction: Prediction, target_label: str = TARGET_LABEL) -> str:
    """Build the multi-line summary for a prediction.

    One line pair per item, then a blank line and the outcome, e.g.::

        Person detected
        with 0.95 confidence.

        SUCCESS
    """
    lines = "".join(describe_item(item) for item in prediction.items)
    return f"{lines}\n{outcome_for(prediction.count(target_label))}"
