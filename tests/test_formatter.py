"""Tests for the summary formatter."""

from __future__ import annotations

import pytest

from persondetect.formatter import Outcome, format_prediction, outcome_for
from persondetect.predictor import Prediction, PredictionItem


def _prediction(*pairs: tuple[str, float]) -> Prediction:
    return Prediction(items=tuple(PredictionItem(name=name, confidence=conf) for name, conf in pairs))


class TestOutcome:
    @pytest.mark.parametrize(
        ("count", "expected"),
        [(0, Outcome.MISTAKE), (1, Outcome.SUCCESS), (2, Outcome.MORE_THAN_ONE), (7, Outcome.MORE_THAN_ONE)],
    )
    def test_outcome_for_count(self, count: int, expected: Outcome) -> None:
        assert outcome_for(count) is expected

    def test_outcome_values_are_display_text(self) -> None:
        assert str(Outcome.MORE_THAN_ONE) == "MORE THAN ONE PERSON"


class TestFormatPrediction:
    def test_empty_prediction_is_just_mistake(self) -> None:
        assert format_prediction(Prediction()) == "\nMISTAKE"

    def test_single_person_success(self) -> None:
        text = format_prediction(_prediction(("person", 0.95)))
        assert text == "Person detected\nwith 0.95 confidence.\n\nSUCCESS"

    def test_two_people(self) -> None:
        text = format_prediction(_prediction(("person", 0.8), ("person", 0.6)))
        assert text.endswith("\nMORE THAN ONE PERSON")
        assert text.count("Person detected") == 2

    def test_no_person_among_other_objects(self) -> None:
        text = format_prediction(_prediction(("dog", 0.7), ("cat", 0.55)))
        assert text == "Dog detected\nwith 0.70 confidence.\nCat detected\nwith 0.55 confidence.\n\nMISTAKE"

    def test_person_mixed_with_other_objects(self) -> None:
        text = format_prediction(_prediction(("dog", 0.7), ("person", 0.9), ("cup", 0.3)))
        assert text.endswith("\nSUCCESS")

    def test_confidence_has_two_decimals(self) -> None:
        assert "with 0.93 confidence." in format_prediction(_prediction(("person", 0.9345)))
        assert "with 1.00 confidence." in format_prediction(_prediction(("person", 1.0)))
        assert "with 0.00 confidence." in format_prediction(_prediction(("person", 0.0)))

    def test_labels_are_capitalized_per_word(self) -> None:
        text = format_prediction(_prediction(("teddy bear", 0.5), ("CELL PHONE", 0.4)))
        assert text.startswith("Teddy Bear detected\n")
        assert "Cell Phone detected\n" in text

    def test_capitalization_keeps_whitespace(self) -> None:
        text = format_prediction(_prediction(("teddy  bear", 0.5)))
        assert text.startswith("Teddy  Bear detected\n")

    def test_target_match_is_exact(self) -> None:
        # Rendering capitalizes, counting does not.
        text = format_prediction(_prediction(("Person", 0.9)))
        assert text == "Person detected\nwith 0.90 confidence.\n\nMISTAKE"

    def test_custom_target_label(self) -> None:
        text = format_prediction(_prediction(("dog", 0.9)), target_label="dog")
        assert text.endswith("\nSUCCESS")
