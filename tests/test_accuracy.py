"""Tests for keytutor.core.accuracy – running and per-character accuracy."""

from __future__ import annotations

import pytest

from keytutor.core.accuracy import AccuracyModel, CharacterAccuracy


@pytest.fixture()
def model() -> AccuracyModel:
    return AccuracyModel()


# ---------------------------------------------------------------------------
# AccuracyModel
# ---------------------------------------------------------------------------

class TestAccuracyModel:
    def test_starts_at_100(self, model: AccuracyModel):
        assert model.current_accuracy == 100.0
        assert model.average_accuracy == 100.0
        assert model.total_attempts == 0

    def test_counters(self, model: AccuracyModel):
        model.record_correct(0)
        model.record_incorrect(1, "a", "s")
        model.record_correct(1)
        assert model.total_attempts == 3
        assert model.correct_attempts == 2
        assert model.incorrect_attempts == 1
        assert model.current_accuracy == pytest.approx(200 / 3)

    def test_average_over_samples(self, model: AccuracyModel):
        model.record_correct(0)  # 100
        model.record_incorrect(1, "a", "s")  # 50
        assert model.average_accuracy == pytest.approx(75.0)

    def test_history_is_bounded(self):
        model = AccuracyModel(history_limit=3)
        for i in range(5):
            model.record_correct(i, i * 10)
        history = model.history
        assert len(history) == 3
        assert [s.timestamp_ms for s in history] == [20, 30, 40]

    def test_history_disabled(self):
        model = AccuracyModel(track_history=False)
        model.record_incorrect(0, "a", "b")
        assert model.history == []
        assert model.average_accuracy == 0.0

    def test_invalid_history_limit(self):
        with pytest.raises(ValueError):
            AccuracyModel(history_limit=0)

    def test_error_positions(self, model: AccuracyModel):
        model.record_incorrect(2, "a", "b")
        model.record_incorrect(2, "a", "c")
        assert model.error_positions == [2, 2]

    def test_accuracy_for_range(self, model: AccuracyModel):
        model.record_correct(0)
        model.record_incorrect(1, "a", "x")
        model.record_correct(2)
        model.record_correct(5)
        assert model.accuracy_for_range(0, 2) == pytest.approx(200 / 3)
        assert model.accuracy_for_range(1, 1) == 0.0
        assert model.accuracy_for_range(3, 4) == 100.0

    def test_most_common_errors(self, model: AccuracyModel):
        for received in ("s", "s", "d"):
            model.record_incorrect(0, "a", received)
        model.record_incorrect(1, "t", "r")
        top = model.most_common_errors(2)
        assert [(e.expected, e.received, e.count) for e in top] == [("a", "s", 2), ("a", "d", 1)]
        assert top[0].key == "a→s"

    def test_common_errors_ties_keep_first_seen(self, model: AccuracyModel):
        model.record_incorrect(0, "q", "w")
        model.record_incorrect(1, "e", "r")
        model.record_incorrect(2, "t", "y")
        assert [e.key for e in model.most_common_errors()] == ["q→w", "e→r", "t→y"]

    def test_common_errors_disabled(self):
        model = AccuracyModel(track_common_errors=False)
        model.record_incorrect(0, "a", "b")
        assert model.most_common_errors() == []
        assert model.incorrect_attempts == 1

    def test_trend_needs_ten_samples(self, model: AccuracyModel):
        for i in range(9):
            model.record_incorrect(i, "a", "b")
        assert model.accuracy_trend() == "stable"

    def test_trend_improving(self, model: AccuracyModel):
        for i in range(5):
            model.record_incorrect(i, "a", "b")
        for i in range(5, 10):
            model.record_correct(i)
        assert model.accuracy_trend() == "improving"

    def test_trend_declining(self, model: AccuracyModel):
        for i in range(5):
            model.record_correct(i)
        for i in range(5, 10):
            model.record_incorrect(i, "a", "b")
        assert model.accuracy_trend() == "declining"

    def test_trend_stable(self, model: AccuracyModel):
        for i in range(10):
            model.record_correct(i)
        assert model.accuracy_trend() == "stable"

    def test_reset(self, model: AccuracyModel):
        model.record_incorrect(0, "a", "b")
        model.reset()
        assert model.total_attempts == 0
        assert model.current_accuracy == 100.0
        assert model.error_patterns == {}
        assert model.error_positions == []


# ---------------------------------------------------------------------------
# CharacterAccuracy
# ---------------------------------------------------------------------------

class TestCharacterAccuracy:
    def test_unseen_character(self):
        assert CharacterAccuracy().character_accuracy("z") == 100.0

    def test_per_character(self):
        chars = CharacterAccuracy()
        chars.record_character("a", True)
        chars.record_character("a", False)
        assert chars.character_accuracy("a") == 50.0
        assert chars.stats["a"].total == 2

    def test_weakest_needs_five_attempts(self):
        chars = CharacterAccuracy()
        for _ in range(4):
            chars.record_character("q", False)
        assert chars.weakest_characters() == []

    def test_weakest_sorted_ascending(self):
        chars = CharacterAccuracy()
        for ok in (True, True, True, True, False):
            chars.record_character("a", ok)
        for ok in (True, False, False, False, False):
            chars.record_character("b", ok)
        for _ in range(5):
            chars.record_character("c", True)
        weakest = chars.weakest_characters(2)
        assert [w.char for w in weakest] == ["b", "a"]
        assert weakest[0].accuracy == 20.0
        assert weakest[0].total == 5

    def test_reset(self):
        chars = CharacterAccuracy()
        chars.record_character("a", True)
        chars.reset()
        assert chars.stats == {}
