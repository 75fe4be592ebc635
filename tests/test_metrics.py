"""Tests for keytutor.core.metrics – speed and accuracy formulas."""

from __future__ import annotations

import pytest

from keytutor.core.metrics import (
    LiveWpmTracker,
    accuracy_level,
    calculate_accuracy,
    calculate_burst_speed,
    calculate_consistency,
    calculate_cpm,
    calculate_net_wpm,
    calculate_raw_wpm,
    calculate_typing_metrics,
    calculate_wpm,
    estimate_completion_time,
    format_duration,
    speed_level,
)


# ---------------------------------------------------------------------------
# Rates
# ---------------------------------------------------------------------------

class TestRates:
    def test_wpm(self):
        assert calculate_wpm(50, 60_000) == 10
        assert calculate_wpm(3, 300) == 120

    @pytest.mark.parametrize("elapsed", [0, -100])
    def test_zero_time_gives_zero(self, elapsed):
        assert calculate_wpm(10, elapsed) == 0
        assert calculate_cpm(10, elapsed) == 0
        assert calculate_net_wpm(10, 0, elapsed) == 0

    def test_cpm(self):
        assert calculate_cpm(50, 60_000) == 50

    def test_raw_wpm_counts_every_keystroke(self):
        assert calculate_raw_wpm(100, 60_000) == 20

    def test_net_wpm(self):
        assert calculate_net_wpm(60, 10, 60_000) == 10

    def test_net_wpm_floors_at_zero(self):
        assert calculate_net_wpm(5, 10, 60_000) == 0

    def test_accuracy(self):
        assert calculate_accuracy(3, 4) == 75.0
        assert calculate_accuracy(0, 0) == 100.0


class TestTypingMetrics:
    def test_bundle(self):
        m = calculate_typing_metrics(
            total_characters=10,
            correct_characters=8,
            total_keystrokes=12,
            start_ms=1_000,
            end_ms=61_000,
        )
        assert m.total_time_ms == 60_000
        assert m.wpm == 2
        assert m.cpm == 8
        assert m.raw_wpm == 2
        assert m.net_wpm == 2
        assert m.accuracy == 80.0
        assert m.incorrect_characters == 2


# ---------------------------------------------------------------------------
# Levels and derived stats
# ---------------------------------------------------------------------------

class TestLevels:
    @pytest.mark.parametrize(
        "wpm,level",
        [(0, "beginner"), (20, "intermediate"), (40, "advanced"), (60, "expert"), (80, "master"), (79.9, "expert")],
    )
    def test_speed_level(self, wpm, level):
        assert speed_level(wpm) == level

    @pytest.mark.parametrize(
        "acc,level",
        [(100, "perfect"), (99, "perfect"), (96, "excellent"), (85, "good"), (70, "fair"), (69.9, "poor")],
    )
    def test_accuracy_level(self, acc, level):
        assert accuracy_level(acc) == level


class TestDerived:
    def test_consistency_even(self):
        assert calculate_consistency([100, 100, 100]).score == 100

    def test_consistency_too_few(self):
        c = calculate_consistency([120])
        assert c.score == 100
        assert c.variance == 0.0

    def test_consistency_uneven(self):
        c = calculate_consistency([50, 150])
        assert c.standard_deviation == pytest.approx(50.0)
        assert c.score == 50

    def test_burst_speed(self):
        stamps = [i * 100 for i in range(10)]
        assert calculate_burst_speed(stamps) == 133

    def test_burst_speed_short_input(self):
        assert calculate_burst_speed([0, 100, 200]) == 0

    def test_estimate_completion_time(self):
        assert estimate_completion_time(50, 60) == 10_000
        assert estimate_completion_time(50, 0) == 0

    @pytest.mark.parametrize("ms,text", [(0, "0s"), (59_000, "59s"), (61_000, "1:01"), (600_000, "10:00")])
    def test_format_duration(self, ms, text):
        assert format_duration(ms) == text


# ---------------------------------------------------------------------------
# LiveWpmTracker
# ---------------------------------------------------------------------------

class TestLiveWpm:
    def test_only_correct_keys_count(self):
        tracker = LiveWpmTracker(window_ms=1_000)
        tracker.start(0)
        assert tracker.record(100, True) == 120
        assert tracker.record(200, False) == 60

    def test_window_slides(self):
        tracker = LiveWpmTracker(window_ms=1_000)
        tracker.start(0)
        tracker.record(100)
        tracker.record(200)
        # only the keystroke at 1500 is inside [500, 1500]
        assert tracker.record(1_500) == 12

    def test_idle_decays_to_zero(self):
        tracker = LiveWpmTracker(window_ms=1_000)
        tracker.start(0)
        tracker.record(100)
        assert tracker.wpm_at(2_000) == 0

    def test_paused_time_excluded(self):
        tracker = LiveWpmTracker()
        tracker.start(0)
        tracker.record(100)
        tracker.pause(100)
        tracker.resume(1_100)
        # 2 chars over 200 ms of active time
        assert tracker.record(1_200) == 120

    def test_open_pause_excluded(self):
        tracker = LiveWpmTracker()
        tracker.start(0)
        tracker.record(100)
        tracker.pause(100)
        assert tracker.wpm_at(5_000) == 120

    def test_reset(self):
        tracker = LiveWpmTracker()
        tracker.record(100)
        tracker.reset()
        assert tracker.wpm == 0

    def test_invalid_window(self):
        with pytest.raises(ValueError):
            LiveWpmTracker(window_ms=0)
