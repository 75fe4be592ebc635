"""Typing speed and accuracy calculations.

Speed metrics use the standard five-characters-per-word convention:
  * **WPM** – (correct characters / 5) / elapsed minutes, rounded.
  * **CPM** – correct characters per minute.
  * **Raw WPM** – WPM over every keystroke, right or wrong.
  * **Net WPM** – (total chars − errors) / 5 / elapsed minutes, floored at 0.

All durations are milliseconds. Every rate is 0 for a zero (or negative)
duration rather than infinite.
"""

from __future__ import annotations

import math
from collections import deque
from dataclasses import dataclass
from typing import Deque, Optional, Sequence, Tuple

MS_PER_MINUTE = 60_000
CHARS_PER_WORD = 5
LIVE_WINDOW_MS = 60_000


def calculate_wpm(correct_characters: int, elapsed_ms: float) -> int:
    if elapsed_ms <= 0:
        return 0
    words = correct_characters / CHARS_PER_WORD
    minutes = elapsed_ms / MS_PER_MINUTE
    return round(words / minutes)


def calculate_cpm(characters: int, elapsed_ms: float) -> int:
    if elapsed_ms <= 0:
        return 0
    return round(characters / (elapsed_ms / MS_PER_MINUTE))


def calculate_raw_wpm(total_keystrokes: int, elapsed_ms: float) -> int:
    return calculate_wpm(total_keystrokes, elapsed_ms)


def calculate_net_wpm(total_characters: int, errors: int, elapsed_ms: float) -> int:
    if elapsed_ms <= 0:
        return 0
    net_words = max(0.0, (total_characters - errors) / CHARS_PER_WORD)
    return round(net_words / (elapsed_ms / MS_PER_MINUTE))


def calculate_accuracy(correct: int, total: int) -> float:
    """Correct keystrokes over all keystrokes, as a percentage (100 when nothing was typed)."""
    if total <= 0:
        return 100.0
    return correct / total * 100.0


@dataclass(frozen=True)
class TypingMetrics:
    wpm: int
    cpm: int
    raw_wpm: int
    net_wpm: int
    accuracy: float
    total_time_ms: int
    total_characters: int
    correct_characters: int
    incorrect_characters: int
    total_keystrokes: int


def calculate_typing_metrics(
    total_characters: int,
    correct_characters: int,
    total_keystrokes: int,
    start_ms: int,
    end_ms: int,
) -> TypingMetrics:
    elapsed = end_ms - start_ms
    incorrect = total_characters - correct_characters
    return TypingMetrics(
        wpm=calculate_wpm(correct_characters, elapsed),
        cpm=calculate_cpm(correct_characters, elapsed),
        raw_wpm=calculate_raw_wpm(total_keystrokes, elapsed),
        net_wpm=calculate_net_wpm(total_characters, incorrect, elapsed),
        accuracy=calculate_accuracy(correct_characters, total_characters),
        total_time_ms=elapsed,
        total_characters=total_characters,
        correct_characters=correct_characters,
        incorrect_characters=incorrect,
        total_keystrokes=total_keystrokes,
    )


def speed_level(wpm: float) -> str:
    if wpm >= 80:
        return "master"
    if wpm >= 60:
        return "expert"
    if wpm >= 40:
        return "advanced"
    if wpm >= 20:
        return "intermediate"
    return "beginner"


def accuracy_level(accuracy: float) -> str:
    if accuracy >= 99:
        return "perfect"
    if accuracy >= 95:
        return "excellent"
    if accuracy >= 85:
        return "good"
    if accuracy >= 70:
        return "fair"
    return "poor"


@dataclass(frozen=True)
class Consistency:
    score: int
    variance: float
    standard_deviation: float


def calculate_consistency(char_times: Sequence[float]) -> Consistency:
    """Score (0–100, 100 = perfectly even) from per-character durations.

    The score is 100 minus the coefficient of variation, floored at 0.
    """
    if len(char_times) < 2:
        return Consistency(score=100, variance=0.0, standard_deviation=0.0)
    mean = sum(char_times) / len(char_times)
    variance = sum((t - mean) ** 2 for t in char_times) / len(char_times)
    std = math.sqrt(variance)
    if mean <= 0:
        return Consistency(score=0, variance=variance, standard_deviation=std)
    score = max(0.0, 100.0 - std / mean * 100.0)
    return Consistency(score=round(score), variance=variance, standard_deviation=std)


def calculate_burst_speed(timestamps: Sequence[int], window_size: int = 10) -> int:
    """Peak WPM over any run of ``window_size`` consecutive keystrokes."""
    if len(timestamps) < window_size or window_size < 2:
        return 0
    best = 0
    for i in range(len(timestamps) - window_size + 1):
        span = timestamps[i + window_size - 1] - timestamps[i]
        if span > 0:
            best = max(best, calculate_wpm(window_size, span))
    return best


def estimate_completion_time(remaining_characters: int, current_wpm: float) -> int:
    """Milliseconds needed to type the rest of the text at ``current_wpm``."""
    if current_wpm <= 0:
        return 0
    minutes = (remaining_characters / CHARS_PER_WORD) / current_wpm
    return round(minutes * MS_PER_MINUTE)


def format_duration(ms: int) -> str:
    total_seconds = int(ms // 1000)
    minutes, seconds = divmod(total_seconds, 60)
    if minutes > 0:
        return f"{minutes}:{seconds:02d}"
    return f"{seconds}s"


class LiveWpmTracker:
    """Moving WPM over the trailing ``window_ms`` of keystrokes.

    Recomputed on every keystroke instead of on a timer. The window never
    reaches back before the session start, so the first minute is not
    diluted by time that has not happened yet. Intervals marked with
    :meth:`pause` and :meth:`resume` are left out of the window's duration,
    matching the session's active time.
    """

    def __init__(self, window_ms: int = LIVE_WINDOW_MS) -> None:
        if window_ms <= 0:
            raise ValueError(f"window_ms must be positive, got {window_ms}")
        self._window_ms = window_ms
        self._keystrokes: Deque[Tuple[int, bool]] = deque()
        self._started_at: Optional[int] = None
        self._paused_at: Optional[int] = None
        self._pauses: Deque[Tuple[int, int]] = deque()
        self._wpm = 0

    @property
    def wpm(self) -> int:
        """WPM as of the most recent keystroke."""
        return self._wpm

    def start(self, started_at_ms: int) -> None:
        self._started_at = started_at_ms

    def pause(self, timestamp_ms: int) -> None:
        if self._paused_at is None:
            self._paused_at = timestamp_ms

    def resume(self, timestamp_ms: int) -> None:
        if self._paused_at is not None:
            self._pauses.append((self._paused_at, max(self._paused_at, timestamp_ms)))
            self._paused_at = None

    def record(self, timestamp_ms: int, is_correct: bool = True) -> int:
        if self._started_at is None:
            self._started_at = timestamp_ms
        self._keystrokes.append((timestamp_ms, is_correct))
        self._wpm = self.wpm_at(timestamp_ms)
        return self._wpm

    def wpm_at(self, now_ms: int) -> int:
        cutoff = now_ms - self._window_ms
        while self._keystrokes and self._keystrokes[0][0] < cutoff:
            self._keystrokes.popleft()
        window_start = cutoff if self._started_at is None else max(cutoff, self._started_at)
        while self._pauses and self._pauses[0][1] <= window_start:
            self._pauses.popleft()
        correct = sum(1 for t, ok in self._keystrokes if ok and t <= now_ms)
        return calculate_wpm(correct, now_ms - window_start - self._paused_within(window_start, now_ms))

    def _paused_within(self, start_ms: int, end_ms: int) -> int:
        spans = list(self._pauses)
        if self._paused_at is not None:
            spans.append((self._paused_at, end_ms))
        return sum(max(0, min(end, end_ms) - max(begin, start_ms)) for begin, end in spans)

    def reset(self) -> None:
        self._keystrokes.clear()
        self._started_at = None
        self._paused_at = None
        self._pauses.clear()
        self._wpm = 0
