from __future__ import annotations

from collections import deque
from dataclasses import dataclass
from typing import Deque, Dict, List, Tuple

DEFAULT_HISTORY_LIMIT = 100
TREND_WINDOW = 5
TREND_THRESHOLD = 2.0
WEAK_CHARACTER_MIN_ATTEMPTS = 5


@dataclass(frozen=True)
class AccuracySample:
    value: float
    timestamp_ms: int


@dataclass(frozen=True)
class ErrorPatternCount:
    expected: str
    received: str
    count: int

    @property
    def key(self) -> str:
        return f"{self.expected}→{self.received}"


@dataclass
class CharacterStat:
    correct: int = 0
    incorrect: int = 0

    @property
    def total(self) -> int:
        return self.correct + self.incorrect

    @property
    def accuracy(self) -> float:
        if self.total == 0:
            return 100.0
        return self.correct / self.total * 100.0


@dataclass(frozen=True)
class WeakCharacter:
    char: str
    accuracy: float
    total: int


class AccuracyModel:
    """Running accuracy for one session.

    Counters are append-only: a backspace never undoes a recorded keystroke.
    ``current_accuracy`` covers every attempt so far, while
    ``average_accuracy`` is the mean of the retained samples and therefore
    drifts with the ring window rather than the whole session.
    """

    def __init__(
        self,
        history_limit: int = DEFAULT_HISTORY_LIMIT,
        track_history: bool = True,
        track_common_errors: bool = True,
    ) -> None:
        if history_limit <= 0:
            raise ValueError(f"history_limit must be positive, got {history_limit}")
        self._history_limit = history_limit
        self._track_history = track_history
        self._track_common_errors = track_common_errors
        self.reset()

    def reset(self) -> None:
        self._total = 0
        self._correct = 0
        self._incorrect = 0
        self._current = 100.0
        self._average = 100.0
        self._history: Deque[AccuracySample] = deque(maxlen=self._history_limit)
        self._correct_positions: List[int] = []
        self._incorrect_positions: List[int] = []
        self._error_patterns: Dict[Tuple[str, str], int] = {}

    @property
    def total_attempts(self) -> int:
        return self._total

    @property
    def correct_attempts(self) -> int:
        return self._correct

    @property
    def incorrect_attempts(self) -> int:
        return self._incorrect

    @property
    def current_accuracy(self) -> float:
        return self._current

    @property
    def average_accuracy(self) -> float:
        return self._average

    @property
    def history(self) -> List[AccuracySample]:
        return list(self._history)

    @property
    def error_positions(self) -> List[int]:
        return list(self._incorrect_positions)

    @property
    def error_patterns(self) -> Dict[str, int]:
        """Pattern frequencies keyed as ``"expected→received"``."""
        return {f"{e}→{r}": n for (e, r), n in self._error_patterns.items()}

    def record_correct(self, position: int, timestamp_ms: int = 0) -> None:
        self._correct_positions.append(position)
        self._total += 1
        self._correct += 1
        self._update(timestamp_ms)

    def record_incorrect(self, position: int, expected: str, received: str, timestamp_ms: int = 0) -> None:
        self._incorrect_positions.append(position)
        self._total += 1
        self._incorrect += 1
        if self._track_common_errors:
            key = (expected, received)
            self._error_patterns[key] = self._error_patterns.get(key, 0) + 1
        self._update(timestamp_ms)

    def _update(self, timestamp_ms: int) -> None:
        self._current = self._correct / self._total * 100.0
        if self._track_history:
            self._history.append(AccuracySample(self._current, timestamp_ms))
        if self._history:
            self._average = sum(s.value for s in self._history) / len(self._history)
        else:
            self._average = self._current

    def accuracy_for_range(self, start: int, end: int) -> float:
        """Accuracy of keystrokes recorded at positions ``start..end`` inclusive.

        An empty range is vacuously 100%.
        """
        correct = sum(1 for p in self._correct_positions if start <= p <= end)
        incorrect = sum(1 for p in self._incorrect_positions if start <= p <= end)
        total = correct + incorrect
        if total == 0:
            return 100.0
        return correct / total * 100.0

    def most_common_errors(self, limit: int = 5) -> List[ErrorPatternCount]:
        # sorted() is stable, so equal counts keep first-seen order
        ranked = sorted(self._error_patterns.items(), key=lambda item: item[1], reverse=True)
        return [ErrorPatternCount(e, r, n) for (e, r), n in ranked[:limit]]

    def accuracy_trend(self) -> str:
        """'improving', 'declining' or 'stable' from the last ten samples."""
        if len(self._history) < TREND_WINDOW * 2:
            return "stable"
        recent = [s.value for s in self._history][-TREND_WINDOW * 2 :]
        earlier = sum(recent[:TREND_WINDOW]) / TREND_WINDOW
        later = sum(recent[TREND_WINDOW:]) / TREND_WINDOW
        diff = later - earlier
        if diff > TREND_THRESHOLD:
            return "improving"
        if diff < -TREND_THRESHOLD:
            return "declining"
        return "stable"


class CharacterAccuracy:
    """Per-character hit/miss counts, independent of :class:`AccuracyModel`."""

    def __init__(self) -> None:
        self._stats: Dict[str, CharacterStat] = {}

    @property
    def stats(self) -> Dict[str, CharacterStat]:
        return dict(self._stats)

    def record_character(self, char: str, is_correct: bool) -> None:
        stat = self._stats.setdefault(char, CharacterStat())
        if is_correct:
            stat.correct += 1
        else:
            stat.incorrect += 1

    def character_accuracy(self, char: str) -> float:
        stat = self._stats.get(char)
        return stat.accuracy if stat is not None else 100.0

    def weakest_characters(self, limit: int = 5) -> List[WeakCharacter]:
        candidates = [
            WeakCharacter(char, stat.accuracy, stat.total)
            for char, stat in self._stats.items()
            if stat.total >= WEAK_CHARACTER_MIN_ATTEMPTS
        ]
        candidates.sort(key=lambda w: w.accuracy)
        return candidates[:limit]

    def reset(self) -> None:
        self._stats.clear()
