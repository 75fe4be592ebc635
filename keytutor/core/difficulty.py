from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass
from enum import Enum
from typing import Deque, List, Optional, Sequence

logger = logging.getLogger(__name__)

WINDOW_SIZE = 5
HARD_THRESHOLD = 95.0
MEDIUM_THRESHOLD = 85.0


class DifficultyLevel(str, Enum):
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


@dataclass(frozen=True)
class DifficultyState:
    level: DifficultyLevel
    recent_accuracies: List[float]


def classify_difficulty(accuracies: Sequence[float]) -> Optional[DifficultyLevel]:
    """Tier for a full window of session accuracies, or None if the window is short."""
    if len(accuracies) < WINDOW_SIZE:
        return None
    recent = list(accuracies)[-WINDOW_SIZE:]
    average = sum(recent) / len(recent)
    if average >= HARD_THRESHOLD:
        return DifficultyLevel.HARD
    if average >= MEDIUM_THRESHOLD:
        return DifficultyLevel.MEDIUM
    return DifficultyLevel.EASY


class AdaptiveDifficultyController:
    """Picks the next exercise tier from the last five completed sessions.

    This is the one piece of state meant to outlive a session: feed it each
    session's final accuracy and read :attr:`level` before starting the next.
    """

    def __init__(self, initial: DifficultyLevel = DifficultyLevel.MEDIUM) -> None:
        self._initial = DifficultyLevel(initial)
        self._level = self._initial
        self._recent: Deque[float] = deque(maxlen=WINDOW_SIZE)

    @property
    def level(self) -> DifficultyLevel:
        return self._level

    @property
    def recent_accuracies(self) -> List[float]:
        return list(self._recent)

    @property
    def state(self) -> DifficultyState:
        return DifficultyState(self._level, list(self._recent))

    def record_session(self, accuracy: float) -> DifficultyLevel:
        self._recent.append(float(accuracy))
        new_level = classify_difficulty(self._recent)
        if new_level is not None and new_level != self._level:
            logger.info("Difficulty changed from %s to %s", self._level.value, new_level.value)
            self._level = new_level
        return self._level

    def reset(self) -> None:
        self._level = self._initial
        self._recent.clear()
