"""Data types shared by the typing-session engine and its observers."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union


class SessionStatus(str, Enum):
    NOT_STARTED = "not_started"
    ACTIVE = "active"
    PAUSED = "paused"
    COMPLETE = "complete"


class ControlAction(str, Enum):
    START = "start"
    PAUSE = "pause"
    RESUME = "resume"
    RESET = "reset"


@dataclass(frozen=True)
class CharacterEvent:
    char: str
    timestamp_ms: int


@dataclass(frozen=True)
class BackspaceEvent:
    timestamp_ms: int


@dataclass(frozen=True)
class ControlEvent:
    action: ControlAction
    timestamp_ms: Optional[int] = None


InputEvent = Union[CharacterEvent, BackspaceEvent, ControlEvent]


@dataclass(frozen=True)
class ErrorRecord:
    """A mismatch between the expected and the received character."""

    position: int
    expected: str
    received: str
    timestamp_ms: int


@dataclass(frozen=True)
class ProgressEvent:
    """Emitted after every position change.

    ``current_char`` is the character now expected and ``next_char`` the one
    after it; both are empty past the end of the text.
    """

    position: int
    total: int
    percentage: float
    current_char: str
    next_char: str


@dataclass(frozen=True)
class SessionStats:
    """Final statistics handed to ``on_complete``."""

    total_time_ms: int
    characters_typed: int
    correct_characters: int
    incorrect_characters: int
    accuracy: float
    wpm: int


@dataclass(frozen=True)
class KeystrokeRecord:
    """One judged keystroke, with the running metrics at that moment."""

    timestamp_ms: int
    key: str
    is_correct: bool
    position: int
    wpm: int
    accuracy: float
