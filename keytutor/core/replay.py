"""Replay recorded keystroke streams through a :class:`TypingSession`.

A recording is a YAML mapping::

    exercise:
      target_text: "the cat"
      auto_advance_on_error: false
    events:
      - {type: start, t: 0}
      - {type: char, char: "t", t: 180}
      - {type: backspace, t: 420}
      - {type: pause, t: 900}
      - {type: resume, t: 2500}
      - {type: wait, t: 65000}

``t`` is milliseconds on the replay clock. ``wait`` only moves the clock,
which lets timed exercises run out.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, List, Optional, Union

import yaml

from keytutor.core.config import SessionConfig, config_from_mapping
from keytutor.core.models import (
    BackspaceEvent,
    CharacterEvent,
    ControlAction,
    ControlEvent,
    InputEvent,
    SessionStats,
)
from keytutor.core.scheduler import ManualScheduler
from keytutor.core.session import TypingSession

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class WaitEvent:
    timestamp_ms: int


RecordedEvent = Union[InputEvent, WaitEvent]


@dataclass(frozen=True)
class Recording:
    config: SessionConfig
    events: List[RecordedEvent]


@dataclass
class ReplayResult:
    session: TypingSession
    applied: int = 0
    ignored: int = 0
    completions: List[SessionStats] = field(default_factory=list)

    @property
    def final_stats(self) -> Optional[SessionStats]:
        return self.session.final_stats


def parse_event(raw: Any, index: int, source: str = "<recording>") -> RecordedEvent:
    where = f"{source}: event {index}"
    if not isinstance(raw, dict):
        raise ValueError(f"{where}: expected a mapping")
    kind = raw.get("type")
    try:
        t = int(raw["t"])
    except (KeyError, TypeError, ValueError) as e:
        raise ValueError(f"{where}: missing or invalid 't'") from e

    if kind == "char":
        char = raw.get("char")
        if not isinstance(char, str) or not char:
            raise ValueError(f"{where}: 'char' events need a non-empty 'char'")
        return CharacterEvent(char=char, timestamp_ms=t)
    if kind == "backspace":
        return BackspaceEvent(timestamp_ms=t)
    if kind == "wait":
        return WaitEvent(timestamp_ms=t)
    try:
        action = ControlAction(kind)
    except ValueError as e:
        raise ValueError(f"{where}: unknown event type {kind!r}") from e
    return ControlEvent(action=action, timestamp_ms=t)


def recording_from_mapping(raw: Any, source: str = "<recording>") -> Recording:
    if not raw or not isinstance(raw, dict):
        raise ValueError(f"{source}: expected a mapping with 'exercise' and 'events'")
    config = config_from_mapping(raw.get("exercise"), source)
    events_raw = raw.get("events")
    if not isinstance(events_raw, list):
        raise ValueError(f"{source}: 'events' must be a list")
    events = [parse_event(item, i, source) for i, item in enumerate(events_raw)]
    times = [e.timestamp_ms for e in events]
    if times != sorted(times):
        raise ValueError(f"{source}: event timestamps must not decrease")
    return Recording(config=config, events=events)


def load_recording(path: Path) -> Recording:
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Recording not found: {path}")
    try:
        raw = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as e:
        raise ValueError(f"{path.name}: invalid YAML: {e}") from e
    return recording_from_mapping(raw, path.name)


def replay(recording: Recording, **callbacks) -> ReplayResult:
    """Feed every event of ``recording`` to a new session on a fake clock.

    Extra keyword arguments are session callbacks (``on_progress`` ...).
    ``on_complete`` is wrapped so completions are also collected on the result.
    """
    start = recording.events[0].timestamp_ms if recording.events else 0
    scheduler = ManualScheduler(start_ms=start)
    user_on_complete = callbacks.pop("on_complete", None)
    session = TypingSession(recording.config, scheduler=scheduler, **callbacks)
    result = ReplayResult(session=session)

    def on_complete(stats: SessionStats) -> None:
        result.completions.append(stats)
        if user_on_complete is not None:
            user_on_complete(stats)

    session.on_complete = on_complete
    try:
        for event in recording.events:
            scheduler.advance_to(event.timestamp_ms)
            if isinstance(event, WaitEvent):
                continue
            if session.dispatch(event):
                result.applied += 1
            else:
                result.ignored += 1
    finally:
        session.close()
    logger.debug("Replayed %d events (%d ignored)", result.applied, result.ignored)
    return result
