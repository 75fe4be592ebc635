from __future__ import annotations

import logging
import time
from dataclasses import replace
from enum import Enum
from typing import Callable, Dict, List, Optional, Tuple

from keytutor.core.accuracy import AccuracyModel, CharacterAccuracy
from keytutor.core.backspace import BackspacePolicy
from keytutor.core.characters import compare_characters, is_printable_key
from keytutor.core.completion import CompletionEvaluator, CompletionResult, TimedCompletion
from keytutor.core.config import SessionConfig
from keytutor.core.metrics import LiveWpmTracker, calculate_accuracy, calculate_wpm
from keytutor.core.models import (
    BackspaceEvent,
    CharacterEvent,
    ControlAction,
    ControlEvent,
    ErrorRecord,
    InputEvent,
    KeystrokeRecord,
    ProgressEvent,
    SessionStats,
    SessionStatus,
)
from keytutor.core.scheduler import Scheduler

logger = logging.getLogger(__name__)

class _Transition(str, Enum):
    START = "start"
    PAUSE = "pause"
    RESUME = "resume"
    COMPLETE = "complete"


# (status, transition) -> new status. Reset is allowed from every status and is
# handled separately.
_TRANSITIONS: Dict[Tuple[SessionStatus, _Transition], SessionStatus] = {
    (SessionStatus.NOT_STARTED, _Transition.START): SessionStatus.ACTIVE,
    (SessionStatus.ACTIVE, _Transition.PAUSE): SessionStatus.PAUSED,
    (SessionStatus.PAUSED, _Transition.RESUME): SessionStatus.ACTIVE,
    (SessionStatus.ACTIVE, _Transition.COMPLETE): SessionStatus.COMPLETE,
}


def _monotonic_ms() -> int:
    return int(time.monotonic() * 1000)


class TypingSession:
    """One pass of typing a target text, judged keystroke by keystroke.

    The session owns all of its state and changes it only through the
    methods below. Invalid requests (typing while paused, backspace at the
    start, starting twice...) are ignored and reported by a False return
    value rather than an exception.

    Speed and accuracy follow the usual typing-tutor conventions:
      * **Accuracy** – correct keystrokes / all keystrokes, retries included.
      * **WPM** – (correct keystrokes / 5) / active minutes. Time spent
        paused does not count.

    Timestamps are milliseconds. When a method is called without one the
    session reads the scheduler's clock (or a monotonic clock if it has no
    scheduler), so recorded timestamps must come from that same clock.

    Observers are plain callables, assignable after construction:
    ``on_progress(ProgressEvent)``, ``on_error(ErrorRecord)``,
    ``on_backspace_limit_reached()``, ``on_complete(SessionStats)``,
    ``on_criteria_met(CompletionResult)`` and, for timed sessions,
    ``on_tick(remaining_ms)``.
    """

    def __init__(
        self,
        config: SessionConfig,
        *,
        scheduler: Optional[Scheduler] = None,
        on_progress: Optional[Callable[[ProgressEvent], None]] = None,
        on_error: Optional[Callable[[ErrorRecord], None]] = None,
        on_complete: Optional[Callable[[SessionStats], None]] = None,
        on_backspace_limit_reached: Optional[Callable[[], None]] = None,
        on_criteria_met: Optional[Callable[[CompletionResult], None]] = None,
        on_tick: Optional[Callable[[int], None]] = None,
    ) -> None:
        """Create a session for ``config``; a timed config also needs a scheduler."""
        if not isinstance(config, SessionConfig):
            raise TypeError(f"config must be a SessionConfig, got {type(config).__name__}")
        if config.time_limit_ms is not None and scheduler is None:
            raise ValueError("a scheduler is required when time_limit_ms is set")

        self._config = config
        self._scheduler = scheduler
        self._clock: Callable[[], int] = scheduler.now if scheduler is not None else _monotonic_ms

        self.on_progress = on_progress
        self.on_error = on_error
        self.on_complete = on_complete
        self.on_backspace_limit_reached = on_backspace_limit_reached
        self.on_criteria_met = on_criteria_met
        self.on_tick = on_tick

        self._accuracy = AccuracyModel(history_limit=config.history_limit)
        self._characters = CharacterAccuracy()
        self._backspace = BackspacePolicy(
            config.backspace,
            enabled=config.allow_backspace,
            on_limit_reached=self._notify_limit_reached,
        )
        self._live_wpm = LiveWpmTracker()
        self._criteria = CompletionEvaluator(config.completion_criteria, on_complete=self._notify_criteria_met)
        self._countdown: Optional[TimedCompletion] = None
        if config.time_limit_ms is not None:
            self._countdown = TimedCompletion(
                config.time_limit_ms,
                scheduler,
                on_complete=self._on_time_up,
                on_tick=self._notify_tick,
            )
        self._clear_state()

    @classmethod
    def for_text(cls, target_text: str, **options) -> "TypingSession":
        """Build a session from a target text and ``SessionConfig`` keyword options.

        ``scheduler`` and the ``on_*`` callbacks are passed through to the session.
        """
        session_keys = {
            "scheduler",
            "on_progress",
            "on_error",
            "on_complete",
            "on_backspace_limit_reached",
            "on_criteria_met",
            "on_tick",
        }
        session_kwargs = {k: options.pop(k) for k in list(options) if k in session_keys}
        return cls(SessionConfig(target_text=target_text, **options), **session_kwargs)

    def _clear_state(self) -> None:
        self._status = SessionStatus.NOT_STARTED
        self._position = 0
        self._buffer = ""
        self._started_at: Optional[int] = None
        self._ended_at: Optional[int] = None
        self._paused_at: Optional[int] = None
        self._paused_total = 0
        self._errors: List[ErrorRecord] = []
        self._keystrokes: List[KeystrokeRecord] = []
        self._final_stats: Optional[SessionStats] = None
        self._completion_fired = False

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def config(self) -> SessionConfig:
        return self._config

    @property
    def target_text(self) -> str:
        return self._config.target_text

    @property
    def position(self) -> int:
        """Index of the next character to type."""
        return self._position

    @property
    def input_buffer(self) -> str:
        """Characters accepted so far; always ``position`` long."""
        return self._buffer

    @property
    def status(self) -> SessionStatus:
        return self._status

    @property
    def is_complete(self) -> bool:
        return self._status is SessionStatus.COMPLETE

    @property
    def started_at(self) -> Optional[int]:
        return self._started_at

    @property
    def ended_at(self) -> Optional[int]:
        return self._ended_at

    @property
    def errors(self) -> List[ErrorRecord]:
        """Outstanding errors, oldest first."""
        return list(self._errors)

    @property
    def keystrokes(self) -> List[KeystrokeRecord]:
        """Every judged keystroke, in arrival order."""
        return list(self._keystrokes)

    @property
    def accuracy(self) -> AccuracyModel:
        return self._accuracy

    @property
    def characters(self) -> CharacterAccuracy:
        return self._characters

    @property
    def backspace(self) -> BackspacePolicy:
        return self._backspace

    @property
    def countdown(self) -> Optional[TimedCompletion]:
        return self._countdown

    @property
    def live_wpm(self) -> int:
        """WPM over the trailing minute, as of the last keystroke."""
        return self._live_wpm.wpm

    @property
    def final_stats(self) -> Optional[SessionStats]:
        """Stats captured when the session completed, else None."""
        return self._final_stats

    @property
    def criteria_result(self) -> CompletionResult:
        """Latest evaluation of the configured completion criteria."""
        return self._criteria.result

    @property
    def progress(self) -> ProgressEvent:
        total = len(self.target_text)
        pos = self._position
        return ProgressEvent(
            position=pos,
            total=total,
            percentage=pos / total * 100.0,
            current_char=self.target_text[pos] if pos < total else "",
            next_char=self.target_text[pos + 1] if pos + 1 < total else "",
        )

    def elapsed_ms(self, now_ms: Optional[int] = None) -> int:
        """Active time since the first start, excluding paused intervals."""
        if self._started_at is None:
            return 0
        if self._ended_at is not None:
            end = self._ended_at
        elif self._paused_at is not None:
            end = self._paused_at
        else:
            end = self._now(now_ms)
        return max(0, end - self._started_at - self._paused_total)

    def current_stats(self, now_ms: Optional[int] = None) -> SessionStats:
        """Running stats; identical to ``final_stats`` once complete."""
        if self._final_stats is not None:
            return self._final_stats
        elapsed = self.elapsed_ms(now_ms)
        total = self._accuracy.total_attempts
        correct = self._accuracy.correct_attempts
        return SessionStats(
            total_time_ms=elapsed,
            characters_typed=total,
            correct_characters=correct,
            incorrect_characters=self._accuracy.incorrect_attempts,
            accuracy=calculate_accuracy(correct, total),
            wpm=calculate_wpm(correct, elapsed),
        )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def set_target_text(self, text: str) -> bool:
        """Replace the target text. Only allowed before the session starts."""
        if self._status is not SessionStatus.NOT_STARTED:
            logger.debug("Ignoring new target text while %s", self._status.value)
            return False
        self._config = replace(self._config, target_text=text)
        return True

    def start(self, timestamp_ms: Optional[int] = None) -> bool:
        """Begin typing. ``started_at`` is stamped on the first start only."""
        now = self._now(timestamp_ms)
        if not self._apply(_Transition.START):
            return False
        if self._started_at is None:
            self._started_at = now
        self._live_wpm.start(now)
        if self._countdown is not None:
            self._countdown.start()
        logger.info("Session started (%d characters)", len(self.target_text))
        return True

    def pause(self, timestamp_ms: Optional[int] = None) -> bool:
        """Freeze the session; keystrokes are ignored until :meth:`resume`."""
        now = self._now(timestamp_ms)
        if not self._apply(_Transition.PAUSE):
            return False
        self._paused_at = now
        self._live_wpm.pause(now)
        if self._countdown is not None:
            self._countdown.pause()
        return True

    def resume(self, timestamp_ms: Optional[int] = None) -> bool:
        """Continue a paused session; the pause does not count as typing time."""
        now = self._now(timestamp_ms)
        if not self._apply(_Transition.RESUME):
            return False
        if self._paused_at is not None:
            self._paused_total += max(0, now - self._paused_at)
        self._paused_at = None
        self._live_wpm.resume(now)
        if self._countdown is not None:
            self._countdown.resume()
        return True

    def reset(self) -> bool:
        """Discard all progress and derived stats and return to NOT_STARTED."""
        if self._countdown is not None:
            self._countdown.reset()
        self._accuracy.reset()
        self._characters.reset()
        self._backspace.reset()
        self._live_wpm.reset()
        self._criteria.reset()
        self._clear_state()
        logger.debug("Session reset")
        return True

    def close(self) -> None:
        """Cancel outstanding timers. Call when the host discards the session."""
        if self._countdown is not None:
            self._countdown.cancel()

    # ------------------------------------------------------------------
    # Input
    # ------------------------------------------------------------------

    def dispatch(self, event: InputEvent) -> bool:
        """Route an inbound event to the matching method."""
        if isinstance(event, CharacterEvent):
            return self.process_character(event.char, event.timestamp_ms)
        if isinstance(event, BackspaceEvent):
            return self.handle_backspace(event.timestamp_ms)
        if isinstance(event, ControlEvent):
            action = ControlAction(event.action)
            if action is ControlAction.START:
                return self.start(event.timestamp_ms)
            if action is ControlAction.PAUSE:
                return self.pause(event.timestamp_ms)
            if action is ControlAction.RESUME:
                return self.resume(event.timestamp_ms)
            return self.reset()
        raise TypeError(f"unsupported event: {event!r}")

    def process_character(self, char: str, timestamp_ms: Optional[int] = None) -> bool:
        """Judge one typed character. Returns False when the keystroke was ignored."""
        if self._status is not SessionStatus.ACTIVE:
            return False
        if self._position >= len(self.target_text):
            return False
        if not is_printable_key(char):
            return False

        now = self._now(timestamp_ms)
        position = self._position
        expected = self.target_text[position]
        is_correct = compare_characters(char, expected, self._config.case_sensitive)

        self._backspace.add_to_history(char, position, is_correct, now)
        self._characters.record_character(expected, is_correct)
        self._live_wpm.record(now, is_correct)

        if is_correct:
            self._accuracy.record_correct(position, now)
            self._advance(char)
        else:
            self._accuracy.record_incorrect(position, expected, char, now)
            error = ErrorRecord(position=position, expected=expected, received=char, timestamp_ms=now)
            self._errors.append(error)
            if self.on_error is not None:
                self.on_error(error)
            if self._config.auto_advance_on_error:
                self._advance(char)

        self._keystrokes.append(
            KeystrokeRecord(
                timestamp_ms=now,
                key=char,
                is_correct=is_correct,
                position=position,
                wpm=self._live_wpm.wpm,
                accuracy=self._accuracy.current_accuracy,
            )
        )
        self._update_criteria(now)

        if self._position == len(self.target_text):
            self._complete(now)
        return True

    def handle_backspace(self, timestamp_ms: Optional[int] = None) -> bool:
        """Step back one character if the backspace policy allows it."""
        if self._status is not SessionStatus.ACTIVE:
            return False
        now = self._now(timestamp_ms)
        if not self._backspace.execute_backspace(self._position, now):
            return False

        self._position -= 1
        self._buffer = self._buffer[:-1]
        # Only an error made at the character being erased is cleared.
        if self._errors and self._errors[-1].position == self._position:
            self._errors.pop()
        self._emit_progress()
        self._update_criteria(now)
        return True

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _now(self, timestamp_ms: Optional[int]) -> int:
        return int(timestamp_ms) if timestamp_ms is not None else self._clock()

    def _apply(self, transition: _Transition) -> bool:
        new_status = _TRANSITIONS.get((self._status, transition))
        if new_status is None:
            logger.debug("Ignoring '%s' while %s", transition.value, self._status.value)
            return False
        logger.debug("Session %s -> %s", self._status.value, new_status.value)
        self._status = new_status
        return True

    def _advance(self, char: str) -> None:
        self._buffer += char
        self._position += 1
        self._emit_progress()

    def _emit_progress(self) -> None:
        if self.on_progress is not None:
            self.on_progress(self.progress)

    def _update_criteria(self, now: int) -> None:
        stats = self.current_stats(now)
        self._criteria.update_stats(
            final_accuracy=stats.accuracy,
            final_wpm=stats.wpm,
            total_errors=len(self._errors),
            time_elapsed_ms=stats.total_time_ms,
            characters_typed=stats.characters_typed,
        )

    def _complete(self, now: int) -> None:
        if not self._apply(_Transition.COMPLETE):
            return
        self._ended_at = now
        if self._countdown is not None:
            self._countdown.cancel()
        self._update_criteria(now)
        self._final_stats = self.current_stats(now)
        logger.info(
            "Session complete: %d wpm, %.1f%% accuracy, %d errors",
            self._final_stats.wpm,
            self._final_stats.accuracy,
            len(self._errors),
        )
        if not self._completion_fired:
            self._completion_fired = True
            if self.on_complete is not None:
                self.on_complete(self._final_stats)

    def _on_time_up(self) -> None:
        if self._status is SessionStatus.ACTIVE:
            self._complete(self._clock())

    def _notify_tick(self, remaining_ms: int) -> None:
        if self.on_tick is not None:
            self.on_tick(remaining_ms)

    def _notify_limit_reached(self) -> None:
        if self.on_backspace_limit_reached is not None:
            self.on_backspace_limit_reached()

    def _notify_criteria_met(self, result: CompletionResult) -> None:
        if self.on_criteria_met is not None:
            self.on_criteria_met(result)
