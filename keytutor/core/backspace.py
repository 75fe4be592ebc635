from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, List, Optional

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BackspaceLimits:
    """Backspace rules for one session.

    ``max_backspaces`` of None means unlimited and 0 means none at all.
    ``max_burst`` enables the burst limiter; ``burst_window_ms`` sizes it.

    ``allow_backspace_after_error`` is a teaching policy: when False, a
    backspace is refused while the most recent keystroke was a mistake, so
    the learner corrects forward instead of erasing the error reflexively.
    It defaults to True, which keeps the usual "delete your mistake"
    behaviour.
    """

    max_backspaces: Optional[int] = None
    backspace_delay_ms: int = 0
    max_burst: Optional[int] = None
    burst_window_ms: int = 1000
    allow_backspace_after_error: bool = True

    def __post_init__(self) -> None:
        for name in ("max_backspaces", "backspace_delay_ms", "max_burst", "burst_window_ms"):
            value = getattr(self, name)
            if value is not None and (isinstance(value, bool) or not isinstance(value, int)):
                raise ValueError(f"{name} must be an integer, got {value!r}")
        if not isinstance(self.allow_backspace_after_error, bool):
            raise ValueError(
                f"allow_backspace_after_error must be true or false, got {self.allow_backspace_after_error!r}"
            )
        if self.max_backspaces is not None and self.max_backspaces < 0:
            raise ValueError(f"max_backspaces must be >= 0, got {self.max_backspaces}")
        if self.backspace_delay_ms < 0:
            raise ValueError(f"backspace_delay_ms must be >= 0, got {self.backspace_delay_ms}")
        if self.max_burst is not None and self.max_burst < 1:
            raise ValueError(f"max_burst must be >= 1, got {self.max_burst}")
        if self.burst_window_ms <= 0:
            raise ValueError(f"burst_window_ms must be positive, got {self.burst_window_ms}")


@dataclass(frozen=True)
class HistoryEntry:
    position: int
    character: str
    timestamp_ms: int
    is_correct: bool


@dataclass(frozen=True)
class BackspaceStats:
    total_backspaces: int
    remaining_backspaces: Optional[int]
    history_length: int


class BackspaceRateLimiter:
    """Caps how densely backspaces may arrive.

    At most ``max_burst`` backspaces are accepted per burst window. The window
    opens at the first accepted backspace and restarts only once
    ``burst_window_ms`` has passed since it opened, not since the last event.
    ``min_interval_ms`` additionally spaces out consecutive backspaces.
    """

    def __init__(self, min_interval_ms: int = 100, max_burst: int = 5, burst_window_ms: int = 1000) -> None:
        self._min_interval_ms = min_interval_ms
        self._max_burst = max_burst
        self._burst_window_ms = burst_window_ms
        self.reset()

    def reset(self) -> None:
        self._last: Optional[int] = None
        self._burst_count = 0
        self._burst_start: Optional[int] = None

    @property
    def burst_count(self) -> int:
        return self._burst_count

    def would_allow(self, now_ms: int) -> bool:
        if self._last is not None and now_ms - self._last < self._min_interval_ms:
            return False
        if self._window_expired(now_ms):
            return True
        return self._burst_count < self._max_burst

    def try_acquire(self, now_ms: int) -> bool:
        if self._last is not None and now_ms - self._last < self._min_interval_ms:
            return False
        if self._window_expired(now_ms):
            self._burst_count = 0
            self._burst_start = now_ms
        if self._burst_count >= self._max_burst:
            return False
        self._last = now_ms
        self._burst_count += 1
        return True

    def _window_expired(self, now_ms: int) -> bool:
        return self._burst_start is None or now_ms - self._burst_start > self._burst_window_ms


class BackspacePolicy:
    """Decides whether a pending backspace may be applied.

    The policy keeps its own history of judged keystrokes so it can tell
    whether the latest one was an error. Refusals never mutate state, except
    that the first refusal caused by the configured maximum notifies
    ``on_limit_reached`` (once per breach, re-armed by :meth:`reset`).
    """

    def __init__(
        self,
        limits: Optional[BackspaceLimits] = None,
        enabled: bool = True,
        on_backspace: Optional[Callable[[int], None]] = None,
        on_limit_reached: Optional[Callable[[], None]] = None,
    ) -> None:
        self._limits = limits or BackspaceLimits()
        self._enabled = enabled
        self.on_backspace = on_backspace
        self.on_limit_reached = on_limit_reached
        self._limiter: Optional[BackspaceRateLimiter] = None
        if self._limits.max_burst is not None:
            self._limiter = BackspaceRateLimiter(
                min_interval_ms=0,
                max_burst=self._limits.max_burst,
                burst_window_ms=self._limits.burst_window_ms,
            )
        self._history: List[HistoryEntry] = []
        self._count = 0
        self._last_backspace: Optional[int] = None
        self._limit_notified = False

    @property
    def limits(self) -> BackspaceLimits:
        return self._limits

    @property
    def enabled(self) -> bool:
        return self._enabled

    @property
    def backspace_count(self) -> int:
        return self._count

    @property
    def last_backspace_ms(self) -> Optional[int]:
        return self._last_backspace

    @property
    def history(self) -> List[HistoryEntry]:
        return list(self._history)

    def limit_reached(self) -> bool:
        maximum = self._limits.max_backspaces
        return maximum is not None and self._count >= maximum

    def can_backspace(self, now_ms: int, current_position: int) -> bool:
        return self._refusal(now_ms, current_position) is None

    def execute_backspace(self, current_position: int, now_ms: int) -> bool:
        reason = self._refusal(now_ms, current_position)
        if reason == "limit":
            if not self._limit_notified:
                self._limit_notified = True
                logger.info("Backspace limit of %d reached", self._limits.max_backspaces)
                if self.on_limit_reached is not None:
                    self.on_limit_reached()
            return False
        if reason is not None:
            logger.debug("Backspace refused at position %d: %s", current_position, reason)
            return False
        if self._limiter is not None and not self._limiter.try_acquire(now_ms):
            return False

        self._count += 1
        self._last_backspace = now_ms
        if self._history:
            self._history.pop()
        if self.on_backspace is not None:
            self.on_backspace(current_position - 1)
        return True

    def add_to_history(self, character: str, position: int, is_correct: bool, timestamp_ms: int) -> None:
        self._history.append(HistoryEntry(position, character, timestamp_ms, is_correct))

    def stats(self) -> BackspaceStats:
        maximum = self._limits.max_backspaces
        return BackspaceStats(
            total_backspaces=self._count,
            remaining_backspaces=None if maximum is None else max(0, maximum - self._count),
            history_length=len(self._history),
        )

    def reset(self) -> None:
        self._history.clear()
        self._count = 0
        self._last_backspace = None
        self._limit_notified = False
        if self._limiter is not None:
            self._limiter.reset()

    def _refusal(self, now_ms: int, current_position: int) -> Optional[str]:
        if not self._enabled:
            return "disabled"
        if current_position <= 0:
            return "at start"
        if self.limit_reached():
            return "limit"
        delay = self._limits.backspace_delay_ms
        if delay and self._last_backspace is not None and now_ms - self._last_backspace < delay:
            return "too soon"
        if not self._limits.allow_backspace_after_error and self._history and not self._history[-1].is_correct:
            return "last keystroke was an error"
        if self._limiter is not None and not self._limiter.would_allow(now_ms):
            return "burst limit"
        return None
