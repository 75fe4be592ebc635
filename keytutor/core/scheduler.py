"""Injectable clock and cancellable timer primitives.

The engine never calls ``time`` or starts timers on its own. Hosts pass a
:class:`Scheduler`: :class:`QtScheduler` inside a running Qt application, or
:class:`ManualScheduler` wherever time should only move when told to (tests,
replays of recorded sessions).
"""

from __future__ import annotations

import heapq
import itertools
import logging
from typing import Callable, List, Optional, Protocol, Tuple

logger = logging.getLogger(__name__)

Callback = Callable[[], None]


class ScheduledTask(Protocol):
    @property
    def active(self) -> bool: ...

    def cancel(self) -> None: ...


class Scheduler(Protocol):
    def now(self) -> int:
        """Current time in milliseconds."""
        ...

    def call_later(self, delay_ms: int, callback: Callback) -> ScheduledTask: ...

    def call_every(self, interval_ms: int, callback: Callback) -> ScheduledTask: ...


class _ManualTask:
    def __init__(self, callback: Callback, interval_ms: Optional[int]) -> None:
        self.callback = callback
        self.interval_ms = interval_ms
        self._active = True

    @property
    def active(self) -> bool:
        return self._active

    def cancel(self) -> None:
        self._active = False

    def _finish(self) -> None:
        self._active = False


class ManualScheduler:
    """A fake clock whose time only moves through :meth:`advance`.

    Due tasks run in due-time order, with the clock set to each task's due
    time while its callback runs.
    """

    def __init__(self, start_ms: int = 0) -> None:
        self._now = int(start_ms)
        self._seq = itertools.count()
        self._queue: List[Tuple[int, int, _ManualTask]] = []

    def now(self) -> int:
        return self._now

    def call_later(self, delay_ms: int, callback: Callback) -> _ManualTask:
        task = _ManualTask(callback, None)
        self._push(self._now + max(0, int(delay_ms)), task)
        return task

    def call_every(self, interval_ms: int, callback: Callback) -> _ManualTask:
        if interval_ms <= 0:
            raise ValueError(f"interval_ms must be positive, got {interval_ms}")
        task = _ManualTask(callback, int(interval_ms))
        self._push(self._now + task.interval_ms, task)
        return task

    @property
    def pending(self) -> int:
        """Number of scheduled tasks that have not been cancelled or finished."""
        return sum(1 for _, _, task in self._queue if task.active)

    def advance(self, delta_ms: int) -> None:
        self.advance_to(self._now + int(delta_ms))

    def advance_to(self, target_ms: int) -> None:
        target_ms = int(target_ms)
        if target_ms < self._now:
            raise ValueError(f"cannot move clock backwards from {self._now} to {target_ms}")
        while self._queue and self._queue[0][0] <= target_ms:
            due, _, task = heapq.heappop(self._queue)
            if not task.active:
                continue
            self._now = due
            if task.interval_ms is None:
                task._finish()
                task.callback()
            else:
                task.callback()
                if task.active:
                    self._push(due + task.interval_ms, task)
        self._now = target_ms

    def _push(self, due: int, task: _ManualTask) -> None:
        heapq.heappush(self._queue, (due, next(self._seq), task))


class _QtTask:
    def __init__(self, timer) -> None:
        self._timer = timer

    @property
    def active(self) -> bool:
        return self._timer.isActive()

    def cancel(self) -> None:
        self._timer.stop()


class QtScheduler:
    """Scheduler backed by ``QTimer`` and ``QElapsedTimer``.

    Callbacks only fire while the Qt event loop runs. ``now()`` counts
    milliseconds since the scheduler was created.
    """

    def __init__(self, parent=None) -> None:
        from PySide6.QtCore import QElapsedTimer

        self._parent = parent
        self._clock = QElapsedTimer()
        self._clock.start()

    def now(self) -> int:
        return int(self._clock.elapsed())

    def call_later(self, delay_ms: int, callback: Callback) -> _QtTask:
        return self._make_timer(delay_ms, callback, single_shot=True)

    def call_every(self, interval_ms: int, callback: Callback) -> _QtTask:
        if interval_ms <= 0:
            raise ValueError(f"interval_ms must be positive, got {interval_ms}")
        return self._make_timer(interval_ms, callback, single_shot=False)

    def _make_timer(self, ms: int, callback: Callback, single_shot: bool) -> _QtTask:
        from PySide6.QtCore import QTimer

        timer = QTimer(self._parent)
        timer.setSingleShot(single_shot)
        timer.setInterval(max(0, int(ms)))
        timer.timeout.connect(callback)
        timer.start()
        logger.debug("Started %s timer (%d ms)", "single-shot" if single_shot else "repeating", ms)
        return _QtTask(timer)
