from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import Callable, List, Optional

from keytutor.core.scheduler import ScheduledTask, Scheduler

logger = logging.getLogger(__name__)

DEFAULT_TICK_MS = 100


@dataclass(frozen=True)
class CompletionCriteria:
    """Thresholds that must all hold for an exercise to count as complete.

    ``require_full_text`` is met as soon as anything has been typed; reaching
    the end of the text is the session's own completion trigger.
    """

    require_full_text: bool = True
    min_accuracy: Optional[float] = None
    min_wpm: Optional[float] = None
    max_errors: Optional[int] = None
    min_time_ms: Optional[int] = None
    max_time_ms: Optional[int] = None

    def __post_init__(self) -> None:
        if not isinstance(self.require_full_text, bool):
            raise ValueError(f"require_full_text must be true or false, got {self.require_full_text!r}")
        for name in ("min_accuracy", "min_wpm", "max_errors", "min_time_ms", "max_time_ms"):
            value = getattr(self, name)
            if value is None:
                continue
            fractional = name in ("min_accuracy", "min_wpm")
            kinds = (int, float) if fractional else (int,)
            if isinstance(value, bool) or not isinstance(value, kinds):
                kind = "a number" if fractional else "an integer"
                raise ValueError(f"{name} must be {kind}, got {value!r}")
            if value < 0:
                raise ValueError(f"{name} must be >= 0, got {value}")


@dataclass(frozen=True)
class CompletionStats:
    """Inputs to a criteria check. Fields left as None count as unmet."""

    final_accuracy: Optional[float] = None
    final_wpm: Optional[float] = None
    total_errors: Optional[int] = None
    time_elapsed_ms: Optional[int] = None
    characters_typed: Optional[int] = None


@dataclass(frozen=True)
class CompletionResult:
    is_complete: bool = False
    met_criteria: List[str] = field(default_factory=list)
    unmet_criteria: List[str] = field(default_factory=list)
    completion_percentage: float = 0.0


def evaluate_criteria(criteria: CompletionCriteria, stats: CompletionStats) -> CompletionResult:
    met: List[str] = []
    unmet: List[str] = []

    def check(ok: bool, label: str, unmet_label: str) -> None:
        (met if ok else unmet).append(label if ok else unmet_label)

    if criteria.require_full_text:
        typed = stats.characters_typed
        check(typed is not None and typed > 0, "full-text", "full-text")
    if criteria.min_accuracy is not None:
        acc = stats.final_accuracy
        check(acc is not None and acc >= criteria.min_accuracy, "accuracy", f"accuracy (min {criteria.min_accuracy:g}%)")
    if criteria.min_wpm is not None:
        wpm = stats.final_wpm
        check(wpm is not None and wpm >= criteria.min_wpm, "wpm", f"wpm (min {criteria.min_wpm:g})")
    if criteria.max_errors is not None:
        errors = stats.total_errors
        check(errors is not None and errors <= criteria.max_errors, "errors", f"errors (max {criteria.max_errors})")
    if criteria.min_time_ms is not None:
        elapsed = stats.time_elapsed_ms
        check(elapsed is not None and elapsed >= criteria.min_time_ms, "min-time", f"min-time ({criteria.min_time_ms}ms)")
    if criteria.max_time_ms is not None:
        elapsed = stats.time_elapsed_ms
        check(elapsed is not None and elapsed <= criteria.max_time_ms, "max-time", f"max-time ({criteria.max_time_ms}ms)")

    total = len(met) + len(unmet)
    return CompletionResult(
        is_complete=not unmet,
        met_criteria=met,
        unmet_criteria=unmet,
        completion_percentage=len(met) / total * 100.0 if total else 0.0,
    )


class CompletionEvaluator:
    """Re-checks criteria whenever stats change and reports completion once.

    After the first complete evaluation ``on_complete`` is never called again,
    even if later stats make the criteria fail and pass again.
    """

    def __init__(
        self,
        criteria: Optional[CompletionCriteria] = None,
        on_complete: Optional[Callable[[CompletionResult], None]] = None,
    ) -> None:
        self._criteria = criteria or CompletionCriteria()
        self.on_complete = on_complete
        self.reset()

    @property
    def criteria(self) -> CompletionCriteria:
        return self._criteria

    @property
    def stats(self) -> CompletionStats:
        return self._stats

    @property
    def result(self) -> CompletionResult:
        return self._result

    @property
    def is_complete(self) -> bool:
        return self._result.is_complete

    @property
    def has_fired(self) -> bool:
        return self._fired

    def check(self, stats: CompletionStats) -> CompletionResult:
        return evaluate_criteria(self._criteria, stats)

    def update_stats(self, **changes) -> CompletionResult:
        """Merge the given ``CompletionStats`` fields and re-evaluate."""
        self._stats = replace(self._stats, **changes)
        self._result = self.check(self._stats)
        if self._result.is_complete and not self._fired:
            self._fired = True
            logger.debug("Completion criteria met: %s", ", ".join(self._result.met_criteria))
            if self.on_complete is not None:
                self.on_complete(self._result)
        return self._result

    def reset(self) -> None:
        self._stats = CompletionStats()
        self._result = CompletionResult()
        self._fired = False


class TimedCompletion:
    """Practice-for-N-milliseconds countdown.

    Ticks every ``tick_ms`` through the scheduler. Pausing cancels the tick
    task and freezes the elapsed time; resuming continues from it. Completion
    fires once, on the first tick at or after ``duration_ms``.
    """

    def __init__(
        self,
        duration_ms: int,
        scheduler: Scheduler,
        on_complete: Optional[Callable[[], None]] = None,
        on_tick: Optional[Callable[[int], None]] = None,
        tick_ms: int = DEFAULT_TICK_MS,
    ) -> None:
        if duration_ms <= 0:
            raise ValueError(f"duration_ms must be positive, got {duration_ms}")
        if tick_ms <= 0:
            raise ValueError(f"tick_ms must be positive, got {tick_ms}")
        self._duration_ms = duration_ms
        self._scheduler = scheduler
        self._tick_ms = tick_ms
        self.on_complete = on_complete
        self.on_tick = on_tick
        self._task: Optional[ScheduledTask] = None
        self._elapsed_ms = 0
        self._run_started_at: Optional[int] = None
        self._complete = False

    @property
    def duration_ms(self) -> int:
        return self._duration_ms

    @property
    def is_active(self) -> bool:
        return self._task is not None

    @property
    def is_complete(self) -> bool:
        return self._complete

    @property
    def elapsed_ms(self) -> int:
        if self._run_started_at is not None:
            return self._scheduler.now() - self._run_started_at
        return self._elapsed_ms

    @property
    def remaining_ms(self) -> int:
        return max(0, self._duration_ms - self.elapsed_ms)

    @property
    def percentage(self) -> float:
        return min(100.0, self.elapsed_ms / self._duration_ms * 100.0)

    def start(self) -> bool:
        if self._task is not None or self._complete:
            return False
        self._run_started_at = self._scheduler.now() - self._elapsed_ms
        self._task = self._scheduler.call_every(self._tick_ms, self._tick)
        return True

    def pause(self) -> bool:
        if self._task is None:
            return False
        self._elapsed_ms = self.elapsed_ms
        self._stop()
        return True

    def resume(self) -> bool:
        return self.start()

    def cancel(self) -> None:
        """Stop ticking without completing; safe to call at any time."""
        if self._task is not None:
            self._elapsed_ms = self.elapsed_ms
        self._stop()

    def reset(self) -> None:
        self._stop()
        self._elapsed_ms = 0
        self._complete = False

    def _stop(self) -> None:
        if self._task is not None:
            self._task.cancel()
        self._task = None
        self._run_started_at = None

    def _tick(self) -> None:
        if self._task is None:
            return
        elapsed = self.elapsed_ms
        if self.on_tick is not None:
            self.on_tick(max(0, self._duration_ms - elapsed))
        if elapsed >= self._duration_ms and not self._complete:
            self._complete = True
            self._elapsed_ms = elapsed
            self._stop()
            logger.info("Timed practice of %d ms finished", self._duration_ms)
            if self.on_complete is not None:
                self.on_complete()
