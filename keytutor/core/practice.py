from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import List, Optional, Sequence, Set

from keytutor.core.config import SessionConfig
from keytutor.core.difficulty import AdaptiveDifficultyController, DifficultyLevel
from keytutor.core.metrics import calculate_accuracy, calculate_net_wpm, calculate_wpm
from keytutor.core.models import SessionStats
from keytutor.core.scheduler import Scheduler
from keytutor.core.session import TypingSession

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TaskResult:
    """Result of a single completed task."""

    task: str
    accuracy: float
    wpm: int
    errors: int
    difficulty: DifficultyLevel
    passed: bool = True
    reason: Optional[str] = None


class PracticeRun:
    """Plays a list of target texts one :class:`TypingSession` at a time.

    Aggregates follow the same conventions as a single session:
      * **Accuracy** – correct keystrokes / all keystrokes over passed tasks.
      * **WPM** – (correct keystrokes / 5) / total active minutes.
      * **Net WPM** – (keystrokes − errors) / 5 / total active minutes,
        floored at 0.

    A task only advances when its attempt passed: the session's completion
    criteria were all met and, with ``require_accuracy`` set, its accuracy
    reached that minimum. Failed attempts keep the run on the same task, mark
    it as blocked and report why. Every finished attempt's accuracy is fed to
    the difficulty controller, which is shared with the caller so it can carry
    over between runs.
    """

    def __init__(
        self,
        tasks: List[str],
        template: Optional[SessionConfig] = None,
        start_index: int = 0,
        difficulty: Optional[AdaptiveDifficultyController] = None,
        scheduler: Optional[Scheduler] = None,
        require_accuracy: Optional[float] = None,
    ) -> None:
        """Initialize a run over ``tasks``, optionally resuming at ``start_index``."""
        if not tasks:
            raise ValueError("a practice run needs at least one task")
        self._tasks = list(tasks)
        self._template = template
        self._index = start_index
        self._difficulty = difficulty or AdaptiveDifficultyController()
        self._scheduler = scheduler
        self._results: List[TaskResult] = []
        self._require_accuracy = require_accuracy
        self._blocked: Set[int] = set()
        self._total_keystrokes = 0
        self._total_correct = 0
        self._total_errors = 0
        self._total_time_ms = 0

    @property
    def index(self) -> int:
        """Index of the current task (0-based)."""
        return self._index

    @property
    def total_tasks(self) -> int:
        return len(self._tasks)

    @property
    def results(self) -> List[TaskResult]:
        return list(self._results)

    @property
    def blocked(self) -> List[int]:
        """Indexes of tasks with at least one failed attempt, ascending."""
        return sorted(self._blocked)

    @property
    def difficulty(self) -> AdaptiveDifficultyController:
        return self._difficulty

    def current_task(self) -> str:
        """Return the text of the current task."""
        return self._tasks[self._index]

    def is_complete(self) -> bool:
        """Return True once every task has been passed."""
        return self._index >= len(self._tasks)

    def completion_percentage(self) -> float:
        return min(self._index, len(self._tasks)) / len(self._tasks) * 100.0

    def new_session(self, **callbacks) -> TypingSession:
        """A fresh session for the current task, built from the template config."""
        text = self.current_task()
        config = replace(self._template, target_text=text) if self._template else SessionConfig(target_text=text)
        return TypingSession(config, scheduler=self._scheduler, **callbacks)

    def failed_conditions(self, stats: SessionStats, unmet_criteria: Sequence[str] = ()) -> List[str]:
        failed = list(unmet_criteria)
        if self._require_accuracy is not None and stats.accuracy < self._require_accuracy:
            failed.append(f"accuracy (min {self._require_accuracy:g}%)")
        return failed

    def submit(
        self, stats: SessionStats, errors: int, unmet_criteria: Sequence[str] = ()
    ) -> Optional[TaskResult]:
        """Record a finished attempt and advance if it passed.

        A failed attempt returns a result with ``passed=False`` and the failed
        conditions in ``reason``; the run stays on the same task.
        """
        if self.is_complete():
            return None
        level = self._difficulty.record_session(stats.accuracy)
        failed = self.failed_conditions(stats, unmet_criteria)
        if failed:
            reason = ", ".join(failed)
            self._blocked.add(self._index)
            logger.info("Task %d/%d blocked: %s", self._index + 1, len(self._tasks), reason)
            return TaskResult(
                task=self._tasks[self._index],
                accuracy=stats.accuracy,
                wpm=stats.wpm,
                errors=errors,
                difficulty=level,
                passed=False,
                reason=reason,
            )

        self._total_keystrokes += stats.characters_typed
        self._total_correct += stats.correct_characters
        self._total_errors += errors
        self._total_time_ms += stats.total_time_ms

        result = TaskResult(
            task=self._tasks[self._index],
            accuracy=stats.accuracy,
            wpm=stats.wpm,
            errors=errors,
            difficulty=level,
        )
        self._results.append(result)
        self._index += 1
        logger.debug("Task %d/%d done at %.1f%%", self._index, len(self._tasks), stats.accuracy)
        return result

    def submit_session(self, session: TypingSession) -> Optional[TaskResult]:
        """Submit a completed session, gated on its completion criteria.

        Incomplete sessions are ignored.
        """
        if session.final_stats is None:
            return None
        return self.submit(session.final_stats, len(session.errors), session.criteria_result.unmet_criteria)

    def aggregate_accuracy(self) -> float:
        """Overall accuracy across passed tasks (100 before any keystroke)."""
        return calculate_accuracy(self._total_correct, self._total_keystrokes)

    def aggregate_wpm(self) -> int:
        return calculate_wpm(self._total_correct, self._total_time_ms)

    def aggregate_net_wpm(self) -> int:
        """Net WPM (error-adjusted): (keystrokes − errors) / 5 / minutes."""
        return calculate_net_wpm(self._total_keystrokes, self._total_errors, self._total_time_ms)

    def aggregate_errors(self) -> int:
        """Total errors across all passed tasks."""
        return self._total_errors
