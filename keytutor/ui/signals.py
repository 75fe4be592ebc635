"""Qt signal adapter for :class:`TypingSession` callbacks."""

from __future__ import annotations

from PySide6.QtCore import QObject, Signal

from keytutor.core.completion import CompletionResult
from keytutor.core.models import ErrorRecord, ProgressEvent, SessionStats
from keytutor.core.session import TypingSession


class SessionSignals(QObject):
    """Re-emits a session's callbacks as Qt signals so widgets can connect to them.

    Attaching replaces whatever callbacks the session had.
    """

    progressed = Signal(object)  # ProgressEvent
    errorOccurred = Signal(object)  # ErrorRecord
    completed = Signal(object)  # SessionStats
    backspaceLimitReached = Signal()
    criteriaMet = Signal(object)  # CompletionResult
    ticked = Signal(int)  # remaining ms

    def __init__(self, session: TypingSession, parent=None) -> None:
        super().__init__(parent)
        self._session = session
        session.on_progress = self._on_progress
        session.on_error = self._on_error
        session.on_complete = self._on_complete
        session.on_backspace_limit_reached = self.backspaceLimitReached.emit
        session.on_criteria_met = self._on_criteria_met
        session.on_tick = self.ticked.emit

    @property
    def session(self) -> TypingSession:
        return self._session

    def detach(self) -> None:
        """Stop forwarding; the session keeps running without observers."""
        s = self._session
        s.on_progress = s.on_error = s.on_complete = None
        s.on_backspace_limit_reached = s.on_criteria_met = s.on_tick = None

    def _on_progress(self, event: ProgressEvent) -> None:
        self.progressed.emit(event)

    def _on_error(self, error: ErrorRecord) -> None:
        self.errorOccurred.emit(error)

    def _on_complete(self, stats: SessionStats) -> None:
        self.completed.emit(stats)

    def _on_criteria_met(self, result: CompletionResult) -> None:
        self.criteriaMet.emit(result)
