from typing import Callable, Optional

from PySide6.QtCore import QObject, Signal

from ..models import SessionState
from ..session import FileSession
from ..utils import get_logger


class SessionSignals(QObject):
    """Re-emits FileSession snapshots as Qt signals for widgets to render."""

    state_changed = Signal(object)
    error_changed = Signal(str)
    progress_changed = Signal(int)
    loading_changed = Signal(bool)

    def __init__(self, session: FileSession, parent: Optional[QObject] = None) -> None:
        super().__init__(parent)
        self.logger = get_logger("fsclient.qt")
        self._last = session.state
        self._unsubscribe: Optional[Callable[[], None]] = session.subscribe(self._on_state)

    def _on_state(self, state: SessionState) -> None:
        last = self._last
        self._last = state
        self.state_changed.emit(state)
        if state.error != last.error:
            self.error_changed.emit(state.error or "")
        if state.upload_progress != last.upload_progress:
            self.progress_changed.emit(state.upload_progress)
        if state.loading != last.loading:
            self.loading_changed.emit(state.loading)

    def detach(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
            self.logger.debug("SessionSignals detached")
