import logging
import threading
from models.errors import SessionStateError
from models.scan_result import ScanResult
from models.scan_session import ScanSession

logger = logging.getLogger(__name__)


class ScanSessionService:
    """
    Owns the single result popup.

    Opening a new session closes the current one first, so at most one
    session is ever active. All transitions happen under one lock because
    the API serves requests from several threads.
    """

    def __init__(self):
        self.current: ScanSession | None = None
        self._lock = threading.Lock()

    def open(self, source: str | None) -> ScanSession:
        with self._lock:
            if self.current is not None and self.current.is_active:
                logger.info(f"Closing session {self.current.session_id} to open a new one")
                self.current.close()
            self.current = ScanSession(source=source)
            return self.current

    def populate(self, session: ScanSession, result: ScanResult) -> ScanSession:
        """
        Raises:
            SessionStateError: *session* was closed or replaced by a newer scan.
        """
        with self._lock:
            if session is not self.current:
                raise SessionStateError(f"Session {session.session_id} was superseded by a newer scan")
            session.populate(result)
        logger.info(f"Session {session.session_id} populated: {result.status}")
        return session

    def get(self, session_id: str) -> ScanSession | None:
        """The current session if it matches *session_id* and is still open."""
        with self._lock:
            current = self.current
            if current is None or current.session_id != session_id or not current.is_active:
                return None
            return current

    def close(self, session_id: str) -> bool:
        with self._lock:
            current = self.current
            if current is None or current.session_id != session_id or not current.is_active:
                return False
            current.close()
            self.current = None
            return True
