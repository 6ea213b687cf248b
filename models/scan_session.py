from __future__ import annotations
from dataclasses import dataclass, field
import uuid

from models.errors import SessionStateError
from models.scan_result import ScanResult

STATE_OPEN = "open"
STATE_POPULATED = "populated"
STATE_CLOSED = "closed"


@dataclass
class ScanSession:
    """
    State of a single result popup.

    Lifecycle is strictly open -> populated -> closed; a session may also
    be closed straight from open (user dismissed it before the scan ended).
    """
    source: str | None
    session_id: str = field(default_factory=lambda: uuid.uuid4().hex)
    state: str = STATE_OPEN
    result: ScanResult | None = None

    def populate(self, result: ScanResult) -> None:
        if self.state != STATE_OPEN:
            raise SessionStateError(f"Cannot populate session {self.session_id} in state '{self.state}'")
        self.result = result
        self.state = STATE_POPULATED

    def close(self) -> None:
        if self.state == STATE_CLOSED:
            raise SessionStateError(f"Session {self.session_id} is already closed")
        self.result = None
        self.state = STATE_CLOSED

    @property
    def is_active(self) -> bool:
        return self.state != STATE_CLOSED
