from __future__ import annotations
from dataclasses import dataclass
from models.image import Image

STATUS_DECODED = "decoded"
STATUS_NOT_FOUND = "not_found"
STATUS_LOAD_FAILED = "load_failed"

MESSAGES = {
    STATUS_DECODED: "QR code detected",
    STATUS_NOT_FOUND: "No QR code detected",
    STATUS_LOAD_FAILED: "Image failed to load, cannot detect QR code",
}


@dataclass
class ScanResult:
    """
    Outcome of one scan: what was read from the source image and,
    when something was decoded, the freshly rendered code.
    """
    source: str | None
    status: str                       # one of the STATUS_* constants
    payload: str | None = None        # decoded text, only set when status == "decoded"
    regenerated: Image | None = None  # new QR rendering of payload
    error: str | None = None          # load failure detail

    @property
    def message(self) -> str:
        return MESSAGES[self.status]

    @property
    def found(self) -> bool:
        return self.status == STATUS_DECODED
