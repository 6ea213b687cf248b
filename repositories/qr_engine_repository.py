import logging
import cv2
import numpy as np
from models.errors import QrRenderError
from models.qr_engine import QrEngine

logger = logging.getLogger(__name__)


class QrEngineRepository:
    """
    Thin wrapper around QrEngine that provides low-level detect/decode and encode.
    """

    def __init__(self):
        self.engine = QrEngine()  # Singleton is handled inside

    def detect_and_decode(self, gray: np.ndarray) -> str | None:
        """
        Args:
            gray (np.ndarray): (H, W) uint8 luminance or binary plane.

        Returns:
            The decoded text, or None when no symbol was found.
        """
        try:
            data, points, _ = self.engine.detector.detectAndDecode(gray)
        except cv2.error as err:
            logger.debug(f"QR detector rejected {gray.shape[1]}x{gray.shape[0]} plane: {err}")
            return None
        if points is None or not data:
            return None
        return data

    def encode(self, payload: str) -> np.ndarray:
        """
        Returns the QR symbol as a (N, N) uint8 array, one pixel per module,
        0 = dark module, 255 = light module.
        """
        try:
            modules = self.engine.encoder.encode(payload)
        except cv2.error as err:
            raise QrRenderError(f"Cannot encode payload of {len(payload)} chars: {err}") from err
        if modules is None or modules.size == 0:
            raise QrRenderError(f"Encoder produced no symbol for payload of {len(payload)} chars")
        return modules
