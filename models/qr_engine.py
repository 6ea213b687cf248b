from __future__ import annotations
import logging
import cv2

logger = logging.getLogger(__name__)


class QrEngine:
    """
    Singleton wrapper around OpenCV's QR detector and encoder.

    Both objects are created once per Python process and shared by the
    decoder and encoder repositories.
    """

    _instance: QrEngine | None = None  # Class-level cache for singleton

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._init_engine()
        return cls._instance

    def _init_engine(self) -> None:
        self.detector = cv2.QRCodeDetector()
        self.encoder = cv2.QRCodeEncoder.create()
        logger.info(f"QrEngine ready (OpenCV {cv2.__version__})")
