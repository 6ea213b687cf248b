import logging
import numpy as np
from models.image import Image
from repositories.qr_engine_repository import QrEngineRepository
from services.binarization_service import as_pixel_view
from services.luminance_service import LuminanceService

logger = logging.getLogger(__name__)


class QrDecoderService:
    """
    Business logic on top of the raw QR detector.
    Hands the detector an 8-bit luminance plane of known width/height.
    """

    def __init__(self):
        self.qr_engine_repository = QrEngineRepository()

    def decode(self, buffer, width: int, height: int) -> str | None:
        """
        Args:
            buffer: RGBA pixel buffer (binarized or raw), width * height * 4 bytes.

        Returns:
            The decoded payload, or None when no code was found.
        """
        pixels = as_pixel_view(buffer, width, height)
        return self.decode_plane(LuminanceService.to_gray_u8(pixels))

    def decode_plane(self, gray: np.ndarray) -> str | None:
        """Decode an (H, W) uint8 luminance plane directly."""
        height, width = gray.shape
        payload = self.qr_engine_repository.detect_and_decode(np.ascontiguousarray(gray))
        if payload is None:
            logger.info(f"No QR code found in {width}x{height} plane")
        else:
            logger.info(f"Decoded QR payload ({len(payload)} chars)")
        return payload

    def decode_image(self, img: Image) -> str | None:
        height, width = img.pixels.shape[:2]
        return self.decode(img.pixels, width, height)
