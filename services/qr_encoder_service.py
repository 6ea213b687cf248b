import logging
import os
import cv2
from dotenv import load_dotenv
from models.errors import QrRenderError
from models.image import Image
from repositories.qr_engine_repository import QrEngineRepository
from services.image_service import ImageService

# Load environment variables
load_dotenv()

logger = logging.getLogger(__name__)


class QrEncoderService:
    """
    Renders arbitrary text as a fresh QR code image.
    """

    def __init__(self, scale: int = None, margin: int = None):
        """
        Args:
            scale: Pixels per module. Defaults to QR_RENDER_SCALE.
            margin: Extra light modules around the symbol. Defaults to QR_RENDER_MARGIN.
        """
        self.scale = scale if scale is not None else int(os.getenv("QR_RENDER_SCALE", "4"))
        self.margin = margin if margin is not None else int(os.getenv("QR_RENDER_MARGIN", "2"))
        if self.scale < 1:
            raise ValueError(f"scale must be at least 1, got {self.scale}")
        if self.margin < 0:
            raise ValueError(f"margin must not be negative, got {self.margin}")
        self.qr_engine_repository = QrEngineRepository()
        self.image_service = ImageService()

    def render(self, payload: str) -> Image:
        """
        Returns:
            Image: RGBA rendering, dark modules (0, 0, 0, 255) on (255, 255, 255, 255).

        Raises:
            QrRenderError: empty payload or the encoder could not fit it.
        """
        if not payload:
            raise QrRenderError("Cannot render an empty payload")

        modules = self.qr_engine_repository.encode(payload)
        if modules.ndim == 3:
            modules = cv2.cvtColor(modules, cv2.COLOR_BGR2GRAY)

        scaled = cv2.resize(modules, None, fx=self.scale, fy=self.scale, interpolation=cv2.INTER_NEAREST)
        pad = self.margin * self.scale
        if pad:
            scaled = cv2.copyMakeBorder(scaled, pad, pad, pad, pad, cv2.BORDER_CONSTANT, value=255)

        rgba = cv2.cvtColor(scaled, cv2.COLOR_GRAY2RGBA)
        logger.info(f"Rendered QR code {rgba.shape[1]}x{rgba.shape[0]} for payload of {len(payload)} chars")
        return self.image_service.create_image(rgba)
