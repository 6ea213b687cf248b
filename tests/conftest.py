import os
import tempfile

import numpy as np
import pytest

# Set env variables before any project module reads them at import time
os.environ.setdefault("QR_OUTPUT_DIR", tempfile.mkdtemp(prefix="qr_output_"))
os.environ["BINARIZE_WINDOW_SIZE"] = "11"
os.environ["BINARIZE_DARK_FLOOR"] = "1.0"
os.environ["BINARIZE_WORKERS"] = "1"

from models.image import Image
from services.image_service import ImageService
from services.qr_encoder_service import QrEncoderService

PAYLOAD = "https://example.com/relay?id=42"


def solid_rgba(width: int, height: int, rgb=(128, 128, 128), alpha: int = 255) -> np.ndarray:
    pixels = np.empty((height, width, 4), dtype=np.uint8)
    pixels[..., :3] = rgb
    pixels[..., 3] = alpha
    return pixels


def gray_to_rgba(gray: np.ndarray, alpha: int = 255) -> np.ndarray:
    pixels = np.empty(gray.shape + (4,), dtype=np.uint8)
    pixels[..., :3] = gray[..., None]
    pixels[..., 3] = alpha
    return pixels


@pytest.fixture
def payload():
    return PAYLOAD


@pytest.fixture
def qr_image() -> Image:
    """A clean QR rendering, 8 px per module with a generous quiet zone."""
    img = QrEncoderService(scale=8, margin=4).render(PAYLOAD)
    img.source = "fixture.png"
    return img


@pytest.fixture
def dimmed_qr_image(qr_image) -> Image:
    """The same code photographed in poor light: white modules at ~60% brightness."""
    pixels = qr_image.pixels.copy()
    pixels[..., :3] = (pixels[..., :3].astype(np.float64) * 0.6).astype(np.uint8)
    return Image(pixels=pixels, source="dimmed.png")


@pytest.fixture
def low_contrast_qr_image(qr_image) -> Image:
    """The code on grey paper under flat light: dark modules at 40, light ones at 200."""
    pixels = qr_image.pixels.copy()
    pixels[..., :3] = np.where(pixels[..., :3] < 128, 40, 200).astype(np.uint8)
    return Image(pixels=pixels, source="low_contrast.png")


@pytest.fixture
def qr_png_bytes(dimmed_qr_image) -> bytes:
    return ImageService().to_png_bytes(dimmed_qr_image)


@pytest.fixture
def blank_png_bytes() -> bytes:
    return ImageService().to_png_bytes(Image(pixels=solid_rgba(64, 48, (250, 250, 250))))
