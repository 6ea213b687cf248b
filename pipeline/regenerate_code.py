from pathlib import Path
import logging
import os
import uuid

from dotenv import load_dotenv

from models.scan_result import ScanResult
from services.image_service import ImageService
from services.qr_encoder_service import QrEncoderService

# Load environment variables
load_dotenv()

logger = logging.getLogger(__name__)

QR_OUTPUT_DIR = os.getenv("QR_OUTPUT_DIR", "data/qr_output")


def regenerate_code(
    result: ScanResult,
    *,
    encoder_service: QrEncoderService = None,
    image_service: ImageService = None,
    save: bool = False,
    output_path: str | Path | None = None,
    output_dir: str | Path = QR_OUTPUT_DIR,
) -> ScanResult:
    """
    Render a fresh QR code for a decoded result.

    Results that carry no payload are returned untouched. With save=True the
    rendering is written as PNG to *output_path*, or to a unique file under
    *output_dir* when no explicit path is given.
    """
    if not result.found:
        return result

    encoder_service = encoder_service or QrEncoderService()
    image_service = image_service or ImageService()

    regenerated = encoder_service.render(result.payload)
    if save:
        regenerated.path = Path(output_path) if output_path else Path(output_dir) / f"{uuid.uuid4().hex}.png"
        image_service.save(regenerated)
        logger.info(f"Saved regenerated QR code to {regenerated.path}")

    result.regenerated = regenerated
    return result
