import logging

from models.image import Image
from models.scan_result import ScanResult, STATUS_DECODED, STATUS_NOT_FOUND
from services.binarization_service import BinarizationService
from services.luminance_service import LuminanceService
from services.qr_decoder_service import QrDecoderService

logger = logging.getLogger(__name__)


def scan_image(
    img: Image,
    *,
    binarization_service: BinarizationService = None,
    decoder_service: QrDecoderService = None,
) -> ScanResult:
    """
    Binarize *img* in place and hand the result to the QR decoder.

    The image's pixel buffer is consumed: after this call it holds the
    binary rendering, not the original photograph. The 8-bit luminance
    plane is kept aside first; when the binary rendering yields nothing
    (large modules lose their centres to the local window) the decoder
    gets that plane as a second chance.

    Returns:
        ScanResult with status "decoded" or "not_found".
    """
    binarization_service = binarization_service or BinarizationService()
    decoder_service = decoder_service or QrDecoderService()

    height, width = img.pixels.shape[:2]
    gray = LuminanceService.to_gray_u8(img.pixels)
    binarization_service.binarize(img.pixels, width, height)
    payload = decoder_service.decode(img.pixels, width, height)

    if payload is None:
        logger.debug(f"Binary rendering of {img.source} not decodable, trying luminance plane")
        payload = decoder_service.decode_plane(gray)

    if payload is None:
        return ScanResult(source=img.source, status=STATUS_NOT_FOUND)
    return ScanResult(source=img.source, status=STATUS_DECODED, payload=payload)
