"""
Source-to-new-code relay: acquire an image, scan it, re-encode the payload.
"""
from concurrent.futures import Future
from pathlib import Path
from typing import Union
import logging

from models.errors import ImageLoadError
from models.image import Image
from models.scan_result import ScanResult, STATUS_LOAD_FAILED
from pipeline.regenerate_code import regenerate_code
from pipeline.scan_image import scan_image
from services.binarization_service import BinarizationService
from services.image_service import ImageService
from services.qr_decoder_service import QrDecoderService
from services.qr_encoder_service import QrEncoderService

logger = logging.getLogger(__name__)


def relay_image(
    img: Image,
    *,
    binarization_service: BinarizationService = None,
    decoder_service: QrDecoderService = None,
    encoder_service: QrEncoderService = None,
    regenerate: bool = True,
    save: bool = False,
    output_path: Union[str, Path, None] = None,
) -> ScanResult:
    """Scan an already acquired image and, if a code was found, regenerate it."""
    result = scan_image(img, binarization_service=binarization_service, decoder_service=decoder_service)
    if regenerate:
        result = regenerate_code(result, encoder_service=encoder_service, save=save, output_path=output_path)
    return result


def relay_source(
    source: Union[str, Path],
    *,
    image_service: ImageService = None,
    **kwargs,
) -> ScanResult:
    """
    Acquire *source* (file path or URL), then relay it.

    A source that cannot be loaded yields a "load_failed" result instead of
    raising; every other failure propagates.
    """
    image_service = image_service or ImageService()
    try:
        img = image_service.acquire(source)
    except ImageLoadError as err:
        logger.warning(f"Could not load {source}: {err}")
        return ScanResult(source=str(source), status=STATUS_LOAD_FAILED, error=str(err))
    return relay_image(img, **kwargs)


def relay_source_async(
    source: Union[str, Path],
    *,
    image_service: ImageService = None,
    **kwargs,
) -> "Future[ScanResult]":
    """
    Non-blocking variant of relay_source: acquisition runs on the loader pool
    and the synchronous scan runs as soon as the pixels arrive.
    """
    image_service = image_service or ImageService()
    outcome: Future = Future()
    loading = image_service.load_async(source)

    def _on_loaded(done: Future) -> None:
        try:
            img = done.result()
        except ImageLoadError as err:
            logger.warning(f"Could not load {source}: {err}")
            outcome.set_result(ScanResult(source=str(source), status=STATUS_LOAD_FAILED, error=str(err)))
            return
        except Exception as err:
            outcome.set_exception(err)
            return
        try:
            outcome.set_result(relay_image(img, **kwargs))
        except Exception as err:
            outcome.set_exception(err)

    loading.add_done_callback(_on_loaded)
    return outcome
