import numpy as np
import pytest

from models.errors import QrRenderError
from pipeline.scan_image import scan_image
from services.binarization_service import binarize
from services.luminance_service import LuminanceService
from services.qr_decoder_service import QrDecoderService
from services.qr_encoder_service import QrEncoderService
from tests.conftest import solid_rgba


def test_render_produces_opaque_two_level_rgba(qr_image):
    pixels = qr_image.pixels
    assert pixels.ndim == 3 and pixels.shape[2] == 4
    assert pixels.shape[0] == pixels.shape[1]
    assert set(np.unique(pixels[..., :3])) == {0, 255}
    assert (pixels[..., 3] == 255).all()


def test_render_border_is_light(qr_image):
    border = 4 * 8
    pixels = qr_image.pixels
    assert (pixels[:border, :, :3] == 255).all()
    assert (pixels[:, -border:, :3] == 255).all()


def test_scale_multiplies_size(payload):
    small = QrEncoderService(scale=2, margin=0).render(payload)
    large = QrEncoderService(scale=6, margin=0).render(payload)
    assert large.pixels.shape[0] == 3 * small.pixels.shape[0]


def test_empty_payload_cannot_be_rendered():
    with pytest.raises(QrRenderError):
        QrEncoderService().render("")


@pytest.mark.parametrize("kwargs", [{"scale": 0}, {"margin": -1}])
def test_bad_render_settings_are_rejected(kwargs):
    with pytest.raises(ValueError):
        QrEncoderService(**kwargs)


def test_decoder_reads_clean_rendering(qr_image, payload):
    assert QrDecoderService().decode_image(qr_image) == payload


def test_decoder_reports_not_found_on_blank_image():
    pixels = solid_rgba(120, 90, (240, 240, 240))
    assert QrDecoderService().decode(pixels, 120, 90) is None


def test_binarized_buffer_reproduces_clean_symbol(dimmed_qr_image, qr_image):
    pixels = dimmed_qr_image.pixels
    h, w = pixels.shape[:2]

    binarize(pixels, w, h)

    assert np.array_equal(pixels, qr_image.pixels)


def test_dimmed_photo_decodes_after_binarization(dimmed_qr_image, payload):
    result = scan_image(dimmed_qr_image)

    assert result.found
    assert result.payload == payload
    assert set(np.unique(dimmed_qr_image.pixels[..., :3])) == {0, 255}


def test_low_contrast_photo_decodes_through_luminance_plane(low_contrast_qr_image, payload):
    result = scan_image(low_contrast_qr_image)

    assert result.found
    assert result.payload == payload
    # the buffer still ends up binarized
    assert set(np.unique(low_contrast_qr_image.pixels[..., :3])) <= {0, 255}


def test_decode_plane_reads_raw_luminance(low_contrast_qr_image, payload):
    gray = LuminanceService.to_gray_u8(low_contrast_qr_image.pixels)
    assert set(np.unique(gray)) == {40, 200}
    assert QrDecoderService().decode_plane(gray) == payload
