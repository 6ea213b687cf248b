import numpy as np

# ITU-R BT.601 weights.
LUMA_WEIGHTS = (0.299, 0.587, 0.114)
# Same weights scaled by 1000 so whole-image sums stay exact integers.
LUMA_WEIGHTS_FIXED = (299, 587, 114)
LUMA_FIXED_SCALE = 1000


class LuminanceService:
    """
    Maps RGB(A) pixels to a single brightness scalar.
    Stateless; every method is a pure function.
    """

    @staticmethod
    def luminance(r: int, g: int, b: int) -> float:
        """
        Args:
            r, g, b (int): Channel bytes, 0-255.

        Returns:
            (float): 0.299*R + 0.587*G + 0.114*B, in [0, 255].
        """
        wr, wg, wb = LUMA_WEIGHTS
        return wr * r + wg * g + wb * b

    @staticmethod
    def fixed_point_plane(pixels: np.ndarray) -> np.ndarray:
        """
        (H, W, 3|4) uint8 -> (H, W) int64 luminance * 1000.

        Exact, so comparisons against window means never depend on
        floating-point summation order.
        """
        rgb = pixels[..., :3].astype(np.int64)
        wr, wg, wb = LUMA_WEIGHTS_FIXED
        return rgb[..., 0] * wr + rgb[..., 1] * wg + rgb[..., 2] * wb

    @staticmethod
    def to_gray_u8(pixels: np.ndarray) -> np.ndarray:
        """8-bit luminance plane as expected by pattern decoders."""
        plane = LuminanceService.fixed_point_plane(pixels)
        return ((plane + LUMA_FIXED_SCALE // 2) // LUMA_FIXED_SCALE).astype(np.uint8)
