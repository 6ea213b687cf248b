"""
Adaptive local-mean binarization of RGBA pixel buffers.

Every pixel is compared against the mean luminance of the square window
[x - half, x + half) x [y - half, y + half) clipped to the image. Pixels
strictly darker than that mean (or darker than the dark floor) become
(0, 0, 0, A), all others (255, 255, 255, A). Alpha is never touched.

The luminance plane and its summed-area table are built before anything
is written, so the result does not depend on scan order.
"""
from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
import logging
import os

import numpy as np
from dotenv import load_dotenv

from models.errors import InvalidDimensions
from services.luminance_service import LuminanceService, LUMA_FIXED_SCALE

# Load environment variables
load_dotenv()

logger = logging.getLogger(__name__)

DEFAULT_WINDOW_SIZE = 11
DEFAULT_DARK_FLOOR = 1.0
FOREGROUND = 0
BACKGROUND = 255


def as_pixel_view(buffer, width: int, height: int) -> np.ndarray:
    """
    Return a writable (H, W, 4) uint8 view sharing memory with *buffer*.

    Accepts a bytearray, a writable memoryview or a C-contiguous uint8
    ndarray holding exactly width * height * 4 bytes.
    """
    if isinstance(width, bool) or isinstance(height, bool) \
            or not isinstance(width, (int, np.integer)) or not isinstance(height, (int, np.integer)):
        raise InvalidDimensions(f"width and height must be integers, got {width!r}x{height!r}")
    if width <= 0 or height <= 0:
        raise InvalidDimensions(f"width and height must be positive, got {width}x{height}")

    if isinstance(buffer, np.ndarray):
        if buffer.dtype != np.uint8:
            raise TypeError(f"pixel buffer must be uint8, got {buffer.dtype}")
        if not buffer.flags["C_CONTIGUOUS"]:
            raise TypeError("pixel buffer must be C-contiguous")
        arr = buffer
    else:
        arr = np.frombuffer(buffer, dtype=np.uint8)

    expected = width * height * 4
    if arr.size != expected:
        raise InvalidDimensions(
            f"buffer holds {arr.size} bytes, expected {width}x{height}x4 = {expected}"
        )
    if not arr.flags["WRITEABLE"]:
        raise TypeError("pixel buffer is read-only")
    return arr.reshape(height, width, 4)


def _window_bounds(length: int, half: int) -> tuple[np.ndarray, np.ndarray]:
    idx = np.arange(length)
    return np.clip(idx - half, 0, length), np.clip(idx + half, 0, length)


def _summed_area_table(plane: np.ndarray) -> np.ndarray:
    h, w = plane.shape
    table = np.zeros((h + 1, w + 1), dtype=np.int64)
    table[1:, 1:] = plane.cumsum(axis=0).cumsum(axis=1)
    return table


class _WindowStats:
    """Read-only window sums and counts, sliced by row band on demand."""

    def __init__(self, plane: np.ndarray, half: int):
        h, w = plane.shape
        self.table = _summed_area_table(plane)
        self.y0, self.y1 = _window_bounds(h, half)
        self.x0, self.x1 = _window_bounds(w, half)
        self.col_counts = self.x1 - self.x0

    def sums(self, rows: slice) -> np.ndarray:
        t = self.table
        y0, y1 = self.y0[rows], self.y1[rows]
        return (t[np.ix_(y1, self.x1)] - t[np.ix_(y0, self.x1)]
                - t[np.ix_(y1, self.x0)] + t[np.ix_(y0, self.x0)])

    def counts(self, rows: slice) -> np.ndarray:
        return (self.y1[rows] - self.y0[rows])[:, None] * self.col_counts[None, :]


class BinarizationService:
    """
    Adaptive binarizer. Window size, dark floor and worker count default
    to the BINARIZE_* environment variables.
    """

    def __init__(self, window_size: int = None, dark_floor: float = None, workers: int = None):
        self.window_size = window_size if window_size is not None else \
            int(os.getenv("BINARIZE_WINDOW_SIZE", str(DEFAULT_WINDOW_SIZE)))
        self.dark_floor = dark_floor if dark_floor is not None else \
            float(os.getenv("BINARIZE_DARK_FLOOR", str(DEFAULT_DARK_FLOOR)))
        self.workers = workers if workers is not None else int(os.getenv("BINARIZE_WORKERS", "1"))

        if self.window_size < 2:
            raise ValueError(f"window_size must be at least 2, got {self.window_size}")
        if self.workers < 1:
            raise ValueError(f"workers must be at least 1, got {self.workers}")

    @property
    def half(self) -> int:
        return self.window_size // 2

    # ─── Public API ────────────────────────────────────────────────
    def binarize(self, buffer, width: int, height: int):
        """
        Binarize *buffer* in place and return it.

        Raises:
            InvalidDimensions: width/height not positive or not matching the buffer length.
            TypeError: buffer is read-only, not uint8 or not contiguous.
        """
        pixels = as_pixel_view(buffer, width, height)
        plane = LuminanceService.fixed_point_plane(pixels)
        stats = _WindowStats(plane, self.half)
        floor_fixed = self.dark_floor * LUMA_FIXED_SCALE

        def classify(rows: slice) -> None:
            lum = plane[rows]
            dark = (lum * stats.counts(rows) < stats.sums(rows)) | (lum < floor_fixed)
            pixels[rows, :, :3] = np.where(dark, FOREGROUND, BACKGROUND).astype(np.uint8)[..., None]

        bands = self._row_bands(height)
        if len(bands) == 1:
            classify(bands[0])
        else:
            with ThreadPoolExecutor(max_workers=self.workers) as pool:
                list(pool.map(classify, bands))

        logger.debug(f"Binarized {width}x{height} buffer (window={self.window_size}, bands={len(bands)})")
        return buffer

    def local_threshold_map(self, buffer, width: int, height: int) -> np.ndarray:
        """
        Mean luminance of each pixel's clipped window, as (H, W) float64.
        Does not modify the buffer.
        """
        pixels = as_pixel_view(buffer, width, height)
        plane = LuminanceService.fixed_point_plane(pixels)
        stats = _WindowStats(plane, self.half)
        rows = slice(0, height)
        return stats.sums(rows) / stats.counts(rows) / LUMA_FIXED_SCALE

    # ─── Internal helpers ──────────────────────────────────────────
    def _row_bands(self, height: int) -> list[slice]:
        n = min(self.workers, height)
        edges = np.linspace(0, height, n + 1).astype(int)
        return [slice(int(a), int(b)) for a, b in zip(edges[:-1], edges[1:]) if b > a]


def binarize(buffer, width: int, height: int, window_size: int = DEFAULT_WINDOW_SIZE,
             dark_floor: float = DEFAULT_DARK_FLOOR, workers: int = 1):
    """Functional shortcut for BinarizationService(...).binarize(...)."""
    return BinarizationService(window_size=window_size, dark_floor=dark_floor,
                              workers=workers).binarize(buffer, width, height)
