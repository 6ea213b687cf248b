from pathlib import Path
from typing import Union, Iterable, Iterator
from io import BytesIO
import logging
import os
import numpy as np
import cv2
import requests
from PIL import Image as PILImage
from dotenv import load_dotenv
from models.image import Image
from models.errors import ImageLoadError

# Load environment variables
load_dotenv()

logger = logging.getLogger(__name__)


class ImageRepository:
    """
    Handles file/network I/O and pixel updates for Image entities.
    Everything returned from here is RGBA uint8.
    """
    def __init__(self):
        self.VALID_EXTS = {
            ext.strip().lower()
            for ext in os.getenv("VALID_IMAGE_EXTENSIONS", ".png,.jpg,.jpeg,.bmp,.gif,.webp").split(",")
        }
        self.fetch_timeout = float(os.getenv("FETCH_TIMEOUT_SECONDS", "10"))

    @staticmethod
    def create_image(pixels: np.ndarray, path: Union[str, Path] = None, source: str = None) -> Image:
        if path is None:
            return Image(pixels, source=source)
        return Image(pixels=pixels, path=Path(path), source=source)

    @staticmethod
    def _to_rgba(arr: np.ndarray) -> np.ndarray:
        """Normalise whatever OpenCV decoded (gray, BGR, BGRA, 16-bit) to RGBA uint8."""
        if arr.dtype == np.uint16:
            arr = (arr >> 8).astype(np.uint8)
        elif arr.dtype != np.uint8:
            raise ImageLoadError(f"Unsupported pixel depth: {arr.dtype}")

        if arr.ndim == 2:
            rgba = cv2.cvtColor(arr, cv2.COLOR_GRAY2RGBA)
        elif arr.shape[2] == 3:
            rgba = cv2.cvtColor(arr, cv2.COLOR_BGR2RGBA)
        elif arr.shape[2] == 4:
            rgba = cv2.cvtColor(arr, cv2.COLOR_BGRA2RGBA)
        else:
            raise ImageLoadError(f"Unsupported channel count: {arr.shape[2]}")
        return np.ascontiguousarray(rgba)

    @classmethod
    def decode_bytes(cls, data: bytes, source: str = None) -> Image:
        """Decode an encoded image (PNG, JPEG, ...) held in memory."""
        if not data:
            raise ImageLoadError(f"Empty image data: {source}")
        arr = cv2.imdecode(np.frombuffer(data, dtype=np.uint8), cv2.IMREAD_UNCHANGED)
        if arr is None:
            raise ImageLoadError(f"Image data could not be decoded: {source}")
        return Image(pixels=cls._to_rgba(arr), source=source)

    @classmethod
    def load(cls, path: Union[str, Path]) -> Image:
        path = Path(path)
        arr = cv2.imread(str(path), cv2.IMREAD_UNCHANGED)
        if arr is None:
            raise ImageLoadError(f"Image not found or unreadable: {path}")
        return Image(pixels=cls._to_rgba(arr), path=path, source=str(path))

    def fetch(self, url: str) -> Image:
        """Download an image over HTTP(S) and decode it."""
        try:
            r = requests.get(url, timeout=self.fetch_timeout)
        except requests.RequestException as err:
            raise ImageLoadError(f"Request for {url} failed: {err}") from err
        if r.status_code != 200:
            raise ImageLoadError(f"Request for {url} returned HTTP {r.status_code}")
        return self.decode_bytes(r.content, source=url)

    @staticmethod
    def save(image: Image) -> None:
        Path(image.path).parent.mkdir(parents=True, exist_ok=True)
        PILImage.fromarray(image.pixels).save(image.path)

    @staticmethod
    def to_png_bytes(image: Image) -> bytes:
        buffer = BytesIO()
        PILImage.fromarray(image.pixels).save(buffer, format="PNG")
        return buffer.getvalue()

    def iter_dir(
        self,
        folder: Union[str, Path],
        *,
        recursive: bool = False,
        exts: Iterable[str] | None = None,
    ) -> Iterator[Image]:
        """
        Yield Image objects one at a time.  Nothing accumulates in memory.
        Unreadable files are logged and skipped.
        """
        folder = Path(folder)
        if not folder.is_dir():
            raise NotADirectoryError(folder)

        allowed = {e.lower() for e in (exts or self.VALID_EXTS)}
        pattern = "**/*" if recursive else "*"

        for p in sorted(folder.glob(pattern)):
            if p.suffix.lower() not in allowed or not p.is_file():
                logger.debug(f"Skipping {p}")
                continue
            try:
                yield self.load(p)
            except ImageLoadError as err:
                logger.warning(f"Skipping {p.name}: {err}")

