from concurrent.futures import Future, ThreadPoolExecutor
from pathlib import Path
from typing import Iterable, Iterator, Union
import base64
import logging
import os
import numpy as np
from dotenv import load_dotenv
from models.image import Image
from repositories.image_repository import ImageRepository

# Load environment variables
load_dotenv()

logger = logging.getLogger(__name__)

_LOADER_POOL = ThreadPoolExecutor(
    max_workers=int(os.getenv("LOADER_WORKERS", "4")),
    thread_name_prefix="image-loader",
)


def is_url(source: Union[str, Path]) -> bool:
    return isinstance(source, str) and source.lower().startswith(("http://", "https://"))


class ImageService:
    """I/O helpers.  No binarization or QR logic."""
    def __init__(self):
        self.image_repository = ImageRepository()

    def create_image(self, pixels: np.ndarray, path: Union[str, Path] = None, source: str = None) -> Image:
        return self.image_repository.create_image(pixels, path, source)

    def load(self, path: Union[str, Path]) -> Image:
        """Load a single image from disk into an Image object."""
        return self.image_repository.load(path)

    def fetch(self, url: str) -> Image:
        """Download a single image."""
        return self.image_repository.fetch(url)

    def decode_bytes(self, data: bytes, source: str = None) -> Image:
        return self.image_repository.decode_bytes(data, source=source)

    def acquire(self, source: Union[str, Path]) -> Image:
        """
        Resolve *source* (local path or http(s) URL) to an RGBA Image.

        Raises:
            ImageLoadError: when the image cannot be read, fetched or decoded.
        """
        if is_url(source):
            return self.fetch(source)
        return self.load(source)

    def load_async(self, source: Union[str, Path]) -> "Future[Image]":
        """
        Start acquiring *source* in the background.
        The returned future resolves to an Image or raises ImageLoadError.
        """
        logger.debug(f"Scheduling acquisition of {source}")
        return _LOADER_POOL.submit(self.acquire, source)

    def stream_gallery(
        self,
        folder: Union[str, Path],
        *,
        recursive: bool = False,
        exts: Iterable[str] | None = None,
    ) -> Iterator[Image]:
        """
        Yield images lazily instead of returning a gigantic list.
        """
        return self.image_repository.iter_dir(folder,
                                              recursive=recursive,
                                              exts=exts)

    def save(self, image: Image) -> None:
        """
        Business-level method to save the image to its path.
        """
        self.image_repository.save(image)

    def to_png_bytes(self, image: Image) -> bytes:
        return self.image_repository.to_png_bytes(image)

    def to_base64_png(self, image: Image) -> str:
        """PNG data URL, ready for an <img src=...> or a download link."""
        png = self.to_png_bytes(image)
        return f"data:image/png;base64,{base64.b64encode(png).decode('utf-8')}"
