from __future__ import annotations

import base64
import logging
import os
from pathlib import Path
from typing import Optional, Union

import numpy as np
from dotenv import load_dotenv
from PIL import Image as PILImage

from ..models.image import RasterImage
from ..repositories.image_repository import ImageRepository

# Load environment variables
load_dotenv()

logger = logging.getLogger(__name__)


class ImageService:
    """I/O helpers.  No filter logic here."""
    def __init__(self,
                 max_width: Optional[int] = None,
                 max_height: Optional[int] = None):
        # Display area the original studio canvas was limited to
        self.DISPLAY_MAX_WIDTH = int(max_width if max_width is not None
                                     else os.getenv("DISPLAY_MAX_WIDTH", "800"))
        self.DISPLAY_MAX_HEIGHT = int(max_height if max_height is not None
                                      else os.getenv("DISPLAY_MAX_HEIGHT", "400"))
        self.image_repository = ImageRepository()

    def create_image(self, pixels: np.ndarray, path: Union[str, Path] = None) -> RasterImage:
        return self.image_repository.create_image(pixels, path)

    def load(self, path: str | Path) -> RasterImage:
        """Load a single image from disk into a RasterImage object."""
        return self.image_repository.load(path)

    def decode_upload(self, data: bytes, filename: Optional[str] = None) -> RasterImage:
        """Decode an uploaded file body (any format OpenCV reads)."""
        return self.image_repository.decode(data, name=filename)

    def fit_to_display(self, image: RasterImage) -> RasterImage:
        fitted = self.image_repository.resize_to_fit(
            image, self.DISPLAY_MAX_WIDTH, self.DISPLAY_MAX_HEIGHT)
        if fitted is not image:
            logger.info(f"Fitted {image.width}x{image.height} → {fitted.width}x{fitted.height} for display")
        return fitted

    def encode_png(self, image: RasterImage) -> bytes:
        return self.image_repository.encode_png(image)

    def to_data_url(self, image: RasterImage) -> str:
        """Convert RasterImage to a base64 PNG data URL for JSON / HTML."""
        b64 = base64.b64encode(self.encode_png(image)).decode("utf-8")
        return f"data:image/png;base64,{b64}"

    def to_pil_image(self, image: RasterImage) -> PILImage.Image:
        return self.image_repository.to_pil(image)

    def save(self, image: RasterImage, path: Union[str, Path] = None) -> Path:
        """
        Business-level method to save the image to a specific path.
        """
        saved = self.image_repository.save(image, path)
        logger.info(f"Saved {image.width}x{image.height} image to {saved}")
        return saved

    @staticmethod
    def describe(image: RasterImage) -> str:
        """Info-panel text for a freshly loaded image."""
        name = image.name or (image.path.name if image.path else "untitled")
        return f"Image loaded: {name}\nSize: {image.width} × {image.height} pixels"
