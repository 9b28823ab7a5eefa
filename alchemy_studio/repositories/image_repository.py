from __future__ import annotations

from io import BytesIO
from pathlib import Path
from typing import Optional, Union

import cv2
import numpy as np
from PIL import Image as PILImage

from ..models.image import RasterImage


class ImageDecodeError(ValueError):
    """Encoded bytes could not be turned into a raster."""


class ImageRepository:
    """
    Handles file I/O, codec work and resizing for RasterImage entities.
    """

    @staticmethod
    def create_image(pixels: np.ndarray, path: Union[str, Path] = None, name: str = None) -> RasterImage:
        if path is None:
            return RasterImage(pixels=pixels, name=name)
        path = Path(path)
        return RasterImage(pixels=pixels, path=path, name=name or path.name)

    @staticmethod
    def _to_rgba(arr: np.ndarray) -> np.ndarray:
        """OpenCV gray / BGR / BGRA → RGBA uint8."""
        if arr.dtype != np.uint8:
            # 16-bit PNG/TIFF → scale down to bytes
            arr = (arr.astype(np.float64) / np.iinfo(arr.dtype).max * 255).round().astype(np.uint8)
        if arr.ndim == 2:
            return cv2.cvtColor(arr, cv2.COLOR_GRAY2RGBA)
        if arr.shape[2] == 3:
            return cv2.cvtColor(arr, cv2.COLOR_BGR2RGBA)
        return cv2.cvtColor(arr, cv2.COLOR_BGRA2RGBA)

    def load(self, path: Union[str, Path]) -> RasterImage:
        path = Path(path)
        arr = cv2.imread(str(path), cv2.IMREAD_UNCHANGED)
        if arr is None:
            raise FileNotFoundError(f"Image not found or unreadable: {path}")
        return self.create_image(self._to_rgba(arr), path)

    def decode(self, data: bytes, name: Optional[str] = None) -> RasterImage:
        buf = np.frombuffer(data, dtype=np.uint8)
        arr = cv2.imdecode(buf, cv2.IMREAD_UNCHANGED) if buf.size else None
        if arr is None:
            raise ImageDecodeError(f"Could not decode image data ({len(data)} bytes): {name or '<upload>'}")
        return RasterImage(pixels=self._to_rgba(arr), name=name)

    @staticmethod
    def to_pil(image: RasterImage) -> PILImage.Image:
        return PILImage.fromarray(np.ascontiguousarray(image.pixels))

    def encode_png(self, image: RasterImage) -> bytes:
        buffer = BytesIO()
        self.to_pil(image).save(buffer, format="PNG")
        return buffer.getvalue()

    def save(self, image: RasterImage, path: Union[str, Path] = None) -> Path:
        path = Path(path or image.path)
        pil_image = self.to_pil(image)
        if path.suffix.lower() in {".jpg", ".jpeg", ".bmp"}:
            pil_image = pil_image.convert("RGB")
        pil_image.save(path)
        return path

    @staticmethod
    def resize_to_fit(image: RasterImage, max_width: int, max_height: int) -> RasterImage:
        """
        Scale down (never up) so the image fits inside max_width x max_height.
        A non-positive limit disables fitting.
        """
        width, height = image.width, image.height
        if max_width <= 0 or max_height <= 0 or width == 0 or height == 0:
            return image
        if width <= max_width and height <= max_height:
            return image

        ratio = min(max_width / width, max_height / height)
        new_w = max(1, int(width * ratio))
        new_h = max(1, int(height * ratio))
        resized = cv2.resize(image.pixels, (new_w, new_h), interpolation=cv2.INTER_AREA)
        return RasterImage(pixels=resized, path=image.path, name=image.name)
