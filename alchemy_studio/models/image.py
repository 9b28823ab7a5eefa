from __future__ import annotations
from dataclasses import dataclass
from pathlib import Path
import numpy as np


CHANNELS = 4  # R, G, B, A


class RasterBufferError(ValueError):
    """Pixel buffer does not match the declared raster dimensions."""


@dataclass
class RasterImage:
    """
    Simple data object: RGBA pixels (+ optional source path / display name).
    No OpenCV or Pillow logic outside the repository layer.
    """
    pixels: np.ndarray # Shape (H, W, 4), dtype uint8, RGBA order.
    path: Path | None = None # Source of the image.
    name: str | None = None # Display name shown in the info panel.

    def __post_init__(self):
        pixels = self.pixels
        if not isinstance(pixels, np.ndarray):
            raise RasterBufferError(f"pixels must be a numpy array, got {type(pixels).__name__}")
        if pixels.dtype != np.uint8:
            raise RasterBufferError(f"pixels must be uint8, got {pixels.dtype}")
        if pixels.ndim != 3 or pixels.shape[2] != CHANNELS:
            raise RasterBufferError(f"pixels must have shape (H, W, 4), got {pixels.shape}")

    @property
    def width(self) -> int:
        return int(self.pixels.shape[1])

    @property
    def height(self) -> int:
        return int(self.pixels.shape[0])

    @property
    def size(self) -> tuple[int, int]:
        return self.width, self.height

    @classmethod
    def from_buffer(cls, width: int, height: int, buffer, **kwargs) -> RasterImage:
        """
        Build a raster from a flat row-major RGBA byte sequence.

        Raises:
            RasterBufferError: if ``len(buffer) != width * height * 4``.
        """
        if width < 0 or height < 0:
            raise RasterBufferError(f"Negative raster dimensions: {width}x{height}")
        expected = width * height * CHANNELS
        flat = np.frombuffer(bytes(buffer), dtype=np.uint8)
        if flat.size != expected:
            raise RasterBufferError(
                f"Buffer holds {flat.size} bytes, {width}x{height} RGBA needs {expected}"
            )
        return cls(pixels=flat.reshape(height, width, CHANNELS).copy(), **kwargs)

    @classmethod
    def blank(cls, width: int, height: int, color=(0, 0, 0, 255)) -> RasterImage:
        pixels = np.empty((height, width, CHANNELS), dtype=np.uint8)
        pixels[...] = color
        return cls(pixels=pixels)

    def luma(self) -> np.ndarray:
        """
        BT.601 luma per pixel, float64 of shape (H, W). Alpha is ignored.
        """
        rgb = self.pixels[..., :3].astype(np.float64)
        return rgb[..., 0] * 0.299 + rgb[..., 1] * 0.587 + rgb[..., 2] * 0.114

    def to_buffer(self) -> bytes:
        return np.ascontiguousarray(self.pixels).tobytes()

    def copy(self) -> RasterImage:
        """Fresh, writable working copy (pixels are never shared)."""
        return RasterImage(pixels=self.pixels.copy(), path=self.path, name=self.name)

    def with_pixels(self, pixels: np.ndarray) -> RasterImage:
        return RasterImage(pixels=pixels, path=self.path, name=self.name)

    def freeze(self) -> RasterImage:
        """Mark the pixel array read-only; used for the held original."""
        self.pixels.flags.writeable = False
        return self
