from __future__ import annotations

import logging
from typing import Optional

import numpy as np

from ..models.image import RasterImage
from ..models.transform_params import (
    AsciiParams,
    ColorReduceParams,
    DitherParams,
    EdgeParams,
    GlitchParams,
    GrayscaleParams,
    InvertParams,
    PixelateParams,
    PosterizeParams,
    ThresholdParams,
    TransformParams,
)
from .ascii_art_service import AsciiArtService

logger = logging.getLogger(__name__)


class PixelTransformService:
    """
    The filter library. Every operation reads a RasterImage and returns a
    *new* RasterImage with the same width/height; inputs are never mutated.
    No I/O here.
    """

    DITHER_CUTOFF: int = 128
    EDGE_MAGNITUDE_THR: float = 50.0
    GLITCH_ROW_THR: float = 0.7   # row perturbed when draw > 0.7
    GLITCH_MAX_SHIFT: int = 10    # shift in [-10, 9]

    def __init__(self, ascii_service: Optional[AsciiArtService] = None):
        self.ascii_service = ascii_service or AsciiArtService()

    # ─── Block / per-pixel filters ────────────────────────────────────
    @staticmethod
    def pixelate(image: RasterImage, block_size: int = 8) -> RasterImage:
        """
        Flat-fill each ``block_size`` tile with its top-left pixel colour.
        Edge tiles are clipped to the image bounds.
        """
        out = image.pixels.copy()
        h, w = image.height, image.width
        if h and w:
            anchors = image.pixels[::block_size, ::block_size, :3]
            tile_rows = np.arange(h)[:, None] // block_size
            tile_cols = np.arange(w)[None, :] // block_size
            out[..., :3] = anchors[tile_rows, tile_cols]
        return image.with_pixels(out)

    @staticmethod
    def threshold(image: RasterImage, level: int = 128) -> RasterImage:
        out = image.pixels.copy()
        value = np.where(image.luma() > level, 255, 0).astype(np.uint8)
        out[..., :3] = value[..., None]
        return image.with_pixels(out)

    @staticmethod
    def posterize(image: RasterImage, levels: int = 4) -> RasterImage:
        """Bucket each channel down: ``floor(v / step) * step``."""
        step = 256 // levels
        out = image.pixels.copy()
        rgb = image.pixels[..., :3].astype(np.int32)
        out[..., :3] = (rgb // step) * step
        return image.with_pixels(out)

    @staticmethod
    def color_reduce(image: RasterImage, levels: int = 3) -> RasterImage:
        """Like posterize but rounds half up to the nearest bucket, capped at 255."""
        step = 256 // levels
        rgb = image.pixels[..., :3].astype(np.float64)
        reduced = np.floor(rgb / step + 0.5) * step
        out = image.pixels.copy()
        out[..., :3] = np.minimum(reduced, 255).astype(np.uint8)
        return image.with_pixels(out)

    @staticmethod
    def grayscale(image: RasterImage) -> RasterImage:
        out = image.pixels.copy()
        # byte store rounds half to even, same as np.rint
        out[..., :3] = np.rint(image.luma()).clip(0, 255).astype(np.uint8)[..., None]
        return image.with_pixels(out)

    @staticmethod
    def invert(image: RasterImage) -> RasterImage:
        out = image.pixels.copy()
        out[..., :3] = 255 - image.pixels[..., :3]
        return image.with_pixels(out)

    # ─── Sequential filters ───────────────────────────────────────────
    @classmethod
    def dither(cls, image: RasterImage) -> RasterImage:
        """
        1-bit dither with half the quantisation error pushed onto the *next*
        pixel's red channel only (row-major, wrapping across rows).
        The cut-off is fixed at 128.
        """
        out = image.pixels.copy()
        flat = out.reshape(-1, 4)
        n = flat.shape[0]
        red = flat[:, 0].astype(np.float64).tolist()
        green = flat[:, 1].tolist()
        blue = flat[:, 2].tolist()
        binarized = [0] * n

        for i in range(n):
            gray = red[i] * 0.299 + green[i] * 0.587 + blue[i] * 0.114
            value = 255 if gray > cls.DITHER_CUTOFF else 0
            binarized[i] = value
            if i + 1 < n:
                spread = red[i + 1] + (gray - value) * 0.5
                # clamped byte store, ties to even
                red[i + 1] = round(min(255.0, max(0.0, spread)))

        flat[:, :3] = np.asarray(binarized, dtype=np.uint8)[:, None]
        return image.with_pixels(out)

    @classmethod
    def glitch(cls, image: RasterImage, rng: Optional[np.random.Generator] = None) -> RasterImage:
        """
        Random per-row red/green channel shift.

        Each substituted channel is read from the row *as it is being
        rewritten*, so negative shifts smear left-to-right.
        """
        if rng is None:
            rng = np.random.default_rng()
        out = image.pixels.copy()
        width = image.width
        if width == 0:
            return image.with_pixels(out)

        for y in range(image.height):
            if rng.random() <= cls.GLITCH_ROW_THR:
                continue
            shift = int(np.floor(rng.random() * 2 * cls.GLITCH_MAX_SHIFT)) - cls.GLITCH_MAX_SHIFT
            coins = rng.random(width) > 0.5
            row = out[y]
            for x in range(width):
                src = min(width - 1, max(0, x + shift))
                channel = 0 if coins[x] else 1
                row[x, channel] = row[src, channel]
        return image.with_pixels(out)

    # ─── Neighbourhood filters ────────────────────────────────────────
    @classmethod
    def edge_detect(cls, image: RasterImage) -> RasterImage:
        """
        3x3 luma gradient on interior pixels; white where the magnitude
        exceeds 50. The 1-pixel border is never computed and stays black.
        """
        h, w = image.height, image.width
        edges = np.zeros((h, w), dtype=np.uint8)
        if h >= 3 and w >= 3:
            lum = image.luma()
            right = lum[:-2, 2:] + lum[1:-1, 2:] + lum[2:, 2:]
            left = lum[:-2, :-2] + lum[1:-1, :-2] + lum[2:, :-2]
            below = lum[2:, :-2] + lum[2:, 1:-1] + lum[2:, 2:]
            above = lum[:-2, :-2] + lum[:-2, 1:-1] + lum[:-2, 2:]
            gx = right - left
            gy = below - above
            magnitude = np.sqrt(gx * gx + gy * gy)
            edges[1:-1, 1:-1] = np.where(magnitude > cls.EDGE_MAGNITUDE_THR, 255, 0)
        out = image.pixels.copy()
        out[..., :3] = edges[..., None]
        return image.with_pixels(out)

    def ascii_art(
            self,
            image: RasterImage,
            foreground=(0, 0, 0),
            background=(0, 255, 0),
    ) -> RasterImage:
        """Rasterized character grid on an opaque canvas of the same size."""
        return image.with_pixels(self.ascii_service.render(image, foreground, background))

    # ─── Dispatch ─────────────────────────────────────────────────────
    def apply_transform(
            self,
            image: RasterImage,
            params: TransformParams,
            rng: Optional[np.random.Generator] = None,
    ) -> RasterImage:
        """
        Run the filter selected by *params* on *image*.

        ``rng`` is only consulted by glitch; when it is omitted the generator
        is seeded from ``params.seed`` (system entropy if that is None).
        """
        logger.debug("Applying %s to %dx%d image", type(params).__name__, image.width, image.height)

        if isinstance(params, PixelateParams):
            return self.pixelate(image, params.block_size)
        if isinstance(params, ThresholdParams):
            return self.threshold(image, params.level)
        if isinstance(params, AsciiParams):
            return self.ascii_art(image, params.foreground, params.background)
        if isinstance(params, PosterizeParams):
            return self.posterize(image, params.levels)
        if isinstance(params, DitherParams):
            return self.dither(image)
        if isinstance(params, GrayscaleParams):
            return self.grayscale(image)
        if isinstance(params, InvertParams):
            return self.invert(image)
        if isinstance(params, ColorReduceParams):
            return self.color_reduce(image, params.levels)
        if isinstance(params, EdgeParams):
            return self.edge_detect(image)
        if isinstance(params, GlitchParams):
            return self.glitch(image, rng or np.random.default_rng(params.seed))
        raise TypeError(f"Unsupported transform parameters: {params!r}")
