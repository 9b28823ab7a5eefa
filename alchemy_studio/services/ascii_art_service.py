from __future__ import annotations

import logging
from typing import List, Optional, Tuple

import numpy as np
from PIL import Image as PILImage, ImageDraw, ImageFont

from ..models.image import RasterImage

logger = logging.getLogger(__name__)


class AsciiArtService:
    """
    Character-grid sampling + monospace text rasterizing for the ASCII filter.

    * Glyph ramp is ordered darkest to lightest.
    * Sample stride, font size, line pitch and x-offset are fixed.
    """

    RAMP: str = "@%#*+=-:. "
    SAMPLE_STRIDE: int = 6
    FONT_SIZE: int = 8
    LINE_PITCH: int = 10
    X_OFFSET: int = 2

    # bold monospace faces tried in order; Pillow searches the system font dirs
    MONOSPACE_FONTS: Tuple[str, ...] = (
        "DejaVuSansMono-Bold.ttf",
        "DejaVuSansMono.ttf",
        "LiberationMono-Bold.ttf",
        "LiberationMono-Regular.ttf",
        "Menlo.ttc",
        "/System/Library/Fonts/Menlo.ttc",
        "courbd.ttf",
        "cour.ttf",
        "Courier New Bold.ttf",
        "Courier New.ttf",
    )

    _font = None
    _font_name: Optional[str] = None
    _cell_width = None

    @classmethod
    def font(cls):
        if cls._font is None:
            for name in cls.MONOSPACE_FONTS:
                try:
                    cls._font = ImageFont.truetype(name, cls.FONT_SIZE)
                    cls._font_name = name
                    logger.info(f"ASCII font: {name}")
                    break
                except OSError:
                    continue
            else:
                logger.warning("No monospace font found, using Pillow's default font on a fixed grid")
                cls._font = ImageFont.load_default(size=cls.FONT_SIZE)
        return cls._font

    @classmethod
    def font_name(cls) -> Optional[str]:
        """The monospace face in use, None when on Pillow's default font."""
        cls.font()
        return cls._font_name

    @classmethod
    def cell_width(cls) -> int:
        """Horizontal advance of one grid column: the widest ramp glyph, whole pixels."""
        if cls._cell_width is None:
            font = cls.font()
            widest = max(font.getlength(ch) for ch in cls.RAMP)
            cls._cell_width = max(1, int(np.ceil(widest)))
        return cls._cell_width

    # ---------- sampling ----------
    def grid(self, image: RasterImage) -> List[str]:
        """
        One string per sampled row, ``ceil(h/6)`` rows of ``ceil(w/6)`` glyphs.
        """
        stride = self.SAMPLE_STRIDE
        samples = image.luma()[::stride, ::stride]
        indices = np.floor(samples / 255 * (len(self.RAMP) - 1)).astype(np.intp)
        return ["".join(self.RAMP[i] for i in row) for row in indices]

    def render_text(self, image: RasterImage) -> str:
        return "\n".join(self.grid(image))

    # ---------- rasterizing ----------
    def rasterize(
            self,
            lines: List[str],
            width: int,
            height: int,
            foreground: Tuple[int, int, int],
            background: Tuple[int, int, int],
    ) -> np.ndarray:
        """
        Paint *lines* onto an opaque ``background`` canvas of the given size.
        Row ``i`` sits on baseline ``(i + 1) * LINE_PITCH``; column ``j``
        starts at ``X_OFFSET + j * cell_width()`` whatever the font's own
        advances are, so the columns always line up.
        """
        bg = (*background, 255)
        if width == 0 or height == 0:
            out = np.empty((height, width, 4), dtype=np.uint8)
            out[...] = bg
            return out

        canvas = PILImage.new("RGBA", (width, height), bg)
        draw = ImageDraw.Draw(canvas)
        font = self.font()
        cell = self.cell_width()
        anchored = isinstance(font, ImageFont.FreeTypeFont)
        fill = (*foreground, 255)
        for i, line in enumerate(lines):
            baseline = (i + 1) * self.LINE_PITCH
            if baseline - self.LINE_PITCH >= height:
                break
            for j, ch in enumerate(line):
                x = self.X_OFFSET + j * cell
                if x >= width:
                    break
                if ch == " ":
                    continue
                if anchored:
                    draw.text((x, baseline), ch, fill=fill, font=font, anchor="ls")
                else:
                    # bitmap fallback font has no anchor support
                    draw.text((x, baseline - self.FONT_SIZE), ch, fill=fill, font=font)
        return np.array(canvas, dtype=np.uint8)

    def render(
            self,
            image: RasterImage,
            foreground: Tuple[int, int, int] = (0, 0, 0),
            background: Tuple[int, int, int] = (0, 255, 0),
    ) -> np.ndarray:
        lines = self.grid(image)
        logger.debug("ASCII grid %dx%d for %dx%d image",
                     len(lines[0]) if lines else 0, len(lines), image.width, image.height)
        return self.rasterize(lines, image.width, image.height, foreground, background)
