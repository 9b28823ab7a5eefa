from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
from typing import ClassVar, Optional, Tuple, Union

from .session import StudioSettings


class TransformKind(str, Enum):
    """Closed set of filters; values are the names the UI sends."""
    PIXELATE = "pixelate"
    THRESHOLD = "threshold"
    ASCII = "ascii"
    POSTERIZE = "posterize"
    DITHER = "dither"
    GRAYSCALE = "grayscale"
    INVERT = "invert"
    COLOR_REDUCE = "colorReduce"
    EDGE = "edge"
    GLITCH = "glitch"


def _check_levels(levels: int) -> None:
    # step = 256 // levels must stay >= 1
    if not 1 <= levels <= 256:
        raise ValueError(f"levels must be in [1, 256], got {levels}")


@dataclass(frozen=True)
class PixelateParams:
    kind: ClassVar[TransformKind] = TransformKind.PIXELATE
    block_size: int = 8

    def __post_init__(self):
        if self.block_size < 1:
            raise ValueError(f"block_size must be >= 1, got {self.block_size}")


@dataclass(frozen=True)
class ThresholdParams:
    kind: ClassVar[TransformKind] = TransformKind.THRESHOLD
    level: int = 128

    def __post_init__(self):
        if not 0 <= self.level <= 255:
            raise ValueError(f"threshold level must be in [0, 255], got {self.level}")


@dataclass(frozen=True)
class AsciiParams:
    kind: ClassVar[TransformKind] = TransformKind.ASCII
    foreground: Tuple[int, int, int] = (0, 0, 0)
    background: Tuple[int, int, int] = (0, 255, 0)


@dataclass(frozen=True)
class PosterizeParams:
    kind: ClassVar[TransformKind] = TransformKind.POSTERIZE
    levels: int = 4

    def __post_init__(self):
        _check_levels(self.levels)


@dataclass(frozen=True)
class DitherParams:
    kind: ClassVar[TransformKind] = TransformKind.DITHER


@dataclass(frozen=True)
class GrayscaleParams:
    kind: ClassVar[TransformKind] = TransformKind.GRAYSCALE


@dataclass(frozen=True)
class InvertParams:
    kind: ClassVar[TransformKind] = TransformKind.INVERT


@dataclass(frozen=True)
class ColorReduceParams:
    kind: ClassVar[TransformKind] = TransformKind.COLOR_REDUCE
    levels: int = 3

    def __post_init__(self):
        _check_levels(self.levels)


@dataclass(frozen=True)
class EdgeParams:
    kind: ClassVar[TransformKind] = TransformKind.EDGE


@dataclass(frozen=True)
class GlitchParams:
    """``seed=None`` draws from system entropy."""
    kind: ClassVar[TransformKind] = TransformKind.GLITCH
    seed: Optional[int] = None


TransformParams = Union[
    PixelateParams, ThresholdParams, AsciiParams, PosterizeParams, DitherParams,
    GrayscaleParams, InvertParams, ColorReduceParams, EdgeParams, GlitchParams,
]

_DEFAULTS = {
    TransformKind.ASCII: AsciiParams,
    TransformKind.POSTERIZE: PosterizeParams,
    TransformKind.DITHER: DitherParams,
    TransformKind.GRAYSCALE: GrayscaleParams,
    TransformKind.INVERT: InvertParams,
    TransformKind.COLOR_REDUCE: ColorReduceParams,
    TransformKind.EDGE: EdgeParams,
}


def params_for(
        kind: TransformKind,
        settings: StudioSettings,
        glitch_seed: Optional[int] = None,
) -> TransformParams:
    """
    Build the parameter object for *kind* from the studio sliders.

    Only pixelate and threshold read the sliders; dither keeps its fixed
    128 cut-off regardless of ``settings.threshold_level``.
    """
    kind = TransformKind(kind)
    if kind is TransformKind.PIXELATE:
        return PixelateParams(block_size=settings.pixel_size)
    if kind is TransformKind.THRESHOLD:
        return ThresholdParams(level=settings.threshold_level)
    if kind is TransformKind.GLITCH:
        return GlitchParams(seed=glitch_seed)
    return _DEFAULTS[kind]()
