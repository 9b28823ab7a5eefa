from __future__ import annotations
import threading
from dataclasses import dataclass, field
from typing import Optional, TYPE_CHECKING

from .image import RasterImage

if TYPE_CHECKING:
    import numpy as np

    from .transform_params import TransformKind


@dataclass
class StudioSettings:
    """
    Value-object holding the two UI sliders.
    """
    pixel_size: int = 8        # [1, ...)
    threshold_level: int = 128 # [0, 255]

    def __post_init__(self):
        self._validate(self.pixel_size, self.threshold_level)

    @staticmethod
    def _validate(pixel_size: int, threshold_level: int) -> None:
        if pixel_size < 1:
            raise ValueError(f"pixel_size must be >= 1, got {pixel_size}")
        if not 0 <= threshold_level <= 255:
            raise ValueError(f"threshold_level must be in [0, 255], got {threshold_level}")

    def update(self, pixel_size: Optional[int] = None, threshold_level: Optional[int] = None) -> None:
        new_pixel_size = self.pixel_size if pixel_size is None else int(pixel_size)
        new_threshold = self.threshold_level if threshold_level is None else int(threshold_level)
        self._validate(new_pixel_size, new_threshold)
        self.pixel_size = new_pixel_size
        self.threshold_level = new_threshold


@dataclass
class StudioSession:
    """Manages state for a single user's studio session."""
    session_id: str
    settings: StudioSettings = field(default_factory=StudioSettings)
    original: Optional[RasterImage] = None # Frozen; every effect re-renders from it.
    current: Optional[RasterImage] = None  # What the display surface shows.
    last_effect: Optional["TransformKind"] = None
    rng: Optional["np.random.Generator"] = field(default=None, repr=False)  # glitch draws
    lock: threading.RLock = field(default_factory=threading.RLock, repr=False, compare=False)

    @property
    def has_image(self) -> bool:
        return self.original is not None

    def clear(self):
        """Clear the image from memory."""
        self.original = None
        self.current = None
        self.last_effect = None
