from __future__ import annotations

import logging
import os
import threading
import uuid
from typing import Dict, Optional

import numpy as np
from dotenv import load_dotenv

from ..models.image import RasterImage
from ..models.session import StudioSession, StudioSettings
from ..models.transform_params import TransformKind, params_for
from .image_service import ImageService
from .pixel_transform_service import PixelTransformService

# Load environment variables
load_dotenv()

logger = logging.getLogger(__name__)


class NoImageLoadedError(RuntimeError):
    """An effect or export was requested before any image was loaded."""


def _env_seed() -> Optional[int]:
    raw = os.getenv("GLITCH_SEED", "").strip()
    return int(raw) if raw else None


class SessionService:
    """
    Keeps studio sessions in memory and runs effects against them.

    *   The loaded image is frozen as the session's original; every effect
        re-renders from it, effects never stack.
    *   Each session owns its glitch generator, spawned from the service's
        seed sequence (``GLITCH_SEED`` when it is set, system entropy
        otherwise), so sessions never share random state.
    *   A session's actions run under its own lock.
    """

    def __init__(self,
                 image_service: Optional[ImageService] = None,
                 transform_service: Optional[PixelTransformService] = None,
                 glitch_seed: Optional[int] = None):
        self.image_service = image_service or ImageService()
        self.transform_service = transform_service or PixelTransformService()
        seed = glitch_seed if glitch_seed is not None else _env_seed()
        self.seed_sequence = np.random.SeedSequence(seed)
        self.default_pixel_size = int(os.getenv("DEFAULT_PIXEL_SIZE", "8"))
        self.default_threshold_level = int(os.getenv("DEFAULT_THRESHOLD_LEVEL", "128"))
        self._sessions: Dict[str, StudioSession] = {}
        self._lock = threading.RLock()

    # ─── Session registry ──────────────────────────────────────────
    def create(self, session_id: Optional[str] = None) -> StudioSession:
        session_id = session_id or str(uuid.uuid4())
        with self._lock:
            child, = self.seed_sequence.spawn(1)
            session = StudioSession(
                session_id=session_id,
                settings=StudioSettings(pixel_size=self.default_pixel_size,
                                        threshold_level=self.default_threshold_level),
                rng=np.random.default_rng(child),
            )
            self._sessions[session_id] = session
        return session

    def get(self, session_id: Optional[str]) -> Optional[StudioSession]:
        if not session_id:
            return None
        return self._sessions.get(session_id)

    def get_or_create(self, session_id: Optional[str] = None) -> StudioSession:
        """Get existing session or create new one."""
        with self._lock:
            return self.get(session_id) or self.create(session_id)

    def drop(self, session_id: str) -> bool:
        with self._lock:
            session = self._sessions.pop(session_id, None)
        if session is None:
            return False
        with session.lock:
            session.clear()
        return True

    def __len__(self) -> int:
        return len(self._sessions)

    # ─── Studio actions ────────────────────────────────────────────
    def load_image(self, session: StudioSession, image: RasterImage) -> RasterImage:
        """Fit *image* to the display area and hold it as the original."""
        original = self.image_service.fit_to_display(image).copy().freeze()
        with session.lock:
            session.original = original
            session.current = original
            session.last_effect = None
        logger.info(f"Session {session.session_id}: loaded {original.width}x{original.height} image")
        return original

    def update_settings(self, session: StudioSession,
                        pixel_size: Optional[int] = None,
                        threshold_level: Optional[int] = None) -> StudioSettings:
        with session.lock:
            session.settings.update(pixel_size=pixel_size, threshold_level=threshold_level)
        return session.settings

    def apply_effect(self, session: StudioSession, kind: TransformKind | str) -> RasterImage:
        """
        Render *kind* from the original with the session's current sliders.

        Raises:
            NoImageLoadedError: nothing has been loaded yet.
            ValueError: *kind* is not a known filter name.
        """
        kind = TransformKind(kind)
        with session.lock:
            if not session.has_image:
                raise NoImageLoadedError("Load an image before applying an effect")

            if session.rng is None:
                with self._lock:
                    session.rng = np.random.default_rng(self.seed_sequence.spawn(1)[0])
            params = params_for(kind, session.settings)
            working = session.original.copy()
            result = self.transform_service.apply_transform(working, params, rng=session.rng)
            session.current = result
            session.last_effect = kind
        logger.info(f"Session {session.session_id}: applied {kind.value}")
        return result

    def reset(self, session: StudioSession) -> RasterImage:
        with session.lock:
            if not session.has_image:
                raise NoImageLoadedError("Nothing to reset; no image loaded")
            session.current = session.original
            session.last_effect = None
            return session.current

    def current_image(self, session: StudioSession) -> RasterImage:
        current = session.current
        if current is None:
            raise NoImageLoadedError("No image loaded")
        return current
