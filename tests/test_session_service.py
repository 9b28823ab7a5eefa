import numpy as np
import pytest

from alchemy_studio.models.image import RasterImage
from alchemy_studio.models.transform_params import TransformKind
from alchemy_studio.services.image_service import ImageService
from alchemy_studio.services.pixel_transform_service import PixelTransformService
from alchemy_studio.services.session_service import NoImageLoadedError, SessionService


@pytest.fixture
def session_service() -> SessionService:
    return SessionService(image_service=ImageService(max_width=800, max_height=400), glitch_seed=11)


@pytest.fixture
def loaded(session_service, noisy_image):
    session = session_service.create()
    session_service.load_image(session, noisy_image)
    return session


class TestRegistry:

    def test_create_get_drop(self, session_service):
        session = session_service.create()
        assert session_service.get(session.session_id) is session
        assert session_service.get_or_create(session.session_id) is session
        assert len(session_service) == 1

        assert session_service.drop(session.session_id)
        assert session_service.get(session.session_id) is None
        assert not session_service.drop(session.session_id)

    def test_unknown_or_missing_id(self, session_service):
        assert session_service.get(None) is None
        assert session_service.get("nope") is None
        created = session_service.get_or_create("fixed-id")
        assert created.session_id == "fixed-id"

    def test_default_sliders(self, session_service):
        settings = session_service.create().settings
        assert (settings.pixel_size, settings.threshold_level) == (8, 128)


class TestStudioActions:

    def test_load_freezes_original_copy(self, session_service, noisy_image):
        session = session_service.create()
        original = session_service.load_image(session, noisy_image)

        assert session.current is session.original is original
        assert not original.pixels.flags.writeable
        # caller's raster is left writable
        assert noisy_image.pixels.flags.writeable
        assert session.last_effect is None

    def test_effects_render_from_original(self, session_service, loaded, noisy_image):
        session_service.apply_effect(loaded, TransformKind.INVERT)
        second = session_service.apply_effect(loaded, "invert")

        expected = PixelTransformService.invert(noisy_image)
        np.testing.assert_array_equal(second.pixels, expected.pixels)
        np.testing.assert_array_equal(loaded.original.pixels, noisy_image.pixels)
        assert loaded.last_effect is TransformKind.INVERT

    def test_sliders_reach_pixelate_and_threshold(self, session_service, loaded, noisy_image):
        session_service.update_settings(loaded, pixel_size=4, threshold_level=10)

        pixelated = session_service.apply_effect(loaded, TransformKind.PIXELATE)
        np.testing.assert_array_equal(pixelated.pixels, PixelTransformService.pixelate(noisy_image, 4).pixels)

        thresholded = session_service.apply_effect(loaded, TransformKind.THRESHOLD)
        np.testing.assert_array_equal(thresholded.pixels, PixelTransformService.threshold(noisy_image, 10).pixels)

    def test_dither_ignores_threshold_slider(self, session_service, loaded, noisy_image):
        session_service.update_settings(loaded, threshold_level=5)
        dithered = session_service.apply_effect(loaded, TransformKind.DITHER)
        np.testing.assert_array_equal(dithered.pixels, PixelTransformService.dither(noisy_image).pixels)

    def test_reset_restores_original(self, session_service, loaded):
        session_service.apply_effect(loaded, TransformKind.EDGE)
        restored = session_service.reset(loaded)
        assert restored is loaded.original
        assert loaded.last_effect is None

    def test_no_image_loaded(self, session_service):
        session = session_service.create()
        with pytest.raises(NoImageLoadedError):
            session_service.apply_effect(session, TransformKind.INVERT)
        with pytest.raises(NoImageLoadedError):
            session_service.reset(session)
        with pytest.raises(NoImageLoadedError):
            session_service.current_image(session)

    def test_unknown_filter(self, session_service, loaded):
        with pytest.raises(ValueError):
            session_service.apply_effect(loaded, "sepia")

    def test_large_images_fitted_to_display(self):
        service = SessionService(image_service=ImageService(max_width=4, max_height=4))
        session = service.create()
        original = service.load_image(session, RasterImage.blank(8, 2))
        assert original.size == (4, 1)

    def test_glitch_reproducible_with_same_seed(self, noisy_image):
        outputs = []
        for _ in range(2):
            service = SessionService(image_service=ImageService(max_width=0, max_height=0), glitch_seed=21)
            session = service.create()
            service.load_image(session, noisy_image)
            outputs.append(service.apply_effect(session, TransformKind.GLITCH).pixels)
        np.testing.assert_array_equal(outputs[0], outputs[1])

    def test_glitch_seed_from_environment(self, monkeypatch, noisy_image):
        monkeypatch.setenv("GLITCH_SEED", "8")
        a = SessionService(image_service=ImageService(max_width=0, max_height=0))
        b = SessionService(image_service=ImageService(max_width=0, max_height=0))
        results = []
        for service in (a, b):
            session = service.create()
            service.load_image(session, noisy_image)
            results.append(service.apply_effect(session, TransformKind.GLITCH).pixels)
        np.testing.assert_array_equal(results[0], results[1])


class TestGlitchGenerators:

    @staticmethod
    def _service():
        return SessionService(image_service=ImageService(max_width=0, max_height=0), glitch_seed=21)

    def test_each_session_owns_its_generator(self):
        service = self._service()
        a, b = service.create(), service.create()
        assert a.rng is not None and b.rng is not None
        assert a.rng is not b.rng

    def test_other_sessions_do_not_consume_draws(self, noisy_image):
        quiet = self._service()
        first = quiet.create()
        quiet.load_image(first, noisy_image)
        expected = quiet.apply_effect(first, TransformKind.GLITCH).pixels

        busy = self._service()
        first = busy.create()
        other = busy.create()
        busy.load_image(first, noisy_image)
        busy.load_image(other, noisy_image)
        for _ in range(3):
            busy.apply_effect(other, TransformKind.GLITCH)
        np.testing.assert_array_equal(busy.apply_effect(first, TransformKind.GLITCH).pixels, expected)

    def test_concurrent_glitches_match_sequential_runs(self, noisy_image):
        from concurrent.futures import ThreadPoolExecutor

        def run(service, sessions):
            with ThreadPoolExecutor(max_workers=len(sessions)) as pool:
                futures = [pool.submit(service.apply_effect, s, TransformKind.GLITCH) for s in sessions]
                return [f.result().pixels for f in futures]

        sequential = self._service()
        seq_sessions = [sequential.create() for _ in range(4)]
        for s in seq_sessions:
            sequential.load_image(s, noisy_image)
        expected = [sequential.apply_effect(s, TransformKind.GLITCH).pixels for s in seq_sessions]

        threaded = self._service()
        sessions = [threaded.create() for _ in range(4)]
        for s in sessions:
            threaded.load_image(s, noisy_image)
        for got, want in zip(run(threaded, sessions), expected):
            np.testing.assert_array_equal(got, want)
