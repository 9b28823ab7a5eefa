import numpy as np
import pytest

from alchemy_studio.models.image import RasterBufferError, RasterImage


def test_from_buffer_row_major_rgba():
    buf = bytes([1, 2, 3, 4, 5, 6, 7, 8, 9, 10, 11, 12])
    img = RasterImage.from_buffer(3, 1, buf)
    assert img.size == (3, 1)
    assert img.pixels[0, 1].tolist() == [5, 6, 7, 8]
    assert img.to_buffer() == buf


def test_from_buffer_length_mismatch_fails_fast():
    with pytest.raises(RasterBufferError, match="needs 16"):
        RasterImage.from_buffer(2, 2, bytes(15))


@pytest.mark.parametrize("pixels", [
    np.zeros((2, 2, 3), dtype=np.uint8),
    np.zeros((2, 2, 4), dtype=np.float32),
    np.zeros((8,), dtype=np.uint8),
])
def test_rejects_malformed_pixels(pixels):
    with pytest.raises(RasterBufferError):
        RasterImage(pixels=pixels)


def test_empty_image_is_well_formed():
    img = RasterImage.from_buffer(0, 0, b"")
    assert img.size == (0, 0)
    assert img.to_buffer() == b""


def test_freeze_and_copy():
    img = RasterImage.blank(2, 2, color=(1, 2, 3, 4)).freeze()
    with pytest.raises(ValueError):
        img.pixels[0, 0, 0] = 9

    working = img.copy()
    working.pixels[0, 0, 0] = 9
    assert img.pixels[0, 0, 0] == 1


def test_luma_ignores_alpha():
    img = RasterImage.from_buffer(2, 1, bytes([255, 0, 0, 0, 255, 0, 0, 255]))
    luma = img.luma()
    assert luma.shape == (1, 2)
    assert luma[0, 0] == pytest.approx(76.245)
    assert luma[0, 1] == pytest.approx(76.245)
