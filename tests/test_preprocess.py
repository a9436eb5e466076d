"""Tests for contrast stretching, posterisation and denoising."""

from __future__ import annotations

import numpy as np

from bead_mosaic.preprocess import (
    enhance_contrast,
    median_denoise,
    posterize,
    preprocess_image,
    threshold_monochrome,
)


def _make_uniform(h: int, w: int, color, alpha: int = 255) -> np.ndarray:
    pixels = np.zeros((h, w, 4), dtype=np.uint8)
    pixels[:, :, :3] = color
    pixels[:, :, 3] = alpha
    return pixels


def _make_photo_like(size: int = 16) -> np.ndarray:
    """Smooth gradient background with a detailed square in the middle."""
    rng = np.random.RandomState(11)
    pixels = np.zeros((size, size, 4), dtype=np.uint8)
    ramp = np.linspace(40, 200, size).astype(np.uint8)
    pixels[:, :, 0] = ramp[None, :]
    pixels[:, :, 1] = ramp[:, None]
    pixels[:, :, 2] = 120
    lo, hi = size // 4, 3 * size // 4
    pixels[lo:hi, lo:hi, :3] = rng.randint(0, 256, (hi - lo, hi - lo, 3))
    pixels[:, :, 3] = 255
    return pixels


class TestContrast:
    def test_flat_image_unchanged(self):
        pixels = _make_uniform(4, 4, (90, 90, 90))
        assert np.array_equal(enhance_contrast(pixels), pixels)

    def test_stretches_to_full_range(self):
        pixels = _make_uniform(2, 2, (50, 50, 50))
        pixels[1, 1, :3] = 150
        out = enhance_contrast(pixels)
        assert out[0, 0, :3].tolist() == [0, 0, 0]
        assert out[1, 1, :3].tolist() == [255, 255, 255]

    def test_channels_below_darkest_mean_clamp(self):
        pixels = _make_uniform(1, 2, (0, 0, 255))
        pixels[0, 1, :3] = 255
        out = enhance_contrast(pixels)
        assert out[0, 0, :3].tolist() == [0, 0, 255]


class TestPosterize:
    def test_rounds_half_up_to_step(self):
        pixels = _make_uniform(1, 1, (48, 15, 16))
        out = posterize(pixels, np.full((1, 1), 32))
        assert out[0, 0, :3].tolist() == [64, 0, 32]

    def test_clamps_to_255(self):
        pixels = _make_uniform(1, 1, (250, 250, 250))
        out = posterize(pixels, np.full((1, 1), 64))
        assert out[0, 0, :3].tolist() == [255, 255, 255]

    def test_monochrome_threshold(self):
        pixels = _make_uniform(1, 2, (128, 128, 128))
        out = threshold_monochrome(pixels, np.array([[127, 160]]))
        assert out[0, :, 0].tolist() == [255, 0]


class TestDenoise:
    def test_removes_interior_speck(self):
        pixels = _make_uniform(5, 5, (10, 10, 10))
        pixels[2, 2, :3] = 250
        out = median_denoise(pixels)
        assert out[2, 2, :3].tolist() == [10, 10, 10]

    def test_border_untouched(self):
        pixels = _make_uniform(5, 5, (10, 10, 10))
        pixels[0, 0, :3] = 250
        out = median_denoise(pixels)
        assert out[0, 0, :3].tolist() == [250, 250, 250]


class TestPreprocessImage:
    def test_does_not_modify_input_and_keeps_alpha(self):
        pixels = _make_photo_like()
        pixels[0, 0, 3] = 40
        original = pixels.copy()
        out = preprocess_image(pixels, 12)
        assert np.array_equal(pixels, original)
        assert out.shape == pixels.shape
        assert out[0, 0, 3] == 40

    def test_color_modes_are_posterised(self):
        out = preprocess_image(_make_photo_like(), 12)
        values = np.unique(out[:, :, :3])
        assert all(v % 32 == 0 or v == 255 for v in values.tolist())

    def test_monochrome_mode(self):
        out = preprocess_image(_make_photo_like(), 2, denoise=True)
        assert set(np.unique(out[:, :, :3]).tolist()) <= {0, 255}
        assert np.array_equal(out[:, :, 0], out[:, :, 1])
