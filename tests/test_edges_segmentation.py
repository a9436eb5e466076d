"""Tests for the Sobel edge map and edge-density subject mask."""

from __future__ import annotations

import math

import numpy as np
import pytest

from bead_mosaic.edges import detect_edges, luma, sobel_magnitude
from bead_mosaic.segmentation import edge_density, identify_subject


# ---------------------------------------------------------------------------
# Synthetic image helpers
# ---------------------------------------------------------------------------


def _make_uniform(size: int = 16, color=(120, 60, 200)) -> np.ndarray:
    pixels = np.zeros((size, size, 4), dtype=np.uint8)
    pixels[:, :, :3] = color
    pixels[:, :, 3] = 255
    return pixels


def _make_split(size: int = 20) -> np.ndarray:
    """Black left half, white right half (boundary between columns 9 and 10)."""
    pixels = _make_uniform(size, (0, 0, 0))
    pixels[:, size // 2:, :3] = 255
    return pixels


class TestEdges:
    def test_luma_is_plain_mean(self):
        pixels = _make_uniform(3, (30, 60, 90))
        assert np.allclose(luma(pixels), 60.0)

    def test_uniform_has_no_edges(self):
        assert not detect_edges(_make_uniform()).any()

    def test_tiny_image_has_no_edges(self):
        pixels = np.zeros((2, 2, 4), dtype=np.uint8)
        pixels[0, 0, :3] = 255
        assert sobel_magnitude(luma(pixels)).shape == (2, 2)
        assert not detect_edges(pixels).any()

    def test_vertical_boundary(self):
        edges = detect_edges(_make_split())
        assert set(np.unique(edges).tolist()) <= {0, 255}
        assert edges[5, 9] == 255
        assert edges[5, 10] == 255
        assert edges[5, 0] == 0
        assert edges[5, 15] == 0

    def test_border_is_never_an_edge(self):
        edges = detect_edges(_make_split())
        assert not edges[0, :].any()
        assert not edges[-1, :].any()
        assert not edges[:, 0].any()
        assert not edges[:, -1].any()

    def test_step_magnitude(self):
        # 255 step: the two columns touching it see |gx| = 4 * 255
        mag = sobel_magnitude(luma(_make_split()))
        assert mag[5, 9] == pytest.approx(1020.0)
        assert mag[5, 10] == pytest.approx(1020.0)
        assert mag[5, 5] == 0.0

    def test_ramp_magnitude(self):
        yy, xx = np.mgrid[0:5, 0:5]
        mag = sobel_magnitude((xx + 2 * yy).astype(np.float64))
        assert mag[2, 2] == pytest.approx(math.hypot(8.0, 16.0))
        assert not mag[0, :].any()
        assert not mag[:, -1].any()


class TestSubject:
    def test_uniform_image_has_empty_subject(self):
        mask = identify_subject(detect_edges(_make_uniform()))
        assert mask.dtype == np.uint8
        assert not mask.any()

    def test_density_window_is_clipped(self):
        edges = np.full((5, 5), 255, dtype=np.uint8)
        density = edge_density(edges, radius=5)
        assert density[0, 0] == 25
        assert density[2, 2] == 25

    def test_subject_follows_boundary(self):
        mask = identify_subject(detect_edges(_make_split()))
        assert set(np.unique(mask).tolist()) <= {0, 1}
        assert mask[10, 10] == 1
        # seeds reach 5 columns from the edges, dilation 3 more
        assert mask[10, 1] == 1
        assert mask[10, 0] == 0
        assert mask[10, 18] == 1
        assert mask[10, 19] == 0

    def test_sparse_edges_are_not_subject(self):
        edges = np.zeros((20, 20), dtype=np.uint8)
        edges[10, 10] = 255
        edges[2, 2] = 255
        assert not identify_subject(edges).any()
