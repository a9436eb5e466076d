"""Tests for sRGB -> Lab conversion and weighted distances."""

from __future__ import annotations

import math

import numpy as np
import pytest

from bead_mosaic.color_space import (
    BEAD_WEIGHTS,
    MATCHER_WEIGHTS,
    lab_distance,
    rgb_to_lab,
    rgb_to_lab_array,
)


class TestRgbToLab:
    def test_white(self):
        lab = rgb_to_lab(255, 255, 255)
        assert lab.L == pytest.approx(100.0, abs=0.05)
        assert lab.a == pytest.approx(0.0, abs=0.05)
        assert lab.b == pytest.approx(0.0, abs=0.05)

    def test_black(self):
        lab = rgb_to_lab(0, 0, 0)
        assert lab.L == pytest.approx(0.0, abs=1e-6)
        assert lab.a == pytest.approx(0.0, abs=1e-6)
        assert lab.b == pytest.approx(0.0, abs=1e-6)

    def test_pure_red(self):
        lab = rgb_to_lab(255, 0, 0)
        assert lab.L == pytest.approx(53.2, abs=0.1)
        assert lab.a == pytest.approx(80.1, abs=0.2)
        assert lab.b == pytest.approx(67.2, abs=0.2)

    def test_grey_is_neutral(self):
        lab = rgb_to_lab(128, 128, 128)
        assert 0 < lab.L < 100
        assert abs(lab.a) < 0.1
        assert abs(lab.b) < 0.1

    def test_array_matches_scalar(self):
        colors = np.array([[[255, 0, 0], [0, 255, 0]], [[0, 0, 255], [12, 200, 90]]], dtype=np.uint8)
        lab = rgb_to_lab_array(colors)
        assert lab.shape == (2, 2, 3)
        for y in range(2):
            for x in range(2):
                expected = rgb_to_lab(*colors[y, x].tolist())
                assert lab[y, x] == pytest.approx(tuple(expected))


class TestLabDistance:
    def test_identical_is_zero(self):
        lab = rgb_to_lab(12, 34, 56)
        assert lab_distance(lab, lab) == 0.0

    def test_symmetric(self):
        c1 = rgb_to_lab(200, 30, 40)
        c2 = rgb_to_lab(10, 220, 90)
        assert lab_distance(c1, c2) == pytest.approx(lab_distance(c2, c1))
        assert lab_distance(c1, c2, MATCHER_WEIGHTS) == pytest.approx(
            lab_distance(c2, c1, MATCHER_WEIGHTS))

    def test_weights_apply_to_squared_deltas(self):
        assert lab_distance((1, 0, 0), (0, 0, 0), BEAD_WEIGHTS) == pytest.approx(1.0)
        assert lab_distance((0, 1, 0), (0, 0, 0), BEAD_WEIGHTS) == pytest.approx(math.sqrt(1.5))
        assert lab_distance((0, 1, 0), (0, 0, 0), MATCHER_WEIGHTS) == pytest.approx(1.8)
