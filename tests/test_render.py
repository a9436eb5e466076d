"""Tests for bead sheet rendering and region diagnostics."""

from __future__ import annotations

import numpy as np
import pytest
from PIL import Image

from bead_mosaic.config import Tier
from bead_mosaic.diagnostics import TIER_COLORS, render_tier_map, save_region_debug
from bead_mosaic.regions import analyze_regions
from bead_mosaic.render import SHEET_BACKGROUND, render_bead_sheet, save_bead_sheet, upscale_nearest


def _make_board() -> np.ndarray:
    board = np.zeros((2, 3, 4), dtype=np.uint8)
    board[0, 0, :3] = (255, 0, 0)
    board[0, 1, :3] = (0, 0, 255)
    board[1, 2, :3] = (0, 255, 0)
    board[:, :, 3] = 255
    return board


class TestBeadSheet:
    def test_shape(self):
        sheet = render_bead_sheet(_make_board(), bead_size=20)
        assert sheet.shape == (40, 60, 3)
        assert sheet.dtype == np.uint8

    def test_bead_body_and_background(self):
        sheet = render_bead_sheet(_make_board(), bead_size=20)
        # right of the centre hole, inside the bead
        assert sheet[10, 15].tolist() == [255, 0, 0]
        assert sheet[10, 35].tolist() == [0, 0, 255]
        assert sheet[30, 55].tolist() == [0, 255, 0]
        # cell corner lies outside the circle
        assert sheet[0, 0].tolist() == list(SHEET_BACKGROUND)

    def test_transparent_cells_show_background(self):
        board = _make_board()
        board[0, 0, 3] = 0
        sheet = render_bead_sheet(board, bead_size=20)
        assert sheet[10, 15].tolist() == list(SHEET_BACKGROUND)

    def test_small_bead_size_rejected(self):
        with pytest.raises(ValueError):
            render_bead_sheet(_make_board(), bead_size=2)

    def test_save(self, tmp_path):
        path = save_bead_sheet(_make_board(), tmp_path / "sheets" / "board.png", bead_size=10)
        with Image.open(path) as img:
            assert img.size == (30, 20)

    def test_upscale_nearest(self):
        big = upscale_nearest(_make_board(), 4)
        assert big.shape == (8, 12, 4)
        assert big[3, 3, :3].tolist() == [255, 0, 0]
        with pytest.raises(ValueError):
            upscale_nearest(_make_board(), 0)


class TestDiagnostics:
    def test_tier_map_colors(self):
        tiers = np.array([[Tier.BACKGROUND, Tier.SUBJECT], [Tier.FACE, Tier.EYE]], dtype=np.uint8)
        rgb = render_tier_map(tiers)
        assert rgb.shape == (2, 2, 3)
        assert tuple(rgb[1, 1]) == TIER_COLORS[Tier.EYE]
        assert tuple(rgb[0, 0]) == TIER_COLORS[Tier.BACKGROUND]

    def test_save_region_debug(self, tmp_path):
        board = np.zeros((12, 12, 4), dtype=np.uint8)
        board[:, 6:, :3] = 255
        board[:, :, 3] = 255
        path = save_region_debug(board, analyze_regions(board), tmp_path / "regions.png", title="split")
        assert path.exists()
