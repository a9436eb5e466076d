"""Tests for mosaic options and reduction-mode lookup."""

from __future__ import annotations

import logging

import pytest

from bead_mosaic.config import (
    REDUCTION_MODES,
    MosaicOptions,
    ReductionMode,
    Strategy,
    num_colors_for_mode,
)


class TestReductionModes:
    def test_color_counts(self):
        assert [REDUCTION_MODES[m.value] for m in ReductionMode] == [4, 8, 12, 16, 2]

    def test_unknown_mode_falls_back_to_standard(self, caplog):
        with caplog.at_level(logging.WARNING):
            assert num_colors_for_mode("ultra") == 12
        assert "ultra" in caplog.text
        assert num_colors_for_mode(None) == 12


class TestMosaicOptions:
    def test_defaults(self):
        opts = MosaicOptions()
        assert opts.num_colors == 12
        assert opts.mode == "standard"
        assert opts.strategy is Strategy.CLUSTERED
        assert opts.preprocess

    def test_strategy_string_is_coerced(self):
        assert MosaicOptions(strategy="threshold").strategy is Strategy.THRESHOLD

    def test_invalid_strategy_rejected(self):
        with pytest.raises(ValueError):
            MosaicOptions(strategy="random")

    def test_from_dict_accepts_camel_case_mode(self):
        opts = MosaicOptions.from_dict({"colorReductionMode": "bw"})
        assert opts.num_colors == 2
        assert opts.mode == "bw"

    def test_round_trip(self):
        opts = MosaicOptions(color_reduction="detailed", strategy=Strategy.THRESHOLD,
                             match_level="low", preprocess=False, denoise=True)
        assert MosaicOptions.from_dict(opts.to_dict()) == opts
