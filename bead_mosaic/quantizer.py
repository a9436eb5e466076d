"""Recolour every pixel to a bead and count bead usage.

Two interchangeable matchers decide which bead a pixel becomes:

* ``NearestBeadMatcher`` always picks the perceptually closest bead of the
  full palette.
* ``ThresholdMatcher`` only accepts a bead from a level-restricted slice of
  the palette when it is closer than the level's threshold, and otherwise
  lets the quantizer fall back to plain black or white.
"""

import logging
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np

from bead_mosaic.color_space import (
    BEAD_WEIGHTS,
    MATCHER_WEIGHTS,
    lab_distance_array,
    rgb_to_lab,
    rgb_to_lab_array,
)
from bead_mosaic.config import DEFAULT_MATCH_LEVEL, MATCH_LEVELS
from bead_mosaic.palette import HAMA_PALETTE, STANDARD_PALETTE, BeadPalette, PaletteEntry

logger = logging.getLogger(__name__)

NO_MATCH = -1


class PixelMatcher:
    """Maps colours to entries of ``self.palette``."""

    palette: BeadPalette

    def match(self, rgb: Sequence[int]) -> Optional[PaletteEntry]:
        raise NotImplementedError

    def match_indices(self, rgb: np.ndarray) -> np.ndarray:
        """Palette index per row of an (N, 3) array, ``NO_MATCH`` when unmatched."""
        out = np.full(len(rgb), NO_MATCH, dtype=np.int64)
        for i, color in enumerate(np.asarray(rgb).tolist()):
            entry = self.match(color)
            if entry is not None:
                out[i] = self.palette.index_of(entry.name)
        return out


class NearestBeadMatcher(PixelMatcher):
    def __init__(self, palette: BeadPalette = STANDARD_PALETTE,
                 weights: Sequence[float] = BEAD_WEIGHTS):
        self.palette = palette
        self.weights = tuple(weights)

    def match(self, rgb: Sequence[int]) -> PaletteEntry:
        return self.palette.nearest(rgb, weights=self.weights)

    def match_indices(self, rgb: np.ndarray) -> np.ndarray:
        return self.palette.nearest_indices(rgb, self.weights)


class ThresholdMatcher(PixelMatcher):
    """Threshold-gated matcher over a slice of the palette.

    Levels trade palette size against strictness: ``high`` uses the first 8
    beads and only accepts very close matches, ``none`` uses every bead with
    the loosest threshold.
    """

    def __init__(self, level: str = DEFAULT_MATCH_LEVEL,
                 palette: BeadPalette = HAMA_PALETTE,
                 weights: Sequence[float] = MATCHER_WEIGHTS):
        self.palette = palette
        self.weights = tuple(weights)
        self.set_level(level)

    def set_level(self, level: str) -> None:
        if level not in MATCH_LEVELS:
            logger.warning("Unknown match level %r, using %s", level, DEFAULT_MATCH_LEVEL)
            level = DEFAULT_MATCH_LEVEL
        self.level = level
        size, self.threshold = MATCH_LEVELS[level]
        # head entries keep their indices in the full palette
        self.candidate_palette = self.palette.head(size)
        self.candidates = np.arange(len(self.candidate_palette))

    @property
    def candidate_names(self) -> List[str]:
        return self.candidate_palette.names

    def match(self, rgb: Sequence[int]) -> Optional[PaletteEntry]:
        try:
            lab = np.asarray(rgb_to_lab(*rgb), dtype=np.float64)
            dists = lab_distance_array(self.candidate_palette.lab, lab, self.weights)
            best = int(np.argmin(dists))
            if dists[best] < self.threshold:
                return self.palette.entries[int(self.candidates[best])]
            return None
        except Exception as exc:  # pylint: disable=broad-except
            logger.warning("Colour match failed for %s, using White: %s", rgb, exc)
            return self.palette["White"]

    def match_indices(self, rgb: np.ndarray) -> np.ndarray:
        try:
            lab = rgb_to_lab_array(np.asarray(rgb).reshape(-1, 3))
            dists = lab_distance_array(
                lab[:, None, :], self.candidate_palette.lab[None, :, :], self.weights
            )
            best = np.argmin(dists, axis=1)
            accepted = dists[np.arange(len(best)), best] < self.threshold
            return np.where(accepted, self.candidates[best], NO_MATCH).astype(np.int64)
        except Exception as exc:  # pylint: disable=broad-except
            logger.warning("Vectorised match failed (%s); matching pixel by pixel", exc)
            return super().match_indices(rgb)


def contrast_fallback(rgb: np.ndarray, palette: BeadPalette) -> np.ndarray:
    """White or Black index by perceived brightness (> 128 is White)."""
    c = np.asarray(rgb, dtype=np.float64).reshape(-1, 3)
    brightness = (c[:, 0] * 299 + c[:, 1] * 587 + c[:, 2] * 114) / 1000.0
    return np.where(brightness > 128, palette.index_of("White"), palette.index_of("Black"))


def monochrome_indices(rgb: np.ndarray, palette: BeadPalette) -> np.ndarray:
    """White or Black index by plain channel mean (> 127 is White)."""
    brightness = np.asarray(rgb, dtype=np.float64).reshape(-1, 3).mean(axis=1)
    return np.where(brightness > 127, palette.index_of("White"), palette.index_of("Black"))


def quantize(
    pixels: np.ndarray,
    chosen_palette: Sequence[str],
    matcher: Optional[PixelMatcher] = None,
    monochrome: Optional[bool] = None,
) -> Tuple[np.ndarray, Dict[str, int]]:
    """Recolour an (H, W, 3|4) buffer and count beads.

    Monochrome output splits pixels by mean brightness without any Lab
    matching; when ``monochrome`` is None it is inferred from a two-colour
    ``chosen_palette``.  Otherwise the matcher picks from its whole
    palette, not just ``chosen_palette``.

    Returns:
        (recoloured copy of ``pixels``, {bead name: count}) with counts in
        palette order and unused beads omitted.
    """
    if matcher is None:
        matcher = NearestBeadMatcher()
    palette = matcher.palette

    h, w = pixels.shape[:2]
    rgb = pixels[:, :, :3].reshape(-1, 3)

    if monochrome is None:
        monochrome = len(chosen_palette) == 2

    if monochrome:
        indices = monochrome_indices(rgb, palette)
    else:
        indices = np.asarray(matcher.match_indices(rgb), dtype=np.int64)
        unmatched = indices == NO_MATCH
        if np.any(unmatched):
            indices[unmatched] = contrast_fallback(rgb[unmatched], palette)
            logger.debug("%d pixels fell back to black/white", int(unmatched.sum()))

    out = pixels.copy()
    out[:, :, :3] = palette.rgb[indices].reshape(h, w, 3)

    counts = np.bincount(indices, minlength=len(palette))
    color_counts = {
        entry.name: int(count) for entry, count in zip(palette, counts) if count > 0
    }
    return out, color_counts
