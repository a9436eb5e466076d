"""Bead palettes and region-weighted palette construction.

The palette for an image is built tier by tier: every tier gets its own
colour histogram and a share of the colour budget, its colours are grouped
by greedy nearest-centre clustering, and each cluster centre is snapped to a
bead.  The clustering is order dependent on purpose (first ``k`` histogram
entries seed the clusters, the rest join the nearest running centre), which
keeps results reproducible for a given image.
"""

import logging
import math
from collections import Counter
from dataclasses import dataclass
from typing import Dict, Iterable, Iterator, List, Optional, Sequence, Tuple

import numpy as np

from bead_mosaic.color_space import (
    BEAD_WEIGHTS,
    lab_distance_array,
    rgb_to_lab,
    rgb_to_lab_array,
)
from bead_mosaic.config import (
    BUDGET_FACE_ONLY,
    BUDGET_NO_FACE,
    BUDGET_WITH_EYES,
    DARK_EYE_BEADS,
    DARK_EYE_LUMINANCE_MAX,
    LIGHT_EYE_BEADS,
    NAMED_PALETTES,
    SCLERA_BEADS,
    SKIN_TONE_BEADS,
    TIER_WEIGHTS,
    Tier,
)
from bead_mosaic.regions import (
    RegionAnalysis,
    analyze_regions,
    is_eye_pixel,
    is_sclera_pixel,
    is_skin_tone,
    luminance,
    saturation,
)

logger = logging.getLogger(__name__)

RGB = Tuple[int, int, int]

# (r, g, b, accumulated weight)
WeightedColor = Tuple[int, int, int, int]


# ---------------------------------------------------------------------------
# Palette tables
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class PaletteEntry:
    name: str
    r: int
    g: int
    b: int

    @property
    def rgb(self) -> RGB:
        return (self.r, self.g, self.b)


class BeadPalette:
    """Ordered, immutable bead colour table with cached Lab values."""

    def __init__(self, entries: Iterable[Tuple[str, RGB]], name: str = ""):
        self.name = name
        self.entries: Tuple[PaletteEntry, ...] = tuple(
            PaletteEntry(n, int(r), int(g), int(b)) for n, (r, g, b) in entries
        )
        self._index: Dict[str, int] = {}
        for i, entry in enumerate(self.entries):
            if entry.name in self._index:
                raise ValueError(f"Duplicate palette entry: {entry.name}")
            self._index[entry.name] = i

        self.rgb = np.array([e.rgb for e in self.entries], dtype=np.uint8).reshape(-1, 3)
        self.lab = rgb_to_lab_array(self.rgb)
        self.lab.setflags(write=False)
        self.rgb.setflags(write=False)

    @classmethod
    def named(cls, name: str) -> "BeadPalette":
        if name not in NAMED_PALETTES:
            raise ValueError(f"Unknown palette: {name}")
        return cls(NAMED_PALETTES[name], name=name)

    def __len__(self) -> int:
        return len(self.entries)

    def __iter__(self) -> Iterator[PaletteEntry]:
        return iter(self.entries)

    def __contains__(self, name: object) -> bool:
        return name in self._index

    def __getitem__(self, name: str) -> PaletteEntry:
        return self.entries[self._index[name]]

    @property
    def names(self) -> List[str]:
        return [e.name for e in self.entries]

    def index_of(self, name: str) -> int:
        return self._index[name]

    def head(self, count: Optional[int]) -> "BeadPalette":
        """Palette restricted to the first ``count`` entries (all when None)."""
        entries = self.entries if count is None else self.entries[:count]
        return BeadPalette(((e.name, e.rgb) for e in entries), name=self.name)

    def subset_indices(self, names: Sequence[str]) -> List[int]:
        """Indices of the named entries, in palette order."""
        wanted = set(names)
        return [i for i, e in enumerate(self.entries) if e.name in wanted]

    def nearest(
        self,
        rgb: Sequence[int],
        names: Optional[Sequence[str]] = None,
        weights: Sequence[float] = BEAD_WEIGHTS,
    ) -> PaletteEntry:
        """Closest entry to ``rgb``, optionally among ``names`` only.

        Ties go to the entry that comes first in palette order.
        """
        indices = self.subset_indices(names) if names is not None else list(range(len(self)))
        if not indices:
            raise ValueError("No palette entries to match against")
        lab = np.asarray(rgb_to_lab(*rgb), dtype=np.float64)
        dists = lab_distance_array(self.lab[indices], lab, weights)
        return self.entries[indices[int(np.argmin(dists))]]

    def nearest_indices(self, rgb: np.ndarray, weights: Sequence[float] = BEAD_WEIGHTS) -> np.ndarray:
        """Vectorised nearest entry for an (N, 3) array; returns (N,) indices."""
        lab = rgb_to_lab_array(np.asarray(rgb).reshape(-1, 3))
        dists = lab_distance_array(lab[:, None, :], self.lab[None, :, :], weights)
        return np.argmin(dists, axis=1)


STANDARD_PALETTE = BeadPalette.named("standard")
HAMA_PALETTE = BeadPalette.named("hama")


# ---------------------------------------------------------------------------
# Histograms and clustering
# ---------------------------------------------------------------------------

def tier_histograms(pixels: np.ndarray, tiers: np.ndarray) -> Dict[Tier, List[WeightedColor]]:
    """Weighted colour histogram per tier.

    Keys are exact RGB triples in first-seen raster order; each occurrence
    adds the tier's weight.
    """
    rgb = pixels[:, :, :3].reshape(-1, 3)
    labels = tiers.reshape(-1)
    counters: Dict[Tier, Counter] = {tier: Counter() for tier in Tier}

    for (r, g, b), label in zip(map(tuple, rgb.tolist()), labels.tolist()):
        tier = Tier(label)
        counters[tier][(r, g, b)] += TIER_WEIGHTS[tier]

    return {
        tier: [(r, g, b, weight) for (r, g, b), weight in counter.items()]
        for tier, counter in counters.items()
    }


def cluster_average(cluster: Sequence[WeightedColor]) -> RGB:
    """Weight-averaged colour of a cluster, rounded half up per channel."""
    total = sum(c[3] for c in cluster)
    r = sum(c[0] * c[3] for c in cluster) / total
    g = sum(c[1] * c[3] for c in cluster) / total
    b = sum(c[2] * c[3] for c in cluster) / total
    return (math.floor(r + 0.5), math.floor(g + 0.5), math.floor(b + 0.5))


def cluster_colors(
    colors: Sequence[WeightedColor],
    num_clusters: int,
    weights: Sequence[float] = BEAD_WEIGHTS,
) -> List[List[WeightedColor]]:
    """Greedy nearest-centre clustering.

    The first ``num_clusters`` colours seed the clusters; every remaining
    colour joins the cluster whose current weighted centre is nearest in
    Lab space.  Centres are recomputed from the members at each
    comparison, so the result depends on the input order.
    """
    if num_clusters <= 0:
        return []
    if len(colors) <= num_clusters:
        return [[c] for c in colors]

    clusters = [[c] for c in colors[:num_clusters]]
    for color in colors[num_clusters:]:
        lab = rgb_to_lab_array(np.array(color[:3], dtype=np.float64))
        centres = np.array([cluster_average(cl) for cl in clusters], dtype=np.float64)
        dists = lab_distance_array(rgb_to_lab_array(centres), lab, weights)
        clusters[int(np.argmin(dists))].append(color)
    return clusters


def allocate_budget(num_colors: int, is_face: bool, has_eye_colors: bool) -> Dict[Tier, int]:
    """Split ``num_colors`` across tiers.

    Each tier takes the ceiling of its share, capped by what is left; the
    background gets the remainder, so the counts always sum to
    ``num_colors`` and are never negative.
    """
    if is_face and has_eye_colors:
        shares = BUDGET_WITH_EYES
    elif is_face:
        shares = BUDGET_FACE_ONLY
    else:
        shares = BUDGET_NO_FACE

    budget = {tier: 0 for tier in Tier}
    remaining = num_colors
    for tier, share in shares:
        count = min(math.ceil(num_colors * share), remaining)
        budget[tier] = count
        remaining -= count
    budget[Tier.BACKGROUND] = remaining
    return budget


# ---------------------------------------------------------------------------
# Cluster centre -> bead
# ---------------------------------------------------------------------------

def closest_eye_bead(rgb: RGB, palette: BeadPalette = STANDARD_PALETTE) -> PaletteEntry:
    lum = luminance(*rgb)
    sat = saturation(*rgb)
    if is_sclera_pixel(lum, sat):
        return palette.nearest(rgb, SCLERA_BEADS)
    if lum <= DARK_EYE_LUMINANCE_MAX:
        return palette.nearest(rgb, DARK_EYE_BEADS)
    return palette.nearest(rgb, LIGHT_EYE_BEADS)


def closest_skin_bead(rgb: RGB, palette: BeadPalette = STANDARD_PALETTE) -> PaletteEntry:
    return palette.nearest(rgb, SKIN_TONE_BEADS)


def map_cluster_to_bead(
    rgb: RGB,
    has_eye_colors: bool,
    palette: BeadPalette = STANDARD_PALETTE,
) -> PaletteEntry:
    if has_eye_colors and is_eye_pixel(luminance(*rgb), saturation(*rgb)):
        return closest_eye_bead(rgb, palette)
    if is_skin_tone(*rgb):
        return closest_skin_bead(rgb, palette)
    return palette.nearest(rgb)


def create_optimized_palette(
    pixels: np.ndarray,
    num_colors: int,
    palette: BeadPalette = STANDARD_PALETTE,
    analysis: Optional[RegionAnalysis] = None,
) -> List[str]:
    """Pick bead names for an image, favouring eyes, faces and the subject.

    Args:
        pixels: (H, W, 3|4) uint8 buffer (normally already preprocessed).
        num_colors: Target palette size.  2 means monochrome.
        palette: Bead table to map cluster centres into.
        analysis: Precomputed region analysis of ``pixels``.

    Returns:
        Bead names ordered eye, face, subject, background clusters.  The
        list can be shorter than ``num_colors`` when a tier has fewer
        distinct colours than its budget, and may repeat names when two
        clusters snap to the same bead.
    """
    if num_colors == 2:
        return ["Black", "White"]

    if analysis is None:
        analysis = analyze_regions(pixels)

    histograms = tier_histograms(pixels, analysis.tiers)
    has_eye_colors = bool(histograms[Tier.EYE])
    budget = allocate_budget(num_colors, analysis.is_face, has_eye_colors)
    logger.debug("Colour budget for %d colours: %s",
                 num_colors, {t.name.lower(): n for t, n in budget.items()})

    names: List[str] = []
    for tier in (Tier.EYE, Tier.FACE, Tier.SUBJECT, Tier.BACKGROUND):
        clusters = cluster_colors(histograms[tier], budget[tier])
        for cluster in clusters:
            centre = cluster_average(cluster)
            names.append(map_cluster_to_bead(centre, has_eye_colors, palette).name)
        if clusters:
            logger.debug("  %s: %d colours -> %d clusters",
                         tier.name.lower(), len(histograms[tier]), len(clusters))
    return names
