"""Mosaic configuration: bead palettes, reduction modes, region heuristics."""

import logging
from dataclasses import dataclass
from enum import Enum, IntEnum
from typing import Dict, List, Optional, Tuple

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Bead palettes (name -> RGB), ordered
# ---------------------------------------------------------------------------
# "standard" is the canonical table used by the clustering strategy.  Names
# are stable identifiers that show up in colour counts and CSV exports.
NAMED_PALETTES: Dict[str, List[Tuple[str, Tuple[int, int, int]]]] = {
    "standard": [
        ("White", (255, 255, 255)),
        ("Cream", (255, 253, 208)),
        ("Peach", (255, 218, 185)),
        ("Light Pink", (255, 182, 193)),
        ("Pink", (255, 192, 203)),
        ("Yellow", (255, 255, 0)),
        ("Orange", (255, 128, 0)),
        ("Red", (255, 0, 0)),
        ("Purple", (128, 0, 128)),
        ("Dark Blue", (0, 0, 139)),
        ("Blue", (0, 0, 255)),
        ("Light Blue", (173, 216, 230)),
        ("Green", (0, 255, 0)),
        ("Dark Green", (0, 100, 0)),
        ("Brown", (139, 69, 19)),
        ("Light Brown", (205, 133, 63)),
        ("Light Grey", (192, 192, 192)),
        ("Grey", (128, 128, 128)),
        ("Black", (0, 0, 0)),
    ],
    # tuned against real Hama beads; order matters for level slicing
    "hama": [
        ("White", (255, 255, 255)),
        ("Cream", (238, 232, 215)),
        ("Yellow", (255, 215, 0)),
        ("Orange", (255, 102, 0)),
        ("Red", (230, 40, 40)),
        ("Pink", (255, 155, 180)),
        ("Purple", (147, 80, 158)),
        ("Blue", (45, 110, 200)),
        ("Light Blue", (100, 180, 210)),
        ("Green", (90, 170, 80)),
        ("Light Green", (150, 200, 120)),
        ("Brown", (139, 90, 60)),
        ("Grey", (145, 145, 145)),
        ("Black", (35, 35, 35)),
        ("Clear", (230, 230, 230)),
        ("Gold", (212, 175, 85)),
    ],
}


# ---------------------------------------------------------------------------
# Colour reduction
# ---------------------------------------------------------------------------

class ReductionMode(str, Enum):
    MINIMAL = "minimal"
    BASIC = "basic"
    STANDARD = "standard"
    DETAILED = "detailed"
    BW = "bw"


REDUCTION_MODES: Dict[str, int] = {
    ReductionMode.MINIMAL.value: 4,
    ReductionMode.BASIC.value: 8,
    ReductionMode.STANDARD.value: 12,
    ReductionMode.DETAILED.value: 16,
    ReductionMode.BW.value: 2,
}

DEFAULT_REDUCTION_MODE = ReductionMode.STANDARD.value


class Strategy(str, Enum):
    CLUSTERED = "clustered"     # region-weighted palette + nearest bead
    THRESHOLD = "threshold"     # threshold-gated simple matcher


# Threshold matcher: (palette slice, max accepted distance) per level
MATCH_LEVELS: Dict[str, Tuple[Optional[int], float]] = {
    "high": (8, 15.0),
    "medium": (12, 25.0),
    "low": (16, 35.0),
    "none": (None, 45.0),
}

DEFAULT_MATCH_LEVEL = "medium"


# ---------------------------------------------------------------------------
# Region tiers
# ---------------------------------------------------------------------------

class Tier(IntEnum):
    BACKGROUND = 0
    SUBJECT = 1
    FACE = 2
    EYE = 3


# histogram weight added per pixel occurrence
TIER_WEIGHTS: Dict[Tier, int] = {
    Tier.EYE: 8,
    Tier.FACE: 5,
    Tier.SUBJECT: 3,
    Tier.BACKGROUND: 1,
}

# share of the colour budget per tier, rounded up, in allocation order
BUDGET_WITH_EYES: Tuple[Tuple[Tier, float], ...] = (
    (Tier.EYE, 0.3),
    (Tier.FACE, 0.3),
    (Tier.SUBJECT, 0.25),
)
BUDGET_FACE_ONLY: Tuple[Tuple[Tier, float], ...] = (
    (Tier.FACE, 0.4),
    (Tier.SUBJECT, 0.4),
)
BUDGET_NO_FACE: Tuple[Tuple[Tier, float], ...] = (
    (Tier.SUBJECT, 0.7),
)

# palette subsets used when mapping a cluster centre to a bead
SCLERA_BEADS = ["White", "Cream"]
DARK_EYE_BEADS = ["Black", "Dark Blue", "Brown", "Dark Green"]
LIGHT_EYE_BEADS = ["Blue", "Light Blue", "Green", "Light Brown"]
SKIN_TONE_BEADS = ["Peach", "Light Pink", "Cream", "Light Brown", "Brown"]


# ---------------------------------------------------------------------------
# Segmentation heuristics
# ---------------------------------------------------------------------------

EDGE_THRESHOLD = 30.0           # Sobel magnitude
SUBJECT_WINDOW_RADIUS = 5       # 11x11 edge-density window
SUBJECT_MIN_EDGES = 3           # subject when count exceeds this
SUBJECT_DILATION_RADIUS = 3     # 7x7 dilation


@dataclass(frozen=True)
class HSVRange:
    """Inclusive box in HSV space (hue in degrees, s/v in 0..1)."""
    h_min: float
    h_max: float
    s_min: float
    s_max: float
    v_min: float
    v_max: float

    def contains(self, h: float, s: float, v: float) -> bool:
        return (self.h_min <= h <= self.h_max
                and self.s_min <= s <= self.s_max
                and self.v_min <= v <= self.v_max)


SKIN_TONE_RANGES: Tuple[HSVRange, ...] = (
    HSVRange(0, 50, 0.1, 0.6, 0.5, 1.0),    # light
    HSVRange(0, 35, 0.2, 0.7, 0.4, 0.9),    # medium
    HSVRange(0, 40, 0.15, 0.8, 0.2, 0.8),   # dark
)

FACE_SKIN_RATIO = 0.15

# iris / pupil
DARK_EYE_LUMINANCE_MAX = 0.3
DARK_EYE_SATURATION_MIN = 0.2
LIGHT_EYE_LUMINANCE_MIN = 0.3
LIGHT_EYE_SATURATION_MIN = 0.3
# white of the eye
SCLERA_LUMINANCE_MIN = 0.8
SCLERA_SATURATION_MAX = 0.2

EYE_BAND = (0.2, 0.5)           # vertical band searched, as image fractions
EYE_WINDOW_FRACTION = 0.1       # window size relative to image width
EYE_BORDER_FRACTION = 0.2       # border marked around a matching window
EYE_PIXEL_RATIO = 0.15
SCLERA_PIXEL_RATIO = 0.2


# ---------------------------------------------------------------------------
# Preprocessing
# ---------------------------------------------------------------------------

SUBJECT_POSTERIZE_STEP = 32
BACKGROUND_POSTERIZE_STEP = 64
SUBJECT_BW_THRESHOLD = 127
BACKGROUND_BW_THRESHOLD = 160


@dataclass
class MosaicOptions:
    """Options accepted by the quantization entry points."""
    color_reduction: str = DEFAULT_REDUCTION_MODE
    strategy: Strategy = Strategy.CLUSTERED
    match_level: str = DEFAULT_MATCH_LEVEL
    preprocess: bool = True
    denoise: bool = False

    def __post_init__(self):
        self.strategy = Strategy(self.strategy)

    @property
    def num_colors(self) -> int:
        return num_colors_for_mode(self.color_reduction)

    @property
    def mode(self) -> str:
        """Effective reduction mode after falling back on unknown names."""
        if self.color_reduction in REDUCTION_MODES:
            return self.color_reduction
        return DEFAULT_REDUCTION_MODE

    def to_dict(self) -> dict:
        return {
            "color_reduction": self.color_reduction,
            "strategy": self.strategy.value,
            "match_level": self.match_level,
            "preprocess": bool(self.preprocess),
            "denoise": bool(self.denoise),
        }

    @classmethod
    def from_dict(cls, d: dict) -> "MosaicOptions":
        mode = d.get("color_reduction", d.get("colorReductionMode", DEFAULT_REDUCTION_MODE))
        return cls(
            color_reduction=mode or DEFAULT_REDUCTION_MODE,
            strategy=Strategy(d.get("strategy", Strategy.CLUSTERED.value)),
            match_level=d.get("match_level", DEFAULT_MATCH_LEVEL),
            preprocess=d.get("preprocess", True),
            denoise=d.get("denoise", False),
        )


def num_colors_for_mode(mode: Optional[str]) -> int:
    """Target palette size for a reduction mode; unknown modes mean standard."""
    if mode in REDUCTION_MODES:
        return REDUCTION_MODES[mode]
    logger.warning(
        "Unknown colour reduction mode %r, using %s", mode, DEFAULT_REDUCTION_MODE)
    return REDUCTION_MODES[DEFAULT_REDUCTION_MODE]
