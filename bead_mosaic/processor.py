"""
Bead mosaic quantization pipeline.

Turns a board-sized RGBA buffer into a bead mosaic:
1. Preprocessing (contrast stretch, tiered posterisation)
2. Palette construction weighted towards subject, face and eyes
3. Per-pixel recolouring to beads plus a usage histogram

Decoding the source image and resizing it to the board are the caller's
job; see ``bead_mosaic.cli`` for a Pillow based front end.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional, Union

import numpy as np

from bead_mosaic.config import MosaicOptions, Strategy
from bead_mosaic.palette import STANDARD_PALETTE, BeadPalette, create_optimized_palette
from bead_mosaic.preprocess import preprocess_image
from bead_mosaic.quantizer import NearestBeadMatcher, PixelMatcher, ThresholdMatcher, quantize
from bead_mosaic.regions import RegionAnalysis, analyze_regions

logger = logging.getLogger(__name__)

PixelInput = Union[np.ndarray, bytes, bytearray, memoryview, List[int]]
OptionsInput = Union[MosaicOptions, Mapping[str, object], None]


@dataclass
class MosaicResult:
    """Output of one quantization run."""
    pixels: np.ndarray                  # (H, W, 4) uint8, recoloured
    color_counts: Dict[str, int]        # bead name -> count, zero counts omitted
    palette: List[str] = field(default_factory=list)   # beads chosen for the image
    mode: str = ""
    strategy: str = ""

    @property
    def width(self) -> int:
        return int(self.pixels.shape[1])

    @property
    def height(self) -> int:
        return int(self.pixels.shape[0])

    def to_bytes(self) -> bytes:
        """Flat RGBA bytes in row-major order."""
        return self.pixels.tobytes()

    def to_dict(self) -> dict:
        return {
            "width": self.width,
            "height": self.height,
            "mode": self.mode,
            "strategy": self.strategy,
            "palette": list(self.palette),
            "color_counts": dict(self.color_counts),
        }


def as_rgba_array(pixels: PixelInput, width: int, height: int) -> np.ndarray:
    """Normalise a pixel buffer to a fresh (height, width, 4) uint8 array.

    Accepts (H, W, 4) or (H, W, 3) arrays and flat RGBA byte sequences of
    length ``width * height * 4``.  RGB input gets an opaque alpha channel.
    """
    if width <= 0 or height <= 0:
        raise ValueError(f"Invalid board size: {width}x{height}")

    if isinstance(pixels, np.ndarray) and pixels.ndim == 3:
        if pixels.shape[:2] != (height, width):
            raise ValueError(
                f"Pixel array is {pixels.shape[1]}x{pixels.shape[0]}, expected {width}x{height}"
            )
        if pixels.shape[2] == 4:
            return pixels.astype(np.uint8, copy=True)
        if pixels.shape[2] == 3:
            alpha = np.full((height, width, 1), 255, dtype=np.uint8)
            return np.concatenate([pixels.astype(np.uint8), alpha], axis=2)
        raise ValueError(f"Unsupported channel count: {pixels.shape[2]}")

    if isinstance(pixels, (bytes, bytearray, memoryview)):
        flat = np.frombuffer(bytes(pixels), dtype=np.uint8)
    else:
        flat = np.asarray(pixels).astype(np.uint8).reshape(-1)

    expected = width * height * 4
    if flat.size != expected:
        raise ValueError(f"Expected {expected} RGBA bytes for {width}x{height}, got {flat.size}")
    return flat.reshape(height, width, 4).copy()


def _coerce_options(options: OptionsInput) -> MosaicOptions:
    if options is None:
        return MosaicOptions()
    if isinstance(options, MosaicOptions):
        return options
    return MosaicOptions.from_dict(dict(options))


class BeadMosaicProcessor:
    """
    Quantize board-sized images to a bead palette.

    The processor is stateless between runs apart from the diagnostics of
    the last run (``last_analysis``, ``last_prepared``, ``chosen_palette``).
    A two-name chosen palette is always recoloured in black and white,
    including when clustering in a colour mode happens to yield two beads.
    """

    def __init__(self, options: OptionsInput = None, palette: BeadPalette = STANDARD_PALETTE):
        self.options = _coerce_options(options)
        self.palette = palette
        self.last_analysis: Optional[RegionAnalysis] = None
        self.last_prepared: Optional[np.ndarray] = None   # buffer the analysis ran on
        self.chosen_palette: List[str] = []

    def _build_matcher(self, num_colors: int) -> PixelMatcher:
        # monochrome always maps to the pure black / white of the main table
        if num_colors == 2 or self.options.strategy == Strategy.CLUSTERED:
            return NearestBeadMatcher(self.palette)
        return ThresholdMatcher(self.options.match_level)

    def run(self, pixels: PixelInput, width: int, height: int) -> MosaicResult:
        """
        Execute the pipeline on one buffer.

        Args:
            pixels: RGBA buffer (see ``as_rgba_array``).  Never modified.
            width: Board width in beads.
            height: Board height in beads.
        """
        data = as_rgba_array(pixels, width, height)
        num_colors = self.options.num_colors
        mode = self.options.mode
        strategy = self.options.strategy

        logger.debug("Quantizing %dx%d board [mode=%s, strategy=%s]",
                     width, height, mode, strategy.value)

        if self.options.preprocess:
            data = preprocess_image(data, num_colors, denoise=self.options.denoise)
        self.last_prepared = data

        matcher = self._build_matcher(num_colors)
        self.last_analysis = None

        if num_colors == 2:
            chosen = ["Black", "White"]
        elif strategy == Strategy.CLUSTERED:
            self.last_analysis = analyze_regions(data)
            chosen = create_optimized_palette(
                data, num_colors, self.palette, analysis=self.last_analysis
            )
        else:
            chosen = matcher.candidate_names
        self.chosen_palette = chosen

        recolored, counts = quantize(data, chosen, matcher)
        logger.debug("Chosen palette: %s; used beads: %d", chosen, len(counts))

        return MosaicResult(
            pixels=recolored,
            color_counts=counts,
            palette=list(chosen),
            mode=mode,
            strategy=strategy.value,
        )


def quantize_image(
    pixels: PixelInput,
    width: int,
    height: int,
    options: OptionsInput = None,
) -> MosaicResult:
    """Quantize one board-sized RGBA buffer to beads.

    ``options`` may be a ``MosaicOptions`` or a mapping such as
    ``{"colorReductionMode": "minimal"}``.
    """
    return BeadMosaicProcessor(options).run(pixels, width, height)
