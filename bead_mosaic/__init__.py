"""Bead mosaic quantizer.

Converts photographs into fixed-size boards of craft-bead colours, keeping
more distinct colours for the subject, faces and eyes than for the
background.
"""

from .config import MosaicOptions, ReductionMode, Strategy, Tier
from .palette import (
    HAMA_PALETTE,
    STANDARD_PALETTE,
    BeadPalette,
    PaletteEntry,
    create_optimized_palette,
)
from .processor import BeadMosaicProcessor, MosaicResult, quantize_image
from .quantizer import NearestBeadMatcher, ThresholdMatcher, quantize
from .regions import RegionAnalysis, analyze_regions

__all__ = [
    "BeadMosaicProcessor",
    "BeadPalette",
    "HAMA_PALETTE",
    "MosaicOptions",
    "MosaicResult",
    "NearestBeadMatcher",
    "PaletteEntry",
    "ReductionMode",
    "RegionAnalysis",
    "STANDARD_PALETTE",
    "Strategy",
    "ThresholdMatcher",
    "Tier",
    "analyze_regions",
    "create_optimized_palette",
    "quantize",
    "quantize_image",
]
