"""Region-analysis debug output."""

import logging
from pathlib import Path
from typing import Union

import numpy as np

from bead_mosaic.config import Tier
from bead_mosaic.regions import RegionAnalysis

logger = logging.getLogger(__name__)

TIER_COLORS = {
    Tier.BACKGROUND: (40, 40, 40),
    Tier.SUBJECT: (70, 130, 220),
    Tier.FACE: (240, 180, 140),
    Tier.EYE: (220, 40, 40),
}


def render_tier_map(tiers: np.ndarray) -> np.ndarray:
    """Colour-code a tier label array as an RGB image."""
    out = np.zeros(tiers.shape + (3,), dtype=np.uint8)
    for tier, color in TIER_COLORS.items():
        out[tiers == tier] = color
    return out


def save_region_debug(
    pixels: np.ndarray,
    analysis: RegionAnalysis,
    path: Union[str, Path],
    title: str = "",
) -> Path:
    """
    Save a 2x2 figure: source, edge map, subject mask and tier map.
    """
    import matplotlib
    matplotlib.use("Agg")
    import matplotlib.pyplot as plt

    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    fig, axs = plt.subplots(2, 2, figsize=(8, 8))
    axs[0, 0].imshow(pixels[:, :, :3], interpolation="nearest")
    axs[0, 0].set_title("Source")
    axs[0, 1].imshow(analysis.edges, cmap="gray", interpolation="nearest")
    axs[0, 1].set_title("Edges")
    axs[1, 0].imshow(analysis.subject_mask, cmap="gray", vmin=0, vmax=1, interpolation="nearest")
    axs[1, 0].set_title("Subject")
    axs[1, 1].imshow(render_tier_map(analysis.tiers), interpolation="nearest")
    axs[1, 1].set_title(f"Tiers (face={analysis.is_face})")
    for ax in axs.flat:
        ax.set_xticks([])
        ax.set_yticks([])
    if title:
        fig.suptitle(title)
    fig.tight_layout()
    fig.savefig(path)
    plt.close(fig)

    logger.debug("Saved region debug: %s %s", path, analysis.tier_counts())
    return path
