"""Classify pixels into background / subject / face / eye tiers.

The face and eye tests are coarse colour heuristics, not detectors.  They
only bias how the colour budget is split between regions, so false
positives on skin-coloured objects or missed eyes on profile shots are
expected.
"""

import logging
from dataclasses import dataclass
from typing import Tuple

import numpy as np

from bead_mosaic.config import (
    DARK_EYE_LUMINANCE_MAX,
    DARK_EYE_SATURATION_MIN,
    EYE_BAND,
    EYE_BORDER_FRACTION,
    EYE_PIXEL_RATIO,
    EYE_WINDOW_FRACTION,
    FACE_SKIN_RATIO,
    LIGHT_EYE_LUMINANCE_MIN,
    LIGHT_EYE_SATURATION_MIN,
    SCLERA_LUMINANCE_MIN,
    SCLERA_PIXEL_RATIO,
    SCLERA_SATURATION_MAX,
    SKIN_TONE_RANGES,
    Tier,
)
from bead_mosaic.edges import detect_edges
from bead_mosaic.segmentation import identify_subject

logger = logging.getLogger(__name__)


@dataclass
class RegionAnalysis:
    """Intermediate masks for one pixel buffer."""
    edges: np.ndarray          # (H, W) uint8, 0 / 255
    subject_mask: np.ndarray   # (H, W) uint8, 0 / 1
    face_mask: np.ndarray      # (H, W) uint8, 0 / 1 (skin pixels inside subject)
    eye_mask: np.ndarray       # (H, W) uint8, 0 / 1
    is_face: bool
    tiers: np.ndarray          # (H, W) uint8 Tier labels

    def tier_counts(self) -> dict:
        return {tier.name.lower(): int(np.count_nonzero(self.tiers == tier)) for tier in Tier}


# ---------------------------------------------------------------------------
# Colour helpers
# ---------------------------------------------------------------------------

def rgb_to_hsv_array(rgb: np.ndarray) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """Vectorised RGB -> HSV.

    Hue is in whole degrees (rounded half up) in [0, 360); saturation and
    value are in [0, 1].
    """
    c = np.asarray(rgb, dtype=np.float64)[..., :3] / 255.0
    r, g, b = c[..., 0], c[..., 1], c[..., 2]
    mx = c.max(axis=-1)
    mn = c.min(axis=-1)
    diff = mx - mn
    safe = np.where(diff == 0, 1.0, diff)

    hue = np.select(
        [diff == 0, mx == r, mx == g],
        [0.0, np.fmod((g - b) / safe, 6.0), (b - r) / safe + 2.0],
        default=(r - g) / safe + 4.0,
    )
    hue = np.floor(hue * 60.0 + 0.5)
    hue = np.where(hue < 0, hue + 360.0, hue)

    sat = np.where(mx == 0, 0.0, diff / np.where(mx == 0, 1.0, mx))
    return hue, sat, mx


def rgb_to_hsv(r: int, g: int, b: int) -> Tuple[int, float, float]:
    h, s, v = rgb_to_hsv_array(np.array([r, g, b]))
    return int(h), float(s), float(v)


def is_skin_tone_array(rgb: np.ndarray) -> np.ndarray:
    h, s, v = rgb_to_hsv_array(rgb)
    skin = np.zeros(h.shape, dtype=bool)
    for rng in SKIN_TONE_RANGES:
        skin |= ((h >= rng.h_min) & (h <= rng.h_max)
                 & (s >= rng.s_min) & (s <= rng.s_max)
                 & (v >= rng.v_min) & (v <= rng.v_max))
    return skin


def is_skin_tone(r: int, g: int, b: int) -> bool:
    h, s, v = rgb_to_hsv(r, g, b)
    return any(rng.contains(h, s, v) for rng in SKIN_TONE_RANGES)


def luminance_array(rgb: np.ndarray) -> np.ndarray:
    """Relative luminance in [0, 1] (Rec. 601 weights)."""
    c = np.asarray(rgb, dtype=np.float64)
    return (0.299 * c[..., 0] + 0.587 * c[..., 1] + 0.114 * c[..., 2]) / 255.0


def saturation_array(rgb: np.ndarray) -> np.ndarray:
    c = np.asarray(rgb, dtype=np.float64)[..., :3]
    mx = c.max(axis=-1)
    mn = c.min(axis=-1)
    return np.where(mx == 0, 0.0, (mx - mn) / np.where(mx == 0, 1.0, mx))


def luminance(r: int, g: int, b: int) -> float:
    return (0.299 * r + 0.587 * g + 0.114 * b) / 255.0


def saturation(r: int, g: int, b: int) -> float:
    mx = max(r, g, b)
    mn = min(r, g, b)
    return 0.0 if mx == 0 else (mx - mn) / mx


def is_eye_pixel(lum, sat):
    """Iris / pupil test: dark and slightly saturated, or light and saturated.

    Works on scalars and numpy arrays alike.
    """
    dark = (lum <= DARK_EYE_LUMINANCE_MAX) & (sat >= DARK_EYE_SATURATION_MIN)
    light = (lum >= LIGHT_EYE_LUMINANCE_MIN) & (sat >= LIGHT_EYE_SATURATION_MIN)
    return dark | light


def is_sclera_pixel(lum, sat):
    return (lum >= SCLERA_LUMINANCE_MIN) & (sat <= SCLERA_SATURATION_MAX)


# ---------------------------------------------------------------------------
# Face / eye detection
# ---------------------------------------------------------------------------

def detect_face_region(pixels: np.ndarray, subject_mask: np.ndarray) -> Tuple[np.ndarray, bool]:
    """Mark skin-toned subject pixels and decide whether the subject is a face.

    Returns:
        (face_mask, is_face).  ``is_face`` is True when more than 15% of the
        subject pixels are skin toned; an empty subject is never a face.
    """
    subject = subject_mask > 0
    skin = is_skin_tone_array(pixels[:, :, :3])
    face = subject & skin

    total = int(np.count_nonzero(subject))
    if total == 0:
        return face.astype(np.uint8), False

    ratio = np.count_nonzero(face) / total
    logger.debug("Skin ratio inside subject: %.3f (%d px)", ratio, total)
    return face.astype(np.uint8), bool(ratio > FACE_SKIN_RATIO)


def detect_eye_regions(pixels: np.ndarray, face_mask: np.ndarray) -> np.ndarray:
    """Scan the upper-middle band of the image for eye-like windows.

    A square window (10% of the image width) slides with a half-window
    stride over rows 20%-50% of the height.  Windows whose top-left pixel
    lies on the face are tested; a window is an eye when enough of it looks
    like iris/pupil and enough looks like sclera.  Matches are marked
    together with a 20% border, clipped to the image.
    """
    h, w = face_mask.shape
    eye_mask = np.zeros((h, w), dtype=np.uint8)

    window = int(w * EYE_WINDOW_FRACTION)
    stride = window // 2
    if stride < 1:
        return eye_mask

    rgb = pixels[:, :, :3]
    lum = luminance_array(rgb)
    sat = saturation_array(rgb)
    eye_px = is_eye_pixel(lum, sat)
    sclera_px = is_sclera_pixel(lum, sat) & ~eye_px

    top = int(h * EYE_BAND[0])
    bottom = int(h * EYE_BAND[1])
    border = int(window * EYE_BORDER_FRACTION)
    found = 0

    for y in range(top, bottom, stride):
        for x in range(0, w - window, stride):
            if not face_mask[y, x]:
                continue
            y1 = min(y + window, h)
            x1 = min(x + window, w)
            total = (y1 - y) * (x1 - x)
            dark_ratio = np.count_nonzero(eye_px[y:y1, x:x1]) / total
            light_ratio = np.count_nonzero(sclera_px[y:y1, x:x1]) / total
            if dark_ratio > EYE_PIXEL_RATIO and light_ratio > SCLERA_PIXEL_RATIO:
                eye_mask[max(0, y - border):min(h, y + window + border),
                         max(0, x - border):min(w, x + window + border)] = 1
                found += 1

    if found:
        logger.debug("Eye windows matched: %d (window=%d, stride=%d)", found, window, stride)
    return eye_mask


def build_tier_map(
    subject_mask: np.ndarray,
    face_mask: np.ndarray,
    eye_mask: np.ndarray,
    is_face: bool,
) -> np.ndarray:
    """Collapse the masks into one label array (eye > face > subject > background)."""
    tiers = np.full(subject_mask.shape, Tier.BACKGROUND, dtype=np.uint8)
    tiers[subject_mask > 0] = Tier.SUBJECT
    if is_face:
        tiers[face_mask > 0] = Tier.FACE
        tiers[eye_mask > 0] = Tier.EYE
    return tiers


def analyze_regions(pixels: np.ndarray) -> RegionAnalysis:
    """Run edge detection, subject segmentation and face/eye classification."""
    edges = detect_edges(pixels)
    subject_mask = identify_subject(edges)
    face_mask, is_face = detect_face_region(pixels, subject_mask)
    if is_face:
        eye_mask = detect_eye_regions(pixels, face_mask)
    else:
        eye_mask = np.zeros_like(subject_mask)

    tiers = build_tier_map(subject_mask, face_mask, eye_mask, is_face)
    analysis = RegionAnalysis(
        edges=edges,
        subject_mask=subject_mask,
        face_mask=face_mask,
        eye_mask=eye_mask,
        is_face=is_face,
        tiers=tiers,
    )
    logger.debug("Region tiers: %s (face=%s)", analysis.tier_counts(), is_face)
    return analysis
