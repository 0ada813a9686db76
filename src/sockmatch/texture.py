"""
Texture fingerprints for regions and their pairwise comparison.

A region's texture is sampled in three square areas (upper quarter, centre,
lower quarter) along its vertical axis. Each sample contributes its luma to
an ordered pattern and, away from the area border, a vertical and horizontal
gradient used for contrast and edge statistics.
"""

import logging
from typing import Tuple

import numpy as np

from .config import (
    CORRELATION_WINDOW_FRACTION,
    EDGE_RATIO_THRESHOLD,
    EDGE_THRESHOLD,
    LUMA_WEIGHTS,
    TEXTURE_AREA_OFFSET,
    TEXTURE_SAMPLES_PER_RADIUS,
    TEXTURE_WEIGHTS,
)
from .models import PatternDirection, Region, TextureSummary
from .pixels import as_rgb_frame

logger = logging.getLogger(__name__)

# Patterns with a smaller spread are treated as flat
MIN_PATTERN_STD = 1e-6


def _luma(frame: np.ndarray, xs: np.ndarray, ys: np.ndarray) -> np.ndarray:
    samples = frame[ys, xs, :3].astype(np.float64)
    return samples @ np.asarray(LUMA_WEIGHTS)


def sample_areas(region: Region) -> Tuple[Tuple[int, int], ...]:
    """Centres (x, y) of the upper, middle and lower sample areas of a region."""
    cx = (region.min_x + region.max_x) // 2
    return (
        (cx, int(np.floor(region.min_y + region.height * TEXTURE_AREA_OFFSET))),
        (cx, (region.min_y + region.max_y) // 2),
        (cx, int(np.floor(region.max_y - region.height * TEXTURE_AREA_OFFSET))),
    )


def classify_direction(vertical_ratio: float, horizontal_ratio: float) -> PatternDirection:
    """Map per-sample edge ratios to a dominant pattern direction."""
    vertical = vertical_ratio > EDGE_RATIO_THRESHOLD
    horizontal = horizontal_ratio > EDGE_RATIO_THRESHOLD
    if vertical and horizontal:
        return PatternDirection.BOTH
    if vertical:
        return PatternDirection.VERTICAL
    if horizontal:
        return PatternDirection.HORIZONTAL
    return PatternDirection.NONE


def analyze_texture(frame: np.ndarray, region: Region) -> TextureSummary:
    """
    Compute the texture fingerprint of a region.

    Each area is a square of radius ``min(width, height) // 4`` walked with
    a step of ``radius // TEXTURE_SAMPLES_PER_RADIUS``, so larger regions
    are sampled more coarsely. Sample coordinates are clamped to the frame.

    Args:
        frame: RGB(A) frame the region was grown from
        region: Region to analyse

    Returns:
        TextureSummary over all samples of the three areas
    """
    rgb = as_rgb_frame(frame)
    frame_h, frame_w = rgb.shape[:2]

    radius = min(region.width, region.height) // 4
    step = max(1, radius // TEXTURE_SAMPLES_PER_RADIUS)
    offsets = np.arange(-radius, radius + 1, step)

    # x offset outer, y offset inner
    di, dj = np.meshgrid(offsets, offsets, indexing="ij")
    di = di.ravel()
    dj = dj.ravel()
    interior = (di > -radius) & (dj > -radius)

    patterns = []
    total_contrast = 0.0
    vertical_edges = 0
    horizontal_edges = 0

    for cx, cy in sample_areas(region):
        xs = np.clip(cx + di, 0, frame_w - 1)
        ys = np.clip(cy + dj, 0, frame_h - 1)
        gray = _luma(rgb, xs, ys)
        patterns.append(gray)

        above = _luma(rgb, xs, np.clip(cy + dj - step, 0, frame_h - 1))
        left = _luma(rgb, np.clip(cx + di - step, 0, frame_w - 1), ys)
        vertical_diff = np.abs(gray - above)[interior]
        horizontal_diff = np.abs(gray - left)[interior]

        total_contrast += float(np.maximum(vertical_diff, horizontal_diff).sum())
        vertical_edges += int(np.count_nonzero(vertical_diff > EDGE_THRESHOLD))
        horizontal_edges += int(np.count_nonzero(horizontal_diff > EDGE_THRESHOLD))

    pattern = np.concatenate(patterns)
    total_samples = len(pattern)

    texture = TextureSummary(
        pattern=pattern,
        contrast=total_contrast / total_samples,
        vertical_edges=vertical_edges,
        horizontal_edges=horizontal_edges,
        avg_brightness=float(pattern.sum()) / total_samples,
        direction=classify_direction(
            vertical_edges / total_samples,
            horizontal_edges / total_samples,
        ),
    )
    logger.debug(
        f"Texture for region {region.box}: {total_samples} samples, "
        f"edges={texture.edge_count} ({texture.direction.value}), "
        f"contrast={texture.contrast:.2f}"
    )
    return texture


def normalize_pattern(pattern: np.ndarray) -> np.ndarray:
    """Z-score a pattern; a flat pattern is divided by 1 instead of its spread."""
    mean = pattern.mean()
    std = pattern.std()
    if std < MIN_PATTERN_STD:
        std = 1.0
    return (pattern - mean) / std


def max_window_correlation(pattern1: np.ndarray, pattern2: np.ndarray) -> float:
    """
    Best absolute correlation of a window of the shorter pattern slid along
    the longer one.

    The window covers ``CORRELATION_WINDOW_FRACTION`` of the shorter
    pattern, so two patterns whose samples are offset by area-sampling
    jitter still line up.
    """
    norm1 = normalize_pattern(pattern1)
    norm2 = normalize_pattern(pattern2)
    longer, shorter = (norm1, norm2) if len(norm1) >= len(norm2) else (norm2, norm1)

    window = int(len(shorter) * CORRELATION_WINDOW_FRACTION)
    if window == 0:
        return 0.0

    correlations = np.correlate(longer, shorter[:window], mode="valid") / window
    return float(np.max(np.abs(correlations)))


def similarity_ratio(value1: float, value2: float) -> float:
    """min/max of two non-negative values; 1.0 when both are zero."""
    high = max(value1, value2)
    if high == 0:
        return 1.0
    return min(value1, value2) / high


def direction_agreement(first: PatternDirection, second: PatternDirection) -> float:
    """
    Agreement score between two pattern directions.

    ============  ==========
    case          score
    ============  ==========
    same          1.0
    either BOTH   0.7
    otherwise     0.3
    ============  ==========
    """
    if first is second:
        return 1.0
    if first is PatternDirection.BOTH or second is PatternDirection.BOTH:
        return 0.7
    return 0.3


def compare_textures(texture1: TextureSummary, texture2: TextureSummary) -> float:
    """
    Similarity of two texture fingerprints, roughly in [0, 1].

    Blends best-alignment pattern correlation, edge density agreement,
    pattern direction agreement and local contrast agreement with the
    weights in ``TEXTURE_WEIGHTS``.
    """
    correlation = max_window_correlation(texture1.pattern, texture2.pattern)
    edge_ratio = similarity_ratio(texture1.edge_density, texture2.edge_density)
    direction_score = direction_agreement(texture1.direction, texture2.direction)
    contrast_ratio = similarity_ratio(texture1.contrast, texture2.contrast)

    return (
        correlation * TEXTURE_WEIGHTS["correlation"]
        + edge_ratio * TEXTURE_WEIGHTS["edge_density"]
        + direction_score * TEXTURE_WEIGHTS["direction"]
        + contrast_ratio * TEXTURE_WEIGHTS["contrast"]
    )
