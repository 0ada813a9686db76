"""
Pair matching of detected regions by color, texture and size similarity.
"""

import logging
from functools import cmp_to_key
from typing import List, Optional, Sequence, Tuple

import numpy as np

from .config import (
    DARK_BRIGHTNESS,
    DARK_REGIME,
    MAX_OVERLAP_FRACTION,
    MIN_DIMENSION_RATIO,
    PLAIN_REGIME,
    STRONG_PATTERN_EDGES,
    STRONG_PATTERN_REGIME,
    TIE_SCORE_WINDOW,
    ScoringRegime,
    Settings,
)
from .models import MatchCandidate, Region, TextureSummary
from .pixels import as_rgb_frame, brightness, color_distance
from .texture import analyze_texture, compare_textures

logger = logging.getLogger(__name__)


def bbox_overlap_area(region1: Region, region2: Region) -> int:
    """
    Overlap area of two region bounding boxes.

    Extents are taken as ``max - min`` per axis, so boxes that merely share
    a border row or column do not overlap.
    """
    overlap_x = max(0, min(region1.max_x, region2.max_x) - max(region1.min_x, region2.min_x))
    overlap_y = max(0, min(region1.max_y, region2.max_y) - max(region1.min_y, region2.min_y))
    return overlap_x * overlap_y


def dimension_ratios(region1: Region, region2: Region) -> Tuple[float, float, float]:
    """
    Height, width and pixel-count ratios (smaller / larger) of two regions.
    """
    height_ratio = min(region1.height, region2.height) / max(region1.height, region2.height)
    width_ratio = min(region1.width, region2.width) / max(region1.width, region2.width)
    size_ratio = min(region1.size, region2.size) / max(region1.size, region2.size)
    return height_ratio, width_ratio, size_ratio


def is_dark(region: Region) -> bool:
    return brightness(region.color) < DARK_BRIGHTNESS


def region_texture(region: Region, frame: np.ndarray) -> TextureSummary:
    """
    Texture of a region, computed on first use and kept on the region.

    The stored texture is returned as is on later calls, whatever ``frame``
    is passed.
    """
    if region.texture is None:
        region.texture = analyze_texture(frame, region)
    return region.texture


def compute_color_score(region1: Region, region2: Region, settings: Settings) -> float:
    """
    Color similarity of two regions.

    Two dark regions are compared by brightness only; otherwise the L1 distance is scaled against twice the
    color threshold and floored at 0.
    """
    if is_dark(region1) and is_dark(region2):
        brightness_diff = abs(brightness(region1.color) - brightness(region2.color))
        return 1 - brightness_diff / DARK_BRIGHTNESS

    distance = color_distance(region1.color, region2.color)
    return max(0.0, 1 - distance / (settings.color_threshold * 2))


def choose_regime(
    texture1: TextureSummary,
    texture2: TextureSummary,
    both_dark: bool
) -> ScoringRegime:
    """Pick the scoring weights and gates for a candidate pair."""
    if texture1.edge_count > STRONG_PATTERN_EDGES or texture2.edge_count > STRONG_PATTERN_EDGES:
        return STRONG_PATTERN_REGIME
    if both_dark:
        return DARK_REGIME
    return PLAIN_REGIME


def score_pair(
    region1: Region,
    region2: Region,
    settings: Settings,
    frame: np.ndarray
) -> Optional[MatchCandidate]:
    """
    Filter and score one candidate pair.

    Args:
        region1: First region (the larger one when called from the matcher)
        region2: Second region
        settings: Caller settings
        frame: RGB frame the regions were grown from, used for texture

    Returns:
        A MatchCandidate if the pair passes the overlap, size and score
        gates, otherwise None
    """
    overlap = bbox_overlap_area(region1, region2)
    if overlap / min(region1.size, region2.size) > MAX_OVERLAP_FRACTION:
        return None

    ratios = dimension_ratios(region1, region2)
    if min(ratios) < MIN_DIMENSION_RATIO:
        return None
    size_score = sum(ratios) / 3

    texture1 = region_texture(region1, frame)
    texture2 = region_texture(region2, frame)

    both_dark = is_dark(region1) and is_dark(region2)
    color_score = compute_color_score(region1, region2, settings)
    texture_score = compare_textures(texture1, texture2)

    regime = choose_regime(texture1, texture2, both_dark)
    score = (
        texture_score * regime.texture_weight
        + color_score * regime.color_weight
        + size_score * regime.size_weight
    )

    if score > regime.min_score and texture_score > regime.min_texture_score:
        return MatchCandidate(
            first=region1,
            second=region2,
            score=score,
            color_score=color_score,
            texture_score=texture_score,
            size_score=size_score,
            regime=regime.name,
        )

    logger.debug(
        f"Rejected pair {region1.box} / {region2.box} ({regime.name}): "
        f"score={score:.2f}, texture={texture_score:.2f}"
    )
    return None


def _compare_candidates(a: MatchCandidate, b: MatchCandidate) -> int:
    # Scores within the tie window are ordered by texture score instead
    if abs(b.score - a.score) < TIE_SCORE_WINDOW:
        diff = b.texture_score - a.texture_score
    else:
        diff = b.score - a.score
    return (diff > 0) - (diff < 0)


def rank_candidates(candidates: Sequence[MatchCandidate]) -> List[MatchCandidate]:
    """
    Order candidates for greedy selection.

    Higher scores come first, except that candidates whose scores differ by
    less than TIE_SCORE_WINDOW are ordered by texture score. The rule is not
    a strict weak ordering; a stable merge sort applies it deterministically.
    """
    return sorted(candidates, key=cmp_to_key(_compare_candidates))


def select_disjoint_pairs(ranked: Sequence[MatchCandidate]) -> List[MatchCandidate]:
    """
    Greedily accept candidates whose regions are both still unclaimed.

    This approximates a maximum-weight matching; it is not globally optimal,
    but callers may rely on its ordering.
    """
    selected = []
    used_regions = set()

    for candidate in ranked:
        if candidate.first in used_regions or candidate.second in used_regions:
            continue

        selected.append(candidate)
        used_regions.add(candidate.first)
        used_regions.add(candidate.second)

    return selected


def find_matching_pairs(
    regions: Sequence[Region],
    settings: Settings,
    frame: np.ndarray
) -> List[Tuple[Region, Region]]:
    """
    Find the best disjoint pairs among detected regions.

    Every unordered pair of the size-sorted region list is scored with
    ``score_pair``; surviving candidates are ranked and selected greedily
    so that each region appears in at most one pair. Textures are computed
    once per region and stored on it, so regions are bound to the frame
    they were grown from: passing them again with a different frame reuses
    the textures sampled from the first one.

    Args:
        regions: Regions detected in ``frame``
        settings: Caller settings
        frame: RGB(A) frame the regions were grown from

    Returns:
        List of (region, region) pairs, best match first

    Raises:
        FrameError: If the frame is malformed.
        SettingsError: If the settings are out of range.
    """
    rgb = as_rgb_frame(frame)
    settings.validate()

    sorted_regions = sorted(regions, key=lambda region: region.size, reverse=True)

    candidates = []
    for i, region1 in enumerate(sorted_regions):
        for region2 in sorted_regions[i + 1:]:
            candidate = score_pair(region1, region2, settings, rgb)
            if candidate is not None:
                candidates.append(candidate)

    selected = select_disjoint_pairs(rank_candidates(candidates))

    for candidate in selected:
        logger.info(
            f"Found match ({candidate.regime}): score={candidate.score:.2f}, "
            f"color={candidate.color_score:.2f}, texture={candidate.texture_score:.2f}, "
            f"size={candidate.size_score:.2f}, "
            f"boxes={candidate.first.box} / {candidate.second.box}"
        )

    return [candidate.regions for candidate in selected]
