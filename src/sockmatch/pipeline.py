"""
Single-frame analysis: region detection followed by pair matching.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple

import numpy as np

from .config import Settings, ShapePolicy
from .matching import find_matching_pairs
from .models import Color, Region
from .regions import find_color_regions
from .timing import StageTimings, timed_stage

logger = logging.getLogger(__name__)


@dataclass
class FrameAnalysis:
    """Regions detected in one frame and the disjoint pairs matched among them."""

    regions: List[Region] = field(default_factory=list)
    pairs: List[Tuple[Region, Region]] = field(default_factory=list)

    def pair_indices(self) -> List[Tuple[int, int]]:
        """Pairs expressed as indices into ``regions``."""
        index = {id(region): i for i, region in enumerate(self.regions)}
        return [(index[id(first)], index[id(second)]) for first, second in self.pairs]

    def to_dict(self) -> Dict[str, Any]:
        """JSON-ready summary of the analysis."""
        regions = []
        for region in self.regions:
            entry = {
                'box': list(region.box),
                'width': region.width,
                'height': region.height,
                'size': region.size,
                'color': list(region.color),
            }
            if region.texture is not None:
                entry['pattern_direction'] = region.texture.direction.value
                entry['edge_count'] = region.texture.edge_count
            regions.append(entry)

        return {
            'regions': regions,
            'pairs': [list(pair) for pair in self.pair_indices()],
        }


def analyze_frame(
    frame: np.ndarray,
    settings: Settings,
    shape: Optional[ShapePolicy] = None,
    surface_colors: Optional[Sequence[Color]] = None,
    timings: Optional[StageTimings] = None
) -> FrameAnalysis:
    """
    Detect regions in a frame and match them into pairs.

    Args:
        frame: RGB(A) frame buffer, shape (H, W, 3) or (H, W, 4)
        settings: Caller settings
        shape: Shape prior for accepted regions
        surface_colors: Optional surface colors to exclude as seeds
        timings: Optional collector for stage durations

    Returns:
        FrameAnalysis with regions in discovery order and pairs best first
    """
    with timed_stage(timings, "Region scan"):
        regions = find_color_regions(frame, settings, shape=shape, surface_colors=surface_colors)

    if len(regions) < 2:
        logger.info(f"Only {len(regions)} region(s) detected, nothing to pair")
        return FrameAnalysis(regions=regions)

    with timed_stage(timings, "Pair matching", f"{len(regions)} regions"):
        pairs = find_matching_pairs(regions, settings, frame)

    logger.info(f"Matched {len(pairs)} pair(s) among {len(regions)} regions")
    return FrameAnalysis(regions=regions, pairs=pairs)
