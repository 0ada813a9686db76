"""
Data structures shared by the region scanner, texture analysis and pair matcher.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import NamedTuple, Optional, Tuple

import numpy as np


class Color(NamedTuple):
    """An RGB color with 8-bit channels."""

    r: int
    g: int
    b: int


class PatternDirection(Enum):
    """Dominant edge orientation of a region's texture."""

    NONE = "none"
    VERTICAL = "vertical"
    HORIZONTAL = "horizontal"
    BOTH = "both"


@dataclass(frozen=True, eq=False)
class TextureSummary:
    """
    Statistical fingerprint of the local brightness variation in a region.

    ``pattern`` holds the luma samples in sampling order; it is compared by
    correlation and carries no spatial coordinates.
    """

    pattern: np.ndarray = field(repr=False)
    contrast: float
    vertical_edges: int
    horizontal_edges: int
    avg_brightness: float
    direction: PatternDirection

    @property
    def edge_count(self) -> int:
        return self.vertical_edges + self.horizontal_edges

    @property
    def edge_density(self) -> float:
        """Detected edges per sample."""
        if len(self.pattern) == 0:
            return 0.0
        return self.edge_count / len(self.pattern)


@dataclass(eq=False)
class Region:
    """
    A connected blob of color-similar pixels hypothesized to be one object.

    ``mask`` covers the bounding box only: ``mask[y - min_y, x - min_x]`` is
    True for member pixels. Regions compare by identity, so two detections
    with identical geometry remain distinct.

    ``texture`` starts empty and is filled once by the pair matcher.
    """

    min_x: int
    max_x: int
    min_y: int
    max_y: int
    mask: np.ndarray = field(repr=False)
    color: Color
    size: int = field(init=False)
    texture: Optional[TextureSummary] = field(default=None, repr=False)

    def __post_init__(self):
        self.size = int(np.count_nonzero(self.mask))

    @property
    def width(self) -> int:
        return self.max_x - self.min_x + 1

    @property
    def height(self) -> int:
        return self.max_y - self.min_y + 1

    @property
    def box(self) -> Tuple[int, int, int, int]:
        """Inclusive bounding box [x1, y1, x2, y2]."""
        return (self.min_x, self.min_y, self.max_x, self.max_y)

    @property
    def aspect_ratio(self) -> float:
        return self.height / self.width

    def pixels(self) -> np.ndarray:
        """Absolute (x, y) coordinates of every member pixel, shape (size, 2)."""
        ys, xs = np.nonzero(self.mask)
        return np.stack([xs + self.min_x, ys + self.min_y], axis=1)


@dataclass
class MatchCandidate:
    """A scored, gated pairing of two regions considered for final selection."""

    first: Region
    second: Region
    score: float
    color_score: float
    texture_score: float
    size_score: float
    regime: str

    @property
    def regions(self) -> Tuple[Region, Region]:
        return (self.first, self.second)
