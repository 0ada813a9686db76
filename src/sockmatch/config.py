"""
Configuration for the sockmatch region detection and pair matching core.

Caller-facing options live in ``Settings``; tuned heuristics are module
constants. The heuristics were tuned by hand on camera frames of socks laid
on a plain surface and should be re-validated against a real corpus before
being relied on elsewhere.
"""

from dataclasses import dataclass
from typing import Dict, Tuple

from .exceptions import SettingsError


# Frame scanner
MIN_SCAN_STEP = 20
BACKGROUND_MAX_BRIGHTNESS = 240.0  # white backdrop
BACKGROUND_MIN_BRIGHTNESS = 15.0   # near-black shadow

# Region grower
GROWTH_TOLERANCE_FACTOR = 1.8  # relative to Settings.color_threshold
RELAXED_MIN_FACTOR = 0.7       # relative to Settings.min_region_size

# Texture analyzer
TEXTURE_AREA_OFFSET = 0.25     # top/bottom sample areas, fraction of height
TEXTURE_SAMPLES_PER_RADIUS = 25
EDGE_THRESHOLD = 10.0
EDGE_RATIO_THRESHOLD = 0.1
LUMA_WEIGHTS: Tuple[float, float, float] = (0.299, 0.587, 0.114)

# Texture comparator
CORRELATION_WINDOW_FRACTION = 0.7
TEXTURE_WEIGHTS: Dict[str, float] = {
    "correlation": 0.4,
    "edge_density": 0.2,
    "direction": 0.3,
    "contrast": 0.1,
}

# Pair matcher
MAX_OVERLAP_FRACTION = 0.3
MIN_DIMENSION_RATIO = 0.5
DARK_BRIGHTNESS = 80.0
STRONG_PATTERN_EDGES = 100
TIE_SCORE_WINDOW = 0.1

# Surface sampling
SURFACE_SAMPLE_SIZE = 30
SURFACE_VARIATIONS: Tuple[int, ...] = (-30, -15, 15, 30)


@dataclass(frozen=True)
class ScoringRegime:
    """Weights and acceptance gates for one class of candidate pair."""

    name: str
    texture_weight: float
    color_weight: float
    size_weight: float
    min_score: float
    min_texture_score: float


STRONG_PATTERN_REGIME = ScoringRegime("strong_pattern", 0.7, 0.1, 0.2, 0.4, 0.3)
DARK_REGIME = ScoringRegime("dark", 0.6, 0.2, 0.2, 0.45, 0.35)
PLAIN_REGIME = ScoringRegime("plain", 0.4, 0.4, 0.2, 0.5, 0.4)


@dataclass(frozen=True)
class Settings:
    """
    Per-invocation parameters supplied by the caller.

    Every field is required; the core never fills in defaults and never
    mutates a Settings value. ``size_ratio_threshold``,
    ``aspect_ratio_threshold`` and ``texture_threshold`` are carried for
    callers that expose them but the matcher scores against its tuned
    regimes instead.
    """

    grid_size: int
    min_region_size: int
    max_region_size: int
    color_threshold: float
    size_ratio_threshold: float
    aspect_ratio_threshold: float
    texture_threshold: float

    def validate(self) -> "Settings":
        """
        Check that the settings can drive a scan.

        Returns:
            The same Settings instance, for chaining.

        Raises:
            SettingsError: If a field is out of range.
        """
        if self.grid_size <= 0:
            raise SettingsError(f"grid_size must be positive, got {self.grid_size}")
        if self.min_region_size < 0:
            raise SettingsError(f"min_region_size must be >= 0, got {self.min_region_size}")
        if self.max_region_size <= 0:
            raise SettingsError(f"max_region_size must be positive, got {self.max_region_size}")
        if self.max_region_size < self.min_region_size * RELAXED_MIN_FACTOR:
            raise SettingsError(
                f"max_region_size ({self.max_region_size}) is below the relaxed minimum "
                f"({self.min_region_size * RELAXED_MIN_FACTOR:g}); no region could be accepted"
            )
        if self.color_threshold <= 0:
            raise SettingsError(f"color_threshold must be positive, got {self.color_threshold}")
        return self


@dataclass(frozen=True)
class ShapePolicy:
    """
    Shape prior applied by the frame scanner to grown regions.

    The defaults describe elongated objects standing upright in the frame:
    taller than wide by a bounded factor and large enough not to be noise.
    """

    min_aspect_ratio: float = 1.5
    max_aspect_ratio: float = 4.0
    min_height: int = 100
    min_width: int = 50

    def accepts(self, width: int, height: int) -> bool:
        """Return True if a ``width`` x ``height`` box passes the prior."""
        aspect_ratio = height / width
        return (
            self.min_aspect_ratio <= aspect_ratio <= self.max_aspect_ratio
            and height >= self.min_height
            and width >= self.min_width
        )


def default_settings() -> Settings:
    """Settings used by the command line tool when no overrides are given."""
    return Settings(
        grid_size=15,
        min_region_size=2000,
        max_region_size=100000,
        color_threshold=35,
        size_ratio_threshold=1.2,
        aspect_ratio_threshold=0.2,
        texture_threshold=30,
    )
