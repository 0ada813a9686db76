"""
sockmatch - Sock Pair Detection by color, size and texture

Segments a still frame into sock-like color regions on a plain surface and
pairs regions that look alike, each region in at most one pair.
"""

__version__ = "0.3.0"

from .config import Settings, ShapePolicy, default_settings
from .exceptions import FrameError, SettingsError, SockMatchError
from .matching import find_matching_pairs
from .models import Color, PatternDirection, Region, TextureSummary
from .pipeline import FrameAnalysis, analyze_frame
from .regions import find_color_regions

__all__ = [
    "Settings",
    "ShapePolicy",
    "default_settings",
    "Color",
    "PatternDirection",
    "Region",
    "TextureSummary",
    "find_color_regions",
    "find_matching_pairs",
    "analyze_frame",
    "FrameAnalysis",
    "SockMatchError",
    "FrameError",
    "SettingsError",
]
