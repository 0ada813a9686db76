"""
Pixel sampling and color comparison helpers.
"""

import logging
from typing import Iterable, List

import numpy as np

from .config import SURFACE_SAMPLE_SIZE, SURFACE_VARIATIONS
from .exceptions import FrameError
from .models import Color

logger = logging.getLogger(__name__)


def as_rgb_frame(frame: np.ndarray) -> np.ndarray:
    """
    Validate a frame buffer and return a view of its RGB channels.

    Args:
        frame: Pixel buffer of shape (H, W, 3) or (H, W, 4); a fourth
            (alpha) channel is ignored.

    Returns:
        Array of shape (H, W, 3). The input is never copied or modified.

    Raises:
        FrameError: If the buffer is not a non-empty RGB(A) image.
    """
    if not isinstance(frame, np.ndarray):
        raise FrameError(f"Frame must be a numpy array, got {type(frame).__name__}")
    if frame.ndim != 3 or frame.shape[2] not in (3, 4):
        raise FrameError(f"Frame must have shape (H, W, 3) or (H, W, 4), got {frame.shape}")
    height, width = frame.shape[:2]
    if height == 0 or width == 0:
        raise FrameError(f"Frame is empty ({width}x{height})")
    return frame[:, :, :3]


def sample_color(frame: np.ndarray, x: int, y: int) -> Color:
    """
    Read the color of one pixel.

    Raises:
        FrameError: If (x, y) lies outside the frame.
    """
    height, width = frame.shape[:2]
    if not (0 <= x < width and 0 <= y < height):
        raise FrameError(f"Pixel ({x}, {y}) is outside the {width}x{height} frame")
    r, g, b = frame[y, x, :3]
    return Color(int(r), int(g), int(b))


def color_distance(color1: Color, color2: Color) -> int:
    """Sum of absolute per-channel differences, in [0, 765]."""
    return (
        abs(color1.r - color2.r)
        + abs(color1.g - color2.g)
        + abs(color1.b - color2.b)
    )


def brightness(color: Color) -> float:
    """Unweighted mean of the three channels."""
    return (color.r + color.g + color.b) / 3


def is_background_color(color: Color, reference_colors: Iterable[Color], threshold: float) -> bool:
    """
    Check whether a color belongs to a sampled background surface.

    Args:
        color: Color under test
        reference_colors: Surface colors sampled by the caller
        threshold: Distance below which a color counts as surface

    Returns:
        True if the color is closer than ``threshold`` to any reference color
    """
    return any(color_distance(color, ref) < threshold for ref in reference_colors)



def round_half_up(value: float) -> int:
    return int(np.floor(value + 0.5))


def average_color(pixels: np.ndarray) -> Color:
    """
    Average color of an (N, 3) array of RGB samples, each channel rounded half up.
    """
    totals = pixels.astype(np.int64).sum(axis=0)
    count = len(pixels)
    return Color(*(round_half_up(total / count) for total in totals))


def sample_surface_colors(
    frame: np.ndarray,
    x: int,
    y: int,
    sample_size: int = SURFACE_SAMPLE_SIZE
) -> List[Color]:
    """
    Sample the background surface around a point chosen by the user.

    Averages a ``sample_size`` square around (x, y) and returns that average
    together with darker and lighter variants so that the scanner also
    skips the surface under uneven lighting.

    Args:
        frame: RGB(A) frame buffer
        x: Horizontal coordinate of the chosen point
        y: Vertical coordinate of the chosen point
        sample_size: Side of the averaged square in pixels

    Returns:
        List of surface colors, the plain average first

    Raises:
        FrameError: If the frame is malformed or the point lies outside it.
    """
    rgb = as_rgb_frame(frame)
    height, width = rgb.shape[:2]
    if not (0 <= x < width and 0 <= y < height):
        raise FrameError(f"Surface point ({x}, {y}) is outside the {width}x{height} frame")

    x1 = max(0, int(x - sample_size / 2))
    y1 = max(0, int(y - sample_size / 2))
    x2 = min(width, x1 + sample_size)
    y2 = min(height, y1 + sample_size)

    patch = rgb[y1:y2, x1:x2].reshape(-1, 3)
    avg = average_color(patch)
    logger.info(f"Surface color sampled at ({x}, {y}): {tuple(avg)}")

    colors = [avg]
    for delta in SURFACE_VARIATIONS:
        colors.append(Color(*(min(255, max(0, channel + delta)) for channel in avg)))
    return colors
