"""
Color region detection: frame scanning and seeded region growing.
"""

import logging
from collections import deque
from typing import List, Optional, Sequence, Tuple

import numpy as np

from .config import (
    BACKGROUND_MAX_BRIGHTNESS,
    BACKGROUND_MIN_BRIGHTNESS,
    GROWTH_TOLERANCE_FACTOR,
    MIN_SCAN_STEP,
    RELAXED_MIN_FACTOR,
    Settings,
    ShapePolicy,
)
from .models import Color, Region
from .pixels import (
    as_rgb_frame,
    average_color,
    brightness,
    is_background_color,
    sample_color,
)

logger = logging.getLogger(__name__)

# 8-connected neighbourhood, in expansion order
NEIGHBOR_OFFSETS = (
    (1, 0), (-1, 0), (0, 1), (0, -1),
    (1, 1), (-1, -1), (1, -1), (-1, 1),
)


def _grow_capped(
    frame: np.ndarray,
    visited: np.ndarray,
    x: int,
    y: int,
    seed_color: Color,
    tolerance: float,
    max_size: int
) -> Tuple[List[int], List[int]]:
    """
    Breadth-first flood fill from (x, y) over unvisited pixels within
    ``tolerance`` of ``seed_color``.

    Each neighbour is tested when the fill first reaches it, so the cost is
    proportional to the pixels touched rather than to the frame. Claimed
    pixels are marked in ``visited`` as they are enqueued. The fill stops
    once ``max_size`` pixels have been claimed; the pixel being expanded
    when the cap is hit still finishes its neighbour loop.

    Returns:
        Column and row coordinates of the claimed pixels, in claim order
    """
    height, width = visited.shape
    seed_r, seed_g, seed_b = (int(channel) for channel in seed_color)

    visited[y, x] = True
    xs = [x]
    ys = [y]
    queue = deque([(x, y)])

    while queue and len(xs) < max_size:
        px, py = queue.popleft()
        for dx, dy in NEIGHBOR_OFFSETS:
            nx, ny = px + dx, py + dy
            if nx < 0 or nx >= width or ny < 0 or ny >= height:
                continue
            if visited[ny, nx]:
                continue
            r, g, b = frame[ny, nx, :3]
            distance = abs(int(r) - seed_r) + abs(int(g) - seed_g) + abs(int(b) - seed_b)
            if distance > tolerance:
                continue
            visited[ny, nx] = True
            xs.append(nx)
            ys.append(ny)
            queue.append((nx, ny))

    return xs, ys


def grow_region(
    frame: np.ndarray,
    x: int,
    y: int,
    seed_color: Color,
    visited: np.ndarray,
    settings: Settings
) -> Optional[Region]:
    """
    Grow a region of color-similar pixels from a seed point.

    A neighbour joins when its distance to the seed color (not the running
    average) is within ``color_threshold * GROWTH_TOLERANCE_FACTOR``, which
    tolerates shading within one object. Every claimed pixel is marked in
    ``visited`` whether or not the region is finally accepted, so regions
    grown from one visited grid never share pixels.

    Args:
        frame: RGB frame of shape (H, W, 3)
        x: Seed column
        y: Seed row
        seed_color: Growth reference color
        visited: Boolean grid of shape (H, W), updated in place
        settings: Caller settings

    Returns:
        The grown Region, or None if it has fewer than
        ``min_region_size * RELAXED_MIN_FACTOR`` pixels
    """
    tolerance = settings.color_threshold * GROWTH_TOLERANCE_FACTOR
    xs, ys = _grow_capped(frame, visited, x, y, seed_color, tolerance, settings.max_region_size)

    if len(xs) < settings.min_region_size * RELAXED_MIN_FACTOR:
        logger.debug(f"Seed ({x}, {y}): region of {len(xs)} px below relaxed minimum")
        return None

    xs = np.asarray(xs)
    ys = np.asarray(ys)
    min_x, max_x = int(xs.min()), int(xs.max())
    min_y, max_y = int(ys.min()), int(ys.max())

    mask = np.zeros((max_y - min_y + 1, max_x - min_x + 1), dtype=bool)
    mask[ys - min_y, xs - min_x] = True

    return Region(
        min_x=min_x,
        max_x=max_x,
        min_y=min_y,
        max_y=max_y,
        mask=mask,
        color=average_color(frame[ys, xs, :3]),
    )


def is_background_seed(color: Color) -> bool:
    """True for near-white backdrop or near-black shadow pixels."""
    value = brightness(color)
    return value > BACKGROUND_MAX_BRIGHTNESS or value < BACKGROUND_MIN_BRIGHTNESS


def find_color_regions(
    frame: np.ndarray,
    settings: Settings,
    shape: Optional[ShapePolicy] = None,
    surface_colors: Optional[Sequence[Color]] = None
) -> List[Region]:
    """
    Scan a frame on a coarse grid and grow candidate object regions.

    Seeds lie on a grid with stride ``max(MIN_SCAN_STEP, grid_size)``.
    Seeds already claimed by an earlier region, background-bright seeds and,
    when ``surface_colors`` is given, seeds matching the sampled surface are
    skipped. Grown regions must pass the shape policy to be kept.

    Args:
        frame: RGB(A) frame buffer, shape (H, W, 3) or (H, W, 4)
        settings: Caller settings
        shape: Shape prior for accepted regions (defaults to ShapePolicy())
        surface_colors: Optional surface colors to exclude as seeds

    Returns:
        Accepted regions in discovery order

    Raises:
        FrameError: If the frame is malformed.
        SettingsError: If the settings are out of range.
    """
    rgb = as_rgb_frame(frame)
    settings.validate()
    shape = shape or ShapePolicy()

    height, width = rgb.shape[:2]
    visited = np.zeros((height, width), dtype=bool)
    step = int(max(MIN_SCAN_STEP, settings.grid_size))

    regions: List[Region] = []
    for y in range(0, height, step):
        for x in range(0, width, step):
            if visited[y, x]:
                continue

            color = sample_color(rgb, x, y)
            if is_background_seed(color):
                continue
            if surface_colors and is_background_color(color, surface_colors, settings.color_threshold):
                continue

            region = grow_region(rgb, x, y, color, visited, settings)
            if region is None:
                continue

            if shape.accepts(region.width, region.height):
                logger.debug(
                    f"Seed ({x}, {y}): accepted region box={region.box}, "
                    f"size={region.size}, color={tuple(region.color)}"
                )
                regions.append(region)
            else:
                logger.debug(
                    f"Seed ({x}, {y}): rejected {region.width}x{region.height} region by shape"
                )

    logger.info(f"Found {len(regions)} potential regions")
    return regions
