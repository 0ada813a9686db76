"""
sockmatch - Sock Pair Detection on still images

Detects sock-like color regions in a photo of socks laid on a plain surface
and prints the matching pairs.

Usage:
    # Analyze a photo with default settings
    sockmatch laundry.jpg

    # Exclude the surface color sampled at (40, 40) and save the result
    sockmatch laundry.jpg --surface 40 40 --output pairs.json
"""

import argparse
import json
import logging
import os
import sys
from dataclasses import replace

import cv2

from .config import default_settings
from .exceptions import SockMatchError
from .pipeline import analyze_frame
from .pixels import sample_surface_colors
from .timing import StageTimings

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    defaults = default_settings()

    parser = argparse.ArgumentParser(
        prog="sockmatch",
        description="🧦 sockmatch - Sock Pair Detection",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Analyze a photo
  sockmatch laundry.jpg

  # Tighter color matching, larger minimum sock size
  sockmatch laundry.jpg --color-threshold 25 --min-region-size 4000

  # Ignore the table surface sampled at pixel (40, 40)
  sockmatch laundry.jpg --surface 40 40
"""
    )

    parser.add_argument('image', help='Path to the input image')

    # Detection settings
    parser.add_argument(
        '--grid-size', type=int, default=defaults.grid_size,
        help=f'Seed grid spacing in pixels (default: {defaults.grid_size})'
    )
    parser.add_argument(
        '--min-region-size', type=int, default=defaults.min_region_size,
        help=f'Minimum region size in pixels (default: {defaults.min_region_size})'
    )
    parser.add_argument(
        '--max-region-size', type=int, default=defaults.max_region_size,
        help=f'Maximum region size in pixels (default: {defaults.max_region_size})'
    )
    parser.add_argument(
        '--color-threshold', type=float, default=defaults.color_threshold,
        help=f'Color difference threshold (default: {defaults.color_threshold})'
    )
    parser.add_argument(
        '--surface', type=int, nargs=2, metavar=('X', 'Y'),
        help='Sample the background surface color at this pixel and exclude it'
    )

    # Output options
    parser.add_argument(
        '--output', '-o',
        help='Write the analysis as JSON to this path'
    )
    parser.add_argument(
        '--profile',
        action='store_true',
        help='Print a timing breakdown'
    )
    parser.add_argument(
        '--log-level',
        default=os.environ.get('LOG_LEVEL', 'warning'),
        help='Logging level (default: $LOG_LEVEL or warning)'
    )
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, args.log_level.upper(), logging.WARNING),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    settings = replace(
        default_settings(),
        grid_size=args.grid_size,
        min_region_size=args.min_region_size,
        max_region_size=args.max_region_size,
        color_threshold=args.color_threshold,
    )

    frame_bgr = cv2.imread(args.image)
    if frame_bgr is None:
        print(f"Error: Could not load image: {args.image}", file=sys.stderr)
        return 1
    frame_rgb = cv2.cvtColor(frame_bgr, cv2.COLOR_BGR2RGB)

    timings = StageTimings() if args.profile else None

    try:
        surface_colors = None
        if args.surface:
            surface_colors = sample_surface_colors(frame_rgb, *args.surface)
        analysis = analyze_frame(frame_rgb, settings, surface_colors=surface_colors, timings=timings)
    except SockMatchError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        print("\nStopped by user.")
        return 0

    print(f"Regions detected: {len(analysis.regions)}")
    for pair_number, (i, j) in enumerate(analysis.pair_indices(), start=1):
        first, second = analysis.regions[i], analysis.regions[j]
        print(f"  Pair {pair_number}: region {i} {first.box} <-> region {j} {second.box}")
    if not analysis.pairs:
        print("  No pairs matched")

    if timings is not None:
        print("\n".join(timings.summary_lines()))

    if args.output:
        with open(args.output, 'w') as f:
            json.dump(analysis.to_dict(), f, indent=2)
        logger.info(f"Analysis written to {args.output}")

    return 0


if __name__ == "__main__":
    sys.exit(main())
