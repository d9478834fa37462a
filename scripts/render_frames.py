#!/usr/bin/env python3
"""
Render the grid scan effect to PNG files without a window.

Time is simulated: frame i is rendered at t = start + i / fps and the scan
scheduler is stepped on the same clock, so runs are reproducible.

Usage:
    python scripts/render_frames.py --frames 120 --out frames/
    python scripts/render_frames.py --start 5 --frames 1 --line-style dashed
"""

import sys
import os
import argparse
import logging
from pathlib import Path

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from PIL import Image

from gridscan.effect.grid_scan import GridScanEffect
from gridscan.hosts.offscreen import OffscreenContainer
from gridscan.main import setup_logging
from gridscan.settings import EffectSettings

logger = logging.getLogger("render_frames")


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Render grid scan frames to PNG",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__
    )
    parser.add_argument('--width', type=int, default=640, help='Client width (default: 640)')
    parser.add_argument('--height', type=int, default=360, help='Client height (default: 360)')
    parser.add_argument('--pixel-ratio', type=float, default=1.0, help='Device pixel ratio (max 2)')
    parser.add_argument('--frames', type=int, default=60, help='Number of frames')
    parser.add_argument('--fps', type=float, default=30.0, help='Simulated frame rate')
    parser.add_argument('--start', type=float, default=0.0, help='Start time in seconds')
    parser.add_argument('--sensitivity', type=float, help='Motion sensitivity 0..1')
    parser.add_argument('--line-style', choices=['solid', 'dashed', 'dotted'], help='Grid line style')
    parser.add_argument('--direction', choices=['forward', 'backward', 'pingpong'], help='Initial scan direction')
    parser.add_argument('--out', type=Path, default=Path('frames'), help='Output directory')
    parser.add_argument('--debug', action='store_true', help='Debug logging')
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    setup_logging(args.debug)

    settings = EffectSettings()
    overrides = {}
    if args.sensitivity is not None:
        overrides['sensitivity'] = args.sensitivity
    if args.line_style:
        overrides['line_style'] = args.line_style
    if args.direction:
        overrides['scan_direction'] = args.direction
    config = settings.to_config().with_overrides(**overrides)

    container = OffscreenContainer(args.width, args.height, args.pixel_ratio)
    effect = GridScanEffect(
        config,
        container,
        scan_period=settings.scan_period,
        scan_initial_delay=settings.scan_initial_delay,
    )

    args.out.mkdir(parents=True, exist_ok=True)
    for i in range(args.frames):
        t = args.start + i / args.fps
        effect.scheduler.advance(t)
        frame = effect.tick(t)
        path = args.out / f"frame_{i:04d}.png"
        Image.fromarray(frame).save(path)
        logger.debug(f"Wrote {path}")

    logger.info(f"Rendered {args.frames} frames to {args.out}")
    return 0


if __name__ == '__main__':
    sys.exit(main())
