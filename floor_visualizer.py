"""
Floor Visualizer - preview a tiled material on the floor of a photograph.

Usage:
    python floor_visualizer.py apply room.jpg --texture oak.png --detect -o preview.png
    python floor_visualizer.py apply room.jpg --texture https://host/oak.png \\
        --polygon "10,300 600,300 640,480 0,480" -o preview.png
    python floor_visualizer.py apply room.jpg --texture oak.png --mask floor.png -o preview.png
    python floor_visualizer.py detect room.jpg -o floor.png
    python floor_visualizer.py polygon-mask room.jpg --points "10,10 100,10 100,100" -o floor.png
"""

import argparse
import asyncio
import functools
import logging
import sys
from typing import List, Optional, Tuple

from FV_Libs.ImageEditingLib.bitmap_io import export_bitmap, load_bitmap, load_mask
from FV_Libs.ImageEditingLib.bitmap_models import Bitmap, Mask
from FV_Libs.JobDispatchLib.job_dispatcher import DispatcherConfig, TextureJobDispatcher
from FV_Libs.MaskingLib.coordinate_mapping import CoordinateMapper
from FV_Libs.MaskingLib.polygon_mask_builder import PolygonMaskBuilder
from FV_Libs.RemoteLib.floor_detection import detect_floor
from FV_Libs.constants import (
    DEFAULT_BACKEND,
    DEFAULT_LOG_LEVEL,
    DETECTION_ENDPOINT,
    SUPPORTED_BACKENDS,
)
from FV_Libs.errors import FloorVisualizerError
from FV_Libs.logging_config import configure_logging

logger = logging.getLogger("floor_visualizer")


def parse_points(text: str) -> List[Tuple[float, float]]:
    """Parse "x,y x,y ..." into coordinate pairs."""
    points = []
    for token in text.replace(";", " ").split():
        try:
            x_text, y_text = token.split(",")
            points.append((float(x_text), float(y_text)))
        except ValueError:
            raise argparse.ArgumentTypeError(f"Invalid point '{token}', expected x,y")
    return points


def parse_size(text: str) -> Tuple[float, float]:
    try:
        width_text, height_text = text.lower().split("x")
        return (float(width_text), float(height_text))
    except ValueError:
        raise argparse.ArgumentTypeError(f"Invalid size '{text}', expected WIDTHxHEIGHT")


def build_polygon_mask(
    original: Bitmap,
    points: List[Tuple[float, float]],
    display_size: Optional[Tuple[float, float]] = None,
) -> Mask:
    """Feed display coordinates through the polygon builder."""
    mapper = None
    if display_size is not None:
        mapper = CoordinateMapper(original.width, original.height, *display_size)
    builder = PolygonMaskBuilder(original.width, original.height, mapper)
    for point in points:
        builder.add_point(point)
    return builder.complete()


async def run_apply(args: argparse.Namespace) -> None:
    original = load_bitmap(args.image)

    if args.mask:
        mask = load_mask(args.mask)
    elif args.polygon:
        mask = build_polygon_mask(original, args.polygon, args.display_size)
    else:
        loop = asyncio.get_running_loop()
        mask = await loop.run_in_executor(
            None, functools.partial(detect_floor, args.image, endpoint=args.endpoint)
        )

    config = DispatcherConfig(backend=args.backend)
    async with TextureJobDispatcher(config=config) as dispatcher:
        result = await dispatcher.apply_texture(original, mask, args.texture)

    export_bitmap(result, args.output)
    logger.info(f"Saved preview to {args.output}")


def run_detect(args: argparse.Namespace) -> None:
    mask = detect_floor(args.image, endpoint=args.endpoint)
    mask.to_image().save(args.output)
    logger.info(f"Saved floor mask to {args.output}")


def run_polygon_mask(args: argparse.Namespace) -> None:
    original = load_bitmap(args.image)
    mask = build_polygon_mask(original, args.points, args.display_size)
    mask.to_image().save(args.output)
    logger.info(f"Saved polygon mask ({mask.covered_count()} pixels) to {args.output}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="floor-visualizer",
        description="Preview a tiled material texture on the floor of a photograph",
    )
    parser.add_argument("--log-level", default=DEFAULT_LOG_LEVEL, help="Logging level")
    parser.add_argument("--log-file", default=None, help="Optional log file path")
    parser.add_argument("--endpoint", default=DETECTION_ENDPOINT, help="Floor detection URL")

    subparsers = parser.add_subparsers(dest="command", required=True)

    apply_parser = subparsers.add_parser("apply", help="Apply a texture to the floor")
    apply_parser.add_argument("image", help="Photograph to texture")
    apply_parser.add_argument("--texture", required=True, help="Texture URL or path")
    mask_group = apply_parser.add_mutually_exclusive_group(required=True)
    mask_group.add_argument("--mask", help="Floor mask image")
    mask_group.add_argument("--polygon", type=parse_points, help='Outline as "x,y x,y ..."')
    mask_group.add_argument("--detect", action="store_true", help="Use the remote detector")
    apply_parser.add_argument(
        "--display-size", type=parse_size, default=None,
        help="Display size the polygon was drawn at (WIDTHxHEIGHT)",
    )
    apply_parser.add_argument(
        "--backend", choices=sorted(SUPPORTED_BACKENDS), default=DEFAULT_BACKEND,
        help="Background execution context",
    )
    apply_parser.add_argument("-o", "--output", required=True, help="Output image path")

    detect_parser = subparsers.add_parser("detect", help="Fetch a floor mask from the detector")
    detect_parser.add_argument("image", help="Photograph to analyse")
    detect_parser.add_argument("-o", "--output", required=True, help="Output mask path")

    polygon_parser = subparsers.add_parser("polygon-mask", help="Rasterize a polygon outline")
    polygon_parser.add_argument("image", help="Photograph the outline belongs to")
    polygon_parser.add_argument("--points", type=parse_points, required=True, help='"x,y x,y ..."')
    polygon_parser.add_argument("--display-size", type=parse_size, default=None)
    polygon_parser.add_argument("-o", "--output", required=True, help="Output mask path")

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.log_level, args.log_file)

    try:
        if args.command == "apply":
            asyncio.run(run_apply(args))
        elif args.command == "detect":
            run_detect(args)
        elif args.command == "polygon-mask":
            run_polygon_mask(args)
    except (FloorVisualizerError, OSError) as e:
        logger.error(f"{args.command} failed: {e}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
