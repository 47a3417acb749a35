#!/usr/bin/env python3
"""
Command line interface for tadpole segmentation.

Usage:
    tadseg run images/1.tiff
    tadseg run images/*.tiff --overlay-dir overlays --pixel-size 12.5
    tadseg run images/big.tiff --scale 2 --min-area-final 250
    tadseg config --output params.json

Subcommands:
    run         Segment one or more images and print area tables
    config      Show or save the effective configuration
"""

import argparse
import json
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

from tqdm import tqdm

from tadseg.io.image_io import load_image, save_overlay
from tadseg.processing.observers import DebugImageWriter
from tadseg.processing.pipeline import segment
from tadseg.reporting.stats import compute_batch_summary, format_stats_table
from tadseg.utils.config import (
    DEFAULT_CONFIG,
    ConfigValidationError,
    SegmentationConfig,
    get_config_summary,
    load_config,
    save_config,
    validate_config,
)
from tadseg.utils.errors import SegmentationError
from tadseg.utils.logging import get_logger, log_parameters, setup_logging

# Scalar parameters exposed as --kebab-case flags
PARAMETER_FLAGS = (
    "top_hat_radius",
    "close_gap_radius",
    "min_area_binary",
    "foreground_erode_radius",
    "min_area_foreground",
    "background_dilate_radius",
    "min_area_background_skeleton",
    "min_area_final",
    "otsu_bins",
    "watershed_connectivity",
    "label_dilation_workers",
)


def create_parser() -> argparse.ArgumentParser:
    """Create the main argument parser with subcommands."""

    parser = argparse.ArgumentParser(
        prog="tadseg",
        description="Segment tadpoles in color micrographs and report their areas",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Segment one image with default parameters (tuned for 320x240 images)
  tadseg run images/1.tiff

  # Several images, saving overlays and areas in um^2
  tadseg run images/*.tiff --overlay-dir overlays --pixel-size 12.5

  # Image twice as large: radii x2, areas x4
  tadseg run images/big.tiff --scale 2

  # Save the default parameters for editing
  tadseg config --output params.json
""",
    )

    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose (DEBUG) logging",
    )
    parser.add_argument(
        "-q", "--quiet",
        action="store_true",
        help="Suppress most output",
    )
    parser.add_argument(
        "--log-file",
        type=Path,
        help="Write logs to file",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # === RUN command ===
    run_parser = subparsers.add_parser(
        "run",
        help="Segment images",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    run_parser.add_argument(
        "images",
        type=Path,
        nargs="+",
        help="Image files (RGB)",
    )
    _add_config_arguments(run_parser)

    output_group = run_parser.add_argument_group("Output Options")
    output_group.add_argument(
        "--overlay-dir",
        type=Path,
        help="Save a label overlay PNG per image into this directory",
    )
    output_group.add_argument(
        "--debug-dir",
        type=Path,
        help="Save every intermediate stage and the intensity histogram per image",
    )
    output_group.add_argument(
        "--pixel-size",
        type=float,
        help="Pixel edge length in um; adds an um^2 column to the tables",
    )

    # === CONFIG command ===
    config_parser = subparsers.add_parser(
        "config",
        help="Show or save the effective configuration",
    )
    _add_config_arguments(config_parser)
    config_parser.add_argument(
        "--output", "-o",
        type=Path,
        help="Save the configuration as JSON instead of printing it",
    )

    return parser


def _add_config_arguments(parser: argparse.ArgumentParser) -> None:
    """Add configuration file, scaling and per-parameter flags."""
    group = parser.add_argument_group("Parameters")
    group.add_argument(
        "--config",
        type=Path,
        help="JSON file with parameters (snake_case or camelCase keys)",
    )
    group.add_argument(
        "--scale",
        type=float,
        help="Image size relative to 320x240: radii scale linearly, areas quadratically",
    )
    for key in PARAMETER_FLAGS:
        group.add_argument(
            "--" + key.replace("_", "-"),
            dest=key,
            type=int,
            help=f"(default: {DEFAULT_CONFIG[key]})",
        )
    group.add_argument(
        "--channel-weights",
        type=float,
        nargs=3,
        metavar=("R", "G", "B"),
        help="Channel weights of the contrast image (default: 0.5 0.5 -1)",
    )


def build_config(args: argparse.Namespace) -> SegmentationConfig:
    """
    Merge defaults, the --config file, --scale and per-parameter flags.

    Scaling applies to the file/default values; explicit flags win over it.

    Raises:
        ConfigValidationError: If any value is invalid
    """
    overrides: Dict[str, Any] = {key: getattr(args, key) for key in PARAMETER_FLAGS}
    if args.channel_weights is not None:
        overrides["channel_weights"] = list(args.channel_weights)
    overrides = {key: value for key, value in overrides.items() if value is not None}

    config = load_config(args.config)
    if args.scale is not None:
        config = config.scaled(args.scale)
    if overrides:
        config = config.replace(**overrides)
    return config


def cmd_run(args: argparse.Namespace) -> int:
    """Execute the run command."""
    logger = get_logger(__name__)

    try:
        config = build_config(args)
    except (ConfigValidationError, OSError) as e:
        logger.error(f"Invalid configuration: {e}")
        return 1

    for warning in validate_config(config.to_dict())["warnings"]:
        logger.warning(warning)

    log_parameters(logger, {
        "images": len(args.images),
        **config.to_dict(),
        "overlay_dir": args.overlay_dir,
        "debug_dir": args.debug_dir,
        "pixel_size_um": args.pixel_size,
    })

    failed = 0
    all_stats = {}

    iterator = args.images
    if len(args.images) > 1 and not args.quiet:
        iterator = tqdm(args.images, desc="Segmenting")

    for path in iterator:
        observers = []
        if args.debug_dir:
            observers.append(DebugImageWriter(args.debug_dir / path.stem, prefix=f"{path.stem}_"))

        try:
            image = load_image(path)
            result = segment(image, config, observers=observers)
        except (SegmentationError, OSError) as e:
            logger.error(f"{path.name}: {e}")
            failed += 1
            continue

        all_stats[path.name] = result.stats
        if result.stats.count == 0:
            logger.warning(f"{path.name}: no regions found")

        tqdm.write(format_stats_table(
            result.stats,
            pixel_size_um=args.pixel_size,
            title=f"\n{path.name} (threshold {result.threshold:.4f})",
        ))

        if args.overlay_dir:
            overlay_path = save_overlay(args.overlay_dir / f"{path.stem}_overlay.png", image, result.labels)
            logger.info(f"Overlay saved to: {overlay_path}")

    if len(all_stats) > 1:
        summary = compute_batch_summary(all_stats)
        logger.info(f"Batch complete: {summary['total_regions']} region(s) in {summary['n_images']} image(s)")

    if failed:
        logger.warning(f"Failed: {failed}/{len(args.images)} image(s)")
        return 1
    return 0


def cmd_config(args: argparse.Namespace) -> int:
    """Execute the config command."""
    logger = get_logger(__name__)

    try:
        config = build_config(args)
    except (ConfigValidationError, OSError) as e:
        logger.error(f"Invalid configuration: {e}")
        return 1

    if args.output:
        path = save_config(args.output, config)
        logger.info(f"Configuration saved to: {path}")
    else:
        print(get_config_summary(config))
        print(json.dumps(config.to_dict(), indent=2))
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for CLI."""
    parser = create_parser()
    args = parser.parse_args(argv)

    # Setup logging
    level = "DEBUG" if args.verbose else ("WARNING" if args.quiet else "INFO")
    setup_logging(level=level, log_file=args.log_file)

    # Dispatch to command handler
    if args.command == "run":
        return cmd_run(args)

    elif args.command == "config":
        return cmd_config(args)

    else:
        parser.print_help()
        return 0


if __name__ == "__main__":
    sys.exit(main())
