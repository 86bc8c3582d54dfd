#!/usr/bin/env python3
"""
Command line interface for the chip-stack counter.

Usage:
    chipstack analyze photo.jpg
    chipstack analyze photo.jpg --palette my_chips.json --output result.json
    chipstack analyze photo.jpg --overlay debug.png --workers 4
    chipstack palette
    chipstack config

Subcommands:
    analyze     Count chip stacks in a photo
    palette     Show the default (or a loaded) palette
    config      Show the effective stage parameters
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import List, Optional

from chipstack.types import InvalidInputError
from chipstack.utils.config import (
    DEFAULT_PALETTE,
    ConfigValidationError,
    get_config_summary,
    load_config,
    load_palette,
)
from chipstack.utils.logging import get_logger, log_parameters, setup_logging

EXIT_OK = 0
EXIT_INVALID_INPUT = 2


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="chipstack",
        description="Count casino chip stacks in a photograph",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: WARNING)",
    )
    parser.add_argument(
        "--log-file",
        type=Path,
        help="Write logs to file",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # === ANALYZE command ===
    analyze_parser = subparsers.add_parser("analyze", help="Count chip stacks in a photo")
    analyze_parser.add_argument("image", type=Path, help="Photo of one or more chip stacks")
    analyze_parser.add_argument("--palette", "-p", type=Path, help="Palette JSON file")
    analyze_parser.add_argument("--config", "-c", type=Path, help="Config JSON file")
    analyze_parser.add_argument("--output", "-o", type=Path, help="Write result JSON here")
    analyze_parser.add_argument("--overlay", type=Path, help="Write debug overlay image here")
    analyze_parser.add_argument(
        "--workers", "-w",
        type=int,
        default=None,
        help="Threads for per-tower analysis (default: from config)",
    )

    # === PALETTE command ===
    palette_parser = subparsers.add_parser("palette", help="Show denominations")
    palette_parser.add_argument("--palette", "-p", type=Path, help="Palette JSON file to show")

    # === CONFIG command ===
    config_parser = subparsers.add_parser("config", help="Show effective stage parameters")
    config_parser.add_argument("--config", "-c", type=Path, help="Config JSON file")

    return parser


def _format_value(value: float) -> str:
    return f"{value:g}"


def cmd_analyze(args: argparse.Namespace) -> int:
    """Execute the analyze command."""
    from chipstack.io import load_pixel_buffer, save_result
    from chipstack.processing import analyze, render_overlay, save_overlay
    from chipstack.preprocessing import prepare_working_image

    logger = get_logger(__name__)

    config = load_config(args.config)
    log_parameters(logger, config, title="Configuration")
    palette = load_palette(args.palette) if args.palette else list(DEFAULT_PALETTE)
    if args.workers is not None and args.workers < 1:
        raise InvalidInputError(f"--workers must be >= 1, got {args.workers}")

    buffer = load_pixel_buffer(args.image)
    result = analyze(buffer, palette, config=config, max_workers=args.workers)

    if not result.stacks:
        print("No chip stacks detected")
    for stack in result.stacks:
        flag = f"  (needs review, confidence {stack.confidence:.0%})" if stack.needs_review else ""
        print(
            f"Stack {stack.id}: {stack.count} x {stack.chip.label} "
            f"({stack.chip.color}) = {_format_value(stack.value)}{flag}"
        )
    print(f"Total: {_format_value(result.total_value)}")
    if result.warning:
        print(f"Warning: {result.warning}")

    if args.output:
        save_result(result, args.output, source=args.image)

    if args.overlay:
        processing = config["processing"]
        working = prepare_working_image(
            buffer, processing["target_height"], processing["max_aspect_ratio"]
        )
        save_overlay(args.overlay, render_overlay(working, result.debug_overlay))

    logger.debug("Sharpness %.1f, white point %s", result.sharpness, result.white_point)
    return EXIT_OK


def cmd_palette(args: argparse.Namespace) -> int:
    """Execute the palette command."""
    palette = load_palette(args.palette) if args.palette else DEFAULT_PALETTE
    for chip in palette:
        r, g, b = chip.rgb
        print(f"{chip.color:<8} {chip.label:>5}  value={_format_value(chip.value):<6} rgb=({r}, {g}, {b})")
    return EXIT_OK


def cmd_config(args: argparse.Namespace) -> int:
    """Execute the config command."""
    print(get_config_summary(load_config(args.config)))
    return EXIT_OK


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for CLI."""
    parser = create_parser()
    args = parser.parse_args(argv)

    setup_logging(level=args.log_level, log_file=args.log_file)
    logger = get_logger(__name__)

    commands = {
        "analyze": cmd_analyze,
        "palette": cmd_palette,
        "config": cmd_config,
    }
    handler = commands.get(args.command)
    if handler is None:
        parser.print_help()
        return EXIT_OK

    try:
        return handler(args)
    except (InvalidInputError, ConfigValidationError) as e:
        logger.error(str(e))
        return EXIT_INVALID_INPUT


if __name__ == "__main__":
    sys.exit(main())
