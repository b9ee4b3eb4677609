"""
Command-Line Interface for QR Extruder

Usage:
    qr-extruder qrcode.png
    qr-extruder qrcode.png black 10
    qr-extruder qrcode.png white 8 -o plate.stl --height 0.2 --scale 5

Missing color or cell size arguments are asked for interactively.
"""

import argparse
import sys
import time
from pathlib import Path
from typing import Callable, List, Optional

from . import __version__
from .color import ColorChoice
from .exceptions import InvalidCellSizeError, InvalidColorError
from .exporters.stl_exporter import DEFAULT_OUTPUT
from .generator import QRExtruder
from .logging_config import setup_logging


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="qr-extruder",
        description="QR Extruder - Convert a QR code image to a printable STL solid",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  qr-extruder qrcode.png
      Detect the colors, then ask which to raise and the cell size

  qr-extruder qrcode.png black 10
      Raise the black modules, sampling one cell every 10 pixels

  qr-extruder qrcode.png white 10 -o plate.stl --ascii --force
      Raise the white modules, write ASCII STL over an existing file
        """
    )

    # Input
    parser.add_argument(
        "input",
        nargs="?",
        help="QR code image file"
    )

    parser.add_argument(
        "color",
        nargs="?",
        help="Color to raise (one of the two detected color names, or #rrggbb)"
    )

    parser.add_argument(
        "cell_size",
        nargs="?",
        help="Size of a single grid cell in pixels"
    )

    # Output
    parser.add_argument(
        "-o", "--output",
        default=DEFAULT_OUTPUT,
        help=f"Output STL path (default: {DEFAULT_OUTPUT})"
    )

    parser.add_argument(
        "--ascii",
        action="store_true",
        help="Write ASCII STL instead of binary"
    )

    parser.add_argument(
        "--force",
        action="store_true",
        help="Overwrite the output file if it exists"
    )

    # Geometry settings
    parser.add_argument(
        "--height",
        type=float,
        default=1.0,
        help="Extrusion height of raised cells (default: 1.0)"
    )

    parser.add_argument(
        "--scale",
        type=float,
        default=1.0,
        help="Footprint size of the model (default: 1.0)"
    )

    parser.add_argument(
        "--no-grayscale",
        action="store_true",
        help="Keep image colors instead of converting to grayscale"
    )

    # Misc
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Verbose output with debug logging"
    )

    parser.add_argument(
        "--stats",
        action="store_true",
        help="Print mesh statistics"
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}"
    )

    return parser


def parse_cell_size(text: str) -> int:
    """
    Parse a cell size given as text.

    Raises:
        InvalidCellSizeError: Not a whole number >= 1
    """
    try:
        cell_size = int(text.strip())
    except ValueError:
        raise InvalidCellSizeError(text) from None

    if cell_size < 1:
        raise InvalidCellSizeError(cell_size)
    return cell_size


def prompt_color(
    colors: ColorChoice,
    input_fn: Callable[[], str] = input
) -> str:
    """Ask for the raised color until a valid one is given."""
    primary, secondary = colors.names
    while True:
        print(f"Which color would you like to have the geometry ({primary} or {secondary})?")
        choice = input_fn().strip().lower()
        try:
            colors.raised_color(choice)
            return choice
        except InvalidColorError:
            print("That is not a valid color option! Try again. . .")


def prompt_cell_size(input_fn: Callable[[], str] = input) -> int:
    """Ask for the cell size until a valid one is given."""
    while True:
        print("What is the size of a single grid cell in pixels?")
        try:
            return parse_cell_size(input_fn())
        except InvalidCellSizeError:
            print("That is not a valid whole number! Try again. . .")


def print_stats(stats: dict):
    print("\nMesh Statistics:")
    print(f"  Grid size: {stats['grid_size'][0]} x {stats['grid_size'][1]}")
    print(f"  Raised cells: {stats['raised_cells']}")
    print(f"  Triangles: {stats['triangles']}")
    print(f"  Cap triangles: {stats['cap_triangles']}")
    print(f"  Wall triangles: {stats['wall_triangles']}")
    print(f"  Reduction vs. isolated blocks: {stats['triangle_reduction_percent']:.1f}%")
    print(f"  Unmatched edges: {stats['unmatched_edges']}")


def process_single(args, input_fn: Callable[[], str] = input) -> int:
    """Process a single image file."""
    if not args.input:
        print("Error: You must provide the path of the QR code image as the first argument",
              file=sys.stderr)
        return 1

    input_path = Path(args.input)
    if not input_path.exists():
        print(f"Error: Could not find an image at the path \"{input_path}\"", file=sys.stderr)
        return 1

    output_path = Path(args.output)
    if output_path.exists() and not args.force:
        print(f"Error: Output file already exists: {output_path} (use --force)",
              file=sys.stderr)
        return 1

    start_time = time.time()

    try:
        # Validate given arguments before any prompting
        cell_size = parse_cell_size(args.cell_size) if args.cell_size is not None else None

        extruder = QRExtruder(
            height=args.height,
            scale=args.scale,
            grayscale=not args.no_grayscale
        )

        extruder.load_image(input_path)
        width, height = extruder.image_size
        print(f"Processing the QR code image at location {input_path}")
        print(f"This image is {width}px by {height}px")

        extruder.detect_colors()
        primary, secondary = extruder.colors.names
        print(f"The two colors used are {primary} and {secondary}")

        if args.color is not None:
            extruder.choose_raised_color(args.color)
        else:
            extruder.choose_raised_color(prompt_color(extruder.colors, input_fn))

        if cell_size is None:
            cell_size = prompt_cell_size(input_fn)

        extruder.sample(cell_size)
        extruder.generate_mesh()

        if args.stats or args.verbose:
            print_stats(extruder.get_mesh_stats())

        written = extruder.export_stl(
            output_path,
            binary=not args.ascii,
            overwrite=args.force
        )

        elapsed = time.time() - start_time
        if args.verbose:
            print(f"\nCompleted in {elapsed:.2f}s")

        print(f"STL successfully created at \"{written}\"")
        return 0

    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        if args.verbose:
            import traceback
            traceback.print_exc()
        return 1


def main(
    argv: Optional[List[str]] = None,
    input_fn: Callable[[], str] = input
) -> int:
    """Main entry point."""
    parser = create_parser()
    args = parser.parse_args(argv)

    setup_logging(verbose=args.verbose)
    return process_single(args, input_fn)


if __name__ == "__main__":
    sys.exit(main())
