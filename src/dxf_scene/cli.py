"""Command-line interface for dxf-scene."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from .dxf_reader import inspect_dxf, parse_dxf
from .dxf_writer import WriterOptions, save_dxf
from .errors import DxfError


def _require_input(path_arg: str) -> Path:
    input_path = Path(path_arg)
    if not input_path.exists():
        print(f"Error: Input file not found: {input_path}", file=sys.stderr)
        sys.exit(1)
    return input_path


# --- Subcommand handlers ---


def _cmd_inspect(args: argparse.Namespace) -> None:
    """Handle the inspect subcommand."""
    input_path = _require_input(args.input)
    inventory = inspect_dxf(input_path)

    print(f"DXF File: {inventory.filepath}")
    print(f"Version:  {inventory.dxf_version or 'not specified'}")
    print(f"Units:    {inventory.units or 'not specified'}")
    print()

    if inventory.bounding_box:
        (x0, y0), (x1, y1) = inventory.bounding_box
        print(f"Bounding box: ({x0:.3f}, {y0:.3f}) to ({x1:.3f}, {y1:.3f})")
        print(f"Extent:       {x1 - x0:.3f} x {y1 - y0:.3f}")
        print()

    print("Layers:")
    for layer_name in sorted(inventory.layers.keys()):
        count = inventory.layers[layer_name]
        print(f"  {layer_name:30s} {count:5d} entities")
    print()

    print("Entity types:")
    for etype in sorted(inventory.entity_counts.keys()):
        count = inventory.entity_counts[etype]
        print(f"  {etype:20s} {count:5d}")
    print()

    print(f"Recognized entities: {inventory.recognized}")
    if inventory.skipped:
        print(f"Skipped entities:    {len(inventory.skipped)}")
        for skipped in inventory.skipped:
            print(f"  line {skipped.line:6d}  {skipped.type:12s} {skipped.reason}")


def _cmd_rewrite(args: argparse.Namespace) -> None:
    """Handle the rewrite subcommand."""
    input_path = _require_input(args.input)

    if args.output:
        output_path = Path(args.output)
    else:
        output_path = input_path.with_name(f"{input_path.stem}.rewritten.dxf")

    drawing = parse_dxf(input_path.read_bytes())
    print(f"Parsed: {drawing.entity_count} entities, "
          f"{len(drawing.skipped)} skipped, "
          f"{sum(drawing.unsupported.values())} unsupported", file=sys.stderr)
    for etype, count in sorted(drawing.unsupported.items()):
        print(f"  Unsupported {etype}: {count}", file=sys.stderr)
    if drawing.entity_count == 0:
        print("Warning: no geometric entities recognized", file=sys.stderr)

    options = WriterOptions(version=args.version, insunits=args.insunits)
    save_dxf(drawing.shapes, output_path, options=options)
    print(f"Written: {output_path}", file=sys.stderr)


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(
        prog="dxf-scene",
        description="Read, inspect and rewrite ASCII DXF drawings.",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable debug logging",
    )
    subparsers = parser.add_subparsers(dest="command")

    # --- inspect subcommand ---
    p_inspect = subparsers.add_parser(
        "inspect",
        help="Inspect a DXF file and print entity/layer summary.",
    )
    p_inspect.add_argument(
        "input",
        help="Path to the DXF file",
    )
    p_inspect.set_defaults(func=_cmd_inspect)

    # --- rewrite subcommand ---
    p_rewrite = subparsers.add_parser(
        "rewrite",
        help="Import a DXF file and write its LINE/CIRCLE/ARC/polyline/face geometry back out.",
    )
    p_rewrite.add_argument(
        "input",
        help="Path to the DXF file",
    )
    p_rewrite.add_argument(
        "-o", "--output",
        help="Output DXF file path (default: <input>.rewritten.dxf)",
    )
    p_rewrite.add_argument(
        "--version",
        default="AC1015",
        help="$ACADVER written to the header (default: AC1015)",
    )
    p_rewrite.add_argument(
        "--insunits",
        type=int,
        default=4,
        help="$INSUNITS written to the header (default: 4, millimeters)",
    )
    p_rewrite.set_defaults(func=_cmd_rewrite)

    args = parser.parse_args(argv)

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")

    if not args.command:
        parser.print_help()
        sys.exit(1)

    try:
        args.func(args)
    except DxfError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        sys.exit(1)
