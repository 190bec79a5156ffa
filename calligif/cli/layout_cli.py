"""
CLI commands for static column layout.

Usage:
    calligif layout 120 80 100 --item-width 100 --canvas 400 300
    calligif static --font 楷書 --content 床前明月光 --canvas 800 600 -o poem.png
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

from ..config import load_config
from ..exceptions import CalligifError
from ..layout import plan_static_layout
from ..pipeline import generate_static_layout
from ..sources import DirectoryFrameSource
from ..types import CalliFont


def cmd_layout(args: argparse.Namespace) -> int:
    """Print the column plan for a list of item heights as JSON."""
    width, height = args.canvas
    try:
        plan = plan_static_layout(args.heights, args.item_width, width, height,
                                  columns=args.columns)
    except ValueError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    print(json.dumps(plan.to_dict(), indent=2))
    return 0


def cmd_static(args: argparse.Namespace) -> int:
    """Render whole-character stills into a single laid-out PNG."""
    width, height = args.canvas
    try:
        config = load_config(args.config)
        frames_root = Path(args.frames_dir) if args.frames_dir else config.frames_root
        if frames_root is None:
            print("Error: no frames directory (use --frames-dir or CALLIGIF_FRAMES_ROOT)",
                  file=sys.stderr)
            return 1
        png, plan = generate_static_layout(
            CalliFont.parse(args.font), args.content,
            DirectoryFrameSource(frames_root), width, height, columns=args.columns,
        )
    except CalligifError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    Path(args.output).write_bytes(png)
    print(f"Done! {len(args.content)} characters in {plan.columns} columns -> {args.output}")
    return 0


def _add_canvas_args(p: argparse.ArgumentParser) -> None:
    p.add_argument(
        "--canvas", type=int, nargs=2, metavar=("WIDTH", "HEIGHT"), required=True,
        help="Canvas size in pixels",
    )
    p.add_argument(
        "--columns", type=int, default=None,
        help="Fixed column count (default: search every count for the best fit)",
    )


def build_layout_parser(subparsers: argparse._SubParsersAction) -> None:
    """Register the ``layout`` subcommand."""
    p = subparsers.add_parser(
        "layout",
        help="Plan a greedy multi-column layout for item heights",
    )
    p.add_argument("heights", type=float, nargs="+", help="Item heights in input order")
    p.add_argument("--item-width", type=float, required=True, help="Uniform item width")
    _add_canvas_args(p)
    p.set_defaults(func=cmd_layout)


def build_static_parser(subparsers: argparse._SubParsersAction) -> None:
    """Register the ``static`` subcommand."""
    p = subparsers.add_parser(
        "static",
        help="Lay out whole-character images into a single PNG",
    )
    p.add_argument("--font", required=True, help="Style name, e.g. 楷書 or Regular")
    p.add_argument("--content", required=True, help="Characters to lay out")
    p.add_argument("--frames-dir", default=None,
                   help="Root of the <Style>/<char>.png tree (default: $CALLIGIF_FRAMES_ROOT)")
    p.add_argument("--config", default=None, help="YAML configuration file")
    p.add_argument("-o", "--output", default="layout.png", help="Output PNG path")
    _add_canvas_args(p)
    p.set_defaults(func=cmd_static)
