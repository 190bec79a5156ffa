"""
CLI command for rendering a composition request into an animation.

Usage:
    calligif render request.json --frames-dir ./strokes -o poem.webp
    calligif render request.json --frames-dir ./strokes --format zip
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

from ..assembly import OutputFormat
from ..config import load_config
from ..exceptions import CalligifError
from ..pipeline import render_request
from ..sources import DirectoryFrameSource
from ..types import CompositionRequest


_FORMAT_MAP = {
    "webp": OutputFormat.WEBP,
    "zip": OutputFormat.ZIP,
}


def format_size(size_bytes: int) -> str:
    if size_bytes < 1024:
        return f"{size_bytes} B"
    if size_bytes < 1024 * 1024:
        return f"{size_bytes / 1024:.1f} KB"
    return f"{size_bytes / (1024 * 1024):.1f} MB"


def read_request(path: Path) -> CompositionRequest:
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise CalligifError(f"{path} is not valid JSON: {exc}") from exc
    if not isinstance(data, dict):
        raise CalligifError(f"{path} must contain a JSON object")
    return CompositionRequest.from_dict(data)


def cmd_render(args: argparse.Namespace) -> int:
    """Main handler for ``calligif render``."""
    request_file = Path(args.request_file)
    if not request_file.is_file():
        print(f"Error: file not found: {request_file}", file=sys.stderr)
        return 1

    try:
        config = load_config(args.config)
        frames_root = Path(args.frames_dir) if args.frames_dir else config.frames_root
        if frames_root is None:
            print("Error: no frames directory (use --frames-dir or CALLIGIF_FRAMES_ROOT)",
                  file=sys.stderr)
            return 1

        request = read_request(request_file)
        fmt = _FORMAT_MAP[args.format]
        result = render_request(request, DirectoryFrameSource(frames_root), fmt, config,
                                frame_delay_ms=args.delay)
    except CalligifError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    output_path = Path(args.output) if args.output else Path(f"{request_file.stem}.{args.format}")
    output_path.write_bytes(result.payload)
    print(f"Done! {result.frame_count} frames -> {output_path} "
          f"({format_size(len(result.payload))}, {result.content_type})")
    return 0


def build_render_parser(subparsers: argparse._SubParsersAction) -> None:
    """Register the ``render`` subcommand and its arguments."""
    p = subparsers.add_parser(
        "render",
        help="Render a composition request into an animation",
        description="Composite stroke frames for a JSON request into an animated WebP or a zip of PNGs.",
    )
    p.add_argument(
        "request_file",
        help="Path to the JSON request (fontType, content, wordList, width, height)",
    )
    p.add_argument(
        "--frames-dir", default=None,
        help="Root of the <Style>/<char>.zip tree (default: $CALLIGIF_FRAMES_ROOT)",
    )
    p.add_argument(
        "--format", choices=sorted(_FORMAT_MAP), default="webp",
        help="Output format (default: webp)",
    )
    p.add_argument(
        "--delay", type=int, default=None,
        help="Per-frame delay in milliseconds; overrides the request's frameDelayMs "
             "(default: request, then config, 33)",
    )
    p.add_argument(
        "--config", default=None,
        help="YAML configuration file",
    )
    p.add_argument(
        "-o", "--output", default=None,
        help="Output file path (default: <request_stem>.<format>)",
    )
    p.set_defaults(func=cmd_render)
