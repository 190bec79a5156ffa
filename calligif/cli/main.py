"""Main CLI entry point for calligif."""

from __future__ import annotations

import argparse
import logging
import sys

from .. import __version__
from .layout_cli import build_layout_parser, build_static_parser
from .render_cli import build_render_parser


def _configure_logging(verbosity: int) -> None:
    level = {0: logging.WARNING, 1: logging.INFO}.get(verbosity, logging.DEBUG)
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="calligif",
        description="Stroke-by-stroke calligraphy animation pipeline",
    )
    parser.add_argument("--version", action="version", version=f"calligif {__version__}")
    parser.add_argument(
        "-v", "--verbose", action="count", default=0,
        help="Increase log verbosity (-v info, -vv debug)",
    )
    subparsers = parser.add_subparsers(dest="command")
    build_render_parser(subparsers)
    build_layout_parser(subparsers)
    build_static_parser(subparsers)
    args = parser.parse_args(argv)
    if args.command is None:
        parser.print_help()
        return 0
    _configure_logging(args.verbose)
    return args.func(args)


def cli_entry() -> None:
    sys.exit(main())
