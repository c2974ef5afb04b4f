"""CLI entry point for blockmeta."""

import argparse
import sys
from pathlib import Path
from typing import NoReturn

from loguru import logger

from ..core.config import Config
from . import commands


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser with all subcommands."""
    parser = argparse.ArgumentParser(
        prog="blockmeta",
        description="Extract page metadata into tagged block properties",
    )
    parser.add_argument("--version", action="version", version="%(prog)s 0.1.0")
    parser.add_argument(
        "-r",
        "--rules",
        type=Path,
        help="Rule file (JSON or YAML); built-in rules when omitted",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Log debug output to stderr",
    )

    subparsers = parser.add_subparsers(dest="command", required=False)

    extract_parser = subparsers.add_parser("extract", help="Extract metadata from a URL")
    commands.add_extract_arguments(extract_parser)

    match_parser = subparsers.add_parser("match", help="Show the rule matching a URL")
    match_parser.add_argument("url", help="URL to match")

    subparsers.add_parser("rules", help="List rules in priority order")

    search_parser = subparsers.add_parser("search", help="Search Douban books by keyword")
    search_parser.add_argument("keyword", help="Title, author or ISBN")
    search_parser.add_argument(
        "-l",
        "--limit",
        type=int,
        default=5,
        help="Maximum results to print (default: 5)",
    )

    return parser


def configure_logging(level: str) -> None:
    """Send log records at ``level`` and above to stderr."""
    logger.remove()
    logger.add(sys.stderr, level=level, format="{time:HH:mm:ss} | {level: <8} | {message}")


def main() -> NoReturn:
    """Main entry point."""
    parser = create_parser()
    args = parser.parse_args()
    config = Config.from_env()
    if args.rules is not None:
        config.rules_path = args.rules
    configure_logging("DEBUG" if args.verbose else config.log_level)

    try:
        if args.command == "extract":
            commands.handle_extract(args, config)
        elif args.command == "match":
            commands.handle_match(args, config)
        elif args.command == "rules":
            commands.handle_rules(args, config)
        elif args.command == "search":
            commands.handle_search(args, config)
        else:
            parser.print_help()

        sys.exit(0)
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
