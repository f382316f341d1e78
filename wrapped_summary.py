"""wrapped_summary.py

Print a "Wrapped" summary of a Claude or ChatGPT data export.

Usage:
    python wrapped_summary.py [export.zip] [--provider claude|chatgpt]
                              [--output stats.json] [--verbose]
"""

from __future__ import annotations

import argparse
import logging
import sys

from analytics import build_wrapped_stats, print_summary_report, save_stats_file
from export_errors import AmbiguousProvider, ParseError
from export_providers import Provider

logger = logging.getLogger(__name__)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Summarise an AI-assistant conversation export (ZIP)",
    )
    parser.add_argument("archive", nargs="?", default="export.zip",
                        help="Path to the export ZIP file (default: export.zip)")
    parser.add_argument("--provider", "-p", choices=[p.value for p in Provider],
                        help="Skip detection and treat the export as this provider")
    parser.add_argument("--output", "-o",
                        help="Also write the full statistics bundle to this JSON file")
    parser.add_argument("--verbose", "-v", action="store_true",
                        help="Enable debug logging")
    return parser


def main(argv: list[str] | None = None) -> None:
    """CLI entry point: compute the statistics and print the report.

    Exits with status 1 when the archive is missing or cannot be parsed.
    """
    args = _build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )

    try:
        stats = build_wrapped_stats(args.archive, provider_override=args.provider)
    except FileNotFoundError:
        print(f"Error: File '{args.archive}' not found.", file=sys.stderr)
        sys.exit(1)
    except AmbiguousProvider as exc:
        logger.debug("Provider detection failed for %s", args.archive, exc_info=True)
        print(f"Error: {exc} (use --provider)", file=sys.stderr)
        sys.exit(1)
    except ParseError as exc:
        logger.debug("Could not parse %s", args.archive, exc_info=True)
        print(f"Error: {exc}", file=sys.stderr)
        sys.exit(1)

    print_summary_report(stats)

    if args.output:
        save_stats_file(stats, args.output)
        print(f"\nFull statistics saved to {args.output}")


if __name__ == "__main__":
    main()
