"""
Report Comparison CLI

Reconciles two PIQUE reports and shows how LEFT differs from RIGHT:
product factors, measures, findings and diagnostics that differ or exist
on one side only.

Usage:
    piquediff-compare old.json new.json
    piquediff-compare old.json new.json --both
    piquediff-compare old.json new.json --json -o diff.json
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

from ..config import Settings
from ..core.report_extractor import ReportExtractor
from ..diff.reconciler import Reconciler
from .display import Colors, ConsoleDisplay
from .extract import configure_logging


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser with clear grouping."""
    parser = argparse.ArgumentParser(
        prog="piquediff-compare",
        description="Directional diff of two PIQUE quality-assessment reports.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
examples:
  %(prog)s left.json right.json             How left differs from right
  %(prog)s left.json right.json --both      Both directions
  %(prog)s left.json right.json --json      Print the diff as JSON
  %(prog)s left.json right.json -o d.json   Export the diff to JSON
""",
    )
    parser.add_argument("left", metavar="LEFT", help="Report the diff describes")
    parser.add_argument("right", metavar="RIGHT", help="Report it is compared with")
    parser.add_argument("--both", "-b", action="store_true", help="Also reconcile RIGHT against LEFT")

    # --- Output ---
    output = parser.add_argument_group("Output")
    output.add_argument("--output", "-o", metavar="FILE", help="Export the diff to a JSON file")
    output.add_argument("--json", action="store_true", help="Print the diff as JSON to stdout")
    output.add_argument("--quiet", "-q", action="store_true", help="Suppress console display")
    output.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")

    return parser


def export_json(data: Dict[str, Any], path: str, indent: Optional[int]) -> None:
    """Write the diff to a JSON file, creating parent directories as needed."""
    output_path = Path(path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    with open(output_path, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=indent)


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    display = ConsoleDisplay()

    try:
        settings = Settings.from_env()
        configure_logging(args, settings)

        extractor = ReportExtractor(settings.pillar_pattern)
        left = extractor.auto_build(args.left)
        right = extractor.auto_build(args.right)

        reconciler = Reconciler()
        results = [reconciler.reconcile(left, right)]
        if args.both:
            results.append(reconciler.reconcile(right, left))

        if args.both:
            data: Dict[str, Any] = {"leftVsRight": results[0].to_dict(), "rightVsLeft": results[1].to_dict()}
        else:
            data = results[0].to_dict()

        if args.output:
            export_json(data, args.output, settings.json_indent)
            if not args.quiet:
                print(display.colored(f"\n✓ Diff exported to: {args.output}", Colors.GREEN))

        if args.json:
            print(json.dumps(data, indent=settings.json_indent))
        elif not args.quiet:
            for result in results:
                display.display_diff(result)

        return 0

    except Exception as exc:
        print(display.colored(f"Error: {exc}", Colors.RED), file=sys.stderr)
        if args.verbose:
            logging.exception("Comparison failed")
        return 1


if __name__ == "__main__":
    sys.exit(main())
