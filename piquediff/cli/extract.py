"""
Report Extraction CLI

Normalizes one PIQUE report (nested or separated-table shape, JSON or
YAML) and prints a summary, or the normalized model as JSON.

Usage:
    piquediff-extract report.json
    piquediff-extract report.json --json
    piquediff-extract report.yaml -o normalized.json --graphml report.graphml
"""

import argparse
import json
import logging
import sys
from typing import List, Optional

from ..config import Settings
from ..core.report_exporter import ReportExporter
from ..core.report_extractor import ReportExtractor
from .display import Colors, ConsoleDisplay


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser with clear grouping."""
    parser = argparse.ArgumentParser(
        prog="piquediff-extract",
        description="Normalize a PIQUE quality-assessment report.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
examples:
  %(prog)s report.json                      Print a summary
  %(prog)s report.json --json               Print the normalized model
  %(prog)s report.json -o out.json          Export the normalized model
  %(prog)s report.json --graphml out.xml    Export the entity graph
""",
    )
    parser.add_argument("report", metavar="REPORT", help="Report file (.json, .yaml, .yml)")

    # --- Output ---
    output = parser.add_argument_group("Output")
    output.add_argument("--output", "-o", metavar="FILE", help="Export the normalized model to JSON")
    output.add_argument("--graphml", metavar="FILE", help="Export the entity graph to GraphML")
    output.add_argument("--json", action="store_true", help="Print the normalized model and its validation as JSON to stdout")
    output.add_argument("--quiet", "-q", action="store_true", help="Suppress console display")
    output.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")

    return parser


def configure_logging(args: argparse.Namespace, settings: Settings) -> None:
    log_level = (
        logging.DEBUG if args.verbose
        else logging.WARNING if args.quiet
        else getattr(logging, settings.log_level, logging.INFO)
    )
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    display = ConsoleDisplay()

    try:
        settings = Settings.from_env()
        configure_logging(args, settings)

        extractor = ReportExtractor(settings.pillar_pattern)
        report = extractor.auto_build(args.report)
        exporter = ReportExporter(report, indent=settings.json_indent)

        if args.output:
            exporter.export_json(args.output)
            if not args.quiet:
                print(display.colored(f"\n✓ Normalized report exported to: {args.output}", Colors.GREEN))

        if args.graphml:
            exporter.export_graphml(args.graphml)
            if not args.quiet:
                print(display.colored(f"✓ Entity graph exported to: {args.graphml}", Colors.GREEN))

        if args.json:
            data = report.to_dict()
            data["validation"] = extractor.validation.to_dict()
            print(json.dumps(data, indent=settings.json_indent))
        elif not args.quiet:
            display.display_report_summary(report, extractor.validation)

        return 0

    except Exception as exc:
        print(display.colored(f"Error: {exc}", Colors.RED), file=sys.stderr)
        if args.verbose:
            logging.exception("Extraction failed")
        return 1


if __name__ == "__main__":
    sys.exit(main())
