#!/usr/bin/env python3
"""
Report Extraction CLI

Normalizes one PIQUE report and prints a summary or the normalized model.

Usage:
    python bin/extract_report.py report.json
    python bin/extract_report.py report.json --json -o output/normalized.json
"""
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from piquediff.cli.extract import main


if __name__ == "__main__":
    sys.exit(main())
