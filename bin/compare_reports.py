#!/usr/bin/env python3
"""
Report Comparison CLI

Shows how one PIQUE report differs from another.

Usage:
    python bin/compare_reports.py left.json right.json
    python bin/compare_reports.py left.json right.json --both --json
"""
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from piquediff.cli.compare import main


if __name__ == "__main__":
    sys.exit(main())
