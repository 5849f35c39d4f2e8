"""
piquediff - PIQUE report extraction and comparison.

    piquediff.core    normalized report model, extractor, exporter
    piquediff.diff    directional reconciliation of two reports
    piquediff.config  environment settings
    piquediff.cli     command-line entry points
"""

__version__ = "1.0.0"
