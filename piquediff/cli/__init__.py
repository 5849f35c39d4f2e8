"""
Command-line entry points: piquediff-extract and piquediff-compare.
"""
