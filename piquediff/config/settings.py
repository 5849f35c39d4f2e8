"""
Application Settings

Environment configuration for the command-line tools.
"""

import os
from dataclasses import dataclass
from typing import Optional

from ..core.report_model import VULN_PILLAR_PATTERN


@dataclass
class Settings:
    """Application settings from environment."""

    # Logging
    log_level: str = "INFO"

    # Output
    json_indent: Optional[int] = 2

    # Extraction
    pillar_pattern: str = VULN_PILLAR_PATTERN.pattern

    @classmethod
    def from_env(cls) -> "Settings":
        """Load settings from environment variables."""
        return cls(
            log_level=os.getenv("PIQUEDIFF_LOG_LEVEL", "INFO").upper(),
            json_indent=_parse_indent(os.getenv("PIQUEDIFF_JSON_INDENT", "2")),
            pillar_pattern=os.getenv("PIQUEDIFF_PILLAR_PATTERN") or VULN_PILLAR_PATTERN.pattern,
        )


def _parse_indent(raw: str) -> Optional[int]:
    """JSON indent from the environment; "none" or a negative number means compact output."""
    if raw.strip().lower() in ("", "none"):
        return None
    try:
        indent = int(raw)
    except ValueError:
        raise ValueError(f"PIQUEDIFF_JSON_INDENT must be an integer, got {raw!r}")
    return indent if indent >= 0 else None
