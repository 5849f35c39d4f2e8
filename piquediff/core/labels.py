"""
Label helpers for report entity names.

PIQUE names carry generator boilerplate ("Product_Factor CWE-20",
"CWE-79 Measure", "Null Dereference Diagnostic SpotBugs"). These helpers
reduce them to the short labels viewers and CLIs display.
"""

import re
from typing import Iterable, Tuple

CWE_TOKEN = re.compile(r"CWE-[\w-]+", re.IGNORECASE)
LEADING_BOILERPLATE = re.compile(r"^(?:Product[_\s-]*Factor|Pillar)\s*", re.IGNORECASE)
TRAILING_BOILERPLATE = re.compile(r"\s*(?:Measure|Pillar)\s*$", re.IGNORECASE)
DIAGNOSTIC_SPLIT = re.compile(r"^(.*)\s+Diagnostic\s+(.+)$", re.IGNORECASE)


def clean_assoc_label(name) -> str:
    """
    Short label for a product factor or measure name.

    Returns the CWE token when the name has one; otherwise strips the
    leading "Product_Factor"/"Pillar" and trailing "Measure"/"Pillar"
    words, turns underscores into dashes and squeezes whitespace.
    """
    text = (name or "").strip()
    if not text:
        return ""
    cwe = CWE_TOKEN.search(text)
    if cwe:
        return cwe.group(0)
    text = LEADING_BOILERPLATE.sub("", text)
    text = TRAILING_BOILERPLATE.sub("", text)
    text = text.replace("_", "-")
    return re.sub(r"\s+", " ", text).strip()


def parse_diagnostic_name(name) -> Tuple[str, str]:
    """Split "<base> Diagnostic <tool>" into (base, tool); tool is "" when absent."""
    text = (name or "").strip()
    if not text:
        return "", ""
    match = DIAGNOSTIC_SPLIT.match(text)
    if match:
        return match.group(1).strip() or text, match.group(2).strip()
    return text, ""


def format_tool_list(tools: Iterable[str]) -> str:
    names = {str(t).strip() for t in tools if t is not None}
    return ", ".join(sorted(n for n in names if n))
