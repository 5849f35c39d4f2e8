"""
Console Display

Terminal rendering of extraction summaries and diff results for the CLIs.
"""

from typing import Iterable, Optional, TYPE_CHECKING

from ..core.labels import clean_assoc_label, format_tool_list, parse_diagnostic_name

if TYPE_CHECKING:
    from ..core.report_extractor import ValidationResult
    from ..core.report_model import NormalizedReport
    from ..diff.results import DiffResult, FamilyDiff


class Colors:
    """ANSI color codes for terminal output."""
    RED = "\033[91m"
    GREEN = "\033[92m"
    YELLOW = "\033[93m"
    CYAN = "\033[96m"
    WHITE = "\033[97m"
    GRAY = "\033[90m"
    BOLD = "\033[1m"
    RESET = "\033[0m"


class ConsoleDisplay:
    """
    Formats reports and diff results for the terminal.
    """
    Colors = Colors

    def __init__(self, max_items: int = 20):
        self.max_items = max_items

    @staticmethod
    def colored(text: str, color: str, bold: bool = False) -> str:
        """Apply color to text."""
        style = Colors.BOLD if bold else ""
        return f"{style}{color}{text}{Colors.RESET}"

    def print_header(self, title: str, char: str = "=", width: int = 78) -> None:
        """Print a formatted header."""
        print(f"\n{self.colored(char * width, Colors.CYAN)}")
        print(f"{self.colored(f' {title} '.center(width), Colors.CYAN, bold=True)}")
        print(f"{self.colored(char * width, Colors.CYAN)}")

    def print_subheader(self, title: str, char: str = "-", width: int = 78) -> None:
        """Print a formatted subheader."""
        print(f"\n{self.colored(f' {title} ', Colors.WHITE, bold=True)}")
        print(f"{self.colored(char * width, Colors.GRAY)}")

    def _print_keys(self, label: str, keys: Iterable[str], color: str) -> None:
        keys = sorted(keys)
        if not keys:
            return
        print(f"  {self.colored(label, color)} ({len(keys)})")
        for key in keys[:self.max_items]:
            print(f"    - {key}")
        if len(keys) > self.max_items:
            print(f"    ... and {len(keys) - self.max_items} more")

    # -------------------------------------------------------------------------
    # Reports
    # -------------------------------------------------------------------------

    def display_report_summary(self, report: "NormalizedReport",
                               validation: Optional["ValidationResult"] = None) -> None:
        self.print_header(f"Report: {report.name or '(unnamed)'}")
        stats = report.get_statistics()

        print(f"  TQI score:        {report.tqi_score:.4f}")
        print(f"  Source shape:     {report.source_shape}")
        print(f"  Product factors:  {stats['productFactorCount']}")
        print(f"  Measures:         {stats['measureCount']}")
        print(f"  Diagnostics:      {stats['cweCount']}")
        print(f"  Findings:         {stats['findingCount']}")

        if report.aspect_scores:
            self.print_subheader("Quality Aspects")
            for aspect in report.aspect_scores:
                factors = report.product_factors_by_aspect.get(aspect.name, ())
                print(f"  {aspect.name:<30} {aspect.score:>8.4f}   ({len(factors)} product factors)")
                for pf in factors[:self.max_items]:
                    measures = report.measures_for(pf)
                    print(f"    {clean_assoc_label(pf.name):<28} {pf.value:>8.4f}   "
                          f"{len(measures)} measures, benchmark {pf.benchmark_size}")

        if validation is not None and validation.warnings:
            self.print_subheader("Validation")
            for line in validation.summary(limit=self.max_items).splitlines():
                print(f"  {self.colored(line, Colors.YELLOW)}")

    # -------------------------------------------------------------------------
    # Diffs
    # -------------------------------------------------------------------------

    def display_diff(self, result: "DiffResult") -> None:
        left = result.left_name or "left"
        right = result.right_name or "right"
        self.print_header(f"Diff: {left} vs {right}")

        if not result.has_changes:
            print(f"  {self.colored('No changes detected', Colors.GREEN)}")

        self._display_factors(result.product_factors, right)
        for title, family in (("Measures", result.measures),
                              ("Findings", result.findings),
                              ("Diagnostics", result.diagnostics)):
            if family.has_changes:
                self.print_subheader(title)
                self._display_family(family, right)

        if result.differing_tool_scores:
            self.print_subheader("Tool Scores")
            self._print_keys("Differing tool scores", result.differing_tool_scores, Colors.GRAY)

    @staticmethod
    def _key_label(key: str) -> str:
        """Render diagnostic keys as '<name> [<tool>]'."""
        base, tool = parse_diagnostic_name(key)
        return f"{base} [{tool}]" if tool else key

    def _display_factors(self, family: "FamilyDiff", peer_name: str) -> None:
        if not family.has_changes:
            return
        self.print_subheader("Product Factors")
        for name in sorted(family.differing)[:self.max_items]:
            detail = family.details[name]
            peer_value = detail.peer.get("value")
            print(f"  {self.colored('~', Colors.YELLOW)} {name}: {', '.join(detail.fields)} "
                  f"(peer value {peer_value:.4f}, benchmark {detail.peer.get('benchmarkSize')})")
        self._print_keys("Only here", family.missing, Colors.RED)
        self._print_keys(f"Only in {peer_name}", family.peer_only, Colors.GREEN)

    def _display_family(self, family: "FamilyDiff", peer_name: str) -> None:
        for key in sorted(family.differing)[:self.max_items]:
            fields = family.fields_for(key)
            line = f"  {self.colored('~', Colors.YELLOW)} {self._key_label(key)}: {', '.join(fields)}"
            if "byTool" in fields:
                line += f" (peer tools: {format_tool_list(family.peer_for(key).get('byTool', ()))})"
            print(line)
        self._print_keys("Only here", family.missing, Colors.RED)
        self._print_keys(f"Only in {peer_name}", family.peer_only, Colors.GREEN)
