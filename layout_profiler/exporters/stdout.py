# layout_profiler/exporters/stdout.py - Console output exporter
"""
Prints profiling results to stdout in human-readable format.
"""

from typing import List
from colorama import Fore, Style, init

from layout_profiler.analyzer.hydration import AttributionEntry
from layout_profiler.collector.events import LayoutShiftRecord, NodeDiff, ReflowEntry
from layout_profiler.utils.helpers import format_duration_ms, format_px, pluralize


# Initialize colorama
init(autoreset=True)


class StdoutExporter:
    """
    Prints profiling results to stdout with colored output.
    """

    def __init__(self, use_colors: bool = True, column_threshold: int = 120):
        """
        Initialize the stdout exporter.

        Args:
            use_colors: Whether to use colored output
            column_threshold: Columns up to this value are left out of locations
        """
        self.use_colors = use_colors
        self.column_threshold = column_threshold

    def _color(self, text: str, color: str) -> str:
        if not self.use_colors:
            return text
        return f"{color}{text}{Style.RESET_ALL}"

    def print_header(self, title: str):
        """
        Print a section header.

        Args:
            title: Section title
        """
        print(self._color('=' * 80, Fore.CYAN))
        print(self._color(title, Fore.CYAN))
        print(self._color('=' * 80, Fore.CYAN) + "\n")

    def format_location(self, entry: ReflowEntry) -> str:
        """
        Format ``url:line[:column]``.

        The column is only shown when it is large, as in minified bundles
        where the line alone does not identify the code.
        """
        location = f"{entry.url}:{entry.line_number}"
        if entry.column_number > self.column_threshold:
            location += f":{entry.column_number}"
        return location

    def print_reflows(self, entries: List[ReflowEntry]):
        """
        Print style recalculation hotspots.

        Args:
            entries: Entries ranked by duration
        """
        self.print_header("Style Recalculates / Layout Reflows")

        for entry in entries:
            count = self._color(pluralize(entry.count, 'time'), Fore.YELLOW)
            duration = self._color(format_duration_ms(entry.duration), Fore.YELLOW)
            print(f"🕚 Recalculate Layout {count} took {duration}")
            if entry.function_name:
                print(f"   fn: {self._color(entry.function_name, Fore.GREEN)}")
            print(f"   {self.format_location(entry)}\n")

    @staticmethod
    def describe_movement(diff: NodeDiff) -> str:
        """
        Human-readable direction of a node diff.

        The vertical axis is checked first.

        Args:
            diff: Node diff

        Returns:
            Description such as "moved up by 12px", or "" if nothing changed
        """
        if diff.y:
            direction = 'down' if diff.y > 0 else 'up'
            return f"moved {direction} by {format_px(diff.y)}"
        if diff.x:
            direction = 'right' if diff.x > 0 else 'left'
            return f"moved {direction} by {format_px(diff.x)}"
        if diff.width or diff.height:
            return f"resized by {diff.width:g}x{diff.height:g}px"
        return ""

    def print_layout_shifts(self, layout_shifts: List[LayoutShiftRecord]):
        """
        Print layout shifts with the nodes that moved.

        Args:
            layout_shifts: Records in observation order
        """
        self.print_header("Layout Shifts")

        if not layout_shifts:
            print(self._color("✅ No layout shifts detected", Fore.GREEN) + "\n")
            return

        for layout_shift in layout_shifts:
            print(f"💥 CLS by {self._color(f'{layout_shift.value * 100:.2f}%', Fore.RED)}")
            for diff in layout_shift.diffs:
                print(f"   {self._color(diff.node_name, Fore.GREEN)}")
                print(f"   $x('{diff.x_path}')")
                movement = self.describe_movement(diff)
                if movement:
                    print(f"   {movement}")
            print()

    def print_attribution(self, title: str, entries: List[AttributionEntry]):
        """
        Print a hydration time ranking with each entry's share.

        Args:
            title: Ranking title
            entries: Entries ranked by duration
        """
        print(title)
        print('-' * len(title))

        total = sum(entry.duration for entry in entries)
        for entry in entries:
            share = entry.duration / total * 100 if total else 0
            print(f"{entry.duration:.3f}ms ({share:.0f}%) {entry.name}")

        print()
