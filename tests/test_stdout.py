# tests/test_stdout.py - Tests for the console exporter
"""
Unit tests for StdoutExporter output formatting.
"""

from layout_profiler.analyzer.hydration import AttributionEntry
from layout_profiler.collector.events import LayoutShiftRecord, NodeDiff, ReflowEntry
from layout_profiler.exporters.stdout import StdoutExporter


def _entry(count=3, duration=400, column=5, function_name='layout'):
    return ReflowEntry(url='https://example.com/app.js', function_name=function_name,
                       line_number=10, column_number=column, duration=duration, count=count)


class TestReflowOutput:
    """Test cases for reflow hotspots"""

    def test_reflow_line(self, capsys):
        """Test count, duration and location of a hotspot"""
        StdoutExporter(use_colors=False).print_reflows([_entry()])
        out = capsys.readouterr().out

        assert "🕚 Recalculate Layout 3 times took 0.40 ms" in out
        assert "   fn: layout" in out
        assert "   https://example.com/app.js:10\n" in out

    def test_singular_count(self, capsys):
        """Test a single occurrence is not pluralized"""
        StdoutExporter(use_colors=False).print_reflows([_entry(count=1)])

        assert "Recalculate Layout 1 time took" in capsys.readouterr().out

    def test_column_shown_for_minified_code(self, capsys):
        """Test large columns are part of the location"""
        StdoutExporter(use_colors=False).print_reflows([_entry(column=121)])

        assert "https://example.com/app.js:10:121" in capsys.readouterr().out

    def test_column_threshold(self):
        """Test the threshold itself is not shown"""
        exporter = StdoutExporter(use_colors=False)

        assert exporter.format_location(_entry(column=120)) == 'https://example.com/app.js:10'
        assert StdoutExporter(column_threshold=0).format_location(_entry(column=5)).endswith(':10:5')

    def test_anonymous_function(self, capsys):
        """Test entries without function name"""
        StdoutExporter(use_colors=False).print_reflows([_entry(function_name='')])

        assert "fn:" not in capsys.readouterr().out


class TestLayoutShiftOutput:
    """Test cases for layout shift reporting"""

    def test_layout_shift(self, capsys):
        """Test score and node details of a shift"""
        record = LayoutShiftRecord(value=0.023, diffs=[
            NodeDiff('MAIN > DIV.banner', 'id("root")/div[1]', y=-12),
            NodeDiff('DIV > IMG', '/html/body/div[1]/img[1]', x=20),
        ])

        StdoutExporter(use_colors=False).print_layout_shifts([record])
        out = capsys.readouterr().out

        assert "💥 CLS by 2.30%" in out
        assert "   MAIN > DIV.banner" in out
        assert "   $x('id(\"root\")/div[1]')" in out
        assert "moved up by 12px" in out
        assert "moved right by 20px" in out

    def test_no_layout_shifts(self, capsys):
        """Test the empty result message"""
        StdoutExporter(use_colors=False).print_layout_shifts([])

        assert "✅ No layout shifts detected" in capsys.readouterr().out

    def test_describe_movement(self):
        """Test the vertical axis takes precedence"""
        describe = StdoutExporter.describe_movement

        assert describe(NodeDiff('', '', x=5, y=8)) == 'moved down by 8px'
        assert describe(NodeDiff('', '', x=-3.5)) == 'moved left by 3.5px'
        assert describe(NodeDiff('', '', width=10, height=-4)) == 'resized by 10x-4px'
        assert describe(NodeDiff('', '')) == ''


class TestAttributionOutput:
    """Test cases for hydration rankings"""

    def test_shares(self, capsys):
        """Test each entry's share of the total"""
        entries = [AttributionEntry('AppShell', duration=3.0), AttributionEntry('ProductList', duration=2.0)]

        StdoutExporter(use_colors=False).print_attribution("React Components", entries)
        out = capsys.readouterr().out

        assert out.startswith("React Components\n----------------\n")
        assert "3.000ms (60%) AppShell" in out
        assert "2.000ms (40%) ProductList" in out

    def test_zero_total(self, capsys):
        """Test no division by zero for empty windows"""
        StdoutExporter(use_colors=False).print_attribution("Node Modules", [AttributionEntry('x')])

        assert "0.000ms (0%) x" in capsys.readouterr().out
