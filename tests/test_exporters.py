# tests/test_exporters.py - Tests for file exporters
"""
Unit tests for the JSON and Prometheus exporters.
"""

import json

import pytest
from prometheus_client import CollectorRegistry
from prometheus_client.parser import text_string_to_metric_families

from layout_profiler.collector.events import LayoutShiftRecord, NodeDiff, ReflowEntry
from layout_profiler.exporters.json_exporter import JSONExporter
from layout_profiler.exporters.prometheus import PrometheusExporter


REFLOWS = [
    ReflowEntry('https://example.com/app.js', 'layout', 10, 5, duration=400, count=3),
    ReflowEntry('https://example.com/app.js', '', 20, 130, duration=100, count=1),
]
SHIFTS = [
    LayoutShiftRecord(0.02, [NodeDiff('DIV', '/html/body/div[1]', y=8)]),
    LayoutShiftRecord(0.01),
]


class TestJSONExporter:
    """Test cases for JSONExporter"""

    def test_export_mapped_profile(self, tmp_path):
        """Test the mapped trace is written unchanged"""
        trace = {'traceEvents': [{'name': 'UpdateLayoutTree', 'ts': 1}]}
        path = JSONExporter(tmp_path).export_mapped_profile(trace)

        assert path.endswith('profile.mapped.json')
        with open(path, encoding='utf-8') as f:
            assert json.load(f) == trace

    def test_export_report(self, tmp_path):
        """Test the report contents"""
        path = JSONExporter(tmp_path / 'nested').export_report('https://example.com', REFLOWS, SHIFTS)

        with open(path, encoding='utf-8') as f:
            report = json.load(f)

        assert report['url'] == 'https://example.com'
        assert [r['lineNumber'] for r in report['reflows']] == [10, 20]
        assert report['layoutShifts'][0]['diffs'][0]['y'] == 8
        assert report['summary']['layout_shift_count'] == 2
        assert abs(report['summary']['cumulative_layout_shift'] - 0.03) < 1e-9


class TestPrometheusExporter:
    """Test cases for PrometheusExporter"""

    def test_metrics_text(self):
        """Test gauges carry url and location labels"""
        exporter = PrometheusExporter('https://example.com')
        exporter.record_reflows(REFLOWS)
        exporter.record_layout_shifts(SHIFTS)

        samples = {
            (sample.name, tuple(sorted(sample.labels.items()))): sample.value
            for family in text_string_to_metric_families(exporter.get_metrics_text())
            for sample in family.samples
        }
        location = (('function', 'layout'), ('location', 'https://example.com/app.js:10:5'),
                    ('url', 'https://example.com'))
        page = (('url', 'https://example.com'),)

        assert samples[('layout_profiler_reflow_duration_milliseconds', location)] == pytest.approx(0.4)
        assert samples[('layout_profiler_reflow_count', location)] == 3
        assert samples[('layout_profiler_layout_shift_count', page)] == 2
        assert samples[('layout_profiler_cumulative_layout_shift', page)] == pytest.approx(0.03)

    def test_sample_lookup(self):
        """Test recorded values can be read back from the registry"""
        exporter = PrometheusExporter('https://example.com')
        exporter.record_reflows(REFLOWS)

        value = exporter.registry.get_sample_value(
            'layout_profiler_reflow_duration_milliseconds',
            {'url': 'https://example.com', 'location': 'https://example.com/app.js:20:130', 'function': ''})

        assert value == pytest.approx(0.1)

    def test_private_registries(self):
        """Test two exporters do not clash"""
        PrometheusExporter('https://a.example')
        PrometheusExporter('https://b.example', registry=CollectorRegistry())

    def test_write(self, tmp_path):
        """Test the textfile output"""
        exporter = PrometheusExporter('https://example.com')
        exporter.record_layout_shifts([])

        path = exporter.write(tmp_path)

        with open(path, encoding='utf-8') as f:
            assert 'layout_profiler_layout_shift_count{url="https://example.com"} 0.0' in f.read()
