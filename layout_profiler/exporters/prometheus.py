# layout_profiler/exporters/prometheus.py - Prometheus metrics exporter
"""
Exports the results of a run in the Prometheus text format, for pick-up by
a node exporter textfile collector or a push gateway job.
"""

from pathlib import Path
from typing import List, Optional
import logging

from prometheus_client import CollectorRegistry, Gauge, generate_latest, write_to_textfile

from layout_profiler.collector.events import LayoutShiftRecord, ReflowEntry


METRICS_FILENAME = 'metrics.prom'


class PrometheusExporter:
    """
    Holds the gauges of one measurement run in a private registry.
    """

    def __init__(self, url: str, registry: Optional[CollectorRegistry] = None):
        """
        Initialize the Prometheus exporter.

        Args:
            url: Measured page, attached as a label
            registry: Registry to register the gauges in (default: a new one)
        """
        self.url = url
        self.registry = registry or CollectorRegistry()
        self.logger = logging.getLogger(__name__)

        self.reflow_duration = Gauge(
            'layout_profiler_reflow_duration_milliseconds',
            'Total style recalculation time per source location',
            ['url', 'location', 'function'],
            registry=self.registry
        )

        self.reflow_count = Gauge(
            'layout_profiler_reflow_count',
            'Number of style recalculations per source location',
            ['url', 'location', 'function'],
            registry=self.registry
        )

        self.cumulative_layout_shift = Gauge(
            'layout_profiler_cumulative_layout_shift',
            'Sum of all layout shift scores',
            ['url'],
            registry=self.registry
        )

        self.layout_shift_count = Gauge(
            'layout_profiler_layout_shift_count',
            'Number of layout shifts not caused by user input',
            ['url'],
            registry=self.registry
        )

    def record_reflows(self, entries: List[ReflowEntry]):
        """
        Record style recalculation hotspots.

        Args:
            entries: Reflow entries
        """
        for entry in entries:
            labels = {'url': self.url, 'location': entry.location, 'function': entry.function_name}
            self.reflow_duration.labels(**labels).set(entry.duration_ms)
            self.reflow_count.labels(**labels).set(entry.count)

    def record_layout_shifts(self, layout_shifts: List[LayoutShiftRecord]):
        """
        Record layout shift totals.

        Args:
            layout_shifts: Layout shift records
        """
        self.cumulative_layout_shift.labels(url=self.url).set(sum(s.value for s in layout_shifts))
        self.layout_shift_count.labels(url=self.url).set(len(layout_shifts))

    def get_metrics_text(self) -> str:
        """
        Get current metrics in Prometheus text format.

        Returns:
            Metrics as text
        """
        return generate_latest(self.registry).decode('utf-8')

    def write(self, output_dir: Path, filename: str = METRICS_FILENAME) -> str:
        """
        Write the metrics to a text file.

        Args:
            output_dir: Target directory
            filename: Output filename

        Returns:
            Path to output file
        """
        output_path = Path(output_dir) / filename
        write_to_textfile(str(output_path), self.registry)
        self.logger.info(f"Exported metrics to {output_path}")
        return str(output_path)
