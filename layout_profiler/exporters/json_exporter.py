# layout_profiler/exporters/json_exporter.py - JSON format exporter
"""
Writes the source mapped trace and the measurement report as JSON files.
"""

import json
from pathlib import Path
from datetime import datetime
from typing import Dict, List, Optional
import logging

from layout_profiler.collector.events import LayoutShiftRecord, ReflowEntry
from layout_profiler.utils.helpers import Trace


MAPPED_PROFILE_FILENAME = 'profile.mapped.json'
REPORT_FILENAME = 'report.json'


class JSONExporter:
    """
    Exports profiling results to JSON format.
    """

    def __init__(self, output_dir: Optional[str] = None):
        """
        Initialize the JSON exporter.

        Args:
            output_dir: Directory to save JSON files (default: current directory)
        """
        self.output_dir = Path(output_dir) if output_dir else Path('.')
        self.logger = logging.getLogger(__name__)

        self.output_dir.mkdir(parents=True, exist_ok=True)

    def export_mapped_profile(self, trace: Trace, filename: str = MAPPED_PROFILE_FILENAME) -> str:
        """
        Write the source mapped trace, pretty-printed.

        Args:
            trace: Source mapped trace
            filename: Output filename

        Returns:
            Path to output file
        """
        output_path = self.output_dir / filename

        with open(output_path, 'w', encoding='utf-8') as f:
            json.dump(trace, f, indent=2)

        self.logger.info(f"Exported source mapped profile to {output_path}")
        return str(output_path)

    def export_report(self, url: str, reflows: List[ReflowEntry], layout_shifts: List[LayoutShiftRecord],
                      summary: Optional[Dict] = None, filename: str = REPORT_FILENAME) -> str:
        """
        Write reflow hotspots and layout shifts of a run.

        Args:
            url: Measured page
            reflows: Entries ranked by duration
            layout_shifts: Layout shift records
            summary: Optional aggregator summary
            filename: Output filename

        Returns:
            Path to output file
        """
        output_path = self.output_dir / filename

        output_data = {
            'timestamp': datetime.now().isoformat(),
            'url': url,
            'summary': {
                **(summary or {}),
                'cumulative_layout_shift': sum(shift.value for shift in layout_shifts),
                'layout_shift_count': len(layout_shifts),
            },
            'reflows': [entry.to_dict() for entry in reflows],
            'layoutShifts': [shift.to_dict() for shift in layout_shifts],
        }

        with open(output_path, 'w', encoding='utf-8') as f:
            json.dump(output_data, f, indent=2)

        self.logger.info(f"Exported report to {output_path}")
        return str(output_path)
