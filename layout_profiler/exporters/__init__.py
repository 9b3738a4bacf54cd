# layout_profiler/exporters/__init__.py - Exporters module
"""
Exporters for outputting measurement results in various formats.

This module provides:
- stdout.py: Console report
- json_exporter.py: Source mapped trace and JSON report
- prometheus.py: Prometheus text format metrics
"""
