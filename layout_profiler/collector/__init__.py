# layout_profiler/collector/__init__.py - Trace collection module
"""
Collector module for capturing a page load in Chromium.

This module provides:
- tracer.py: Playwright based page load and trace capture
- layout_shift.py: In-page layout shift tracking and node screenshots
- network.py: Network idle detection
- devices.py: Device emulation profiles
- events.py: Trace event and layout shift data structures
- aggregator.py: Style recalculation aggregation by source location
"""
