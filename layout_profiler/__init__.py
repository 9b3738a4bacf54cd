# layout_profiler/__init__.py - Package root
"""
Layout Profiler

Measures style recalculation hotspots and cumulative layout shifts of a web
page from a Chromium trace, and attributes hydration CPU time to UI
components and third-party modules.
"""

__version__ = "0.1.0"
