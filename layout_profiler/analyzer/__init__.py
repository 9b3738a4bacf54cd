# layout_profiler/analyzer/__init__.py - Analysis module
"""
Analyzer module for post-processing captured traces.

This module provides:
- sourcemaps.py: Source map resolution of trace stack frames
- call_tree.py: Top-down CPU call tree from the sampled profile
- hydration.py: Hydration window detection and CPU time attribution
"""
