# layout_profiler/utils/__init__.py - Utilities module
"""
Utility functions and helpers.

This module provides:
- config.py: Configuration management
- logger.py: Logging setup
- helpers.py: General helper functions
"""
