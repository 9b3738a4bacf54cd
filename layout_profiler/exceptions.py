# layout_profiler/exceptions.py - Error types
"""
Exceptions raised by the profiler.
"""


class LayoutProfilerError(Exception):
    """Base class for all profiler errors."""


class TraceFormatError(LayoutProfilerError):
    """Trace file is not a list of events or an object with ``traceEvents``."""


class TrackingError(LayoutProfilerError):
    """Layout shift tracking was used outside of an installed session."""


class HydrationNotFoundError(LayoutProfilerError):
    """No CPU profile in the trace contains the hydration marker."""


class HydrationWindowError(LayoutProfilerError):
    """The reflows around the hydration marker do not form a window."""


class ConfigError(LayoutProfilerError):
    """A configuration value is out of range or of the wrong kind."""
