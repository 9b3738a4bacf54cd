# layout_profiler/utils/helpers.py - Helper functions
"""
General utility and helper functions.
"""

import json
import re
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union
import logging

from layout_profiler.exceptions import TraceFormatError


logger = logging.getLogger(__name__)

Trace = Union[List[Dict[str, Any]], Dict[str, Any]]


def get_trace_events(trace: Trace) -> List[Dict[str, Any]]:
    """
    Get the event list of a trace.

    Chrome writes either a bare array of events or an object with a
    ``traceEvents`` field; both are accepted.

    Args:
        trace: Parsed trace JSON

    Returns:
        List of raw trace event dictionaries
    """
    if isinstance(trace, dict):
        if 'traceEvents' not in trace:
            raise TraceFormatError("Trace object has no 'traceEvents' field")
        return trace['traceEvents']

    if isinstance(trace, list):
        return trace

    raise TraceFormatError(f"Unsupported trace type: {type(trace).__name__}")


def load_trace(path: Union[str, Path]) -> Trace:
    """
    Load a trace JSON file.

    Args:
        path: Path to the trace file

    Returns:
        Parsed trace (list or object)
    """
    with open(path, 'r', encoding='utf-8') as f:
        trace = json.load(f)

    # Validates the shape early
    events = get_trace_events(trace)
    logger.info(f"Loaded {len(events)} trace events from {path}")
    return trace


def results_dir_name(now: Optional[datetime] = None, prefix: str = 'measurements') -> str:
    """
    Name of a per-run results directory.

    The locale formatted timestamp has every run of non-digits collapsed to a
    dash, e.g. ``measurements-10-19-26-18-42-07``.

    Args:
        now: Timestamp to use (default: current time)
        prefix: Directory name prefix

    Returns:
        Directory name
    """
    now = now or datetime.now()
    stamp = re.sub(r'\D+', '-', now.strftime('%x %X')).strip('-')
    return f"{prefix}-{stamp}"


def create_results_dir(base_dir: Union[str, Path] = '.', prefix: str = 'measurements',
                       now: Optional[datetime] = None) -> Tuple[Path, Path]:
    """
    Create the results directory and its screenshots subdirectory.

    Args:
        base_dir: Parent directory
        prefix: Directory name prefix
        now: Timestamp to use (default: current time)

    Returns:
        Tuple of (results directory, screenshots directory)
    """
    results_dir = Path(base_dir) / results_dir_name(now, prefix)
    screenshots_dir = results_dir / 'screenshots'
    screenshots_dir.mkdir(parents=True, exist_ok=True)

    logger.info(f"Writing results to {results_dir}")
    return results_dir, screenshots_dir


def pluralize(count: int, word: str) -> str:
    """
    Format a count with a naively pluralized word.

    Args:
        count: Number of items
        word: Singular word

    Returns:
        Formatted string (e.g., "1 time", "3 times")
    """
    return f"{count} {word}" + ("s" if count != 1 else "")


def format_px(value: float) -> str:
    """
    Format an absolute pixel distance without trailing zeros.

    Args:
        value: Distance in CSS pixels (sign is dropped)

    Returns:
        Formatted string (e.g., "12px", "12.5px")
    """
    return f"{abs(value):g}px"


def format_duration_ms(duration_us: float) -> str:
    """
    Format a duration in microseconds as milliseconds with two decimals.

    Args:
        duration_us: Duration in microseconds

    Returns:
        Formatted string (e.g., "0.40 ms")
    """
    return f"{duration_us / 1000:.2f} ms"
