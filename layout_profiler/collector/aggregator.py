# layout_profiler/collector/aggregator.py - Reflow aggregation
"""
Aggregates style recalculation events by the source code location that
triggered them and ranks the locations by total time spent.
"""

from typing import Dict, Iterable, List, Optional
import logging

from layout_profiler.collector.events import (
    STYLE_RECALCULATION_EVENT,
    ReflowEntry,
    TraceEvent,
)
from layout_profiler.utils.helpers import Trace, get_trace_events


class ReflowAggregator:
    """
    Folds style recalculation events into one ReflowEntry per code location.

    Events are keyed by the first frame of the stack trace recorded when the
    recalculation began. Recalculations without a stack trace were not
    forced by script and are left out.
    """

    def __init__(self, event_names: Optional[Iterable[str]] = None):
        """
        Initialize the reflow aggregator.

        Args:
            event_names: Trace event names counted as style recalculation
        """
        self.event_names = set(event_names or [STYLE_RECALCULATION_EVENT])

        # Entries keyed by url:line:column, in first-seen order
        self.entries: Dict[str, ReflowEntry] = {}

        self.total_events = 0
        self.skipped_events = 0
        self.logger = logging.getLogger(__name__)

    def add_event(self, event: TraceEvent) -> Optional[ReflowEntry]:
        """
        Fold a single trace event into the aggregation.

        Args:
            event: Trace event of any kind

        Returns:
            The updated entry, or None if the event was not counted
        """
        if event.name not in self.event_names:
            return None

        frame = event.stack_frame
        if frame is None:
            self.skipped_events += 1
            return None

        entry = self.entries.get(frame.location)
        if entry is None:
            entry = ReflowEntry(
                url=frame.url,
                function_name=frame.function_name,
                line_number=frame.line_number,
                column_number=frame.column_number
            )
            self.entries[frame.location] = entry

        entry.duration += event.dur
        entry.count += 1
        self.total_events += 1
        return entry

    def add_trace(self, trace: Trace):
        """
        Fold every event of a trace.

        Args:
            trace: Event list or object with a ``traceEvents`` field
        """
        for raw_event in get_trace_events(trace):
            self.add_event(TraceEvent.from_dict(raw_event))

        self.logger.info(
            f"Aggregated {self.total_events} style recalculations into "
            f"{len(self.entries)} code locations ({self.skipped_events} without stack trace)"
        )

    def get_entries(self, n: Optional[int] = None) -> List[ReflowEntry]:
        """
        Get entries ranked by total duration.

        Args:
            n: Number of top entries to return (all if None)

        Returns:
            Entries sorted descending by duration
        """
        ranked = sorted(self.entries.values(), key=lambda e: e.duration, reverse=True)
        return ranked if n is None else ranked[:n]

    def get_summary(self) -> Dict:
        """
        Get overall summary statistics.

        Returns:
            Dictionary with summary statistics
        """
        total_duration = sum(e.duration for e in self.entries.values())
        return {
            'total_events': self.total_events,
            'skipped_events': self.skipped_events,
            'locations': len(self.entries),
            'total_duration_ms': total_duration / 1000.0,
        }

    def reset(self):
        """
        Clear all entries and counters.
        """
        self.entries.clear()
        self.total_events = 0
        self.skipped_events = 0
        self.logger.debug("Aggregator reset")


def aggregate_reflows(trace: Trace, event_names: Optional[Iterable[str]] = None) -> List[ReflowEntry]:
    """
    Rank the code locations of a trace by style recalculation time.

    Args:
        trace: Event list or object with a ``traceEvents`` field
        event_names: Trace event names counted as style recalculation

    Returns:
        Entries sorted descending by duration
    """
    aggregator = ReflowAggregator(event_names)
    aggregator.add_trace(trace)
    return aggregator.get_entries()
