# layout_profiler/collector/events.py - Trace and layout shift data structures
"""
Structured representations of trace events, stack frames and layout shifts.
Converts the raw JSON dictionaries of a Chrome trace into typed objects.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


STYLE_RECALCULATION_EVENT = 'UpdateLayoutTree'


@dataclass
class StackFrame:
    """
    A source code location from a trace stack or CPU profile call frame.
    """
    url: str
    line_number: int
    column_number: int
    function_name: str = ""

    @classmethod
    def from_dict(cls, frame: Dict[str, Any]) -> 'StackFrame':
        """
        Build a frame from the camelCase keys used in trace JSON.

        Args:
            frame: Raw frame dictionary

        Returns:
            StackFrame instance
        """
        return cls(
            url=frame.get('url') or "",
            line_number=frame.get('lineNumber', -1),
            column_number=frame.get('columnNumber', -1),
            function_name=frame.get('functionName') or ""
        )

    @property
    def location(self) -> str:
        """Aggregation key ``url:line:column``"""
        return f"{self.url}:{self.line_number}:{self.column_number}"


@dataclass
class TraceEvent:
    """
    Single recorded browser engine event.
    """
    name: str
    ts: float
    dur: float = 0
    args: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, event: Dict[str, Any]) -> 'TraceEvent':
        """
        Build an event from a raw trace dictionary.

        Args:
            event: Raw trace event

        Returns:
            TraceEvent instance
        """
        return cls(
            name=event.get('name', ""),
            ts=event.get('ts', 0),
            dur=event.get('dur') or 0,
            args=event.get('args') or {}
        )

    @property
    def stack_frame(self) -> Optional[StackFrame]:
        """First frame of the stack that triggered the event, if recorded"""
        begin_data = self.args.get('beginData') or {}
        stack_trace = begin_data.get('stackTrace') or []
        if not stack_trace:
            return None
        return StackFrame.from_dict(stack_trace[0])

    @property
    def cpu_profile(self) -> Optional[Dict[str, Any]]:
        """Embedded CPU profile payload of ProfileChunk events"""
        data = self.args.get('data') or {}
        return data.get('cpuProfile')

    @property
    def end(self) -> float:
        """End timestamp in microseconds"""
        return self.ts + self.dur


@dataclass
class ReflowEntry:
    """
    Style recalculations folded together by source code location.
    """
    url: str
    function_name: str
    line_number: int
    column_number: int
    duration: float = 0
    count: int = 0

    @property
    def location(self) -> str:
        return f"{self.url}:{self.line_number}:{self.column_number}"

    @property
    def duration_ms(self) -> float:
        """Total duration in milliseconds"""
        return self.duration / 1000.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            'url': self.url,
            'functionName': self.function_name,
            'lineNumber': self.line_number,
            'columnNumber': self.column_number,
            'duration': self.duration,
            'count': self.count,
        }


@dataclass
class NodeDiff:
    """
    Position and size change of one DOM node during a layout shift.
    """
    node_name: str
    x_path: str
    x: float = 0
    y: float = 0
    width: float = 0
    height: float = 0

    @classmethod
    def from_dict(cls, diff: Dict[str, Any]) -> 'NodeDiff':
        return cls(
            node_name=diff.get('nodeName') or "",
            x_path=diff.get('xPath') or "",
            x=diff.get('x') or 0,
            y=diff.get('y') or 0,
            width=diff.get('width') or 0,
            height=diff.get('height') or 0
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'nodeName': self.node_name,
            'xPath': self.x_path,
            'x': self.x,
            'y': self.y,
            'width': self.width,
            'height': self.height,
        }


@dataclass
class LayoutShiftRecord:
    """
    One layout shift reported by the browser, with the nodes that moved.
    """
    value: float
    diffs: List[NodeDiff] = field(default_factory=list)

    @classmethod
    def from_dict(cls, record: Dict[str, Any]) -> 'LayoutShiftRecord':
        return cls(
            value=record.get('value') or 0.0,
            diffs=[NodeDiff.from_dict(diff) for diff in record.get('diffs') or []]
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'value': self.value,
            'diffs': [diff.to_dict() for diff in self.diffs],
        }
