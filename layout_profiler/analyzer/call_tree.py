# layout_profiler/analyzer/call_tree.py - Top-down CPU call tree
"""
Builds a top-down call tree from the sampled CPU profile embedded in a trace.

Chrome records the V8 sampling profiler as one ``Profile`` event followed by
``ProfileChunk`` events carrying profile nodes, sample node ids and the time
deltas between samples. Each sample is charged with the time until the next
sample, clipped to the requested window.
"""

from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Tuple
import logging

from layout_profiler.collector.events import StackFrame


logger = logging.getLogger(__name__)

FrameKey = Tuple[str, str, int, int]


class CallTreeNode:
    """
    Node of a top-down call tree; times are in milliseconds.
    """

    def __init__(self, call_frame: Optional[StackFrame] = None):
        self.call_frame = call_frame
        self.total_time = 0.0
        self.self_time = 0.0
        self.children: Dict[FrameKey, 'CallTreeNode'] = OrderedDict()

    def has_children(self) -> bool:
        return bool(self.children)

    def child(self, frame: StackFrame) -> 'CallTreeNode':
        """Get or create the child node for a call frame"""
        key = (frame.function_name, frame.url, frame.line_number, frame.column_number)
        node = self.children.get(key)
        if node is None:
            node = CallTreeNode(frame)
            self.children[key] = node
        return node

    def __repr__(self):
        name = self.call_frame.function_name if self.call_frame else '(root)'
        return f"CallTreeNode({name!r}, total_time={self.total_time:.3f})"


@dataclass
class CpuProfile:
    """
    Samples of one profiler session (one thread).
    """
    start_time: Optional[float] = None
    nodes: Dict[int, Dict[str, Any]] = field(default_factory=dict)
    samples: List[int] = field(default_factory=list)
    time_deltas: List[float] = field(default_factory=list)

    def timestamps(self) -> List[float]:
        """Absolute sample timestamps in microseconds"""
        result = []
        current = self.start_time or 0
        for delta in self.time_deltas[:len(self.samples)]:
            current += delta
            result.append(current)
        return result

    def parent_ids(self) -> Dict[int, Optional[int]]:
        """Parent node id of every node"""
        parents: Dict[int, Optional[int]] = {}
        for node_id, node in self.nodes.items():
            parents.setdefault(node_id, node.get('parent'))
            # Older profiles list children instead of parents
            for child_id in node.get('children') or []:
                parents[child_id] = node_id
        return parents


def collect_cpu_profiles(events: Iterable[Dict[str, Any]]) -> List[CpuProfile]:
    """
    Group Profile and ProfileChunk events into profiles.

    Args:
        events: Raw trace events

    Returns:
        One CpuProfile per (pid, profile id)
    """
    profiles: Dict[Tuple[Any, Any], CpuProfile] = OrderedDict()

    for event in events:
        name = event.get('name')
        if name not in ('Profile', 'ProfileChunk'):
            continue

        key = (event.get('pid'), event.get('id'))
        profile = profiles.setdefault(key, CpuProfile())
        data = (event.get('args') or {}).get('data') or {}

        if name == 'Profile':
            profile.start_time = data.get('startTime', event.get('ts'))
            continue

        if profile.start_time is None:
            profile.start_time = event.get('ts')

        cpu_profile = data.get('cpuProfile') or {}
        for node in cpu_profile.get('nodes') or []:
            profile.nodes[node['id']] = node
        profile.samples.extend(cpu_profile.get('samples') or [])
        profile.time_deltas.extend(data.get('timeDeltas') or [])

    return list(profiles.values())


def _stack_for(node_id: int, profile: CpuProfile, parents: Dict[int, Optional[int]],
               cache: Dict[int, List[StackFrame]]) -> List[StackFrame]:
    """
    Root-first frames of a sample, without the profile's own root node.
    """
    if node_id in cache:
        return cache[node_id]

    frames: List[StackFrame] = []
    current = node_id
    seen = set()
    while current is not None and current in profile.nodes and current not in seen:
        seen.add(current)
        parent = parents.get(current)
        if parent is None:
            break
        frames.append(StackFrame.from_dict(profile.nodes[current].get('callFrame') or {}))
        current = parent

    frames.reverse()
    cache[node_id] = frames
    return frames


def build_top_down_tree(events: Iterable[Dict[str, Any]], start_ms: float, end_ms: float) -> CallTreeNode:
    """
    Build a top-down call tree restricted to a time window.

    Args:
        events: Raw trace events
        start_ms: Window start in milliseconds (trace clock)
        end_ms: Window end in milliseconds (trace clock)

    Returns:
        Root node; its children are the outermost call frames
    """
    root = CallTreeNode()
    profiles = collect_cpu_profiles(events)

    for profile in profiles:
        parents = profile.parent_ids()
        stacks: Dict[int, List[StackFrame]] = {}
        timestamps = profile.timestamps()
        samples = sorted(zip(timestamps, profile.samples), key=lambda s: s[0])

        for i, (timestamp, node_id) in enumerate(samples):
            sample_start = timestamp / 1000.0
            sample_end = samples[i + 1][0] / 1000.0 if i + 1 < len(samples) else sample_start

            duration = min(sample_end, end_ms) - max(sample_start, start_ms)
            if duration <= 0:
                continue

            root.total_time += duration
            node = root
            for frame in _stack_for(node_id, profile, parents, stacks):
                node = node.child(frame)
                node.total_time += duration
            node.self_time += duration

    logger.debug(
        f"Built call tree for {start_ms}-{end_ms}ms from {len(profiles)} profiles "
        f"({root.total_time:.3f}ms sampled)"
    )
    return root
