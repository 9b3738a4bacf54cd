# layout_profiler/analyzer/hydration.py - Hydration CPU time attribution
"""
Attributes the CPU time of a client-side hydration to UI components and
third-party modules.

The hydration window is bounded by the style recalculations that were not
triggered by script: the last one finishing before the hydration starts and
the one after it. Inside that window a top-down call tree is walked and
every call frame is classified by two heuristics:

- component: a capitalized camel-case function name from first-party code
- module: a script loaded from a ``node_modules`` package

Both heuristics are plain functions so they can be swapped or tested on
their own. Minified or obfuscated names defeat the component heuristic.
"""

import math
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple
import logging

from layout_profiler.analyzer.call_tree import CallTreeNode, build_top_down_tree
from layout_profiler.collector.events import STYLE_RECALCULATION_EVENT, StackFrame, TraceEvent
from layout_profiler.exceptions import HydrationNotFoundError, HydrationWindowError
from layout_profiler.utils.helpers import Trace, get_trace_events


DEFAULT_MARKER_SUFFIX = '.hydrate'
DEFAULT_EXCLUDED_MODULES = frozenset({'next', 'react', 'react-dom', 'scheduler', '@dg/search'})
DEFAULT_IGNORED_FUNCTIONS = frozenset({'ResizeObserver'})

COMPONENT_NAME_PATTERN = re.compile(r'^[A-Z][a-z]+[A-Za-z][A-Za-z]+$')
NODE_MODULE_PATTERN = re.compile(r'node_modules.(@[^\\/]+[\\/][^\\/]+|[^\\/]+)', re.IGNORECASE)

# Returns the attribution name of a frame, or None
Classifier = Callable[[StackFrame], Optional[str]]


class VisitAction(Enum):
    """What the tree walk does after visiting a node."""
    CONTINUE = 'continue'
    SKIP_CHILDREN = 'skip_children'
    STOP = 'stop'


@dataclass
class AttributionEntry:
    """
    CPU time accumulated under one component or module name.
    """
    name: str
    nodes: List[CallTreeNode] = field(default_factory=list)
    duration: float = 0.0


@dataclass
class HydrationWindow:
    """
    Time window of the hydration, in microseconds.
    """
    start: float
    end: float

    @property
    def start_ms(self) -> int:
        return math.floor(self.start / 1000)

    @property
    def end_ms(self) -> int:
        return math.floor(self.end / 1000)


@dataclass
class HydrationReport:
    """
    Result of a hydration analysis.
    """
    window: HydrationWindow
    components: List[AttributionEntry]
    modules: List[AttributionEntry]


def is_hydration_wrapper(event: TraceEvent) -> bool:
    """
    Whether a style recalculation wraps the hydration.

    Recalculations without a stack trace were not forced by script; they are
    the frames rendered before and after the hydration task.
    """
    return event.name == STYLE_RECALCULATION_EVENT and event.stack_frame is None


def unscripted_reflows(events: List[Dict[str, Any]],
                       is_wrapper: Callable[[TraceEvent], bool] = is_hydration_wrapper) -> List[TraceEvent]:
    """Style recalculations that may wrap the hydration, in trace order"""
    return [event for event in map(TraceEvent.from_dict, events) if is_wrapper(event)]


def make_component_classifier(ignored_functions: Iterable[str] = DEFAULT_IGNORED_FUNCTIONS) -> Classifier:
    """
    Build the UI component heuristic.

    Args:
        ignored_functions: Constructor names that look like components but are not

    Returns:
        Classifier returning the component name
    """
    ignored = frozenset(ignored_functions)

    def classify_component(frame: StackFrame) -> Optional[str]:
        if frame.function_name in ignored:
            return None
        if not frame.url or 'node_module' in frame.url:
            return None
        if not COMPONENT_NAME_PATTERN.match(frame.function_name):
            return None
        return frame.function_name

    return classify_component


def extract_module_name(url: str) -> Optional[str]:
    """
    Package name of a script inside ``node_modules``.

    Args:
        url: Script URL or path

    Returns:
        Package name (``@scope/name`` for scoped packages) or None
    """
    match = NODE_MODULE_PATTERN.search(url or "")
    return match.group(1) if match else None


def make_module_classifier(excluded_modules: Iterable[str] = DEFAULT_EXCLUDED_MODULES) -> Classifier:
    """
    Build the third-party module heuristic.

    Args:
        excluded_modules: Framework packages that are never attributed

    Returns:
        Classifier returning the package name
    """
    excluded = frozenset(excluded_modules)

    def classify_module(frame: StackFrame) -> Optional[str]:
        module = extract_module_name(frame.url)
        if module is None or module in excluded:
            return None
        return module

    return classify_module


classify_component = make_component_classifier()
classify_module = make_module_classifier()


def walk_call_tree(root: CallTreeNode, visitor: Callable[[CallTreeNode, int], VisitAction]) -> bool:
    """
    Depth-first walk of a call tree.

    Args:
        root: Node to start at
        visitor: Called with (node, depth); its VisitAction steers the walk

    Returns:
        False if the visitor stopped the walk
    """
    stack: List[Tuple[CallTreeNode, int]] = [(root, 0)]

    while stack:
        node, depth = stack.pop()
        action = visitor(node, depth)

        if action is VisitAction.STOP:
            return False
        if action is VisitAction.SKIP_CHILDREN:
            continue

        # Reversed so children are visited in insertion order
        for child in reversed(list(node.children.values())):
            stack.append((child, depth + 1))

    return True


def attribute(root: CallTreeNode, classifier: Classifier) -> List[AttributionEntry]:
    """
    Accumulate call tree time under the names a classifier assigns.

    A matching node's whole subtree is charged to it and not descended into,
    so nested matches count for the outermost one only.

    Args:
        root: Call tree root
        classifier: Frame classifier

    Returns:
        Entries sorted descending by duration
    """
    entries: Dict[str, AttributionEntry] = {}

    def visit(node: CallTreeNode, depth: int) -> VisitAction:
        if node.call_frame is None:
            return VisitAction.CONTINUE

        name = classifier(node.call_frame)
        if name is None:
            return VisitAction.CONTINUE

        entry = entries.setdefault(name, AttributionEntry(name=name))
        entry.nodes.append(node)
        entry.duration += node.total_time
        return VisitAction.SKIP_CHILDREN

    walk_call_tree(root, visit)
    return sorted(entries.values(), key=lambda e: e.duration, reverse=True)


def find_hydration_index(events: List[Dict[str, Any]], marker_suffix: str = DEFAULT_MARKER_SUFFIX) -> int:
    """
    Index of the first event whose CPU profile contains the hydration call.

    Args:
        events: Raw trace events
        marker_suffix: Suffix of the hydration function name

    Returns:
        Event index

    Raises:
        HydrationNotFoundError: If no profile contains the marker
    """
    for index, raw_event in enumerate(events):
        cpu_profile = TraceEvent.from_dict(raw_event).cpu_profile or {}
        for node in cpu_profile.get('nodes') or []:
            call_frame = node.get('callFrame')
            if call_frame and (call_frame.get('functionName') or "").endswith(marker_suffix):
                return index

    raise HydrationNotFoundError(f"Could not find a '*{marker_suffix}' call in any CPU profile")


def find_hydration_window(events: List[Dict[str, Any]], hydration_index: int,
                          is_wrapper: Callable[[TraceEvent], bool] = is_hydration_wrapper) -> HydrationWindow:
    """
    Find the window between the reflows before and after the hydration.

    Args:
        events: Raw trace events
        hydration_index: Index returned by find_hydration_index()
        is_wrapper: Policy selecting the reflows that wrap the hydration

    Returns:
        Window from the end of the reflow before to the start of the one after

    Raises:
        HydrationWindowError: If no reflow precedes or follows the hydration
    """
    hydration_ts = events[hydration_index].get('ts', 0)
    redraws = unscripted_reflows(events, is_wrapper)

    after_index = next((i for i, redraw in enumerate(redraws) if redraw.end > hydration_ts), None)
    if after_index is None:
        raise HydrationWindowError("No style recalculation ends after the hydration started")
    if after_index == 0:
        raise HydrationWindowError("No style recalculation precedes the hydration")

    before, after = redraws[after_index - 1], redraws[after_index]
    return HydrationWindow(start=before.end, end=after.ts)


class HydrationAnalyzer:
    """
    Attributes hydration CPU time of a source mapped trace.
    """

    def __init__(self, trace: Trace, config: Optional[Dict] = None):
        """
        Initialize the analyzer.

        Args:
            trace: Source mapped trace (list or ``traceEvents`` object)
            config: Optional dictionary with marker_suffix, excluded_modules
                and ignored_functions
        """
        self.config = config or {}
        self.events = get_trace_events(trace)
        self.marker_suffix = self.config.get('marker_suffix', DEFAULT_MARKER_SUFFIX)
        self.component_classifier = make_component_classifier(
            self.config.get('ignored_functions', DEFAULT_IGNORED_FUNCTIONS))
        self.module_classifier = make_module_classifier(
            self.config.get('excluded_modules', DEFAULT_EXCLUDED_MODULES))
        self.logger = logging.getLogger(__name__)

    def find_window(self) -> HydrationWindow:
        hydration_index = find_hydration_index(self.events, self.marker_suffix)
        window = find_hydration_window(self.events, hydration_index)
        self.logger.info(
            f"Hydration window {window.start_ms}-{window.end_ms}ms "
            f"({(window.end - window.start) / 1000:.2f}ms)"
        )
        return window

    def analyze(self) -> HydrationReport:
        """
        Run the full analysis.

        Returns:
            HydrationReport with component and module rankings
        """
        window = self.find_window()
        root = build_top_down_tree(self.events, window.start_ms, window.end_ms)

        return HydrationReport(
            window=window,
            components=attribute(root, self.component_classifier),
            modules=attribute(root, self.module_classifier)
        )
