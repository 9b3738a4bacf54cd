"""Pytest configuration and fixtures."""

import logging

import pytest


APP = "webpack://app/src"
MODULES = "webpack://app/node_modules"


def _frame(function_name, url, line=10, column=5):
    return {'functionName': function_name, 'url': url, 'lineNumber': line, 'columnNumber': column}


@pytest.fixture(autouse=True)
def restore_logging():
    """Drop the handlers setup_logging() installs during a test."""
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    for handler in root.handlers[:]:
        if handler not in handlers:
            root.removeHandler(handler)
    root.setLevel(level)


@pytest.fixture
def make_reflow():
    """Factory for UpdateLayoutTree events, with or without a stack trace."""
    def make(ts=0, dur=0, frame=None, name='UpdateLayoutTree'):
        begin_data = {'frame': 'F1'}
        if frame is not None:
            begin_data['stackTrace'] = [frame]
        return {'name': name, 'ph': 'X', 'pid': 1, 'tid': 1, 'ts': ts, 'dur': dur,
                'args': {'beginData': begin_data}}
    return make


@pytest.fixture
def make_frame():
    """Factory for trace stack frames."""
    return _frame


@pytest.fixture
def hydration_trace(make_reflow):
    """
    Trace with one hydration inside a sampled CPU profile.

    Reflows without stack trace end at 1002ms and start at 1020ms; the
    hydration chunk is stamped 1005ms. Samples every 1ms from 1002ms:

        AppShell > NavBar            2ms
        AppShell > format (date-fns) 1ms
        ProductList > useQuery       2ms  (@tanstack/react-query)
        ResizeObserver               1ms
        hydrate itself               1ms
    """
    nodes = [
        {'id': 1, 'callFrame': _frame('(root)', '', -1, -1)},
        {'id': 2, 'parent': 1, 'callFrame': _frame('Object.hydrate', f"{MODULES}/react-dom/index.js", 0, 10)},
        {'id': 3, 'parent': 2, 'callFrame': _frame('AppShell', f"{APP}/AppShell.tsx", 4, 0)},
        {'id': 4, 'parent': 3, 'callFrame': _frame('NavBar', f"{APP}/NavBar.tsx", 2, 0)},
        {'id': 5, 'parent': 3, 'callFrame': _frame('format', f"{MODULES}/date-fns/format/index.js", 30, 2)},
        {'id': 6, 'parent': 2, 'callFrame': _frame('ProductList', f"{APP}/ProductList.tsx", 8, 0)},
        {'id': 7, 'parent': 6, 'callFrame': _frame(
            'useQuery', f"{MODULES}/@tanstack/react-query/build/index.js", 100, 4)},
        {'id': 8, 'parent': 2, 'callFrame': _frame('ResizeObserver', f"{APP}/observe.ts", 1, 0)},
    ]
    samples = [4, 4, 5, 7, 7, 8, 2, 1, 4]
    time_deltas = [2000, 1000, 1000, 1000, 1000, 1000, 1000, 1000, 16000]

    events = [
        {'name': 'Profile', 'ph': 'P', 'pid': 1, 'tid': 1, 'id': '0x1', 'ts': 1000000,
         'args': {'data': {'startTime': 1000000}}},
        make_reflow(ts=1000000, dur=2000),
        {'name': 'ProfileChunk', 'ph': 'P', 'pid': 1, 'tid': 1, 'id': '0x1', 'ts': 1005000,
         'args': {'data': {'cpuProfile': {'nodes': nodes, 'samples': samples}, 'timeDeltas': time_deltas}}},
        make_reflow(ts=1010000, dur=500, frame=_frame('measure', f"{APP}/measure.ts")),
        make_reflow(ts=1020000, dur=1000),
        make_reflow(ts=1030000, dur=1000),
    ]
    return {'traceEvents': events}
