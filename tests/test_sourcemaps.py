# tests/test_sourcemaps.py - Tests for source map resolution
"""
Unit tests for SourceMapResolver with an in-memory fetcher.
"""

import base64
import json

import pytest
import requests

from layout_profiler.analyzer.sourcemaps import SourceMapResolver, load_profile_with_source_maps


SCRIPT_URL = 'https://example.com/static/app.js'
MAP_URL = 'https://example.com/static/app.js.map'

# Generated column 4 of line 0 maps to line 5, column 4 of src/App.tsx ("render")
SOURCE_MAP = json.dumps({
    'version': 3,
    'file': 'app.js',
    'sources': ['src/App.tsx'],
    'names': ['render'],
    'mappings': 'IAKIA',
})


class FakeFetcher:
    """Serves fixed documents and records requested URLs"""

    def __init__(self, documents):
        self.documents = documents
        self.requested = []

    def __call__(self, url):
        self.requested.append(url)
        if url not in self.documents:
            raise requests.HTTPError(f"404 for {url}")
        return self.documents[url]


def _fetcher(script_headers=None, script=None):
    return FakeFetcher({
        SCRIPT_URL: (script or 'function a(){}\n//# sourceMappingURL=app.js.map', script_headers or {}),
        MAP_URL: (SOURCE_MAP, {}),
    })


def _reflow(line, column, url=SCRIPT_URL):
    return {'name': 'UpdateLayoutTree', 'ts': 0, 'dur': 10, 'args': {'beginData': {'stackTrace': [
        {'functionName': 'a', 'url': url, 'lineNumber': line, 'columnNumber': column}]}}}


def _profile_chunk(line, column):
    return {'name': 'ProfileChunk', 'ts': 0, 'args': {'data': {'cpuProfile': {'nodes': [
        {'id': 1, 'callFrame': {'functionName': 'a', 'url': SCRIPT_URL,
                                'lineNumber': line, 'columnNumber': column}}]}}}}


class TestSourceMapResolver:
    """Test cases for rewriting trace frames"""

    def test_one_based_frame(self):
        """Test a timeline stack frame is mapped with 1-based positions"""
        mapped = SourceMapResolver(_fetcher()).apply([_reflow(1, 5)])
        frame = mapped[0]['args']['beginData']['stackTrace'][0]

        assert frame == {
            'functionName': 'render',
            'url': 'https://example.com/static/src/App.tsx',
            'lineNumber': 6,
            'columnNumber': 5,
        }

    def test_zero_based_call_frame(self):
        """Test a CPU profile call frame is mapped with 0-based positions"""
        mapped = SourceMapResolver(_fetcher()).apply({'traceEvents': [_profile_chunk(0, 4)]})
        frame = mapped['traceEvents'][0]['args']['data']['cpuProfile']['nodes'][0]['callFrame']

        assert frame['url'] == 'https://example.com/static/src/App.tsx'
        assert (frame['lineNumber'], frame['columnNumber']) == (5, 4)

    def test_input_is_not_modified(self):
        """Test the original trace is left untouched"""
        trace = [_reflow(1, 5)]
        SourceMapResolver(_fetcher()).apply(trace)

        assert trace[0]['args']['beginData']['stackTrace'][0]['url'] == SCRIPT_URL

    def test_unmapped_line_is_unchanged(self):
        """Test frames outside the mappings are kept as they are"""
        event = _reflow(40, 1)
        mapped = SourceMapResolver(_fetcher()).apply([event])

        assert mapped == [event]

    def test_script_without_map(self):
        """Test scripts without sourceMappingURL are left unchanged"""
        event = _reflow(1, 5)
        mapped = SourceMapResolver(_fetcher(script='function a(){}')).apply([event])

        assert mapped == [event]

    def test_fetch_failure(self):
        """Test unreachable scripts are left unchanged"""
        event = _reflow(1, 5, url='https://example.com/missing.js')
        mapped = SourceMapResolver(_fetcher()).apply([event])

        assert mapped == [event]

    def test_non_http_urls_are_not_fetched(self):
        """Test inline and extension scripts are skipped"""
        fetcher = _fetcher()
        SourceMapResolver(fetcher).apply([_reflow(1, 5, url='chrome-extension://abc/x.js')])

        assert fetcher.requested == []

    def test_source_map_header(self):
        """Test the SourceMap response header wins over the comment"""
        fetcher = FakeFetcher({
            SCRIPT_URL: ('function a(){}', {'SourceMap': '/maps/app.map'}),
            'https://example.com/maps/app.map': (SOURCE_MAP, {}),
        })
        mapped = SourceMapResolver(fetcher).apply([_reflow(1, 5)])
        frame = mapped[0]['args']['beginData']['stackTrace'][0]

        assert frame['url'] == 'https://example.com/maps/src/App.tsx'

    def test_inline_data_uri_map(self):
        """Test base64 inline source maps"""
        encoded = base64.b64encode(SOURCE_MAP.encode('utf-8')).decode('ascii')
        fetcher = FakeFetcher({
            SCRIPT_URL: (f'function a(){{}}\n//# sourceMappingURL=data:application/json;base64,{encoded}', {}),
        })
        mapped = SourceMapResolver(fetcher).apply([_reflow(1, 5)])
        frame = mapped[0]['args']['beginData']['stackTrace'][0]

        assert frame['url'] == 'https://example.com/static/src/App.tsx'
        assert fetcher.requested == [SCRIPT_URL]

    def test_maps_are_fetched_once(self):
        """Test the index is cached per script"""
        fetcher = _fetcher()
        SourceMapResolver(fetcher).apply([_reflow(1, 5), _reflow(1, 5), _profile_chunk(0, 4)])

        assert fetcher.requested == [SCRIPT_URL, MAP_URL]

    def test_invalid_trace(self):
        """Test that malformed traces are rejected"""
        from layout_profiler.exceptions import TraceFormatError

        with pytest.raises(TraceFormatError):
            SourceMapResolver(_fetcher()).apply({'nope': []})


class TestLoadProfile:
    """Test cases for loading a trace file"""

    def test_load_profile_with_source_maps(self, tmp_path):
        """Test loading from disk keeps the trace shape"""
        path = tmp_path / 'profile.json'
        path.write_text(json.dumps({'traceEvents': [_reflow(1, 5)]}), encoding='utf-8')

        mapped = load_profile_with_source_maps(path, SourceMapResolver(_fetcher()))

        assert mapped['traceEvents'][0]['args']['beginData']['stackTrace'][0]['lineNumber'] == 6
