# layout_profiler/analyzer/sourcemaps.py - Source map resolution for traces
"""
Rewrites the stack locations of a trace to original source locations.

Scripts referenced by stack frames are fetched, their source maps are
discovered and decoded, and every frame that a map covers is rewritten.
Frames without a usable map are left unchanged.
"""

import base64
import copy
from pathlib import Path
from typing import Any, Callable, Dict, Iterator, Optional, Tuple, Union
from urllib.parse import unquote, urljoin
import logging

import requests
import sourcemap

from layout_profiler.utils.helpers import Trace, get_trace_events, load_trace


# (text, headers) for a URL
Fetcher = Callable[[str], Tuple[str, Dict[str, str]]]


def http_fetcher(session: Optional[requests.Session] = None, timeout: float = 30.0) -> Fetcher:
    """
    Build a fetcher that downloads URLs with requests.

    Args:
        session: Optional requests session to reuse connections
        timeout: Per-request timeout in seconds

    Returns:
        Fetcher function
    """
    session = session or requests.Session()

    def fetch(url: str) -> Tuple[str, Dict[str, str]]:
        response = session.get(url, timeout=timeout)
        response.raise_for_status()
        return response.text, dict(response.headers)

    return fetch


def _decode_data_uri(uri: str) -> str:
    header, _, payload = uri.partition(',')
    if header.endswith(';base64'):
        return base64.b64decode(payload).decode('utf-8')
    return unquote(payload)


class SourceMapResolver:
    """
    Maps generated script locations to original source locations.

    Source map indexes are cached per script URL, including misses, so each
    script is fetched at most once.
    """

    def __init__(self, fetcher: Optional[Fetcher] = None):
        """
        Initialize the resolver.

        Args:
            fetcher: Function returning (text, headers) for a URL
        """
        self.fetcher = fetcher or http_fetcher()
        self._indexes: Dict[str, Optional[Tuple[str, Any]]] = {}
        self.logger = logging.getLogger(__name__)

    def _fetch_text(self, url: str) -> Tuple[str, Dict[str, str]]:
        if url.startswith('data:'):
            return _decode_data_uri(url), {}
        return self.fetcher(url)

    def _load_index(self, script_url: str) -> Optional[Tuple[str, Any]]:
        """
        Fetch and decode the source map of a script.

        Returns:
            (map URL, source map index) or None if no map is available
        """
        if not script_url.startswith(('http://', 'https://')):
            return None

        try:
            source, headers = self._fetch_text(script_url)
            headers = {k.lower(): v for k, v in headers.items()}
            map_ref = headers.get('sourcemap') or headers.get('x-sourcemap') or sourcemap.discover(source)
            if not map_ref:
                self.logger.debug(f"No source map reference in {script_url}")
                return None

            map_url = map_ref if map_ref.startswith('data:') else urljoin(script_url, map_ref)
            map_text, _ = self._fetch_text(map_url)
            index = sourcemap.loads(map_text)

        except (requests.RequestException, ValueError, TypeError, KeyError) as e:
            self.logger.debug(f"Could not load source map for {script_url}: {e}")
            return None

        self.logger.debug(f"Loaded source map for {script_url}")
        return (script_url if map_url.startswith('data:') else map_url), index

    def get_index(self, script_url: str) -> Optional[Tuple[str, Any]]:
        """
        Get the cached (map URL, index) pair of a script.

        Args:
            script_url: URL of the generated script

        Returns:
            Pair or None if the script has no usable map
        """
        if script_url not in self._indexes:
            self._indexes[script_url] = self._load_index(script_url)
        return self._indexes[script_url]

    def map_frame(self, frame: Dict[str, Any], one_based: bool) -> bool:
        """
        Rewrite one frame in place.

        Args:
            frame: Frame with url, lineNumber, columnNumber, functionName
            one_based: Whether the frame's line and column start at 1

        Returns:
            True if the frame was rewritten
        """
        url = frame.get('url')
        line = frame.get('lineNumber')
        column = frame.get('columnNumber')
        if not url or line is None or column is None:
            return False

        offset = 1 if one_based else 0
        if line - offset < 0 or column - offset < 0:
            return False

        resolved = self.get_index(url)
        if resolved is None:
            return False
        map_url, index = resolved

        try:
            token = index.lookup(line - offset, column - offset)
        except (IndexError, KeyError):
            return False

        if token is None or not token.src:
            return False

        frame['url'] = urljoin(map_url, token.src)
        frame['lineNumber'] = token.src_line + offset
        frame['columnNumber'] = token.src_col + offset
        if token.name:
            frame['functionName'] = token.name
        return True

    def apply(self, trace: Trace) -> Trace:
        """
        Return a copy of the trace with all mappable frames rewritten.

        Args:
            trace: Event list or object with a ``traceEvents`` field

        Returns:
            Trace of the same shape
        """
        mapped = copy.deepcopy(trace)
        total = rewritten = 0

        for frame, one_based in _iter_frames(get_trace_events(mapped)):
            total += 1
            if self.map_frame(frame, one_based):
                rewritten += 1

        self.logger.info(f"Source mapped {rewritten} of {total} stack frames")
        return mapped


def _iter_frames(events) -> Iterator[Tuple[Dict[str, Any], bool]]:
    """
    Yield every stack frame embedded in the events.

    Timeline stack traces use 1-based positions, CPU profile call frames
    0-based ones.
    """
    for event in events:
        args = event.get('args') or {}
        begin_data = args.get('beginData') or {}
        data = args.get('data') or {}

        for frame in begin_data.get('stackTrace') or []:
            yield frame, True
        for frame in data.get('stackTrace') or []:
            yield frame, True

        cpu_profile = data.get('cpuProfile') or {}
        for node in cpu_profile.get('nodes') or []:
            if node.get('callFrame'):
                yield node['callFrame'], False


def load_profile_with_source_maps(path: Union[str, Path],
                                  resolver: Optional[SourceMapResolver] = None) -> Trace:
    """
    Load a raw trace and rewrite its stack locations through source maps.

    Args:
        path: Path to the raw trace JSON
        resolver: Resolver to use (default: one fetching over HTTP)

    Returns:
        Source mapped trace of the same shape
    """
    trace = load_trace(path)
    return (resolver or SourceMapResolver()).apply(trace)
