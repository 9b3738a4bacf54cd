# layout_profiler/collector/network.py - Network idle detection
"""
Waits until a page has had no request in flight for a quiet window.
"""

import asyncio
import time
from typing import Callable, Set
import logging


class NetworkIdleMonitor:
    """
    Tracks in-flight requests of a page.

    Attach before navigation so requests issued during page load are seen.
    """

    POLL_INTERVAL = 0.1

    def __init__(self, page, clock: Callable[[], float] = time.monotonic):
        """
        Initialize the monitor and subscribe to the page's request events.

        Args:
            page: Playwright page
            clock: Monotonic clock in seconds
        """
        self.clock = clock
        self.inflight: Set = set()
        self.last_activity = clock()
        self.logger = logging.getLogger(__name__)

        page.on('request', self._on_request)
        page.on('requestfinished', self._on_request_done)
        page.on('requestfailed', self._on_request_done)

    def _on_request(self, request):
        self.inflight.add(request)
        self.last_activity = self.clock()

    def _on_request_done(self, request):
        self.inflight.discard(request)
        self.last_activity = self.clock()

    async def wait_for_idle(self, idle_time: float, timeout: float):
        """
        Wait until no request has been in flight for ``idle_time`` seconds.

        The quiet window is counted from the last request activity seen since
        the monitor was attached, so a page that went quiet before the call
        returns at once.

        Args:
            idle_time: Quiet window in seconds
            timeout: Upper bound in seconds

        Raises:
            asyncio.TimeoutError: If the network did not go idle in time
        """
        async def poll():
            while True:
                if not self.inflight and self.clock() - self.last_activity >= idle_time:
                    return
                await asyncio.sleep(self.POLL_INTERVAL)

        await asyncio.wait_for(poll(), timeout)
        self.logger.debug(f"Network idle for {idle_time}s")
