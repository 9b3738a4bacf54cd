# layout_profiler/collector/tracer.py - Browser trace capture
"""
Main tracer class for loading a page in Chromium and recording a trace.
Uses Playwright to drive the browser and the Chrome DevTools Protocol for
throttling.
"""

import asyncio
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional
import logging

from playwright.async_api import (
    TimeoutError as PlaywrightTimeoutError,
    async_playwright,
)

from layout_profiler.collector.devices import get_device
from layout_profiler.collector.events import LayoutShiftRecord
from layout_profiler.collector.layout_shift import get_tracking_result, install_tracking
from layout_profiler.collector.network import NetworkIdleMonitor


TRACE_FILENAME = 'profile.json'

# Resolves after the next animation frame so the scroll has been applied
SCROLL_TO_BOTTOM_SCRIPT = """
() => new Promise((resolve) => {
  window.scrollTo(0, document.body.scrollHeight);
  requestAnimationFrame(() => resolve());
})
"""


@dataclass
class CaptureResult:
    """
    Artifacts of one page load.
    """
    trace_path: Path
    layout_shifts: List[LayoutShiftRecord] = field(default_factory=list)


class PageTracer:
    """
    Loads a page under emulation while recording a Chromium trace.

    Every wait is advisory: a timeout is logged and the capture continues,
    so slow pages still produce a partial trace.
    """

    def __init__(self, config: Dict):
        """
        Initialize the PageTracer.

        Args:
            config: Configuration dictionary containing:
                - headless: Run the browser without a window
                - cpu_throttling: CPU slowdown factor
                - device: Device emulation profile name
                - scroll_down: Scroll to the bottom after load
                - trace_categories: Chromium trace categories
                - navigation_timeout_ms, idle_time_ms, idle_timeout_ms
                - scroll_settle_ms, scroll_idle_time_ms, scroll_idle_timeout_ms
        """
        self.config = config
        self.headless = config.get('headless', True)
        self.cpu_throttling = config.get('cpu_throttling', 4)
        self.device = config.get('device', 'Pixel 5')
        self.scroll_down = config.get('scroll_down', True)
        self.trace_categories: Optional[List[str]] = config.get('trace_categories')

        self.navigation_timeout_ms = config.get('navigation_timeout_ms', 120000)
        self.idle_time_ms = config.get('idle_time_ms', 2000)
        self.idle_timeout_ms = config.get('idle_timeout_ms', 120000)
        self.scroll_settle_ms = config.get('scroll_settle_ms', 3000)
        self.scroll_idle_time_ms = config.get('scroll_idle_time_ms', 2000)
        self.scroll_idle_timeout_ms = config.get('scroll_idle_timeout_ms', 2000)

        self.logger = logging.getLogger(__name__)

    async def run(self, url: str, results_dir: Path, screenshot_dir: Optional[Path] = None) -> CaptureResult:
        """
        Load a page and capture its trace and layout shifts.

        Args:
            url: Page to measure
            results_dir: Directory receiving profile.json
            screenshot_dir: Directory for shifted node screenshots

        Returns:
            CaptureResult with the trace path and layout shift records
        """
        results_dir = Path(results_dir)
        screenshot_dir = Path(screenshot_dir) if screenshot_dir else results_dir / 'screenshots'
        trace_path = results_dir / TRACE_FILENAME

        async with async_playwright() as playwright:
            self.logger.info(f"Launching Chromium (headless={self.headless}, device={self.device})")
            browser = await playwright.chromium.launch(headless=self.headless)

            try:
                context = await browser.new_context(**get_device(playwright.devices, self.device))
                page = await context.new_page()

                cdp = await context.new_cdp_session(page)
                await cdp.send('Network.enable')
                await cdp.send('ServiceWorker.enable')
                await cdp.send('Emulation.setCPUThrottlingRate', {'rate': self.cpu_throttling})

                session = await install_tracking(page)
                network = NetworkIdleMonitor(page)

                await browser.start_tracing(
                    page=page,
                    path=str(trace_path),
                    screenshots=False,
                    categories=self.trace_categories
                )
                self.logger.info("🚀 Tracing started")

                await self._navigate(page, url)
                await self._wait_for_network_idle(
                    network, self.idle_time_ms, self.idle_timeout_ms, "after page load"
                )

                if self.scroll_down:
                    await self._scroll_to_bottom(page, network)

                await browser.stop_tracing()
                self.logger.info(f"Trace written to {trace_path}")

                layout_shifts = await get_tracking_result(session, screenshot_dir)

            finally:
                await browser.close()
                self.logger.debug("Browser closed")

        return CaptureResult(trace_path=trace_path, layout_shifts=layout_shifts)

    async def _navigate(self, page, url: str):
        """
        Navigate to the page, tolerating a timeout.
        """
        self.logger.info(f"Navigating to {url}")
        try:
            await page.goto(url, wait_until='domcontentloaded', timeout=self.navigation_timeout_ms)
        except PlaywrightTimeoutError:
            self.logger.warning(
                f"Navigation timed out after {self.navigation_timeout_ms / 1000:.0f}s, "
                f"continuing with a partial trace"
            )

    async def _wait_for_network_idle(self, network: NetworkIdleMonitor, idle_time_ms: float,
                                     timeout_ms: float, stage: str):
        """
        Wait for network idle, tolerating a timeout.

        Args:
            network: Monitor attached to the page
            idle_time_ms: Quiet window in milliseconds
            timeout_ms: Upper bound in milliseconds
            stage: Description used in the warning
        """
        try:
            await network.wait_for_idle(idle_time_ms / 1000, timeout_ms / 1000)
        except asyncio.TimeoutError:
            self.logger.warning(f"Network didn't idle {stage}")

    async def _scroll_to_bottom(self, page, network: NetworkIdleMonitor):
        """
        Scroll to the end of the document to provoke below-the-fold shifts.
        """
        self.logger.info("Scrolling to the bottom of the page")
        await page.evaluate(SCROLL_TO_BOTTOM_SCRIPT)
        await page.wait_for_timeout(self.scroll_settle_ms)
        await self._wait_for_network_idle(
            network, self.scroll_idle_time_ms, self.scroll_idle_timeout_ms, "after scrolling"
        )

    @classmethod
    def from_config(cls, cfg) -> 'PageTracer':
        """
        Build a tracer from a Config object.

        Args:
            cfg: layout_profiler.utils.config.Config

        Returns:
            PageTracer instance
        """
        return cls({
            'headless': cfg.get('browser.headless', True),
            'cpu_throttling': cfg.get('browser.cpu_throttling', 4),
            'device': cfg.get('browser.device', 'Pixel 5'),
            'trace_categories': cfg.get('browser.trace_categories'),
            'scroll_down': cfg.get('scroll.enabled', True),
            'navigation_timeout_ms': cfg.get('navigation.timeout_ms', 120000),
            'idle_time_ms': cfg.get('navigation.idle_time_ms', 2000),
            'idle_timeout_ms': cfg.get('navigation.idle_timeout_ms', 120000),
            'scroll_settle_ms': cfg.get('scroll.settle_ms', 3000),
            'scroll_idle_time_ms': cfg.get('scroll.idle_time_ms', 2000),
            'scroll_idle_timeout_ms': cfg.get('scroll.idle_timeout_ms', 2000),
        })
