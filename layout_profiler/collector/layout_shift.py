# layout_profiler/collector/layout_shift.py - Cumulative Layout Shift tracking
"""
Tracks layout shifts inside the page and gathers them after the trace.

install_tracking() injects a PerformanceObserver before navigation so shifts
are observed from first paint. get_tracking_result() pulls the buffered
shifts out of the page, stops the observer and takes a screenshot of every
shifted node that is still attached to the document.
"""

import asyncio
import json
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Tuple, Union
import logging

from playwright.async_api import ElementHandle, Error as PlaywrightError, Page

from layout_profiler.collector.events import LayoutShiftRecord
from layout_profiler.exceptions import TrackingError


logger = logging.getLogger(__name__)

NODE_ID_ATTRIBUTE = 'layout-profiler-cls-id'

# Installed with page.add_init_script, runs before any page script.
# %(key)s is replaced with the session key.
TRACKER_SCRIPT = """
(() => {
  const getXPathForElement = (element) => {
    const idx = (sib, name) =>
      sib
        ? idx(sib.previousElementSibling, name || sib.localName) + (sib.localName == name)
        : 1;
    const segs = (elm) =>
      !elm || elm.nodeType !== 1
        ? [""]
        : elm.id && document.getElementById(elm.id) === elm
        ? [`id("${elm.id}")`]
        : [...segs(elm.parentNode), `${elm.localName.toLowerCase()}[${idx(elm)}]`];
    return segs(element).join("/");
  };

  const getNodeName = (node) => {
    const className = typeof node.className === "string" ? node.className.trim() : "";
    return `${node.tagName || node.nodeName}${className ? "." + className.split(/\\s+/).join(".") : ""}`;
  };

  const layoutShifts = [];
  const layoutShiftNodes = [];
  const record = (entries) => {
    for (const entry of entries) {
      if (entry.hadRecentInput) continue;
      const entryNodes = [];
      layoutShiftNodes.push(entryNodes);
      const diffs = (entry.sources || []).map(({ node, currentRect, previousRect }) => {
        entryNodes.push(node || null);
        const nodeName = !node
          ? ""
          : node.parentElement
          ? `${getNodeName(node.parentElement)} > ${getNodeName(node)}`
          : getNodeName(node);
        return {
          nodeName,
          xPath: node ? getXPathForElement(node) : "",
          x: currentRect.x - previousRect.x,
          y: currentRect.y - previousRect.y,
          width: currentRect.width - previousRect.width,
          height: currentRect.height - previousRect.height,
        };
      });
      layoutShifts.push({ value: entry.value, diffs });
    }
  };
  const observer = new PerformanceObserver((list) => record(list.getEntries()));
  observer.observe({ type: "layout-shift", buffered: true });

  // Entries still queued for the callback are returned by takeRecords()
  const stopTracking = () => {
    record(observer.takeRecords());
    observer.disconnect();
  };

  Object.defineProperty(window, "%(key)s", {
    value: { layoutShifts, layoutShiftNodes, stopTracking },
    configurable: true,
  });
})();
"""

# Tags every shifted element with its (shift index, node index), stops the
# observer and returns the buffered shifts.
EXTRACT_SCRIPT = """
([key, attribute]) => {
  const tracking = window[key];
  if (!tracking) return null;
  const { layoutShifts, layoutShiftNodes, stopTracking } = tracking;

  stopTracking();

  layoutShiftNodes.forEach((nodes, layoutShiftIndex) => {
    nodes.forEach((node, nodeIndex) => {
      if (node && node.nodeType === 1) {
        node.setAttribute(attribute, JSON.stringify([layoutShiftIndex, nodeIndex]));
      }
    });
  });

  delete window[key];
  return layoutShifts;
}
"""


@dataclass
class TrackingSession:
    """
    Handle to layout shift tracking installed in one page.
    """
    page: Page
    key: str
    extracted: bool = False


class ShiftedNode:
    """
    An element implicated in a layout shift, located by its marker attribute.

    try_screenshot() fails soft: an element that cannot be captured, or whose
    marker is malformed, yields None instead of an exception.
    """

    def __init__(self, handle: ElementHandle):
        self.handle = handle

    async def get_id(self) -> Optional[Tuple[int, int]]:
        """
        Read the (shift index, node index) pair from the marker attribute.

        Returns:
            Index pair or None if the attribute is gone

        Raises:
            ValueError: If the attribute does not hold an index pair
        """
        raw_id = await self.handle.get_attribute(NODE_ID_ATTRIBUTE)
        if not raw_id:
            return None
        try:
            layout_shift_index, node_index = json.loads(raw_id)
        except TypeError:
            raise ValueError(f"Malformed shifted node id: {raw_id!r}")
        return layout_shift_index, node_index

    async def try_screenshot(self, directory: Union[str, Path]) -> Optional[Path]:
        """
        Save a PNG of the element as ``cls-<shiftIndex>-<nodeIndex>.png``.

        Args:
            directory: Screenshot output directory

        Returns:
            Path of the written file, or None if the element could not be captured
        """
        try:
            node_id = await self.get_id()
            if node_id is None:
                return None

            path = Path(directory) / f"cls-{node_id[0]}-{node_id[1]}.png"
            await self.handle.screenshot(path=str(path))
            return path

        except PlaywrightError as e:
            logger.debug(f"Skipping screenshot of shifted node: {e}")
            return None

        except ValueError as e:
            logger.debug(f"Skipping shifted node: {e}")
            return None


async def install_tracking(page: Page) -> TrackingSession:
    """
    Inject layout shift tracking into a page.

    Must be called before navigation.

    Args:
        page: Playwright page

    Returns:
        Session to pass to get_tracking_result()
    """
    key = f"__layoutProfilerCls_{uuid.uuid4().hex}"
    await page.add_init_script(script=TRACKER_SCRIPT % {'key': key})
    logger.debug(f"Layout shift tracking installed ({key})")
    return TrackingSession(page=page, key=key)


async def get_tracking_result(session: TrackingSession,
                              screenshot_dir: Union[str, Path]) -> List[LayoutShiftRecord]:
    """
    Gather all layout shifts recorded since install_tracking().

    Stops the in-page observer and screenshots every shifted node that is
    still in the DOM. Detached nodes are skipped.

    Args:
        session: Session returned by install_tracking()
        screenshot_dir: Directory for ``cls-<i>-<j>.png`` files

    Returns:
        Layout shift records in observation order

    Raises:
        TrackingError: If the session is invalid or was already extracted
    """
    if not isinstance(session, TrackingSession):
        raise TrackingError("Layout shift tracking was not installed")
    if session.extracted:
        raise TrackingError("Layout shift tracking result was already extracted")

    page = session.page
    raw_shifts = await page.evaluate(EXTRACT_SCRIPT, [session.key, NODE_ID_ATTRIBUTE])
    session.extracted = True

    if raw_shifts is None:
        raise TrackingError("Layout shift tracking is not running in the page")

    layout_shifts = [LayoutShiftRecord.from_dict(raw) for raw in raw_shifts]

    # Only nodes still attached to the document are found
    handles = await page.query_selector_all(f"[{NODE_ID_ATTRIBUTE}]")
    nodes = [ShiftedNode(handle) for handle in handles]
    screenshots = await asyncio.gather(*(node.try_screenshot(screenshot_dir) for node in nodes))

    captured = sum(1 for path in screenshots if path is not None)
    logger.info(f"Recorded {len(layout_shifts)} layout shifts, saved {captured} node screenshots")

    return layout_shifts
