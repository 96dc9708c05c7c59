import os
import time
import logging
import tempfile
from typing import Dict, List, Optional, Tuple

from playwright.async_api import Page, Error as PWError

from .errors import GraphicConversionError, LabelExtractionError, TableConversionError
from .events import ProgressEvents
from .models import GraphicArtifact, TableArtifact, LABEL_MODES
from .settings import (
    CHART_SELECTOR, COUNT_POLL_ATTEMPTS, COUNT_POLL_INTERVAL_MS, DEBUG_SCREENSHOT, HTML2CANVAS_SOURCE,
    SCROLL_DELAY_MS, SCROLL_MAX_STEPS, SCROLL_STEP_PX, SVG_HELPER_SOURCE, TABLE_SCALE, TABLE_SELECTOR,
    TABLE_SETTLE_SECONDS,
)
from .utils import ms

logger = logging.getLogger(__name__)

# svgAsDataUri takes a callback in old releases and returns a promise in new
# ones; settle on whichever answers first.
CONVERT_CHARTS_JS = """
(charts) => Promise.all(charts.map((chart) => new Promise((resolve) => {
    let settled = false;
    const finish = (value) => { if (!settled) { settled = true; resolve(value); } };
    if (typeof svgAsDataUri !== 'function') {
        finish({ error: 'svgAsDataUri is not loaded' });
        return;
    }
    try {
        const pending = svgAsDataUri(chart, {}, (uri) => finish({ uri }));
        if (pending && typeof pending.then === 'function') {
            pending.then((uri) => finish({ uri }), (error) => finish({ error: String(error) }));
        }
    } catch (error) {
        finish({ error: String(error) });
    }
})))
"""

# Label lookup failures are reported per table, rasterization failures reject.
CONVERT_TABLES_JS = """
(tables, scale) => Promise.all(tables.map((table) => {
    let label = null;
    let labelError = null;
    try {
        const item = table.parentElement.parentElement.parentElement.parentElement;
        label = item.querySelector('span').textContent;
    } catch (error) {
        labelError = String(error);
    }
    return html2canvas(table, { scale })
        .then((canvas) => ({ label, labelError, uri: canvas.toDataURL() }));
}))
"""

SCROLL_TO_BOTTOM_JS = """
async ({ step, delay, maxSteps }) => {
    const sleep = (ms) => new Promise((resolve) => setTimeout(resolve, ms));
    let steps = 0;
    while (steps < maxSteps) {
        window.scrollBy(0, step);
        steps += 1;
        await sleep(delay);
        const bottom = Math.ceil(window.scrollY + window.innerHeight);
        if (bottom >= document.documentElement.scrollHeight) break;
    }
    return steps;
}
"""


def script_tag_args(source: str) -> Dict[str, str]:
    if source.startswith(("http://", "https://")):
        return {"url": source}
    return {"path": source}


class DashboardWorker:
    """Pulls charts and pivot tables off the dashboard currently on `page`."""

    def __init__(self, page: Page, events: Optional[ProgressEvents] = None, label_mode: str = "strict",
                 debug_screenshots: bool = DEBUG_SCREENSHOT):
        if label_mode not in LABEL_MODES:
            raise ValueError(f"label_mode must be one of {LABEL_MODES}, got '{label_mode}'.")
        self.page = page
        self.events = events or ProgressEvents(default=None)
        self.label_mode = label_mode
        self.debug_screenshots = debug_screenshots

    async def extract_graphics(self) -> List[GraphicArtifact]:
        self.events.emit("Fetching SVG graphs from the dashboard.")
        # local helper paths are read client-side, so a missing file is an OSError
        try:
            await self._wait_for_stable_count(CHART_SELECTOR)
            await self.page.add_script_tag(**script_tag_args(SVG_HELPER_SOURCE))
        except (PWError, OSError) as e:
            raise GraphicConversionError(f"Could not load the SVG helper from {SVG_HELPER_SOURCE}: {e}") from e

        try:
            converted = await self.page.eval_on_selector_all(CHART_SELECTOR, CONVERT_CHARTS_JS)
        except PWError as e:
            raise GraphicConversionError(f"SVG serialization failed: {e}") from e
        failures = [(i, c.get("error")) for i, c in enumerate(converted) if c.get("error") or not c.get("uri")]
        if failures:
            idx, err = failures[0]
            raise GraphicConversionError(
                f"{len(failures)} of {len(converted)} graphs could not be serialized "
                f"(first: graph {idx + 1}: {err or 'empty result'})."
            )

        graphics = [GraphicArtifact(uri=c["uri"], index=i) for i, c in enumerate(converted)]
        self.events.emit(f"Pulled {len(graphics)} graphs from the dashboard.")
        return graphics

    async def extract_tables(self) -> List[TableArtifact]:
        self.events.emit("Fetching pivot tables from the dashboard.")
        try:
            await self.page.add_script_tag(**script_tag_args(HTML2CANVAS_SOURCE))
        except (PWError, OSError) as e:
            raise TableConversionError(f"Could not load html2canvas from {HTML2CANVAS_SOURCE}: {e}") from e

        try:
            # some layouts only render widgets once they are scrolled into view
            await self.scroll_to_bottom()
            await self.page.wait_for_timeout(ms(TABLE_SETTLE_SECONDS))
        except PWError as e:
            raise TableConversionError(f"Could not scroll the dashboard before capturing tables: {e}") from e

        tmpfile = os.path.join(tempfile.gettempdir(), f"{int(time.time() * 1000)}-screenshot-full-page.png")
        try:
            # html2canvas renders blank tables unless a native screenshot ran first
            await self.page.screenshot(path=tmpfile, full_page=True)
            await self._wait_for_stable_count(TABLE_SELECTOR)
            converted = await self.page.eval_on_selector_all(TABLE_SELECTOR, CONVERT_TABLES_JS, TABLE_SCALE)
        except PWError as e:
            raise TableConversionError(f"Pivot table rasterization failed: {e}") from e
        finally:
            if self.debug_screenshots:
                logger.info(f"Full-page screenshot kept at {tmpfile}")
            elif os.path.exists(tmpfile):
                os.remove(tmpfile)

        tables = self._collect_tables(converted)
        self.events.emit(f"Pulled {len(tables)} tables from the dashboard.")
        return tables

    def _collect_tables(self, converted: List[dict]) -> List[TableArtifact]:
        tables: List[TableArtifact] = []
        for i, item in enumerate(converted):
            label, label_error = _label_of(item)
            if label_error is not None:
                if self.label_mode == "strict":
                    raise LabelExtractionError(f"Could not read the label of table {i + 1}: {label_error}", index=i)
                self.events.emit(f"Table {i + 1} has no readable label: {label_error}", is_error=True)
            tables.append(TableArtifact(uri=item["uri"], label=label, index=i))
        return tables

    async def scroll_to_bottom(self, step: int = SCROLL_STEP_PX, delay_ms: int = SCROLL_DELAY_MS,
                               max_steps: int = SCROLL_MAX_STEPS) -> int:
        return await self.page.evaluate(SCROLL_TO_BOTTOM_JS, {"step": step, "delay": delay_ms, "maxSteps": max_steps})

    async def _wait_for_stable_count(self, selector: str) -> int:
        previous = -1
        for _ in range(COUNT_POLL_ATTEMPTS):
            count = await self.page.locator(selector).count()
            if count == previous:
                return count
            previous = count
            await self.page.wait_for_timeout(COUNT_POLL_INTERVAL_MS)
        logger.debug(f"'{selector}' count still changing after {COUNT_POLL_ATTEMPTS} polls; using {previous}.")
        return previous


def _label_of(item: dict) -> Tuple[Optional[str], Optional[str]]:
    if item.get("labelError"):
        return None, item["labelError"]
    label = (item.get("label") or "").strip()
    if not label:
        return None, "empty caption"
    return label, None
