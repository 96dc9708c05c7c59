import logging
from typing import Awaitable, Callable, Dict, Optional

from playwright.async_api import ElementHandle, Error as PWError, Page, TimeoutError as PWTimeout

from .errors import ElementNotFound, NavigationError, NavigationTimeout
from .events import ProgressEvents
from .models import DashboardReference
from .settings import CONTROL_BAR_SELECTOR, MARKER_ATTRIBUTE, NAVIGATION_TIMEOUT_SECONDS
from .utils import MarkerFactory, ms

logger = logging.getLogger(__name__)

# Playwright reads a zero timeout as "wait forever"
MIN_WAIT_SECONDS = 1

# Tags the parent of the first visible text node in `region` whose trimmed
# text equals `name`. Returns false when nothing matched.
MARK_TEXT_NODE_JS = """
({ region, name, attribute, marker }) => {
    const roots = Array.from(document.querySelectorAll(region));
    for (const root of roots) {
        const walker = document.createTreeWalker(root, NodeFilter.SHOW_TEXT);
        let node;
        while ((node = walker.nextNode())) {
            const host = node.parentElement;
            if (!host || node.textContent.trim() !== name) continue;
            const box = host.getBoundingClientRect();
            if (box.width === 0 && box.height === 0) continue;
            host.setAttribute(attribute, marker);
            return true;
        }
    }
    return false;
}
"""


class DashboardLocator:
    def __init__(self, page: Page, markers: MarkerFactory, events: Optional[ProgressEvents] = None,
                 timeout_ms: float = ms(NAVIGATION_TIMEOUT_SECONDS)):
        self.page = page
        self.markers = markers
        self.events = events or ProgressEvents(default=None)
        self.timeout_ms = timeout_ms
        self._strategies: Dict[str, Callable[[DashboardReference, float], Awaitable[ElementHandle]]] = {
            "id": self._by_id,
            "name": self._by_name,
        }

    async def locate(self, reference: DashboardReference, wait_seconds: float) -> ElementHandle:
        """
        Open the dashboard `reference` points at and return the element that was clicked.
        Raises ElementNotFound or NavigationError (NavigationTimeout for timeouts).
        """
        return await self._strategies[reference.kind](reference, wait_seconds)

    async def _by_id(self, reference: DashboardReference, wait_seconds: float) -> ElementHandle:
        ident = reference.value
        self.events.emit(f"Navigating to find dashboard w/ id {ident}.")
        selector = f'a[href="#/{ident}"]'
        try:
            link = await self.page.wait_for_selector(selector, timeout=_bounded(wait_seconds))
            if link is None:
                raise ElementNotFound(f"No link to dashboard #{ident}.")
            await self.page.click(selector, timeout=_bounded(wait_seconds))
        except PWError as e:
            raise ElementNotFound(f"Could not open the link to dashboard #{ident} within {wait_seconds}s: {e}") from e

        try:
            # hash route change; no full page load
            await self.page.wait_for_function(
                "hash => window.location.hash === hash", arg=f"#/{ident}", timeout=self.timeout_ms
            )
            await self.page.wait_for_load_state("networkidle", timeout=self.timeout_ms)
        except PWTimeout as e:
            raise NavigationTimeout(f"Dashboard #{ident} did not finish loading.") from e
        except PWError as e:
            raise NavigationError(f"Dashboard #{ident} failed to load: {e}") from e

        self.events.emit(f"Clicked on dashboard link #{ident}")
        await self._settle(wait_seconds)
        return link

    async def _by_name(self, reference: DashboardReference, wait_seconds: float) -> ElementHandle:
        name = reference.value
        self.events.emit(f"Navigating to find dashboard named '{name}'.")
        try:
            await self.page.wait_for_selector(CONTROL_BAR_SELECTOR, timeout=_bounded(wait_seconds))
        except PWTimeout:
            logger.warning(f"Control bar did not render within {wait_seconds}s; scanning anyway.")
        except PWError as e:
            raise NavigationError(f"Page closed while waiting for the control bar: {e}") from e

        marker = self.markers.next()
        selector = f'[{MARKER_ATTRIBUTE}="{marker}"]'
        try:
            found = await self.page.evaluate(MARK_TEXT_NODE_JS, {
                "region": CONTROL_BAR_SELECTOR,
                "name": name,
                "attribute": MARKER_ATTRIBUTE,
                "marker": marker,
            })
            if not found:
                raise ElementNotFound(f"Dashboard '{name}' not found in the control bar.")

            target = await self.page.query_selector(selector)
            if target is None:
                raise ElementNotFound(f"Dashboard '{name}' disappeared before it could be clicked.")
            await self.page.click(selector, timeout=_bounded(wait_seconds))
        except PWError as e:
            raise ElementNotFound(f"Could not click dashboard '{name}' in the control bar: {e}") from e
        self.events.emit(f"Clicked on dashboard '{name}'")

        try:
            await self.page.wait_for_load_state("networkidle", timeout=self.timeout_ms)
        except PWTimeout as e:
            raise NavigationTimeout(f"Dashboard '{name}' did not finish loading.") from e
        except PWError as e:
            raise NavigationError(f"Dashboard '{name}' failed to load: {e}") from e
        await self._settle(wait_seconds)
        return target

    async def _settle(self, wait_seconds: float):
        try:
            await self.page.wait_for_timeout(ms(wait_seconds))
        except PWError as e:
            raise NavigationError(f"Page closed while the dashboard was rendering: {e}") from e


def _bounded(wait_seconds: float) -> float:
    return ms(max(wait_seconds, MIN_WAIT_SECONDS))
