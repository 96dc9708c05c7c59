from __future__ import annotations

import base64
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, Callable

import pytest
from playwright.async_api import TimeoutError as PWTimeout

from DHIS2DashboardAutomation.locator import MARK_TEXT_NODE_JS
from DHIS2DashboardAutomation.settings import (
    CHART_SELECTOR, CONTROL_BAR_SELECTOR, PASSWORD_SELECTOR, SUBMIT_SELECTOR, TABLE_SELECTOR, USERNAME_SELECTOR,
)
from DHIS2DashboardAutomation.worker import SCROLL_TO_BOTTOM_JS

PNG_URI = "data:image/png;base64," + base64.b64encode(b"\x89PNG\r\n\x1a\nfake").decode()
SVG_URI = "data:image/svg+xml;base64," + base64.b64encode(b"<svg xmlns='http://www.w3.org/2000/svg'/>").decode()


class FakeHandle:
    def __init__(self, selector: str):
        self.selector = selector


class FakeLocator:
    def __init__(self, page: "FakePage", selector: str):
        self.page = page
        self.selector = selector

    async def count(self) -> int:
        self.page.calls.append(("count", self.selector))
        if self.selector == CHART_SELECTOR:
            return len(self.page.charts)
        if self.selector == TABLE_SELECTOR:
            return len(self.page.tables)
        return 0


class FakePage:
    """
    Stand-in for a Playwright page showing a DHIS2 instance: a login form,
    dashboard links by id, control-bar names, charts and pivot tables.
    """

    def __init__(self, dashboard_ids=("101", "102"), dashboard_names=("ANC Overview",),
                 charts=None, tables=None):
        self.url = "about:blank"
        self.hash = ""
        self.calls: list[tuple] = []
        self.typed: dict[str, tuple[str, Any]] = {}
        self.handlers: dict[str, list[Callable]] = {}
        self.present = {USERNAME_SELECTOR, PASSWORD_SELECTOR, SUBMIT_SELECTOR, CONTROL_BAR_SELECTOR}
        self.present |= {f'a[href="#/{i}"]' for i in dashboard_ids}
        self.dashboard_names = set(dashboard_names)
        self.charts = list(charts) if charts is not None else [{"uri": SVG_URI}]
        self.tables = list(tables) if tables is not None else [
            {"label": "ANC visits by district", "labelError": None, "uri": PNG_URI}
        ]
        self.login_succeeds = True
        self.goto_hangs = False
        self.submit_hangs = False
        self.network_hangs = False
        self.table_error: Exception | None = None
        self.screenshots: list[str] = []
        # (method, first argument) or method -> exception raised by that call
        self.failures: dict[Any, Exception] = {}

    def fail(self, method: str, exc: Exception, arg: Any = None) -> None:
        self.failures[(method, arg) if arg is not None else method] = exc

    def _maybe_fail(self, method: str, arg: Any = None) -> None:
        exc = self.failures.get((method, arg)) or self.failures.get(method)
        if exc is not None:
            raise exc

    # navigation
    async def goto(self, url, wait_until=None, timeout=None):
        self.calls.append(("goto", url, wait_until))
        if self.goto_hangs:
            raise PWTimeout(f"Timeout {timeout}ms exceeded.")
        self.url = url

    @asynccontextmanager
    async def expect_navigation(self, wait_until=None, timeout=None):
        self.calls.append(("expect_navigation", wait_until))
        yield
        if self.submit_hangs:
            raise PWTimeout(f"Timeout {timeout}ms exceeded.")

    async def wait_for_load_state(self, state="load", timeout=None):
        self.calls.append(("wait_for_load_state", state))
        if self.network_hangs:
            raise PWTimeout(f"Timeout {timeout}ms exceeded.")

    async def wait_for_function(self, expression, arg=None, timeout=None):
        self.calls.append(("wait_for_function", arg))
        if self.network_hangs or self.hash != arg:
            raise PWTimeout(f"Timeout {timeout}ms exceeded.")

    async def wait_for_timeout(self, timeout):
        self.calls.append(("wait_for_timeout", timeout))

    async def wait_for_selector(self, selector, timeout=None):
        self.calls.append(("wait_for_selector", selector, timeout))
        if selector not in self.present:
            raise PWTimeout(f"Timeout {timeout}ms exceeded waiting for {selector}.")
        return FakeHandle(selector)

    # DOM
    async def query_selector(self, selector):
        return FakeHandle(selector) if selector in self.present else None

    def locator(self, selector):
        return FakeLocator(self, selector)

    async def type(self, selector, text, delay=None):
        self.calls.append(("type", selector))
        self._maybe_fail("type", selector)
        self.typed[selector] = (text, delay)

    async def click(self, selector, timeout=None):
        self.calls.append(("click", selector))
        self._maybe_fail("click", selector)
        if selector == SUBMIT_SELECTOR and self.login_succeeds:
            self.present -= {USERNAME_SELECTOR, PASSWORD_SELECTOR, SUBMIT_SELECTOR}
        if selector.startswith('a[href="#/'):
            self.hash = selector[len('a[href="'):-len('"]')]

    # scripting
    async def evaluate(self, expression, arg=None):
        self.calls.append(("evaluate", expression))
        self._maybe_fail("evaluate")
        if expression == MARK_TEXT_NODE_JS:
            if arg["name"] not in self.dashboard_names:
                return False
            self.present.add(f'[{arg["attribute"]}="{arg["marker"]}"]')
            return True
        if expression == SCROLL_TO_BOTTOM_JS:
            return 3
        return None

    async def add_script_tag(self, url=None, path=None, content=None):
        self.calls.append(("add_script_tag", url or path))
        self._maybe_fail("add_script_tag", url or path)

    async def eval_on_selector_all(self, selector, expression, arg=None):
        self.calls.append(("eval_on_selector_all", selector))
        if selector == CHART_SELECTOR:
            return [dict(c) for c in self.charts]
        if selector == TABLE_SELECTOR:
            if self.table_error is not None:
                raise self.table_error
            return [dict(t) for t in self.tables]
        return []

    async def screenshot(self, path=None, full_page=False):
        self.calls.append(("screenshot", path, full_page))
        self._maybe_fail("screenshot")
        self.screenshots.append(path)
        Path(path).write_bytes(b"png")

    async def emulate_media(self, media=None):
        self.calls.append(("emulate_media", media))
        self._maybe_fail("emulate_media")

    # events
    def on(self, event, handler):
        self.handlers.setdefault(event, []).append(handler)

    def fire(self, event, payload):
        for handler in self.handlers.get(event, []):
            handler(payload)

    def called(self, name):
        return [c for c in self.calls if c[0] == name]


class FakeSession:
    def __init__(self, page: FakePage):
        self.page = page
        self.close_calls = 0

    async def close(self):
        self.close_calls += 1


@pytest.fixture
def fake_page() -> FakePage:
    return FakePage()


@pytest.fixture
def launcher(fake_page):
    sessions: list[FakeSession] = []

    async def _launch(config):
        session = FakeSession(fake_page)
        sessions.append(session)
        return session

    _launch.sessions = sessions
    return _launch

