import enum
import logging
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional, Union

from playwright.async_api import Error as PWError

from .authentication import login as login_flow
from .browser import BrowserSession, launch_session
from .config_loader import parse_dashboards
from .errors import CrawlerError, PageRuntimeError, SessionStateError
from .events import ProgressEvents, Subscriber
from .locator import DashboardLocator
from .models import BrowserConfig, Credentials, DashboardReference, DownloadOptions, ExtractionResult
from .utils import MarkerFactory, ms
from .worker import DashboardWorker

logger = logging.getLogger(__name__)

Launcher = Callable[[BrowserConfig], Awaitable[BrowserSession]]
ReferenceLike = Union[DashboardReference, Dict[str, Any], str]


class SessionState(enum.Enum):
    UNINITIALIZED = "uninitialized"
    READY = "ready"
    AUTHENTICATED = "authenticated"
    CLOSED = "closed"


class DashboardCrawler:
    """
    Owns the browser session for a whole run: startup, login, sequential
    dashboard extraction and teardown.

    Dashboards are always processed one after another on the same page;
    navigating one page from concurrent tasks corrupts its state.
    """

    def __init__(self, url: str, launcher: Launcher = launch_session, events: Optional[ProgressEvents] = None):
        self.url = url
        self.launcher = launcher
        self.events = events or ProgressEvents()
        self.state = SessionState.UNINITIALIZED
        self.config: Optional[BrowserConfig] = None
        self.session: Optional[BrowserSession] = None
        self.markers = MarkerFactory()

    def on(self, handler: Subscriber) -> Subscriber:
        return self.events.subscribe(handler)

    @property
    def page(self):
        if self.session is None:
            raise SessionStateError("Browser not launched. Call startup() first.")
        return self.session.page

    def _require(self, *states: SessionState):
        if self.state not in states:
            expected = " or ".join(s.value for s in states)
            raise SessionStateError(f"Crawler is {self.state.value}; expected {expected}.")

    async def startup(self, config: Optional[BrowserConfig] = None):
        self._require(SessionState.UNINITIALIZED)
        self.config = config or BrowserConfig()
        self.events.emit("Spinning up headless Chromium to render the DHIS2 site.")
        self.session = await self.launcher(self.config)

        self.page.on("pageerror", self._on_page_error)
        try:
            await self.page.emulate_media(media="screen")
        except PWError as e:
            raise CrawlerError(f"Could not switch the page to screen media: {e}") from e
        self.state = SessionState.READY

    def _on_page_error(self, err):
        logger.debug(f"An error occurred in page: {err}")
        self.events.emit(f"An error occurred in page: {err}", is_error=True, error=PageRuntimeError(str(err)))

    async def login(self, username: str, password: str):
        self._require(SessionState.READY)
        await login_flow(
            self.page, self.url, Credentials(username=username, password=password),
            events=self.events,
            timeout_ms=ms(self.config.navigation_timeout_seconds),
            verify=self.config.verify_login,
        )
        self.state = SessionState.AUTHENTICATED

    async def download_dashboard_components(self, dashboards: Iterable[ReferenceLike],
                                            options: Optional[DownloadOptions] = None) -> List[ExtractionResult]:
        self._require(SessionState.AUTHENTICATED)
        options = options or DownloadOptions()
        references = parse_dashboards(dashboards)

        results: List[ExtractionResult] = []
        for idx, reference in enumerate(references):
            logger.info(f"=== [{idx + 1}/{len(references)}] Dashboard: {reference.title or reference.value} ===")
            try:
                results.append(await self._process_dashboard(reference, options))
            except CrawlerError as e:
                if not options.continue_on_error:
                    raise
                self.events.emit(f"Dashboard '{reference.value}' failed: {e}", is_error=True, error=e)
                results.append(ExtractionResult(reference=reference, title=reference.title, error=str(e)))
        return results

    async def _process_dashboard(self, reference: DashboardReference, options: DownloadOptions) -> ExtractionResult:
        locator = DashboardLocator(self.page, self.markers, events=self.events,
                                   timeout_ms=ms(self.config.navigation_timeout_seconds))
        await locator.locate(reference, options.delay_seconds)

        worker = DashboardWorker(self.page, events=self.events, label_mode=options.label_mode)
        graphics = None if options.skip_graphs else tuple(await worker.extract_graphics())
        tables = None if options.skip_tables else tuple(await worker.extract_tables())
        return ExtractionResult(reference=reference, title=reference.title, graphics=graphics, tables=tables)

    async def shutdown(self):
        await self._destroy(errored=False)

    async def panic(self):
        await self._destroy(errored=True)

    async def _destroy(self, errored: bool):
        if self.state is SessionState.CLOSED:
            logger.debug("Crawler already closed; nothing to release.")
            return
        self.state = SessionState.CLOSED

        if errored:
            self.events.emit("An error occurred. Closing the browser.", is_error=True)
        else:
            self.events.emit("All dashboards downloaded. Closing the browser.")

        try:
            if self.session is not None:
                await self.session.close()
                self.events.emit("Browser shutdown successfully.", is_error=errored)
        except Exception as e:
            # teardown must not mask the error that triggered panic()
            logger.warning(f"Browser did not close cleanly: {e!r}")
            self.events.emit(f"Browser did not close cleanly: {e}", is_error=True, error=e)
        finally:
            self.session = None
            self.events.clear()

    async def __aenter__(self) -> "DashboardCrawler":
        return self

    async def __aexit__(self, exc_type, exc, tb):
        if exc_type is not None:
            await self.panic()
        else:
            await self.shutdown()
