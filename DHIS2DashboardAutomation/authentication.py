import os
import logging
from typing import Optional, Tuple

from dotenv import load_dotenv
from playwright.async_api import Error as PWError, Page, TimeoutError as PWTimeout

from .errors import AuthenticationFailed, ElementNotFound, NavigationError, NavigationTimeout
from .events import ProgressEvents
from .models import Credentials
from .settings import (
    KEYSTROKE_DELAY_MS, NAVIGATION_TIMEOUT_SECONDS, PASSWORD_SELECTOR, SUBMIT_SELECTOR,
    USERNAME_SELECTOR,
)
from .utils import ms

logger = logging.getLogger(__name__)


def get_credentials() -> Tuple[str, Credentials]:
    """
    Read the DHIS2 entry URL and login from the environment.
    Requires DHIS2_URL, DHIS2_USERNAME, DHIS2_PASSWORD in env / .env.
    """
    load_dotenv()
    url = os.getenv("DHIS2_URL") or ""
    username = os.getenv("DHIS2_USERNAME") or ""
    password = os.getenv("DHIS2_PASSWORD") or ""
    if not (url and username and password):
        raise ValueError("DHIS2_URL, DHIS2_USERNAME, and DHIS2_PASSWORD must be set for DHIS2 login.")
    return url, Credentials(username=username, password=password)


async def login(page: Page, url: str, credentials: Credentials, events: Optional[ProgressEvents] = None,
                timeout_ms: float = ms(NAVIGATION_TIMEOUT_SECONDS), verify: bool = True):
    events = events or ProgressEvents(default=None)

    events.emit(f"Loading the DHIS2 login page at {url}.")
    try:
        await page.goto(url, wait_until="networkidle", timeout=timeout_ms)
    except PWTimeout as e:
        raise NavigationTimeout(f"Login page {url} did not settle within {timeout_ms / 1000:.0f}s.") from e
    except PWError as e:
        raise NavigationError(f"Could not load the login page {url}: {e}") from e

    events.emit(f"Page loaded! Logging into DHIS2 as {credentials.username}.")

    for selector, value in ((USERNAME_SELECTOR, credentials.username), (PASSWORD_SELECTOR, credentials.password)):
        try:
            field_el = await page.query_selector(selector)
            if field_el is None:
                raise ElementNotFound(f"Login field '{selector}' not found on {page.url}.")
            await page.type(selector, value, delay=KEYSTROKE_DELAY_MS)
        except PWError as e:
            raise ElementNotFound(f"Could not type into login field '{selector}': {e}") from e

    try:
        async with page.expect_navigation(wait_until="networkidle", timeout=timeout_ms):
            await page.click(SUBMIT_SELECTOR)
    except PWTimeout as e:
        raise NavigationTimeout(f"No navigation after submitting credentials within {timeout_ms / 1000:.0f}s.") from e
    except PWError as e:
        raise NavigationError(f"Submitting credentials failed: {e}") from e

    if verify and await _still_on_login_form(page):
        raise AuthenticationFailed(f"Still on the login form after submitting credentials for {credentials.username}.")

    events.emit("Credentials submitted.  Waiting for dashboard pages to load.")


async def _still_on_login_form(page: Page) -> bool:
    try:
        return await page.query_selector(USERNAME_SELECTOR) is not None
    except PWError as e:
        raise NavigationError(f"Page after login could not be inspected: {e}") from e
