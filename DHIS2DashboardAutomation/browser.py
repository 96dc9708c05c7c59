import logging
from dataclasses import dataclass
from typing import Optional

from playwright.async_api import async_playwright, Browser, BrowserContext, Page, Playwright

from .models import BrowserConfig

logger = logging.getLogger(__name__)


@dataclass
class BrowserSession:
    """One launched browser and the single page the crawler drives."""
    playwright: Playwright
    browser: Browser
    context: BrowserContext
    page: Page
    closed: bool = False

    async def close(self):
        if self.closed:
            return
        self.closed = True
        try:
            await self.browser.close()
        finally:
            await self.playwright.stop()


async def launch_session(config: Optional[BrowserConfig] = None) -> BrowserSession:
    config = config or BrowserConfig()
    p = await async_playwright().start()
    try:
        browser = await p.chromium.launch(
            headless=config.headless,
            args=list(config.args),
            executable_path=config.executable_path,
        )
    except Exception as e:
        await p.stop()
        raise RuntimeError(
            "Could not launch Chromium.\n"
            f"Underlying error: {e}"
        ) from e

    context = await browser.new_context(viewport=config.viewport, ignore_https_errors=True)
    page = context.pages[0] if context.pages else await context.new_page()
    logger.info(f"Launched Chromium (headless={config.headless})")
    return BrowserSession(playwright=p, browser=browser, context=context, page=page)
