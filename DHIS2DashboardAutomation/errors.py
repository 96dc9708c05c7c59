"""
Error taxonomy for the crawler.

Playwright's own TimeoutError is translated into NavigationTimeout or
ElementNotFound at the component that waited; callers never need to import
anything from playwright to handle failures.
"""
from typing import Optional


class CrawlerError(RuntimeError):
    pass


class NavigationError(CrawlerError):
    """The browser could not load or settle a page."""


class NavigationTimeout(NavigationError):
    """A navigation or network-quiescence wait exceeded its bound."""


class ElementNotFound(CrawlerError):
    """A form field, dashboard link or dashboard name was not on the page."""


class AuthenticationFailed(CrawlerError):
    """The login form was still displayed after submitting credentials."""


class SessionStateError(CrawlerError):
    pass


class ExtractionError(CrawlerError):
    pass


class GraphicConversionError(ExtractionError):
    pass


class TableConversionError(ExtractionError):
    pass


class LabelExtractionError(ExtractionError):
    def __init__(self, message: str, index: Optional[int] = None):
        super().__init__(message)
        self.index = index


class PageRuntimeError(CrawlerError):
    """Uncaught error inside the automated page. Reported, never raised."""
