"""
DHIS2 dashboard capture.

- runner: DashboardCrawler, the session lifecycle (startup, login, download, shutdown/panic)
- authentication: login form flow
- locator: opens a dashboard by link id or by control-bar name
- worker: chart and pivot-table extraction
- export / config_loader: on-disk output and Excel dashboard lists
"""

from .errors import (
    AuthenticationFailed, CrawlerError, ElementNotFound, ExtractionError, GraphicConversionError,
    LabelExtractionError, NavigationError, NavigationTimeout, PageRuntimeError, SessionStateError,
    TableConversionError,
)
from .events import ProgressEvent, ProgressEvents
from .models import (
    BrowserConfig, Credentials, DashboardReference, DownloadOptions, ExtractionResult, GraphicArtifact,
    TableArtifact,
)
from .runner import DashboardCrawler, SessionState

__all__ = [
    "AuthenticationFailed",
    "BrowserConfig",
    "CrawlerError",
    "Credentials",
    "DashboardCrawler",
    "DashboardReference",
    "DownloadOptions",
    "ElementNotFound",
    "ExtractionError",
    "ExtractionResult",
    "GraphicArtifact",
    "GraphicConversionError",
    "LabelExtractionError",
    "NavigationError",
    "NavigationTimeout",
    "PageRuntimeError",
    "ProgressEvent",
    "ProgressEvents",
    "SessionState",
    "SessionStateError",
    "TableArtifact",
    "TableConversionError",
]
