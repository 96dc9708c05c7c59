from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from .settings import (
    BROWSER_ARGS, CHROMIUM_EXECUTABLE_PATH, DEFAULT_DELAY_SECONDS, HEADLESS,
    NAVIGATION_TIMEOUT_SECONDS, VIEWPORT,
)

REFERENCE_KINDS = ("id", "name")
LABEL_MODES = ("strict", "partial")


@dataclass(frozen=True)
class Credentials:
    username: str
    password: str = field(repr=False)


@dataclass(frozen=True)
class DashboardReference:
    """A dashboard addressed either by its link id or by its control-bar name."""
    value: str
    kind: str = "id"
    label: Optional[str] = None

    def __post_init__(self):
        if self.kind not in REFERENCE_KINDS:
            raise ValueError(f"Unknown dashboard reference kind '{self.kind}'.")
        if not (self.value or "").strip():
            raise ValueError("Dashboard reference needs a non-empty id or name.")

    @classmethod
    def by_id(cls, ident: str, label: Optional[str] = None) -> "DashboardReference":
        return cls(value=str(ident), kind="id", label=label)

    @classmethod
    def by_name(cls, name: str, label: Optional[str] = None) -> "DashboardReference":
        return cls(value=name, kind="name", label=label)

    @classmethod
    def from_dict(cls, item: Dict[str, Any]) -> "DashboardReference":
        """
        Accepts {"id": ..., "name": ..., "label": ...}.
        With an id the dashboard is clicked by link and the name only titles the
        result; without one the name is looked up in the control bar.
        """
        ident = str(item.get("id") or "").strip()
        name = str(item.get("name") or "").strip()
        label = str(item.get("label") or "").strip() or None
        if ident:
            return cls.by_id(ident, label=label or name or None)
        if name:
            return cls.by_name(name, label=label)
        raise ValueError(f"Dashboard entry has neither id nor name: {item!r}")

    @property
    def title(self) -> Optional[str]:
        if self.label:
            return self.label
        return self.value if self.kind == "name" else None


@dataclass(frozen=True)
class GraphicArtifact:
    uri: str
    index: int


@dataclass(frozen=True)
class TableArtifact:
    uri: str
    label: Optional[str]
    index: int


@dataclass(frozen=True)
class ExtractionResult:
    reference: DashboardReference
    title: Optional[str] = None
    graphics: Optional[Tuple[GraphicArtifact, ...]] = None
    tables: Optional[Tuple[TableArtifact, ...]] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class DownloadOptions:
    skip_graphs: bool = False
    skip_tables: bool = False
    delay_seconds: float = DEFAULT_DELAY_SECONDS
    label_mode: str = "strict"
    continue_on_error: bool = False

    def __post_init__(self):
        if self.label_mode not in LABEL_MODES:
            raise ValueError(f"label_mode must be one of {LABEL_MODES}, got '{self.label_mode}'.")


@dataclass
class BrowserConfig:
    headless: bool = HEADLESS
    args: List[str] = field(default_factory=lambda: list(BROWSER_ARGS))
    executable_path: Optional[str] = CHROMIUM_EXECUTABLE_PATH
    navigation_timeout_seconds: float = NAVIGATION_TIMEOUT_SECONDS
    verify_login: bool = True
    viewport: Dict[str, int] = field(default_factory=lambda: dict(VIEWPORT))
