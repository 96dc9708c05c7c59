import base64
import itertools
import re
import time
from typing import Optional, Tuple
from urllib.parse import unquote_to_bytes

_DATA_URI_RX = re.compile(r"^data:(?P<mime>[^;,]*)(?P<params>(?:;[^;,]*)*),(?P<payload>.*)$", re.S)

MIME_EXTENSIONS = {
    "image/png": ".png",
    "image/jpeg": ".jpg",
    "image/svg+xml": ".svg",
}


class MarkerFactory:
    """
    Hands out attribute values used to tag text nodes before clicking them.

    Values combine the process-start time with a per-session counter, so two
    calls within the same millisecond still get distinct markers.
    """

    def __init__(self, prefix: str = "crawler", seed: Optional[int] = None):
        self.prefix = prefix
        self.seed = int(time.time() * 1000) if seed is None else seed
        self._counter = itertools.count(1)

    def next(self) -> str:
        return f"{self.prefix}-{self.seed}-{next(self._counter)}"


def parse_data_uri(uri: str) -> Tuple[str, bytes]:
    """Split a data URI into (mime type, decoded bytes)."""
    m = _DATA_URI_RX.match(uri or "")
    if not m:
        raise ValueError("Not a data URI.")
    mime = m.group("mime") or "text/plain"
    params = [p for p in m.group("params").split(";") if p]
    payload = m.group("payload")
    if "base64" in params:
        return mime, base64.b64decode(payload)
    return mime, unquote_to_bytes(payload)

def extension_for(mime: str) -> str:
    return MIME_EXTENSIONS.get((mime or "").lower(), ".bin")

def sanitize_filename(s: str) -> str:
    return (
        (s or "")
        .replace("/", "_").replace("\\", "_")
        .replace(":", "_").replace("?", "_")
        .replace("*", "_").replace("|", "_")
        .replace('"', "_").replace("<", "_").replace(">", "_")
        .replace(" ", "_").strip("_")
    )

def ms(seconds: float) -> float:
    return seconds * 1000
