import os
from pathlib import Path


def _env_flag(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


# Browser launch
HEADLESS = _env_flag("HEADLESS", True)
BROWSER_ARGS = [
    "--bwsi",
    "--disable-default-apps",
    "--disable-dev-shm-usage",
    "--disable-setuid-sandbox",
    "--hide-scrollbars",
    "--disable-web-security",
    "--no-sandbox",
]
CHROMIUM_EXECUTABLE_PATH = os.environ.get("CHROMIUM_EXECUTABLE_PATH") or None
VIEWPORT = {"width": 1920, "height": 1080}

# Timing (seconds unless noted)
DEFAULT_DELAY_SECONDS = float(os.environ.get("DASHBOARD_DELAY_SECONDS", "5"))
NAVIGATION_TIMEOUT_SECONDS = float(os.environ.get("NAVIGATION_TIMEOUT_SECONDS", "300"))  # 5 mins
TABLE_SETTLE_SECONDS = float(os.environ.get("TABLE_SETTLE_SECONDS", "5"))
KEYSTROKE_DELAY_MS = 5
SCROLL_STEP_PX = 50
SCROLL_DELAY_MS = 250
SCROLL_MAX_STEPS = int(os.environ.get("SCROLL_MAX_STEPS", "400"))
COUNT_POLL_INTERVAL_MS = 500
COUNT_POLL_ATTEMPTS = 10
TABLE_SCALE = 3

# DHIS2 selectors
USERNAME_SELECTOR = "input[id=j_username]"
PASSWORD_SELECTOR = "input[id=j_password]"
SUBMIT_SELECTOR = "input[type=submit]"
CONTROL_BAR_SELECTOR = os.environ.get(
    "CONTROL_BAR_SELECTOR",
    "[data-test='dhis2-dashboard-controlbar'], [class*='ControlBar'], [class*='controlbar']",
)
CHART_SELECTOR = "svg.highcharts-root"
TABLE_SELECTOR = "table.pivot"
MARKER_ATTRIBUTE = "data-crawler-marker"

# In-page helpers (URL or local path)
SVG_HELPER_SOURCE = os.environ.get(
    "SVG_HELPER_SOURCE",
    "https://cdn.jsdelivr.net/npm/save-svg-as-png@1.4.17/lib/saveSvgAsPng.js",
)
HTML2CANVAS_SOURCE = os.environ.get(
    "HTML2CANVAS_SOURCE",
    "https://cdn.jsdelivr.net/npm/html2canvas@1.4.1/dist/html2canvas.min.js",
)

# Keep the full-page screenshot taken before table rasterization
DEBUG_SCREENSHOT = _env_flag("DEBUG_SCREENSHOT", False)

# Output & dashboard config (Excel)
OUTPUT_ROOT = os.environ.get("DHIS2_OUTPUT_DIR", "DHIS2_dashboards")
SUMMARY_FILE = "summary.xlsx"
HIGHLIGHT_COLOR = "FFFF0000"  # red
DASHBOARD_CONFIG_XLSX = os.environ.get("DASHBOARD_CONFIG_XLSX", "dashboards.xlsx")
DASHBOARD_CONFIG_SHEET = os.environ.get("DASHBOARD_CONFIG_SHEET", "Dashboards")

def ensure_dir(p: str) -> str:
    Path(p).mkdir(parents=True, exist_ok=True)
    return p
