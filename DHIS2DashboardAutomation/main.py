import argparse
import asyncio
import logging
from DHIS2DashboardAutomation.authentication import get_credentials
from DHIS2DashboardAutomation.config_loader import load_dashboards_from_excel
from DHIS2DashboardAutomation.export import save_results
from DHIS2DashboardAutomation.models import BrowserConfig, DownloadOptions
from DHIS2DashboardAutomation.runner import DashboardCrawler
from DHIS2DashboardAutomation.settings import (
    DASHBOARD_CONFIG_SHEET, DASHBOARD_CONFIG_XLSX, DEFAULT_DELAY_SECONDS, HEADLESS, OUTPUT_ROOT,
)

logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(levelname)s - %(message)s')
logger = logging.getLogger(__name__)

def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Capture DHIS2 dashboard charts and pivot tables as images.")
    parser.add_argument("--config", default=DASHBOARD_CONFIG_XLSX, help="Excel file listing dashboards")
    parser.add_argument("--sheet", default=DASHBOARD_CONFIG_SHEET)
    parser.add_argument("--output", default=OUTPUT_ROOT)
    parser.add_argument("--delay", type=float, default=DEFAULT_DELAY_SECONDS, help="settle time after navigation (s)")
    parser.add_argument("--skip-graphs", action="store_true")
    parser.add_argument("--skip-tables", action="store_true")
    parser.add_argument("--continue-on-error", action="store_true")
    parser.add_argument("--label-mode", choices=["strict", "partial"], default="strict")
    parser.add_argument("--no-headless", action="store_true")
    return parser.parse_args(argv)

async def run(args) -> str:
    url, credentials = get_credentials()
    dashboards = load_dashboards_from_excel(args.config, sheet_name=args.sheet)
    if not dashboards:
        raise ValueError("Excel config has no valid rows (check dashboard_id / dashboard_name columns).")

    crawler = DashboardCrawler(url)
    try:
        await crawler.startup(BrowserConfig(headless=HEADLESS and not args.no_headless))
        await crawler.login(credentials.username, credentials.password)
        results = await crawler.download_dashboard_components(dashboards, DownloadOptions(
            skip_graphs=args.skip_graphs,
            skip_tables=args.skip_tables,
            delay_seconds=args.delay,
            label_mode=args.label_mode,
            continue_on_error=args.continue_on_error,
        ))
    except Exception:
        logger.exception("Crawl failed; tearing down the browser.")
        await crawler.panic()
        raise
    await crawler.shutdown()
    return save_results(results, args.output)

def main(argv=None):
    args = parse_args(argv)
    summary = asyncio.run(run(args))
    logger.info(f"All dashboards exported. Summary: {summary}")

if __name__ == "__main__":
    main()
