"""
chrome_pdf/scripts/convert_url.py

Convert a url to PDF, PNG or MHTML with an already running Chrome (started with
--remote-debugging-port).

Example:
    chrome-pdf https://example.com example.pdf --paper-format A4 --url-blacklist "*.doubleclick.net/*"
"""

import argparse
import asyncio
import sys
from pathlib import Path

from rich.console import Console

from chrome_pdf.cdp.data_models import PageSettings, PaperFormat
from chrome_pdf.config import Config
from chrome_pdf.sdk.converter import ConversionOutput, Converter
from chrome_pdf.utils.exceptions import ChromePdfError
from chrome_pdf.utils.logger import get_logger

logger = get_logger(name=__name__)
console = Console()


def parse_arguments(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Convert a url with Chrome over the DevTools protocol.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("url", help="Url of the page to convert")
    parser.add_argument("output_path", type=Path, help="File to write the result to")
    parser.add_argument(
        "--format",
        type=ConversionOutput,
        choices=list(ConversionOutput),
        default=ConversionOutput.PDF,
        help="Output format (default: pdf)",
    )
    parser.add_argument(
        "--remote-debugging-address",
        default=Config.REMOTE_DEBUGGING_ADDRESS,
        help=f"Chrome debugging server address (default: {Config.REMOTE_DEBUGGING_ADDRESS})",
    )
    parser.add_argument("--browser-ws-url", default=None, help="Browser websocket url, skips discovery")
    parser.add_argument(
        "--timeout",
        type=int,
        default=Config.DEFAULT_CONVERSION_TIMEOUT_MS,
        help="Budget for the whole conversion in milliseconds",
    )
    parser.add_argument("--paper-format", type=PaperFormat, choices=list(PaperFormat), default=PaperFormat.LETTER)
    parser.add_argument("--landscape", action="store_true", help="Landscape orientation")
    parser.add_argument("--print-background", action="store_true", help="Print background graphics")
    parser.add_argument("--scale", type=float, default=1.0)
    parser.add_argument("--page-ranges", default=None, help="e.g. '1-5, 8, 11-13'")
    parser.add_argument("--url-blacklist", nargs="*", default=[], help="Wildcard patterns of urls to block")
    parser.add_argument("--safe-url", action="append", default=[], help="Url that is never blocked (repeatable)")
    parser.add_argument("--media-load-timeout", type=int, default=None, help="Milliseconds to wait for media")
    parser.add_argument("--wait-for-window-status", default=None, help="Wait until window.status equals this")
    parser.add_argument("--wait-for-window-status-timeout", type=int, default=60000)
    parser.add_argument("--run-javascript", default=None, help="Javascript to run before converting")
    parser.add_argument("--log-network-traffic", action="store_true", help="Log the page's network traffic")
    parser.add_argument("--close-browser", action="store_true", help="Close Chrome afterwards")
    return parser.parse_args(argv)


async def run(args: argparse.Namespace) -> bytes:
    page_settings = PageSettings.from_paper_format(
        args.paper_format,
        landscape=args.landscape,
        print_background=args.print_background,
        scale=args.scale,
        page_ranges=args.page_ranges,
    )
    converter = Converter(
        browser_ws_url=args.browser_ws_url,
        remote_debugging_address=args.remote_debugging_address,
        log_network_traffic=args.log_network_traffic,
    )
    return await converter.convert(
        url=args.url,
        output=args.format,
        page_settings=page_settings,
        timeout_ms=args.timeout,
        safe_urls=args.safe_url,
        url_blacklist=args.url_blacklist,
        media_load_timeout=args.media_load_timeout,
        wait_for_window_status=args.wait_for_window_status,
        wait_for_window_status_timeout=args.wait_for_window_status_timeout,
        run_javascript=args.run_javascript,
        close_browser=args.close_browser,
    )


def main(argv: list[str] | None = None) -> int:
    args = parse_arguments(argv)
    try:
        document = asyncio.run(run(args))
    except ChromePdfError as e:
        logger.error("❌ Conversion failed: %s", e)
        console.print(f"[bold red]Conversion failed:[/bold red] {e}")
        return 1

    args.output_path.parent.mkdir(parents=True, exist_ok=True)
    args.output_path.write_bytes(document)
    console.print(f"[bold green]✓[/bold green] Wrote {len(document)} bytes to [cyan]{args.output_path}[/cyan]")
    return 0


if __name__ == "__main__":
    sys.exit(main())
