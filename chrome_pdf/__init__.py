"""
chrome-pdf - Convert web pages to PDF with Chrome over the DevTools protocol.

Usage:
    import asyncio
    from chrome_pdf import BrowserSession, CountdownTimer, PageSettings

    async def main() -> bytes:
        timer = CountdownTimer(30_000)
        async with await BrowserSession.open("ws://127.0.0.1:9222/devtools/browser/<id>") as session:
            await session.navigate_to("https://example.com", safe_urls=[], countdown_timer=timer)
            response = await session.print_to_pdf(PageSettings(), countdown_timer=timer)
            return response.to_bytes()

    pdf = asyncio.run(main())
"""

__version__ = "1.0.0"

# Public API - High-level interface
from .sdk import ConversionOutput, Converter

# Core
from .cdp.browser_session import BrowserSession
from .cdp.connection import Connection, ConnectionState
from .cdp.navigation import NavigationPhase, NavigationStateMachine
from .cdp.data_models import CDPMessage, PageSettings, PaperFormat
from .utils.countdown_timer import CountdownTimer
from .utils.url_blacklist import UrlBlacklist

# Exceptions
from .utils.exceptions import (
    ChromePdfError,
    BrowserConnectionError,
    ConnectionClosedError,
    ConversionTimedOutError,
    NavigationError,
    ConversionError,
    ChromeError,
)

__all__ = [
    # High-level API
    "Converter",
    "ConversionOutput",
    # Core
    "BrowserSession",
    "Connection",
    "ConnectionState",
    "NavigationPhase",
    "NavigationStateMachine",
    "CDPMessage",
    "PageSettings",
    "PaperFormat",
    "CountdownTimer",
    "UrlBlacklist",
    # Exceptions
    "ChromePdfError",
    "BrowserConnectionError",
    "ConnectionClosedError",
    "ConversionTimedOutError",
    "NavigationError",
    "ConversionError",
    "ChromeError",
]
