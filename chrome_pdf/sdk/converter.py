"""
chrome_pdf/sdk/converter.py

Runs a complete conversion against an already running Chrome instance.

Contains:
- ConversionOutput: PDF, PNG screenshot or MHTML snapshot
- Converter: open session -> navigate -> (wait for window.status) -> (run javascript) -> output
"""

import asyncio
import uuid
from enum import StrEnum
from typing import Iterable

from chrome_pdf.cdp.browser_session import BrowserSession
from chrome_pdf.cdp.data_models import PageSettings
from chrome_pdf.config import Config
from chrome_pdf.utils.cdp_utils import get_browser_websocket_url
from chrome_pdf.utils.countdown_timer import CountdownTimer
from chrome_pdf.utils.logger import get_scoped_logger


class ConversionOutput(StrEnum):
    PDF = "pdf"
    PNG = "png"
    MHTML = "mhtml"


class Converter:
    """
    High-level interface for converting a url with Chrome.

    Example:
        >>> converter = Converter(remote_debugging_address="http://127.0.0.1:9222")
        >>> pdf = asyncio.run(converter.convert("https://example.com"))
    """

    def __init__(
        self,
        browser_ws_url: str | None = None,
        remote_debugging_address: str = Config.REMOTE_DEBUGGING_ADDRESS,
        log_network_traffic: bool = False,
    ) -> None:
        """
        Args:
            browser_ws_url: Browser websocket URL; discovered from remote_debugging_address when None.
            remote_debugging_address: Chrome debugging server address (e.g. 'http://127.0.0.1:9222').
            log_network_traffic: Log the network traffic of every converted page.
        """
        self.browser_ws_url = browser_ws_url
        self.remote_debugging_address = remote_debugging_address
        self.log_network_traffic = log_network_traffic

    async def _get_browser_ws_url(self) -> str:
        if not self.browser_ws_url:
            # requests is blocking
            self.browser_ws_url = await asyncio.to_thread(get_browser_websocket_url, self.remote_debugging_address)
        return self.browser_ws_url

    async def convert(
        self,
        url: str,
        output: ConversionOutput = ConversionOutput.PDF,
        page_settings: PageSettings | None = None,
        timeout_ms: int = Config.DEFAULT_CONVERSION_TIMEOUT_MS,
        safe_urls: Iterable[str] | None = None,
        url_blacklist: Iterable[str] | None = None,
        media_load_timeout: int | None = None,
        wait_for_window_status: str | None = None,
        wait_for_window_status_timeout: int = 60000,
        run_javascript: str | None = None,
        close_browser: bool = False,
        instance_id: str | None = None,
    ) -> bytes:
        """
        Convert url and return the resulting document.

        Args:
            url: The page to convert.
            output: PDF document, PNG screenshot or MHTML snapshot.
            page_settings: Print settings, PDF output only.
            timeout_ms: Budget for the whole conversion, shared by every step.
            safe_urls: Urls never blocked by url_blacklist.
            url_blacklist: Wildcard patterns of urls to block.
            media_load_timeout: Milliseconds to wait for media after DOMContentLoaded.
            wait_for_window_status: When set, wait until javascript window.status equals it.
            wait_for_window_status_timeout: Milliseconds to wait for the window status.
            run_javascript: Javascript to run after the page loaded.
            close_browser: Send Browser.close when done.
            instance_id: Identifier prefixed to the log lines; generated when None.

        Returns:
            The document bytes.
        """
        instance_id = instance_id or uuid.uuid4().hex[:8]
        log = get_scoped_logger(name=__name__, instance_id=instance_id)
        countdown_timer = CountdownTimer(timeout_ms)

        browser_ws_url = await self._get_browser_ws_url()
        log.info("Converting '%s' to %s", url, output.value)

        session = await BrowserSession.open(
            browser_ws_url=browser_ws_url,
            instance_id=instance_id,
            log_network_traffic=self.log_network_traffic,
        )
        async with session:
            await session.navigate_to(
                url=url,
                safe_urls=safe_urls,
                countdown_timer=countdown_timer,
                media_load_timeout=media_load_timeout,
                url_blacklist=url_blacklist,
            )

            if wait_for_window_status:
                matched = await session.wait_for_window_status(
                    status=wait_for_window_status,
                    timeout=min(wait_for_window_status_timeout, countdown_timer.milliseconds_left),
                )
                if not matched:
                    log.warning("⚠️ Window status '%s' not reached, converting anyway", wait_for_window_status)

            if run_javascript:
                await session.run_javascript(run_javascript, countdown_timer=countdown_timer)

            if output == ConversionOutput.PDF:
                document = (await session.print_to_pdf(page_settings, countdown_timer=countdown_timer)).to_bytes()
            elif output == ConversionOutput.PNG:
                document = (await session.capture_screenshot(countdown_timer=countdown_timer)).to_bytes()
            else:
                document = (await session.capture_snapshot(countdown_timer=countdown_timer)).data.encode("utf-8")

            if close_browser:
                await session.close(countdown_timer=countdown_timer)

        log.info("✅ Conversion finished, %d bytes, %d milliseconds left", len(document), countdown_timer.milliseconds_left)
        return document

    async def convert_to_pdf(self, url: str, page_settings: PageSettings | None = None, **kwargs) -> bytes:
        return await self.convert(url, output=ConversionOutput.PDF, page_settings=page_settings, **kwargs)

    async def convert_to_image(self, url: str, **kwargs) -> bytes:
        return await self.convert(url, output=ConversionOutput.PNG, **kwargs)
