"""
chrome_pdf/cdp/browser_session.py

Session on a Chrome instance: one connection to the browser endpoint and one to a page
target created on it. Exposes the commands a conversion needs (navigate, print, screenshot,
snapshot, run javascript, wait for window.status, close).

See https://chromedevtools.github.io/devtools-protocol/
"""

from __future__ import annotations

import asyncio
from typing import Any, Iterable

from pydantic import ValidationError

from chrome_pdf.cdp.connection import Connection
from chrome_pdf.cdp.data_models import (
    CaptureScreenshotResponse,
    CDPMessage,
    EvaluateResult,
    PageSettings,
    PrintToPdfResponse,
    RemoteObject,
    SnapshotResponse,
    TargetCreatedResult,
)
from chrome_pdf.cdp.monitors.network_traffic_monitor import NetworkTrafficMonitor
from chrome_pdf.cdp.monitors.request_interception_monitor import RequestInterceptionMonitor
from chrome_pdf.cdp.navigation import NavigationStateMachine
from chrome_pdf.config import Config
from chrome_pdf.utils.cdp_utils import build_page_websocket_url
from chrome_pdf.utils.countdown_timer import CountdownTimer
from chrome_pdf.utils.exceptions import (
    BrowserConnectionError,
    ChromeError,
    ConnectionClosedError,
    ConversionError,
    ConversionTimedOutError,
    NavigationError,
)
from chrome_pdf.utils.logger import get_scoped_logger
from chrome_pdf.utils.url_blacklist import UrlBlacklist


class BrowserSession:
    """
    Drives one page of a Chrome instance over the DevTools protocol.

    Create it with BrowserSession.open(); every long running call accepts an optional
    CountdownTimer shared by all the calls of one conversion.
    """

    # Magic methods ________________________________________________________________________________________________________

    def __init__(
        self,
        browser_connection: Connection,
        page_connection: Connection,
        instance_id: str | None = None,
        target_id: str | None = None,
    ) -> None:
        """
        Args:
            browser_connection: Open connection to the browser endpoint.
            page_connection: Open connection to the page target.
            instance_id: Identifier prefixed to every log line of this session.
            target_id: Id of the page target, if known.
        """
        self.browser_connection = browser_connection
        self.page_connection = page_connection
        self.instance_id = instance_id
        self.target_id = target_id
        self.log = get_scoped_logger(name=__name__, instance_id=instance_id)
        self.network_traffic_monitor: NetworkTrafficMonitor | None = None

    async def __aenter__(self) -> BrowserSession:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close_connections()


    # Class methods ________________________________________________________________________________________________________

    @classmethod
    async def open(
        cls,
        browser_ws_url: str,
        instance_id: str | None = None,
        log_network_traffic: bool = False,
        open_timeout: float = Config.CONNECT_TIMEOUT_SECONDS,
    ) -> BrowserSession:
        """
        Connect to the browser, create a blank page target and connect to it.
        Args:
            browser_ws_url: Browser websocket URL (ws://host:port/devtools/browser/<id>).
            instance_id: Identifier prefixed to every log line of this session.
            log_network_traffic: Log the page's network traffic.
            open_timeout: Timeout in seconds for each handshake and for Target.createTarget.
        Returns:
            The open BrowserSession.
        Raises:
            BrowserConnectionError: If a connection or the page target cannot be created.
        """
        browser_connection = await Connection.open(browser_ws_url, open_timeout=open_timeout)
        try:
            result = await browser_connection.send(
                method="Target.createTarget",
                params={"url": "about:blank"},
                timeout=open_timeout,
            )
            target = TargetCreatedResult.model_validate(result)
            page_ws_url = build_page_websocket_url(browser_ws_url, target.target_id)
            page_connection = await Connection.open(page_ws_url, open_timeout=open_timeout)
        except (ValidationError, ConversionTimedOutError) as e:
            await browser_connection.close()
            raise BrowserConnectionError(f"Failed to create a page target: {e}") from e
        except Exception:
            await browser_connection.close()
            raise

        session = cls(
            browser_connection=browser_connection,
            page_connection=page_connection,
            instance_id=instance_id,
            target_id=target.target_id,
        )
        session.log.debug("✅ Page target %s created", target.target_id)
        if log_network_traffic:
            try:
                await session.enable_network_traffic_logging()
            except Exception:
                await session.close_connections()
                raise
        return session


    # Private methods ______________________________________________________________________________________________________

    async def _send_bounded(
        self,
        connection: Connection,
        method: str,
        params: dict[str, Any] | None = None,
        countdown_timer: CountdownTimer | None = None,
    ) -> dict[str, Any]:
        """
        Send a command and wait for its reply, within the time left on countdown_timer.
        A reply arriving after the timer reached zero is not returned.
        """
        if countdown_timer is None:
            return await connection.send(method=method, params=params)

        if countdown_timer.expired:
            raise ConversionTimedOutError(f"The {method} command timed out, the countdown timer already expired")
        result = await connection.send(method=method, params=params, timeout=countdown_timer.seconds_left)
        if countdown_timer.expired:
            raise ConversionTimedOutError(f"The {method} command timed out")
        return result

    async def _disable_navigation_domains(self, interception_enabled: bool) -> None:
        """Best-effort teardown after navigate_to."""
        teardown: list[tuple[str, dict[str, Any] | None]] = [
            ("Page.setLifecycleEventsEnabled", {"enabled": False}),
            ("Page.disable", None),
        ]
        if interception_enabled:
            teardown.append(("Fetch.disable", None))
        for method, params in teardown:
            try:
                await self.page_connection.dispatch(method, params)
            except ConnectionClosedError as e:
                self.log.debug("Skipping %s: %s", method, e)
                return


    # Public methods _______________________________________________________________________________________________________

    async def enable_network_traffic_logging(self) -> None:
        """Enable the Network domain on the page and log its traffic."""
        if self.network_traffic_monitor is not None:
            return
        await self.page_connection.send(method="Network.enable", timeout=Config.CONNECT_TIMEOUT_SECONDS)
        self.network_traffic_monitor = NetworkTrafficMonitor(log=self.log)
        self.page_connection.subscribe(self.network_traffic_monitor)

    async def navigate_to(
        self,
        url: str,
        safe_urls: Iterable[str] | None = None,
        countdown_timer: CountdownTimer | None = None,
        media_load_timeout: int | None = None,
        url_blacklist: Iterable[str] | None = None,
    ) -> None:
        """
        Navigate the page to url and wait until it is loaded.

        Args:
            url: The url to navigate to.
            safe_urls: Urls that are always allowed, even when they match url_blacklist.
            countdown_timer: Raise ConversionTimedOutError when it reaches zero before the page loaded.
            media_load_timeout: Milliseconds to wait after DOMContentLoaded before treating the
                page as loaded, for pages whose background media never settles.
            url_blacklist: Wildcard patterns (`*`) of urls to block while the page loads.

        Raises:
            ConversionTimedOutError: If countdown_timer reached zero.
            NavigationError: If Chrome reported a navigation error.
            ConnectionClosedError: If the page connection is closed before navigation starts.
        """
        blacklist = UrlBlacklist(patterns=url_blacklist, safe_urls=safe_urls)
        machine = NavigationStateMachine(url=url, media_load_timeout=media_load_timeout, log=self.log)
        interception = (
            RequestInterceptionMonitor(connection=self.page_connection, url_blacklist=blacklist, log=self.log)
            if blacklist else None
        )
        finished = asyncio.Event()
        media_timer_task: asyncio.Task | None = None

        def check_finished() -> None:
            if machine.is_finished:
                finished.set()

        async def media_timer() -> None:
            await asyncio.sleep(media_load_timeout / 1000)
            machine.on_media_timeout()
            check_finished()

        def on_message(msg: dict[str, Any]) -> None:
            nonlocal media_timer_task
            if interception is not None and interception.handle_message(msg):
                return
            machine.feed(msg)
            if machine.media_timer_armed and media_timer_task is None and not machine.is_finished:
                media_timer_task = asyncio.create_task(media_timer())
            check_finished()

        def on_closed() -> None:
            machine.on_connection_closed()
            check_finished()

        def on_navigate_reply(future: asyncio.Future) -> None:
            if future.cancelled():
                return
            exc = future.exception()
            if isinstance(exc, ChromeError):
                machine.on_navigate_error(str(exc))
            elif exc is None:
                machine.on_navigate_response(future.result())
            # ConnectionClosedError is handled by on_closed
            check_finished()

        self.page_connection.subscribe(on_message)
        self.page_connection.add_close_callback(on_closed)
        try:
            if interception is not None:
                self.log.info("Enabling Fetch to block url's that are in the url blacklist")
                await self.page_connection.dispatch("Fetch.enable")
            await self.page_connection.dispatch("Page.enable")
            await self.page_connection.dispatch("Page.setLifecycleEventsEnabled", {"enabled": True})

            navigate_future = await self.page_connection.send_command(
                CDPMessage(method="Page.navigate").add_parameter("url", url)
            )
            navigate_future.add_done_callback(on_navigate_reply)
            machine.start()

            if countdown_timer is None:
                await finished.wait()
            else:
                try:
                    await asyncio.wait_for(fut=finished.wait(), timeout=countdown_timer.seconds_left)
                except asyncio.TimeoutError:
                    pass
                if countdown_timer.expired:
                    machine.on_timed_out()
                    raise ConversionTimedOutError("The navigate_to method timed out")
        finally:
            self.page_connection.unsubscribe(on_message)
            self.page_connection.remove_close_callback(on_closed)
            if media_timer_task is not None:
                media_timer_task.cancel()

        await self._disable_navigation_domains(interception_enabled=interception is not None)

        if machine.error:
            self.log.error(machine.error)
            raise NavigationError(machine.error)

    async def wait_for_window_status(self, status: str, timeout: int = 60000) -> bool:
        """
        Poll javascript window.status until it equals status (case-sensitive).
        Args:
            status: The expected window.status value.
            timeout: Milliseconds to keep polling.
        Returns:
            True when window.status matched, False when timing out.
        """
        deadline = CountdownTimer(timeout)
        interval = Config.WINDOW_STATUS_POLL_INTERVAL_MS / 1000
        params = {"expression": "window.status;", "silent": True, "returnByValue": True}

        while not deadline.expired:
            try:
                result = await self.page_connection.send(
                    method="Runtime.evaluate",
                    params=params,
                    timeout=deadline.seconds_left,
                )
            except ConversionTimedOutError:
                break
            evaluate = EvaluateResult.model_validate(result)
            if evaluate.result is not None and evaluate.result.value == status:
                self.log.info("Window status '%s' reached", status)
                return True
            await asyncio.sleep(min(interval, deadline.seconds_left))

        self.log.info("Timed out after %d milliseconds waiting for window status '%s'", timeout, status)
        return False

    async def run_javascript(self, script: str, countdown_timer: CountdownTimer | None = None) -> RemoteObject | None:
        """
        Run javascript on the loaded page.
        Args:
            script: The javascript to evaluate.
            countdown_timer: Bounds the wait for the result.
        Returns:
            The evaluation result object.
        Raises:
            ConversionError: If the script threw an exception.
        """
        result = await self._send_bounded(
            connection=self.page_connection,
            method="Runtime.evaluate",
            params={"expression": script, "silent": False, "returnByValue": False},
            countdown_timer=countdown_timer,
        )
        evaluate = EvaluateResult.model_validate(result)
        if evaluate.exception_details is not None:
            description = evaluate.exception_details.error_description
            if description:
                self.log.error("Javascript raised an exception: %s", description)
                raise ConversionError(description)
        return evaluate.result

    async def capture_snapshot(self, countdown_timer: CountdownTimer | None = None) -> SnapshotResponse:
        """
        Capture an MHTML snapshot of the page.
        See https://chromedevtools.github.io/devtools-protocol/tot/Page#method-captureSnapshot
        """
        result = await self._send_bounded(
            connection=self.page_connection,
            method="Page.captureSnapshot",
            countdown_timer=countdown_timer,
        )
        return SnapshotResponse.model_validate(result)

    async def print_to_pdf(
        self,
        page_settings: PageSettings | None = None,
        countdown_timer: CountdownTimer | None = None,
    ) -> PrintToPdfResponse:
        """
        Print the page to PDF.
        See https://chromedevtools.github.io/devtools-protocol/tot/Page/#method-printToPDF
        Args:
            page_settings: Paper, margins, header / footer; defaults to PageSettings().
            countdown_timer: Bounds the wait for the document.
        Returns:
            The response; PrintToPdfResponse.to_bytes() decodes the document.
        Raises:
            ConversionError: If Chrome returned no data.
        """
        page_settings = page_settings or PageSettings()
        result = await self._send_bounded(
            connection=self.page_connection,
            method="Page.printToPDF",
            params=page_settings.to_print_params(),
            countdown_timer=countdown_timer,
        )
        response = PrintToPdfResponse.model_validate(result)
        if not response.data:
            raise ConversionError("Conversion failed")
        return response

    async def capture_screenshot(self, countdown_timer: CountdownTimer | None = None) -> CaptureScreenshotResponse:
        """
        Take a PNG screenshot of the page.
        Raises:
            ConversionError: If Chrome returned no data.
        """
        result = await self._send_bounded(
            connection=self.page_connection,
            method="Page.captureScreenshot",
            countdown_timer=countdown_timer,
        )
        response = CaptureScreenshotResponse.model_validate(result)
        if not response.data:
            raise ConversionError("Screenshot capture failed")
        return response

    async def close(self, countdown_timer: CountdownTimer | None = None) -> None:
        """
        Ask Chrome to close.
        Chrome may drop the browser connection before answering; that counts as closed.
        """
        try:
            await self._send_bounded(
                connection=self.browser_connection,
                method="Browser.close",
                countdown_timer=countdown_timer,
            )
        except ConnectionClosedError as e:
            self.log.debug("Browser connection closed while closing Chrome: %s", e)
        self.log.info("Chrome closed")

    async def close_connections(self) -> None:
        """Close the page and browser connections. Idempotent."""
        try:
            if self.network_traffic_monitor is not None:
                self.page_connection.unsubscribe(self.network_traffic_monitor)
                self.log.debug("Network traffic summary: %s", self.network_traffic_monitor.get_summary())
                self.network_traffic_monitor = None
                try:
                    await self.page_connection.dispatch("Network.disable")
                except ConnectionClosedError as e:
                    self.log.debug("Skipping Network.disable: %s", e)
        finally:
            await self.page_connection.close()
            await self.browser_connection.close()
