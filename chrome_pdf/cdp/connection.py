"""
chrome_pdf/cdp/connection.py

One duplex websocket connection to a CDP endpoint (browser or page).

- Commands get a fresh id and a pending future; the receive loop resolves it by id.
- Every other inbound message is fanned out to the subscribers, in arrival order.
- Closing (or losing) the socket fails all pending futures with ConnectionClosedError.
"""

from __future__ import annotations

import asyncio
import functools
import inspect
import json
from enum import StrEnum
from json import JSONDecodeError
from typing import Any, Awaitable, Callable

from websockets.asyncio.client import ClientConnection, connect
from websockets.exceptions import ConnectionClosed, InvalidHandshake, InvalidURI

from chrome_pdf.cdp.data_models import CDPMessage
from chrome_pdf.config import Config
from chrome_pdf.utils.exceptions import (
    BrowserConnectionError,
    ChromeError,
    ConnectionClosedError,
    ConversionTimedOutError,
)
from chrome_pdf.utils.logger import get_logger

logger = get_logger(name=__name__)

MessageHandler = Callable[[dict[str, Any]], Awaitable[None] | None]


class ConnectionState(StrEnum):
    CONNECTING = "connecting"
    OPEN = "open"
    CLOSED = "closed"


class Connection:
    """
    Request/response correlation and event dispatch for a single CDP websocket.
    """

    # Magic methods ________________________________________________________________________________________________________

    def __init__(self, ws: ClientConnection, endpoint: str) -> None:
        """
        Wrap an already opened websocket. Use Connection.open() to connect and start receiving.
        Args:
            ws: The open websocket.
            endpoint: The websocket URL, for logging.
        """
        self.ws = ws
        self.endpoint = endpoint
        self.state = ConnectionState.CONNECTING
        self.seq = 0  # sequence ID for CDP commands

        # response tracking for CDP commands
        self.pending_responses: dict[int, asyncio.Future] = {}  # command ID -> future

        self._subscribers: list[MessageHandler] = []
        self._close_callbacks: list[Callable[[], None]] = []
        self._receiver_task: asyncio.Task | None = None
        self._background_tasks: set[asyncio.Task] = set()  # keeps fire-and-forget tasks referenced

    def __repr__(self) -> str:
        return f"Connection(endpoint={self.endpoint!r}, state={self.state.value})"

    async def __aenter__(self) -> Connection:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()


    # Class methods ________________________________________________________________________________________________________

    @classmethod
    async def open(cls, endpoint: str, open_timeout: float = Config.CONNECT_TIMEOUT_SECONDS) -> Connection:
        """
        Connect to a CDP websocket endpoint and start the receive loop.
        Args:
            endpoint: The websocket URL (ws://host:port/devtools/...).
            open_timeout: Timeout in seconds for the opening handshake.
        Returns:
            The open Connection.
        Raises:
            BrowserConnectionError: If the handshake fails.
        """
        logger.debug("🔌 Connecting to CDP: %s", endpoint)
        try:
            ws = await connect(uri=endpoint, max_size=None, open_timeout=open_timeout)
        except (OSError, InvalidURI, InvalidHandshake, asyncio.TimeoutError) as e:
            raise BrowserConnectionError(f"Failed to connect to {endpoint}: {e}") from e

        connection = cls(ws=ws, endpoint=endpoint)
        connection.start()
        logger.debug("✅ WebSocket connected: %s", endpoint)
        return connection


    # Private methods ______________________________________________________________________________________________________

    async def _receive_loop(self) -> None:
        """Receive and route WebSocket messages until the socket closes."""
        message_count = 0
        reason = "Connection closed by peer"
        try:
            async for raw in self.ws:
                message_count += 1
                try:
                    msg = json.loads(raw)
                except (JSONDecodeError, TypeError, UnicodeDecodeError):
                    logger.warning("⚠️ Skipping non-JSON frame #%d from %s", message_count, self.endpoint)
                    continue
                if not isinstance(msg, dict):
                    logger.warning("⚠️ Skipping unexpected frame #%d from %s", message_count, self.endpoint)
                    continue
                self._route_message(msg)
        except asyncio.CancelledError:
            reason = "Connection closed by client"
            raise
        except ConnectionClosed as e:
            reason = f"Connection lost: {e}"
            logger.info("🛑 %s (%s, processed %d messages)", reason, self.endpoint, message_count)
        except Exception as e:
            reason = f"Receive loop failed: {e}"
            logger.error("❌ Error in message receiver for %s: %s", self.endpoint, e, exc_info=True)
        finally:
            self._shutdown(reason)

    def _route_message(self, msg: dict[str, Any]) -> None:
        """Resolve the pending command the message answers, or publish it to the subscribers."""
        cmd_id = msg.get("id")
        if cmd_id is not None:
            future = self.pending_responses.pop(cmd_id, None)
            if future is not None:
                if future.done():
                    return
                if "error" in msg:
                    error = msg["error"] if isinstance(msg["error"], dict) else {"message": str(msg["error"])}
                    future.set_exception(ChromeError(error.get("message", "Unknown CDP error"), error.get("code")))
                else:
                    future.set_result(msg.get("result") or {})
                return
            logger.debug("📥 Command reply without waiter: id=%s", cmd_id)

        self._publish(msg)

    def _publish(self, msg: dict[str, Any]) -> None:
        # snapshot, a subscriber added while dispatching does not see this message
        for handler in list(self._subscribers):
            try:
                outcome = handler(msg)
            except Exception as e:
                logger.error("❌ Subscriber %r failed: %s", handler, e, exc_info=True)
                continue
            if inspect.isawaitable(outcome):
                self._spawn(outcome)

    def _spawn(self, awaitable: Awaitable[Any]) -> None:
        task = asyncio.ensure_future(awaitable)
        self._background_tasks.add(task)
        task.add_done_callback(self._on_background_task_done)

    def _on_background_task_done(self, task: asyncio.Task) -> None:
        self._background_tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.warning("⚠️ Background task on %s failed: %s", self.endpoint, exc)

    @staticmethod
    def _log_dispatch_outcome(method: str, future: asyncio.Future) -> None:
        if future.cancelled():
            return
        exc = future.exception()
        if exc is not None:
            logger.warning("⚠️ Fire-and-forget command %s failed: %s", method, exc)

    def _shutdown(self, reason: str) -> None:
        """Mark closed, fail every pending command and notify close callbacks (once)."""
        if self.state == ConnectionState.CLOSED:
            return
        self.state = ConnectionState.CLOSED

        pending = list(self.pending_responses.values())
        self.pending_responses.clear()
        for future in pending:
            if not future.done():
                future.set_exception(ConnectionClosedError(f"{reason} ({self.endpoint})"))

        callbacks = list(self._close_callbacks)
        self._close_callbacks.clear()
        for callback in callbacks:
            try:
                callback()
            except Exception as e:
                logger.error("❌ Close callback %r failed: %s", callback, e, exc_info=True)

        logger.debug("🔒 %s: failed %d pending command(s)", reason, len(pending))


    # Public methods _______________________________________________________________________________________________________

    @property
    def closed(self) -> bool:
        return self.state == ConnectionState.CLOSED

    def start(self) -> None:
        """Start the background receive loop. Must be called from a running event loop."""
        if self._receiver_task is not None:
            return
        self.state = ConnectionState.OPEN
        self._receiver_task = asyncio.create_task(self._receive_loop())

    def subscribe(self, handler: MessageHandler) -> None:
        """
        Add a handler called with every inbound message that is not a matched command reply.
        The handler runs on the receive loop; a returned awaitable is scheduled, not awaited.
        """
        if handler not in self._subscribers:
            self._subscribers.append(handler)

    def unsubscribe(self, handler: MessageHandler) -> None:
        if handler in self._subscribers:
            self._subscribers.remove(handler)

    def add_close_callback(self, callback: Callable[[], None]) -> None:
        """Register a callback run once when the connection closes (or immediately if it already has)."""
        if self.closed:
            callback()
            return
        self._close_callbacks.append(callback)

    def remove_close_callback(self, callback: Callable[[], None]) -> None:
        if callback in self._close_callbacks:
            self._close_callbacks.remove(callback)

    async def send_command(self, message: CDPMessage) -> asyncio.Future:
        """
        Assign an id to the message, write it and return the future of its reply.
        Args:
            message: The command to send; its id is assigned here.
        Returns:
            Future resolved with the `result` object of the reply.
        Raises:
            ConnectionClosedError: If the connection is closed.
        """
        if self.state != ConnectionState.OPEN:
            raise ConnectionClosedError(f"Cannot send {message.method}, connection to {self.endpoint} is closed")

        self.seq += 1
        cmd_id = self.seq
        message = message.model_copy(update={"id": cmd_id})

        future = asyncio.get_running_loop().create_future()
        # a future cancelled by a timed out waiter must not stay pending
        future.add_done_callback(lambda _f: self.pending_responses.pop(cmd_id, None))
        self.pending_responses[cmd_id] = future

        try:
            await self.ws.send(message.to_wire())
        except ConnectionClosed as e:
            self.pending_responses.pop(cmd_id, None)
            raise ConnectionClosedError(f"Cannot send {message.method}, connection to {self.endpoint} is closed") from e
        except Exception:
            self.pending_responses.pop(cmd_id, None)
            raise

        logger.debug("📤 Sent %s (id=%d)", message.method, cmd_id)
        return future

    async def send(
        self,
        method: str,
        params: dict[str, Any] | None = None,
        timeout: float | None = None,
    ) -> dict[str, Any]:
        """
        Send a CDP command and wait for its reply.
        Args:
            method: The CDP method to send, e.g. "Page.navigate".
            params: The parameters to send with the command.
            timeout: Timeout in seconds, None waits until the reply or the connection closes.
        Returns:
            The `result` object of the reply.
        Raises:
            ChromeError: If Chrome replied with an error.
            ConversionTimedOutError: If no reply arrived within timeout.
            ConnectionClosedError: If the connection is or gets closed.
        """
        future = await self.send_command(CDPMessage(method=method, params=params or {}))
        if timeout is None:
            return await future
        try:
            return await asyncio.wait_for(fut=future, timeout=timeout)
        except asyncio.TimeoutError:
            raise ConversionTimedOutError(f"CDP command {method} timed out after {timeout} seconds") from None

    async def dispatch(self, method: str, params: dict[str, Any] | None = None) -> None:
        """
        Send a CDP command without waiting for its reply.
        A failed reply is logged, never raised.
        """
        future = await self.send_command(CDPMessage(method=method, params=params or {}))
        future.add_done_callback(functools.partial(self._log_dispatch_outcome, method))

    def dispatch_soon(self, method: str, params: dict[str, Any] | None = None) -> None:
        """Schedule dispatch() from synchronous code (e.g. an event subscriber)."""
        self._spawn(self.dispatch(method, params))

    async def close(self) -> None:
        """
        Close the websocket. Idempotent.
        Pending commands fail with ConnectionClosedError.
        """
        self._shutdown("Connection closed by client")

        task = self._receiver_task
        if task is not None and not task.done() and task is not asyncio.current_task():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass

        try:
            await self.ws.close()
        except Exception as e:
            logger.debug("⚠️ Error while closing websocket %s: %s", self.endpoint, e)
