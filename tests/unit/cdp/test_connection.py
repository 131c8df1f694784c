"""
tests/unit/cdp/test_connection.py

Tests for Connection: id correlation, event fan-out and shutdown.
"""

import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from chrome_pdf.cdp.connection import Connection, ConnectionState
from chrome_pdf.cdp.data_models import CDPMessage
from chrome_pdf.utils.exceptions import (
    BrowserConnectionError,
    ChromeError,
    ConnectionClosedError,
    ConversionTimedOutError,
)
from conftest import FakeWebSocket, wait_until


class TestConnectionCommands:
    """
    Tests for send / send_command / dispatch.
    """

    @pytest.mark.asyncio
    async def test_ids_are_monotonic(self, connection: Connection, fake_ws: FakeWebSocket) -> None:
        """Each command gets the next id, starting at 1."""
        await connection.send("Page.enable")
        await connection.send("Runtime.enable")
        await connection.dispatch("Page.disable")

        assert [msg["id"] for msg in fake_ws.sent] == [1, 2, 3]

    @pytest.mark.asyncio
    async def test_wire_format(self, connection: Connection, fake_ws: FakeWebSocket) -> None:
        """Commands are written as {id, method, params}."""
        await connection.send("Page.navigate", {"url": "http://example.com"})

        assert fake_ws.sent == [{"id": 1, "method": "Page.navigate", "params": {"url": "http://example.com"}}]

    @pytest.mark.asyncio
    async def test_send_returns_result(self, connection: Connection, fake_ws: FakeWebSocket) -> None:
        fake_ws.replies["Target.createTarget"] = {"targetId": "T42"}

        result = await connection.send("Target.createTarget", {"url": "about:blank"})

        assert result == {"targetId": "T42"}
        assert connection.pending_responses == {}

    @pytest.mark.asyncio
    async def test_concurrent_replies_resolve_their_own_command(
        self, connection: Connection, fake_ws: FakeWebSocket
    ) -> None:
        """Replies arriving in reverse order still resolve the matching futures."""
        fake_ws.auto_reply = False

        tasks = [
            asyncio.create_task(connection.send("Runtime.evaluate", {"expression": str(i)}))
            for i in range(3)
        ]
        await wait_until(lambda: len(fake_ws.sent) == 3)

        for msg in reversed(fake_ws.sent):
            fake_ws.push({"id": msg["id"], "result": {"echo": msg["params"]["expression"]}})

        results = await asyncio.gather(*tasks)
        assert results == [{"echo": "0"}, {"echo": "1"}, {"echo": "2"}]

    @pytest.mark.asyncio
    async def test_error_reply_raises_chrome_error(self, connection: Connection, fake_ws: FakeWebSocket) -> None:
        fake_ws.errors["Page.navigate"] = {"code": -32000, "message": "Cannot navigate to invalid URL"}

        with pytest.raises(ChromeError) as exc_info:
            await connection.send("Page.navigate", {"url": "nope"})

        assert str(exc_info.value) == "Cannot navigate to invalid URL"
        assert exc_info.value.code == -32000

    @pytest.mark.asyncio
    async def test_timeout_drops_pending_and_ignores_late_reply(
        self, connection: Connection, fake_ws: FakeWebSocket
    ) -> None:
        """A reply arriving after its waiter gave up resolves nothing and is published instead."""
        fake_ws.auto_reply = False
        received: list[dict] = []
        connection.subscribe(received.append)

        with pytest.raises(ConversionTimedOutError):
            await connection.send("Page.printToPDF", timeout=0.02)
        assert connection.pending_responses == {}

        fake_ws.push({"id": 1, "result": {"data": "late"}})
        await wait_until(lambda: len(received) == 1)
        assert received == [{"id": 1, "result": {"data": "late"}}]
        assert connection.state == ConnectionState.OPEN

    @pytest.mark.asyncio
    async def test_dispatch_does_not_wait(self, connection: Connection, fake_ws: FakeWebSocket) -> None:
        fake_ws.auto_reply = False

        await connection.dispatch("Fetch.continueRequest", {"requestId": "r1"})

        assert fake_ws.sent_methods == ["Fetch.continueRequest"]
        assert list(connection.pending_responses) == [1]

    @pytest.mark.asyncio
    async def test_dispatch_failure_is_logged(self, connection: Connection, fake_ws: FakeWebSocket) -> None:
        fake_ws.errors["Fetch.failRequest"] = {"code": -32602, "message": "Invalid InterceptionId."}

        with patch("chrome_pdf.cdp.connection.logger") as mock_logger:
            await connection.dispatch("Fetch.failRequest", {"requestId": "gone", "errorReason": "BlockedByClient"})
            await wait_until(lambda: mock_logger.warning.called)

        assert "Fetch.failRequest" in mock_logger.warning.call_args.args

    @pytest.mark.asyncio
    async def test_send_command_returns_future(self, connection: Connection, fake_ws: FakeWebSocket) -> None:
        fake_ws.replies["Page.navigate"] = {"frameId": "F1"}

        future = await connection.send_command(CDPMessage(method="Page.navigate", params={"url": "about:blank"}))

        assert await future == {"frameId": "F1"}


class TestConnectionEvents:
    """
    Tests for subscriber fan-out.
    """

    @pytest.mark.asyncio
    async def test_events_delivered_in_order(self, connection: Connection, fake_ws: FakeWebSocket) -> None:
        received: list[str] = []
        connection.subscribe(lambda msg: received.append(msg["params"]["name"]))

        for name in ("init", "DOMContentLoaded", "load", "networkIdle"):
            fake_ws.push({"method": "Page.lifecycleEvent", "params": {"name": name}})

        await wait_until(lambda: len(received) == 4)
        assert received == ["init", "DOMContentLoaded", "load", "networkIdle"]

    @pytest.mark.asyncio
    async def test_replies_are_not_published(self, connection: Connection, fake_ws: FakeWebSocket) -> None:
        received: list[dict] = []
        connection.subscribe(received.append)

        await connection.send("Page.enable")
        fake_ws.push({"method": "Page.frameNavigated", "params": {}})

        await wait_until(lambda: len(received) == 1)
        assert received[0]["method"] == "Page.frameNavigated"

    @pytest.mark.asyncio
    async def test_unsubscribe(self, connection: Connection, fake_ws: FakeWebSocket) -> None:
        first: list[dict] = []
        second: list[dict] = []
        connection.subscribe(first.append)
        connection.subscribe(second.append)

        fake_ws.push({"method": "A.one", "params": {}})
        await wait_until(lambda: len(second) == 1)
        connection.unsubscribe(first.append)
        fake_ws.push({"method": "A.two", "params": {}})
        await wait_until(lambda: len(second) == 2)

        assert [m["method"] for m in first] == ["A.one"]

    @pytest.mark.asyncio
    async def test_subscriber_added_mid_flight_misses_earlier_events(
        self, connection: Connection, fake_ws: FakeWebSocket
    ) -> None:
        late: list[dict] = []

        def add_late_subscriber(msg: dict) -> None:
            connection.subscribe(late.append)

        connection.subscribe(add_late_subscriber)
        fake_ws.push({"method": "A.first", "params": {}})
        fake_ws.push({"method": "A.second", "params": {}})

        await wait_until(lambda: len(late) == 1)
        assert [m["method"] for m in late] == ["A.second"]

    @pytest.mark.asyncio
    async def test_async_subscriber_is_scheduled(self, connection: Connection, fake_ws: FakeWebSocket) -> None:
        handler = AsyncMock()
        connection.subscribe(handler)

        fake_ws.push({"method": "Network.dataReceived", "params": {"requestId": "1"}})

        await wait_until(lambda: handler.await_count == 1)
        handler.assert_awaited_once_with({"method": "Network.dataReceived", "params": {"requestId": "1"}})

    @pytest.mark.asyncio
    async def test_failing_subscriber_does_not_stop_receive_loop(
        self, connection: Connection, fake_ws: FakeWebSocket
    ) -> None:
        received: list[dict] = []
        connection.subscribe(MagicMock(side_effect=RuntimeError("boom")))
        connection.subscribe(received.append)

        fake_ws.push({"method": "A.one", "params": {}})
        fake_ws.push({"method": "A.two", "params": {}})

        await wait_until(lambda: len(received) == 2)
        assert connection.state == ConnectionState.OPEN

    @pytest.mark.asyncio
    async def test_non_json_frame_is_skipped(self, connection: Connection, fake_ws: FakeWebSocket) -> None:
        received: list[dict] = []
        connection.subscribe(received.append)

        fake_ws.push("not json {")
        fake_ws.push({"method": "A.one", "params": {}})

        await wait_until(lambda: len(received) == 1)
        assert received[0]["method"] == "A.one"


class TestConnectionShutdown:
    """
    Tests for close() and peer disconnection.
    """

    @pytest.mark.asyncio
    async def test_close_fails_pending_commands(self, connection: Connection, fake_ws: FakeWebSocket) -> None:
        fake_ws.auto_reply = False
        tasks = [asyncio.create_task(connection.send("Page.captureSnapshot")) for _ in range(3)]
        await wait_until(lambda: len(fake_ws.sent) == 3)

        await connection.close()

        results = await asyncio.gather(*tasks, return_exceptions=True)
        assert all(isinstance(r, ConnectionClosedError) for r in results)
        assert connection.pending_responses == {}
        assert connection.closed

    @pytest.mark.asyncio
    async def test_close_is_idempotent_and_notifies_once(self, connection: Connection) -> None:
        callback = MagicMock()
        connection.add_close_callback(callback)

        await connection.close()
        await connection.close()

        callback.assert_called_once_with()

    @pytest.mark.asyncio
    async def test_peer_disconnect_fails_pending_and_notifies(
        self, connection: Connection, fake_ws: FakeWebSocket
    ) -> None:
        fake_ws.auto_reply = False
        callback = MagicMock()
        connection.add_close_callback(callback)
        task = asyncio.create_task(connection.send("Page.printToPDF"))
        await wait_until(lambda: len(fake_ws.sent) == 1)

        fake_ws.disconnect()

        with pytest.raises(ConnectionClosedError):
            await task
        callback.assert_called_once_with()
        assert connection.state == ConnectionState.CLOSED

    @pytest.mark.asyncio
    async def test_send_after_close_fails_immediately(self, connection: Connection, fake_ws: FakeWebSocket) -> None:
        await connection.close()

        with pytest.raises(ConnectionClosedError):
            await connection.send("Page.enable")
        assert fake_ws.sent == []

    @pytest.mark.asyncio
    async def test_close_callback_added_after_close_runs_immediately(self, connection: Connection) -> None:
        await connection.close()
        callback = MagicMock()

        connection.add_close_callback(callback)

        callback.assert_called_once_with()


class TestConnectionOpen:
    """
    Tests for Connection.open.
    """

    @pytest.mark.asyncio
    async def test_open_starts_receive_loop(self, fake_ws: FakeWebSocket) -> None:
        fake_ws.replies["Browser.getVersion"] = {"product": "Chrome/120.0"}

        with patch("chrome_pdf.cdp.connection.connect", AsyncMock(return_value=fake_ws)) as mock_connect:
            conn = await Connection.open("ws://127.0.0.1:9222/devtools/browser/B1", open_timeout=3)
            try:
                assert conn.state == ConnectionState.OPEN
                assert await conn.send("Browser.getVersion") == {"product": "Chrome/120.0"}
            finally:
                await conn.close()

        mock_connect.assert_awaited_once_with(
            uri="ws://127.0.0.1:9222/devtools/browser/B1", max_size=None, open_timeout=3
        )

    @pytest.mark.asyncio
    async def test_open_failure_raises_browser_connection_error(self) -> None:
        with patch("chrome_pdf.cdp.connection.connect", AsyncMock(side_effect=ConnectionRefusedError("refused"))):
            with pytest.raises(BrowserConnectionError, match="refused"):
                await Connection.open("ws://127.0.0.1:1/devtools/browser/B1")
