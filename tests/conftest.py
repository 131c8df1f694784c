"""
tests/conftest.py

Configuration for pytest.

FakeWebSocket stands in for a websockets ClientConnection: it records every command the
Connection writes, answers them from a per-method table and lets tests push events.
"""

import asyncio
import json
from pathlib import Path
from typing import Any, Callable

import pytest
import pytest_asyncio
from websockets.exceptions import ConnectionClosedError, ConnectionClosedOK

from chrome_pdf.cdp.browser_session import BrowserSession
from chrome_pdf.cdp.connection import Connection

SILENT = object()  # reply marker: never answer the command
_CLOSE = object()
_DROP = object()


class FakeWebSocket:
    """
    In-memory websocket. Commands are answered from `replies` (method -> result dict,
    callable(msg) -> result dict, {"error": {...}} envelope via `errors`, or SILENT);
    events listed in `followups[method]` are pushed right after the reply.
    """

    def __init__(self) -> None:
        self.sent: list[dict[str, Any]] = []
        self.replies: dict[str, Any] = {}
        self.errors: dict[str, dict[str, Any]] = {}
        self.followups: dict[str, list[dict[str, Any]]] = {}
        self.auto_reply = True
        self.closed = False
        self.inbound: asyncio.Queue = asyncio.Queue()

    @property
    def sent_methods(self) -> list[str]:
        return [msg["method"] for msg in self.sent]

    def sent_with_method(self, method: str) -> list[dict[str, Any]]:
        return [msg for msg in self.sent if msg["method"] == method]

    async def send(self, data: str) -> None:
        if self.closed:
            raise ConnectionClosedOK(None, None)
        msg = json.loads(data)
        self.sent.append(msg)
        if not self.auto_reply:
            return

        method = msg["method"]
        if method in self.errors:
            self.push({"id": msg["id"], "error": self.errors[method]})
        else:
            reply: Any = self.replies.get(method, {})
            if callable(reply):
                reply = reply(msg)
            if reply is not SILENT:
                self.push({"id": msg["id"], "result": reply})
        for event in self.followups.get(method, []):
            self.push(event)

    def push(self, msg: dict[str, Any] | str) -> None:
        self.inbound.put_nowait(msg if isinstance(msg, str) else json.dumps(msg))

    def disconnect(self) -> None:
        """Peer closes the socket abnormally."""
        self.inbound.put_nowait(_DROP)

    async def close(self) -> None:
        self.closed = True
        self.inbound.put_nowait(_CLOSE)

    def __aiter__(self) -> "FakeWebSocket":
        return self

    async def __anext__(self) -> str:
        item = await self.inbound.get()
        if item is _CLOSE:
            self.closed = True
            raise StopAsyncIteration
        if item is _DROP:
            self.closed = True
            raise ConnectionClosedError(None, None)
        return item


async def wait_until(predicate: Callable[[], bool], timeout: float = 1.0) -> None:
    """Yield to the event loop until predicate() holds."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not met in time")
        await asyncio.sleep(0.001)


def lifecycle_event(name: str) -> dict[str, Any]:
    return {"method": "Page.lifecycleEvent", "params": {"frameId": "F1", "loaderId": "L1", "name": name, "timestamp": 1.0}}


def frame_navigated_event() -> dict[str, Any]:
    return {"method": "Page.frameNavigated", "params": {"frame": {"id": "F1", "url": "http://example.com/"}}}


def request_paused_event(request_id: str, url: str) -> dict[str, Any]:
    return {
        "method": "Fetch.requestPaused",
        "params": {"requestId": request_id, "request": {"url": url, "method": "GET"}, "resourceType": "Image"},
    }


@pytest.fixture(scope="session")
def tests_root() -> Path:
    """
    Root directory for tests.
    Returns:
        Path to the tests directory.
    """
    return Path(__file__).parent.resolve()


@pytest.fixture
def fake_ws() -> FakeWebSocket:
    return FakeWebSocket()


@pytest.fixture
def browser_ws() -> FakeWebSocket:
    return FakeWebSocket()


@pytest.fixture
def page_ws() -> FakeWebSocket:
    return FakeWebSocket()


@pytest_asyncio.fixture
async def connection(fake_ws: FakeWebSocket) -> Connection:
    """
    Started Connection on fake_ws.
    """
    conn = Connection(ws=fake_ws, endpoint="ws://127.0.0.1:9222/devtools/page/T1")
    conn.start()
    yield conn
    await conn.close()


@pytest_asyncio.fixture
async def browser_session(browser_ws: FakeWebSocket, page_ws: FakeWebSocket) -> BrowserSession:
    """
    BrowserSession whose browser and page connections run on fake websockets.
    """
    browser_connection = Connection(ws=browser_ws, endpoint="ws://127.0.0.1:9222/devtools/browser/B1")
    page_connection = Connection(ws=page_ws, endpoint="ws://127.0.0.1:9222/devtools/page/T1")
    browser_connection.start()
    page_connection.start()
    session = BrowserSession(
        browser_connection=browser_connection,
        page_connection=page_connection,
        instance_id="test",
        target_id="T1",
    )
    yield session
    await session.close_connections()
