"""
chrome_pdf/utils/cdp_utils.py

CDP (Chrome DevTools Protocol) endpoint helpers.
"""

from urllib.parse import urlparse, urlunparse

import requests

from chrome_pdf.utils.exceptions import BrowserConnectionError
from chrome_pdf.utils.logger import get_logger

logger = get_logger(name=__name__)


def get_browser_websocket_url(remote_debugging_address: str, timeout: float = 5) -> str:
    """
    Get the normalized WebSocket URL for the browser connection.

    Args:
        remote_debugging_address: The Chrome debugging server address (e.g., 'http://127.0.0.1:9222').
        timeout: Timeout in seconds for the /json/version request.

    Returns:
        The WebSocket URL for connecting to the browser.

    Raises:
        BrowserConnectionError: If unable to get the WebSocket URL from the browser.
    """
    base = remote_debugging_address.rstrip("/")
    try:
        ver = requests.get(f"{base}/json/version", timeout=timeout)
        ver.raise_for_status()
        data = ver.json()
    except (requests.RequestException, ValueError) as e:
        raise BrowserConnectionError(f"Failed to get browser WebSocket URL: {e}") from e

    raw_ws = data.get("webSocketDebuggerUrl")
    if not raw_ws:
        raise BrowserConnectionError("/json/version missing webSocketDebuggerUrl")

    # Chrome reports its own bind address; normalize netloc to the reachable hostname:port
    parsed = urlparse(raw_ws)
    base_parsed = urlparse(base)
    fixed_netloc = f"{base_parsed.hostname}:{base_parsed.port}" if base_parsed.port else base_parsed.hostname
    ws_url = urlunparse(parsed._replace(netloc=fixed_netloc))

    logger.debug("Raw WebSocket URL: %s", raw_ws)
    logger.debug("Normalized WebSocket URL: %s", ws_url)
    return ws_url


def build_page_websocket_url(browser_ws_url: str, target_id: str) -> str:
    """
    Derive the websocket URL of a page target from the browser websocket URL.

    Args:
        browser_ws_url: e.g. 'ws://127.0.0.1:9222/devtools/browser/<uuid>'.
        target_id: The targetId returned by Target.createTarget.

    Returns:
        e.g. 'ws://127.0.0.1:9222/devtools/page/<targetId>'.
    """
    parsed = urlparse(browser_ws_url)
    if not parsed.scheme or not parsed.hostname:
        raise ValueError(f"Not a websocket url: {browser_ws_url!r}")
    netloc = f"{parsed.hostname}:{parsed.port}" if parsed.port else parsed.hostname
    return f"{parsed.scheme}://{netloc}/devtools/page/{target_id}"
