"""
chrome_pdf/cdp

Chrome DevTools Protocol client: connections, navigation and the browser session.
"""

from chrome_pdf.cdp.browser_session import BrowserSession
from chrome_pdf.cdp.connection import Connection, ConnectionState
from chrome_pdf.cdp.navigation import NavigationPhase, NavigationStateMachine

__all__ = [
    "BrowserSession",
    "Connection",
    "ConnectionState",
    "NavigationPhase",
    "NavigationStateMachine",
]
