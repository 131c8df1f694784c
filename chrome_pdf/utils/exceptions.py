"""
chrome_pdf/utils/exceptions.py

Custom exceptions for chrome-pdf.

Contains:
- ChromePdfError: Base class for every error raised by this package
- BrowserConnectionError: Websocket handshake / open failures
- ConnectionClosedError: Operation attempted on (or interrupted by) a closed connection
- ConversionTimedOutError: The shared countdown budget ran out
- NavigationError: Chrome reported a real navigation failure
- ConversionError: Chrome answered with an empty payload or an embedded script exception
- ChromeError: Generic protocol error returned for a command
"""


class ChromePdfError(Exception):
    """
    Base exception for all chrome-pdf errors.
    """


class BrowserConnectionError(ChromePdfError):
    """
    Raised when unable to open a websocket connection to the browser or to a page.
    """


class ConnectionClosedError(ChromePdfError):
    """
    Raised when a command is sent on, or still pending when, a connection is closed.
    """


class ConversionTimedOutError(ChromePdfError, TimeoutError):
    """
    Raised when the countdown timer of a conversion reaches zero before an operation finished.
    """


class NavigationError(ChromePdfError):
    """
    Raised when Chrome reports an error while navigating to a page.
    """


class ConversionError(ChromePdfError):
    """
    Raised when Chrome returns a successful response without usable data,
    or when injected javascript raised an exception.
    """


class ChromeError(ChromePdfError):
    """
    Raised when Chrome answers a command with a protocol error.
    """

    def __init__(self, message: str, code: int | None = None) -> None:
        super().__init__(message)
        self.code = code
