"""
chrome_pdf/cdp/navigation.py

State machine deciding when a navigation is finished.

The machine only consumes parsed CDP messages and timer notifications; it never touches the
transport. BrowserSession.navigate_to feeds it and waits until is_finished.
"""

from __future__ import annotations

import logging
from enum import StrEnum
from typing import Any

from pydantic import ValidationError

from chrome_pdf.cdp.data_models import LifecycleEventParams, NavigateResult
from chrome_pdf.utils.logger import get_logger

logger = get_logger(name=__name__)

BLOCKED_BY_CLIENT_ERROR = "net::ERR_BLOCKED_BY_CLIENT"


class NavigationPhase(StrEnum):
    STARTED = "started"
    WAITING_DOM_CONTENT_LOADED = "waiting_dom_content_loaded"
    WAITING_FRAME_NAVIGATED = "waiting_frame_navigated"
    WAITING_NETWORK_IDLE = "waiting_network_idle"
    WAITING_MEDIA_TIMEOUT = "waiting_media_timeout"
    COMPLETED = "completed"
    FAILED = "failed"
    TIMED_OUT = "timed_out"

    @classmethod
    def terminal_phases(cls) -> set[NavigationPhase]:
        return {cls.COMPLETED, cls.FAILED, cls.TIMED_OUT}


class NavigationStateMachine:
    """
    Tracks one navigation from Page.navigate until the page counts as loaded.

    Completion happens on the first of:
    - networkIdle lifecycle event, after a frameNavigated event was seen
    - the media load timeout, armed on the first DOMContentLoaded event
    - a navigation error (other than the client's own url blocking)
    - the page connection closing
    """

    def __init__(
        self,
        url: str,
        media_load_timeout: int | None = None,
        log: logging.Logger | logging.LoggerAdapter | None = None,
    ) -> None:
        """
        Args:
            url: The url being navigated to, used in error messages.
            media_load_timeout: Milliseconds to wait after DOMContentLoaded before giving up on
                background media and treating the page as loaded. None disables it.
            log: Logger for transition messages, usually the scoped logger of the session.
        """
        self.url = url
        self.media_load_timeout = media_load_timeout
        self.phase = NavigationPhase.STARTED
        self.error: str | None = None
        self.media_timer_armed = False
        self.frame_navigated = False
        self.log = log or logger

    def __repr__(self) -> str:
        return f"NavigationStateMachine(url={self.url!r}, phase={self.phase.value}, error={self.error!r})"


    # Private methods ______________________________________________________________________________________________________

    def _log(self, line: str) -> None:
        self.log.info(line)

    def _complete(self) -> None:
        self.phase = NavigationPhase.FAILED if self.error else NavigationPhase.COMPLETED

    def _on_lifecycle_event(self, params: dict[str, Any]) -> None:
        try:
            event = LifecycleEventParams.model_validate(params)
        except ValidationError:
            return

        if event.name == "DOMContentLoaded":
            if self.media_load_timeout is not None and not self.media_timer_armed:
                self.media_timer_armed = True
                if not self.frame_navigated:
                    self.phase = NavigationPhase.WAITING_MEDIA_TIMEOUT
                self._log(f"The 'DOMContentLoaded' event has been fired, media load timeout of "
                          f"{self.media_load_timeout} milliseconds started")
        elif event.name == "networkIdle" and self.frame_navigated:
            self._log("The 'Page.lifecycleEvent' event with name 'networkIdle' has been fired, "
                      "the page is now fully loaded")
            self._complete()


    # Public methods _______________________________________________________________________________________________________

    @property
    def is_finished(self) -> bool:
        return self.phase in NavigationPhase.terminal_phases()

    def start(self) -> None:
        """Called once the navigate command has been issued."""
        if self.phase != NavigationPhase.STARTED:
            return
        if self.media_load_timeout is not None:
            self.phase = NavigationPhase.WAITING_DOM_CONTENT_LOADED
        else:
            self.phase = NavigationPhase.WAITING_FRAME_NAVIGATED

    def feed(self, message: dict[str, Any]) -> NavigationPhase:
        """
        Apply one inbound CDP message.
        Args:
            message: Parsed CDP message (event or unmatched reply).
        Returns:
            The phase after the message.
        """
        if self.is_finished:
            return self.phase

        method = message.get("method")
        if method == "Page.lifecycleEvent":
            self._on_lifecycle_event(message.get("params") or {})
        elif method == "Page.frameNavigated":
            self._log("The 'Page.frameNavigated' event has been fired, waiting for the "
                      "'Page.lifecycleEvent' with name 'networkIdle'")
            self.frame_navigated = True
            self.phase = NavigationPhase.WAITING_NETWORK_IDLE
        elif method is None and isinstance(message.get("result"), dict):
            self.on_navigate_response(message["result"])

        return self.phase

    def on_navigate_response(self, result: dict[str, Any]) -> NavigationPhase:
        """
        Apply the result of Page.navigate.
        Chrome reports a failed navigation through errorText in an otherwise successful reply.
        """
        if self.is_finished:
            return self.phase
        try:
            navigate_result = NavigateResult.model_validate(result)
        except ValidationError:
            return self.phase

        error_text = navigate_result.error_text
        if error_text and BLOCKED_BY_CLIENT_ERROR not in error_text:
            self.error = f"{error_text} occurred when navigating to the page '{self.url}'"
            self._complete()
        return self.phase

    def on_navigate_error(self, message: str) -> NavigationPhase:
        """Apply a protocol error returned for Page.navigate (e.g. an invalid url)."""
        if not self.is_finished:
            self.error = f"{message} occurred when navigating to the page '{self.url}'"
            self._complete()
        return self.phase

    def on_media_timeout(self) -> NavigationPhase:
        if not self.is_finished:
            self._log(f"Media load timed out after {self.media_load_timeout} milliseconds")
            self._complete()
        return self.phase

    def on_connection_closed(self) -> NavigationPhase:
        if not self.is_finished:
            self._log("The page connection has been closed")
            self._complete()
        return self.phase

    def on_timed_out(self) -> NavigationPhase:
        if not self.is_finished:
            self.phase = NavigationPhase.TIMED_OUT
        return self.phase
