"""
chrome_pdf/cdp/monitors/request_interception_monitor.py

Allows or blocks paused requests (Fetch.requestPaused) against a url blacklist.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, NamedTuple

from pydantic import ValidationError

from chrome_pdf.cdp.data_models import RequestPausedParams
from chrome_pdf.cdp.monitors.abstract_monitor import AbstractMonitor
from chrome_pdf.utils.url_blacklist import UrlBlacklist

if TYPE_CHECKING:  # avoid circular import
    from chrome_pdf.cdp.connection import Connection

BLOCKED_BY_CLIENT_REASON = "BlockedByClient"


class InterceptionDecision(NamedTuple):
    allowed: bool
    matched_pattern: str | None = None
    safe: bool = False


class RequestInterceptionMonitor(AbstractMonitor):
    """
    Answers every Fetch.requestPaused event with Fetch.continueRequest, or with
    Fetch.failRequest (errorReason BlockedByClient) when the url is blacklisted.

    The answers are fire-and-forget: the reply to continueRequest / failRequest is not awaited.
    A url on the safe list is always allowed.
    """

    def __init__(
        self,
        connection: Connection,
        url_blacklist: UrlBlacklist,
        log: logging.Logger | logging.LoggerAdapter | None = None,
    ) -> None:
        """
        Args:
            connection: The page connection the Fetch domain is enabled on.
            url_blacklist: Patterns to block and the safe list overriding them.
            log: Logger to write allow / block decisions to.
        """
        super().__init__(log=log)
        self.connection = connection
        self.url_blacklist = url_blacklist
        self.allowed_count = 0
        self.blocked_count = 0


    # Public methods _______________________________________________________________________________________________________

    def decide(self, url: str) -> InterceptionDecision:
        """
        Decide whether a url may load.
        Args:
            url: The requested url.
        Returns:
            InterceptionDecision with the matched pattern when blocked.
        """
        if self.url_blacklist.is_safe(url):
            return InterceptionDecision(allowed=True, safe=True)
        matched_pattern = self.url_blacklist.match(url)
        if matched_pattern is None:
            return InterceptionDecision(allowed=True)
        return InterceptionDecision(allowed=False, matched_pattern=matched_pattern)

    def handle_message(self, msg: dict[str, Any]) -> bool:
        if msg.get("method") != "Fetch.requestPaused":
            return False

        try:
            paused = RequestPausedParams.model_validate(msg.get("params") or {})
        except ValidationError as e:
            self.log.warning("⚠️ Could not parse Fetch.requestPaused event: %s", e)
            return True

        url = paused.request.url
        decision = self.decide(url)
        if decision.allowed:
            self.allowed_count += 1
            self.log.info(
                "The url '%s' has been allowed%s",
                url, " because it is on the safe url list" if decision.safe else "",
            )
            self.connection.dispatch_soon("Fetch.continueRequest", {"requestId": paused.request_id})
        else:
            self.blocked_count += 1
            self.log.info("The url '%s' has been blocked by url blacklist pattern '%s'", url, decision.matched_pattern)
            self.connection.dispatch_soon(
                "Fetch.failRequest",
                {"requestId": paused.request_id, "errorReason": BLOCKED_BY_CLIENT_REASON},
            )
        return True

    def get_summary(self) -> dict[str, Any]:
        return {
            "allowed": self.allowed_count,
            "blocked": self.blocked_count,
        }
