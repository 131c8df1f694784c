"""
chrome_pdf/cdp/monitors/network_traffic_monitor.py

Logs the network traffic of a page (Network domain events).
"""

from __future__ import annotations

import logging
from typing import Any, ClassVar

from pydantic import ValidationError

from chrome_pdf.cdp.data_models import (
    DataReceivedParams,
    LoadingFailedParams,
    LoadingFinishedParams,
    RequestWillBeSentParams,
    ResponseReceivedParams,
)
from chrome_pdf.cdp.monitors.abstract_monitor import AbstractMonitor


class NetworkTrafficMonitor(AbstractMonitor):
    """
    Writes one log line per Network event of interest.
    The Network domain must be enabled on the page connection for events to arrive.
    """

    # Class attributes _____________________________________________________________________________________________________

    HANDLED_EVENTS: ClassVar[frozenset[str]] = frozenset({
        "Network.requestWillBeSent",
        "Network.dataReceived",
        "Network.responseReceived",
        "Network.loadingFinished",
        "Network.loadingFailed",
    })
    # experimental events, received but not logged
    IGNORED_EVENTS: ClassVar[frozenset[str]] = frozenset({
        "Network.requestWillBeSentExtraInfo",
        "Network.responseReceivedExtraInfo",
    })


    # Magic methods ________________________________________________________________________________________________________

    def __init__(self, log: logging.Logger | logging.LoggerAdapter | None = None) -> None:
        super().__init__(log=log)
        self.requests_sent = 0
        self.responses_received = 0
        self.loading_finished = 0
        self.loading_failed = 0
        self.bytes_received = 0


    # Private methods ______________________________________________________________________________________________________

    def _on_request_will_be_sent(self, params: dict[str, Any]) -> None:
        event = RequestWillBeSentParams.model_validate(params)
        self.requests_sent += 1
        self.log.info(
            "Request sent with request id '%s' for url '%s' with method '%s' and type '%s'",
            event.request_id, event.request.url, event.request.method, event.type,
        )

    def _on_data_received(self, params: dict[str, Any]) -> None:
        event = DataReceivedParams.model_validate(params)
        self.bytes_received += event.data_length or 0
        self.log.info("Data received for request id '%s' with length '%s'", event.request_id, event.data_length)

    def _on_response_received(self, params: dict[str, Any]) -> None:
        event = ResponseReceivedParams.model_validate(params)
        self.responses_received += 1
        response = event.response
        line = f"Response received for request id '{event.request_id}' and url '{response.url}'"
        if response.remote_ip_address and response.remote_ip_address.strip():
            line += (f" from ip '{response.remote_ip_address}' on port '{response.remote_port}' "
                     f"with status '{response.status}'")
        self.log.info(line)

    def _on_loading_finished(self, params: dict[str, Any]) -> None:
        event = LoadingFinishedParams.model_validate(params)
        self.loading_finished += 1
        self.log.info(
            "Loading finished for request id '%s' with encoded data length '%s'",
            event.request_id, event.encoded_data_length,
        )

    def _on_loading_failed(self, params: dict[str, Any]) -> None:
        event = LoadingFailedParams.model_validate(params)
        self.loading_failed += 1
        self.log.info(
            "Loading failed for request id '%s' and type '%s' with error '%s'",
            event.request_id, event.type, event.error_text,
        )


    # Public methods _______________________________________________________________________________________________________

    def handle_message(self, msg: dict[str, Any]) -> bool:
        method = msg.get("method")
        if method in self.IGNORED_EVENTS:
            return True
        if method not in self.HANDLED_EVENTS:
            return False

        handlers = {
            "Network.requestWillBeSent": self._on_request_will_be_sent,
            "Network.dataReceived": self._on_data_received,
            "Network.responseReceived": self._on_response_received,
            "Network.loadingFinished": self._on_loading_finished,
            "Network.loadingFailed": self._on_loading_failed,
        }
        try:
            handlers[method](msg.get("params") or {})
        except ValidationError as e:
            self.log.warning("⚠️ Could not parse %s event: %s", method, e)
        return True

    def get_summary(self) -> dict[str, Any]:
        return {
            "requests_sent": self.requests_sent,
            "responses_received": self.responses_received,
            "loading_finished": self.loading_finished,
            "loading_failed": self.loading_failed,
            "bytes_received": self.bytes_received,
        }
