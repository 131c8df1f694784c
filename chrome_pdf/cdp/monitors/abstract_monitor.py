"""
chrome_pdf/cdp/monitors/abstract_monitor.py

Abstract base class for CDP monitors.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any

from chrome_pdf.utils.logger import get_logger


class AbstractMonitor(ABC):
    """
    Abstract base class for CDP monitors.
    A monitor is a Connection subscriber: the connection calls it with every inbound event.
    All monitors (NetworkTrafficMonitor, RequestInterceptionMonitor) should inherit from this.
    """

    # Magic methods ________________________________________________________________________________________________________

    def __init__(self, log: logging.Logger | logging.LoggerAdapter | None = None) -> None:
        """
        Args:
            log: Logger to write to, usually the scoped logger of the owning session.
        """
        self.log = log or get_logger(name=type(self).__module__)

    def __call__(self, msg: dict[str, Any]) -> None:
        self.handle_message(msg)


    # Abstract methods _____________________________________________________________________________________________________

    @abstractmethod
    def handle_message(self, msg: dict[str, Any]) -> bool:
        """
        Handle one inbound CDP message.
        Args:
            msg: The parsed CDP message.
        Returns:
            True if the message was handled by this monitor, False otherwise.
        """

    @abstractmethod
    def get_summary(self) -> dict[str, Any]:
        """
        Counters describing what the monitor has seen so far.
        """
