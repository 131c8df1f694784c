"""
chrome_pdf/utils/logger.py

Logging helpers.

Every module gets its logger through get_logger(name=__name__). Handlers are attached once to
the package root logger, configured from Config. Conversions that run side by side share the
same handlers; get_scoped_logger() prefixes each line with an instance id so the output of one
conversion can be told apart from another.
"""

import logging
from typing import Any, MutableMapping

from chrome_pdf.config import Config

ROOT_LOGGER_NAME = "chrome_pdf"

_configured = False


def _configure_root_logger() -> None:
    global _configured
    if _configured:
        return
    root = logging.getLogger(ROOT_LOGGER_NAME)
    if not root.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(fmt=Config.LOG_FORMAT, datefmt=Config.LOG_DATE_FORMAT))
        root.addHandler(handler)
    root.setLevel(Config.LOG_LEVEL)
    _configured = True


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger that writes through the package handlers.
    Args:
        name: Logger name, usually __name__.
    Returns:
        The configured logger.
    """
    _configure_root_logger()
    return logging.getLogger(name)


class ScopedLoggerAdapter(logging.LoggerAdapter):
    """
    Logger adapter that prefixes every message with an instance id.
    """

    def process(self, msg: Any, kwargs: MutableMapping[str, Any]) -> tuple[Any, MutableMapping[str, Any]]:
        instance_id = self.extra.get("instance_id") if self.extra else None
        if instance_id:
            return f"[{instance_id}] {msg}", kwargs
        return msg, kwargs


def get_scoped_logger(name: str, instance_id: str | None = None) -> ScopedLoggerAdapter:
    """
    Get a logger whose lines are scoped by the given instance id.
    Args:
        name: Logger name, usually __name__.
        instance_id: Identifier of the conversion (or session) the lines belong to.
    Returns:
        A ScopedLoggerAdapter around get_logger(name).
    """
    return ScopedLoggerAdapter(get_logger(name), {"instance_id": instance_id})
