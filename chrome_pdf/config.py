"""
chrome_pdf/config.py

Centralized environment variable configuration.
"""

import os
from typing import Any

from dotenv import load_dotenv

load_dotenv()


class Config():
    """
    Centralized configuration for environment variables.
    """

    # logging
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()
    LOG_FORMAT: str = os.getenv(
        "LOG_FORMAT",
        "%(asctime)s - %(name)s:%(lineno)d - %(levelname)s - %(message)s",
    )
    LOG_DATE_FORMAT: str = os.getenv("LOG_DATE_FORMAT", "%Y-%m-%d %H:%M:%S")

    # browser
    REMOTE_DEBUGGING_ADDRESS: str = os.getenv("REMOTE_DEBUGGING_ADDRESS", "http://127.0.0.1:9222")
    CONNECT_TIMEOUT_SECONDS: float = float(os.getenv("CONNECT_TIMEOUT_SECONDS", "10"))

    # conversion
    DEFAULT_CONVERSION_TIMEOUT_MS: int = int(os.getenv("DEFAULT_CONVERSION_TIMEOUT_MS", "60000"))
    WINDOW_STATUS_POLL_INTERVAL_MS: int = int(os.getenv("WINDOW_STATUS_POLL_INTERVAL_MS", "10"))

    @classmethod
    def as_dict(cls) -> dict[str, Any]:
        """
        Return a dictionary of all UPPERCASE class attributes and their values.
        Return:
            dict[str, Any]: A dictionary of all UPPERCASE class attributes and their values.
        """
        return {
            key: getattr(cls, key)
            for key in dir(cls)
            if key.isupper()
        }
