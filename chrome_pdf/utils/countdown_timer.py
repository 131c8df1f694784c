"""
chrome_pdf/utils/countdown_timer.py

Shared deadline for all the protocol calls that make up one conversion.
"""

import time


class CountdownTimer:
    """
    Milliseconds remaining until an absolute deadline.

    Create one per conversion and hand the same instance to every bounded BrowserSession call.
    The deadline is fixed at construction and never reset.
    """

    def __init__(self, timeout_ms: int) -> None:
        """
        Args:
            timeout_ms: Total budget of the conversion in milliseconds.
        """
        if timeout_ms < 0:
            raise ValueError(f"timeout_ms must be >= 0, got {timeout_ms}")
        self.timeout_ms = timeout_ms
        self.deadline = time.monotonic() + timeout_ms / 1000

    def __repr__(self) -> str:
        return f"CountdownTimer(timeout_ms={self.timeout_ms}, milliseconds_left={self.milliseconds_left})"

    @property
    def milliseconds_left(self) -> int:
        return max(0, int((self.deadline - time.monotonic()) * 1000))

    @property
    def seconds_left(self) -> float:
        return self.milliseconds_left / 1000

    @property
    def expired(self) -> bool:
        return self.milliseconds_left == 0
