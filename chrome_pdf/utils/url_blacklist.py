"""
chrome_pdf/utils/url_blacklist.py

Wildcard URL blacklist with a safe list override.
"""

import re
from typing import Iterable


class UrlBlacklist:
    """
    Ordered wildcard patterns (`*` matches any run of characters) plus a set of exact safe URLs.
    A URL is blocked when it matches a pattern and is not on the safe list.
    Matching is case-insensitive; every character other than `*` is literal.
    """

    def __init__(
        self,
        patterns: Iterable[str] | None = None,
        safe_urls: Iterable[str] | None = None,
    ) -> None:
        self.patterns: tuple[str, ...] = tuple(p for p in (patterns or []) if p)
        self.safe_urls: frozenset[str] = frozenset(safe_urls or [])
        self._compiled_patterns = tuple(
            re.compile(re.escape(p).replace(r"\*", ".*"), re.IGNORECASE | re.DOTALL) for p in self.patterns
        )

    def __bool__(self) -> bool:
        return bool(self.patterns)

    def __len__(self) -> int:
        return len(self.patterns)

    def __repr__(self) -> str:
        return f"UrlBlacklist(patterns={list(self.patterns)}, safe_urls={sorted(self.safe_urls)})"

    def match(self, url: str) -> str | None:
        """
        Return the first pattern the url matches, ignoring the safe list.
        Args:
            url: The requested url.
        Returns:
            The matched pattern as it was given, or None.
        """
        for pattern, compiled in zip(self.patterns, self._compiled_patterns):
            if compiled.fullmatch(url):
                return pattern
        return None

    def is_safe(self, url: str) -> bool:
        return url in self.safe_urls

    def is_blocked(self, url: str) -> bool:
        if self.is_safe(url):
            return False
        return self.match(url) is not None
