"""Detection of search engine block and CAPTCHA pages."""

from __future__ import annotations

from collections.abc import Sequence

from toolscout.config.schema import DEFAULT_BLOCK_PATTERNS


def block_reason(url: str | None, patterns: Sequence[str] = DEFAULT_BLOCK_PATTERNS) -> str | None:
    """Return the first block pattern contained in url, or None if the URL looks clean.

    Matching is case-sensitive substring containment.
    """
    if not url:
        return None
    for pattern in patterns:
        if pattern and pattern in url:
            return pattern
    return None


def is_blocked_url(url: str | None, patterns: Sequence[str] = DEFAULT_BLOCK_PATTERNS) -> bool:
    return block_reason(url, patterns) is not None


def is_blocked_page(
    current_url: str | None,
    response_url: str | None = None,
    patterns: Sequence[str] = DEFAULT_BLOCK_PATTERNS,
) -> bool:
    """Check the page URL and, when known, the URL of the navigation response."""
    return is_blocked_url(current_url, patterns) or is_blocked_url(response_url, patterns)
