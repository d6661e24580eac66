"""Shared utilities for tools module.

This module contains shared constants and utility functions
used by multiple tools to avoid code duplication.
"""

import ssl
from dataclasses import dataclass

import certifi

# Browser-like User-Agent to avoid being blocked by some servers
USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
    "AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/120.0.0.0 Safari/537.36"
)


def create_ssl_context(verify: bool = True) -> ssl.SSLContext:
    """Create SSL context with optional certificate verification.

    Args:
        verify: If True, verify SSL certificates using certifi bundle.
                If False, disable verification (for problematic servers).

    Returns:
        Configured SSL context
    """
    if verify:
        return ssl.create_default_context(cafile=certifi.where())
    ctx = ssl.create_default_context()
    ctx.check_hostname = False
    ctx.verify_mode = ssl.CERT_NONE
    return ctx


@dataclass(frozen=True)
class RetryPolicy:
    """Bounded retry schedule.

    Attempt ``n`` (1-based) that fails is followed by a pause of
    ``delay * backoff ** (n - 1)`` seconds, capped at ``max_delay``.
    No pause follows the final attempt.

    Example:
        >>> policy = RetryPolicy(max_attempts=3, delay=2.0)
        >>> policy.schedule()
        [2.0, 2.0]
    """

    max_attempts: int = 3
    delay: float = 0.0
    backoff: float = 1.0
    max_delay: float | None = None

    def __post_init__(self):
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.delay < 0 or self.backoff < 1:
            raise ValueError("delay must be >= 0 and backoff >= 1")

    def delay_after(self, attempt: int) -> float:
        """Pause in seconds after failed attempt ``attempt`` (1-based)."""
        pause = self.delay * (self.backoff ** (attempt - 1))
        if self.max_delay is not None:
            pause = min(pause, self.max_delay)
        return pause

    def schedule(self) -> list[float]:
        """All pauses between attempts, in order."""
        return [self.delay_after(n) for n in range(1, self.max_attempts)]
