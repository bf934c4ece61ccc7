"""Moving-window rate limiting for outbound API calls."""

import asyncio
import time

from limits import parse
from limits.storage import MemoryStorage
from limits.strategies import MovingWindowRateLimiter

from evotor_ai.utils.logging import get_logger

logger = get_logger(__name__)


class RateLimiter:
    """Async request throttle built on the limits library."""

    def __init__(self, requests_per_minute: int = 60, name: str = "api", max_wait: float = 60.0):
        """Initialize rate limiter.

        Args:
            requests_per_minute: Maximum requests per minute for one identifier
            name: Prefix for identifiers, used in log messages
            max_wait: Upper bound for a single wait, in seconds
        """
        self.storage = MemoryStorage()
        self.limiter = MovingWindowRateLimiter(self.storage)
        self.request_limit = parse(f"{requests_per_minute}/minute")
        self.name = name
        self.max_wait = max_wait

    async def acquire(self, identifier: str = "default") -> None:
        """Wait until a request for ``identifier`` fits into the window."""
        key = f"{self.name}:{identifier}"
        while not self.limiter.hit(self.request_limit, key):
            window_stats = self.limiter.get_window_stats(self.request_limit, key)
            wait_time = min(self.max_wait, max(0.1, window_stats.reset_time - time.time()))
            logger.warning(f"Rate limit for {key} exceeded, waiting {wait_time:.2f}s")
            await asyncio.sleep(wait_time)
