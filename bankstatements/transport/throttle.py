"""
Async request throttle for institution endpoints.

Bank web backends sit behind bot detection that reacts to request bursts.
Requests are spaced proactively with a token-bucket style limiter instead of
reacting to 429s after the fact.
"""

import asyncio
import time
from collections import deque
from dataclasses import dataclass, field


@dataclass
class ThrottleStats:
  """Statistics from request monitoring."""

  requests_per_second: float
  total_requests: int
  total_bytes: int


class AsyncRateLimiter:
  """
  Token-bucket style async rate limiter.

  Usage:
      limiter = AsyncRateLimiter(rate=5.0)

      async with limiter:
          await transport.fetch(request)
  """

  def __init__(self, rate: float = 5.0, interval: float = 1.0):
    """
    Args:
        rate: Maximum requests per interval (default: 5.0)
        interval: Time window in seconds (default: 1.0)
    """
    if rate <= 0:
      raise ValueError("rate must be positive")
    self.rate = rate
    self.interval = interval
    self.last_request = 0.0
    self._lock = asyncio.Lock()

  async def acquire(self) -> None:
    """Wait until the next request slot is available."""
    async with self._lock:
      token_time = self.interval / self.rate
      now = time.monotonic()
      wait_time = max(0.0, self.last_request + token_time - now)
      if wait_time > 0:
        await asyncio.sleep(wait_time)
      self.last_request = time.monotonic()

  async def __aenter__(self):
    await self.acquire()
    return self

  async def __aexit__(self, *args):
    pass


@dataclass
class RequestMonitor:
  """Sliding-window request counter."""

  window_size: float = 10.0
  _requests: deque = field(default_factory=deque)
  _total_requests: int = 0
  _total_bytes: int = 0

  def record(self, bytes_transferred: int = 0) -> None:
    now = time.monotonic()
    self._requests.append(now)
    self._total_requests += 1
    self._total_bytes += bytes_transferred

    while self._requests and now - self._requests[0] > self.window_size:
      self._requests.popleft()

  def get_stats(self) -> ThrottleStats:
    now = time.monotonic()
    window = [t for t in self._requests if now - t <= self.window_size]
    elapsed = now - window[0] if len(window) >= 2 else 0.0

    rate = round(len(window) / elapsed, 2) if elapsed > 0 else 0.0
    return ThrottleStats(
      requests_per_second=rate,
      total_requests=self._total_requests,
      total_bytes=self._total_bytes,
    )
