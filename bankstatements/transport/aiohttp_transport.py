"""
aiohttp transport.

Performs requests directly against institution endpoints, sending the cookies
from the injected credential store on every request. The cookie header is
rendered per request so an active ``scoped_cookie`` block is honoured.
"""

import asyncio

import aiohttp

from bankstatements.config import env
from bankstatements.exceptions import BankRequestError
from bankstatements.logger import logger
from bankstatements.session.credentials import CredentialStore

from .base import FetchRequest, FetchResponse, Transport
from .throttle import AsyncRateLimiter, RequestMonitor, ThrottleStats


class AiohttpTransport(Transport):
  """
  Async transport backed by ``aiohttp.ClientSession``.

  Example:
      async with AiohttpTransport(credentials) as transport:
          response = await transport.fetch(FetchRequest(url))
  """

  def __init__(
    self,
    credentials: CredentialStore | None = None,
    requests_per_second: float | None = None,
    timeout_seconds: int | None = None,
  ):
    self.credentials = credentials
    self.limiter = AsyncRateLimiter(
      rate=requests_per_second or env.REQUESTS_PER_SECOND
    )
    self.monitor = RequestMonitor()
    self.timeout = aiohttp.ClientTimeout(
      total=timeout_seconds or env.HTTP_TIMEOUT_SECONDS
    )
    self._session: aiohttp.ClientSession | None = None

  async def __aenter__(self):
    self._session = aiohttp.ClientSession(timeout=self.timeout)
    return self

  @property
  def stats(self) -> ThrottleStats:
    """Request rate and volume seen by this transport."""
    return self.monitor.get_stats()

  async def close(self) -> None:
    if self._session:
      await self._session.close()
      self._session = None
      stats = self.stats
      logger.debug(
        f"Transport closed after {stats.total_requests} requests "
        f"({stats.total_bytes} bytes, {stats.requests_per_second} req/s)"
      )

  def _headers(self, request: FetchRequest) -> dict[str, str]:
    headers = dict(request.headers)
    if self.credentials is not None and not any(
      k.lower() == "cookie" for k in headers
    ):
      cookie_header = self.credentials.cookie_header()
      if cookie_header:
        headers["Cookie"] = cookie_header
    return headers

  async def fetch(self, request: FetchRequest) -> FetchResponse:
    if not self._session:
      raise RuntimeError(
        "Transport not initialized. Use 'async with AiohttpTransport():'"
      )

    url = request.full_url
    body = request.body.encode("utf-8") if isinstance(request.body, str) else request.body

    async with self.limiter:
      try:
        async with self._session.request(
          request.method, url, headers=self._headers(request), data=body
        ) as response:
          content = await response.read()
          self.monitor.record(len(content))
          return FetchResponse(
            status=response.status,
            status_text=response.reason or "",
            headers=dict(response.headers),
            body=content,
            url=url,
          )
      except asyncio.TimeoutError:
        logger.warning(f"Request timed out: {request.method} {request.url}")
        raise BankRequestError(
          f"Request timed out after {self.timeout.total}s", url=request.url
        )
      except aiohttp.ClientError as e:
        logger.warning(f"Request failed: {request.method} {request.url}: {e}")
        raise BankRequestError(f"Request failed: {e}", url=request.url)
