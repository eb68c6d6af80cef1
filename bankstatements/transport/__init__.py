from .aiohttp_transport import AiohttpTransport
from .base import FetchRequest, FetchResponse, Transport
from .bridge import BridgeTransport, build_fetch_message, parse_fetch_reply
from .throttle import AsyncRateLimiter, RequestMonitor, ThrottleStats

__all__ = [
  "AiohttpTransport",
  "AsyncRateLimiter",
  "BridgeTransport",
  "FetchRequest",
  "FetchResponse",
  "RequestMonitor",
  "ThrottleStats",
  "Transport",
  "build_fetch_message",
  "parse_fetch_reply",
]
