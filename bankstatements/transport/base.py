"""
Transport abstraction.

Adapters describe a request as a ``FetchRequest`` and get a fully buffered
``FetchResponse`` back. Whether the bytes travelled over aiohttp or through
the privileged fetch bridge is invisible to them.
"""

import json
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, Optional
from urllib.parse import urlencode


@dataclass
class FetchRequest:
  url: str
  method: str = "GET"
  headers: Dict[str, str] = field(default_factory=dict)
  params: Optional[Dict[str, Any]] = None
  body: Optional[bytes | str] = None

  @property
  def full_url(self) -> str:
    """URL with ``params`` appended as a query string."""
    if not self.params:
      return self.url
    separator = "&" if "?" in self.url else "?"
    return f"{self.url}{separator}{urlencode(self.params)}"

  @classmethod
  def json_post(cls, url: str, payload: Any, headers: Optional[Dict[str, str]] = None, **kwargs) -> "FetchRequest":
    merged = {"content-type": "application/json"}
    merged.update(headers or {})
    return cls(url=url, method="POST", headers=merged, body=json.dumps(payload), **kwargs)


@dataclass
class FetchResponse:
  """A fully read HTTP response."""

  status: int
  status_text: str = ""
  headers: Dict[str, str] = field(default_factory=dict)
  body: bytes = b""
  url: str = ""

  def __post_init__(self):
    self.headers = {k.lower(): v for k, v in self.headers.items()}

  @property
  def ok(self) -> bool:
    return 200 <= self.status < 300

  def header(self, name: str, default: str = "") -> str:
    return self.headers.get(name.lower(), default)

  @property
  def content_type(self) -> str:
    """Media type without parameters, lower-cased."""
    return self.header("content-type").split(";", 1)[0].strip().lower()

  def text(self) -> str:
    return self.body.decode("utf-8", errors="replace")

  def json(self) -> Any:
    """Parse the body as JSON; raises ``ValueError`` on invalid payloads."""
    return json.loads(self.text())


class Transport(ABC):
  """Anything that can perform a ``FetchRequest``."""

  @abstractmethod
  async def fetch(self, request: FetchRequest) -> FetchResponse:
    """
    Perform the request and buffer the whole response.

    Non-2xx statuses are returned, not raised. Connection failures raise
    ``BankRequestError``.
    """

  async def close(self) -> None:
    return None

  async def __aenter__(self):
    return self

  async def __aexit__(self, *args):
    await self.close()
