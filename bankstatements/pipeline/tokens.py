"""
Multi-step token chaining.

A few endpoints refuse requests that do not carry a token scraped from a
separate page first (typically a CSRF value). A ``TokenStep`` names that
pre-step: fetch the markup, extract the token, decode it, then attach it to
the real request as a header or query parameter.
"""

import re
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, Optional, Pattern, Union

from bankstatements.logger import pipeline_logger

from .extractors import extract_token

_UNICODE_ESCAPE = re.compile(r"\\u([0-9a-fA-F]{4})")


def unescape_unicode(value: str) -> str:
  r"""Decode ``\uXXXX`` escapes left in values scraped from inline JSON."""
  return _UNICODE_ESCAPE.sub(lambda m: chr(int(m.group(1), 16)), value)


@dataclass
class TokenStep:
  """
  Args:
      name: Token name, used in errors and as the default header/param key
      fetch_page: Returns the markup holding the token
      pattern: Regex whose first group captures the raw token
      decode: Post-processing applied to the raw token
      attach_as: ``"header"`` or ``"param"``
      key: Header or parameter name, defaults to ``name``
  """

  name: str
  fetch_page: Callable[[], Awaitable[str]]
  pattern: Union[str, Pattern[str]]
  decode: Optional[Callable[[str], str]] = unescape_unicode
  attach_as: str = "header"
  key: Optional[str] = None
  value: Optional[str] = field(default=None, init=False)

  def __post_init__(self):
    if self.attach_as not in ("header", "param"):
      raise ValueError(f"attach_as must be 'header' or 'param', got {self.attach_as!r}")

  async def obtain(self) -> str:
    """
    Run the pre-step and remember the token.

    Raises:
        MalformedResponseError: the token is not present in the page
    """
    html = await self.fetch_page()
    raw = extract_token(html, self.pattern, self.name)
    self.value = self.decode(raw) if self.decode else raw
    pipeline_logger.debug(f"Obtained {self.name} token")
    return self.value

  def apply(self, headers: Dict[str, str], params: Optional[Dict[str, Any]] = None) -> None:
    """Attach the obtained token to outgoing request headers or params."""
    if self.value is None:
      raise RuntimeError(f"Token {self.name} has not been obtained")
    target_key = self.key or self.name
    if self.attach_as == "header":
      headers[target_key] = self.value
    else:
      if params is None:
        raise ValueError(f"Token {self.name} attaches as a param but no params were given")
      params[target_key] = self.value

  async def run(self, headers: Dict[str, str], params: Optional[Dict[str, Any]] = None) -> str:
    token = await self.obtain()
    self.apply(headers, params)
    return token
