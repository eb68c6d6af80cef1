"""
Page data extractors.

All scraping of embedded data out of HTML lives here. Adapters get plain
Python structures back, or a ``MalformedResponseError`` naming what was
missing.
"""

import json
import re
from typing import Any, Pattern, Union

from bankstatements.config.constants import XSSI_PREFIXES
from bankstatements.exceptions import MalformedResponseError

NEXT_DATA_PATTERN = re.compile(
  r'<script id="__NEXT_DATA__" type="application/json"[^>]*>(.+?)</script>',
  re.DOTALL,
)


def strip_xssi(text: str) -> str:
  """Remove a JSON-hijacking guard such as ``)]}',`` from the start of a body."""
  stripped = text.lstrip()
  for prefix in XSSI_PREFIXES:
    if stripped.startswith(prefix):
      return stripped[len(prefix) :].lstrip()
  return text


def parse_json(text: str, field: str = "body") -> Any:
  try:
    return json.loads(strip_xssi(text))
  except ValueError as e:
    raise MalformedResponseError(field, reason=f"invalid JSON: {e}")


def extract_json_assignment(html: str, pattern: Union[str, Pattern[str]], field: str = "page data") -> Any:
  """Parse the JSON captured by the first group of ``pattern``."""
  regex = re.compile(pattern, re.DOTALL) if isinstance(pattern, str) else pattern
  match = regex.search(html or "")
  if not match:
    raise MalformedResponseError(field, reason="not found in page")
  return parse_json(match.group(1), field)


def extract_next_data(html: str) -> dict:
  """The ``__NEXT_DATA__`` payload of a Next.js page."""
  data = extract_json_assignment(html, NEXT_DATA_PATTERN, "__NEXT_DATA__")
  if not isinstance(data, dict):
    raise MalformedResponseError("__NEXT_DATA__", reason="not an object")
  return data


def extract_token(html: str, pattern: Union[str, Pattern[str]], name: str) -> str:
  """First capture group of ``pattern``; raises when absent or empty."""
  regex = re.compile(pattern) if isinstance(pattern, str) else pattern
  match = regex.search(html or "")
  if not match or not match.group(1):
    raise MalformedResponseError(name, reason="token not found in page")
  return match.group(1)


def dig(data: Any, path: str, default: Any = None) -> Any:
  """
  Walk a dotted path through nested dicts.

  >>> dig({"props": {"pageProps": {"id": 7}}}, "props.pageProps.id")
  7
  """
  current = data
  for part in path.split("."):
    if not isinstance(current, dict) or part not in current:
      return default
    current = current[part]
  return current
