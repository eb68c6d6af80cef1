"""
Date normalization.

Institutions report statement dates in at least seven shapes. Everything the
pipeline sorts or compares goes through ``to_iso_date`` first.
"""

import re
from datetime import date, datetime, timezone
from typing import Union

from dateutil import parser as date_parser

from bankstatements.exceptions import MalformedResponseError

_ISO_DATE = re.compile(r"^(\d{4})-(\d{2})-(\d{2})$")
_ISO_DATETIME = re.compile(r"^(\d{4})-(\d{2})-(\d{2})[T ]\d{2}:\d{2}")
_US_DATE = re.compile(r"^(\d{1,2})/(\d{1,2})/(\d{4})$")
_COMPACT_DATE = re.compile(r"^(\d{4})(\d{2})(\d{2})$")
_MONTH_YEAR = re.compile(r"^(\d{2})(\d{4})$")
_EPOCH_MILLIS = re.compile(r"^\d{11,14}$")

_PARSE_DEFAULT = datetime(2000, 1, 1)

DateLike = Union[str, int, float, date, datetime]


def _build(year: int, month: int, day: int, raw: object, field: str) -> str:
  try:
    return date(year, month, day).isoformat()
  except ValueError as e:
    raise MalformedResponseError(field, reason=f"invalid date {raw!r}: {e}")


def to_iso_date(value: DateLike, field: str = "statement_date") -> str:
  """
  Normalize a date to ``YYYY-MM-DD``.

  Accepted inputs:
      - ``YYYY-MM-DD``
      - ISO datetimes with or without offset; the calendar date as written
        is kept, no timezone conversion
      - ``MM/DD/YYYY``
      - ``YYYYMMDD``
      - ``MMYYYY`` (first day of that month)
      - English month names ("October 1, 2025", "1 October 2025"); a
        month without a day ("October 2025") is the first of that month
      - epoch milliseconds, as int or digit string
      - ``date`` / ``datetime`` objects

  Raises:
      MalformedResponseError: value is empty or unparseable
  """
  if isinstance(value, datetime):
    return value.date().isoformat()
  if isinstance(value, date):
    return value.isoformat()
  if isinstance(value, bool):
    raise MalformedResponseError(field, reason=f"unparseable date {value!r}")
  if isinstance(value, (int, float)):
    try:
      return datetime.fromtimestamp(value / 1000, tz=timezone.utc).date().isoformat()
    except (OverflowError, OSError, ValueError) as e:
      raise MalformedResponseError(field, reason=f"invalid epoch {value!r}: {e}")

  raw = (value or "").strip() if isinstance(value, str) else ""
  if not raw:
    raise MalformedResponseError(field, reason="empty date")

  for pattern in (_ISO_DATE, _ISO_DATETIME):
    match = pattern.match(raw)
    if match:
      year, month, day = (int(g) for g in match.groups())
      return _build(year, month, day, raw, field)

  match = _US_DATE.match(raw)
  if match:
    month, day, year = (int(g) for g in match.groups())
    return _build(year, month, day, raw, field)

  match = _COMPACT_DATE.match(raw)
  if match:
    year, month, day = (int(g) for g in match.groups())
    return _build(year, month, day, raw, field)

  match = _MONTH_YEAR.match(raw)
  if match:
    month, year = int(match.group(1)), int(match.group(2))
    return _build(year, month, 1, raw, field)

  if _EPOCH_MILLIS.match(raw):
    return to_iso_date(int(raw), field)

  # Locale strings need a month name; bare numbers are never guessed at.
  # A missing day falls back to the 1st, never to today
  if re.search(r"[A-Za-z]{3,}", raw):
    try:
      return date_parser.parse(raw, default=_PARSE_DEFAULT, fuzzy=False).date().isoformat()
    except (ValueError, OverflowError) as e:
      raise MalformedResponseError(field, reason=f"unparseable date {raw!r}: {e}")

  raise MalformedResponseError(field, reason=f"unparseable date {raw!r}")
