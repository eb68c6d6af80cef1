"""
Windowed statement pagination.

Several backends only answer "statements for period P". The adapter picks a
lookback policy, which yields a bounded list of periods, and
``paginate_windows`` issues one request per period. A period that fails is
logged and skipped; the listing carries on with the rest.
"""

import calendar
from dataclasses import dataclass, field
from datetime import date
from typing import Awaitable, Callable, Generic, Iterable, List, Optional, TypeVar

from dateutil.relativedelta import relativedelta

from bankstatements.exceptions import BankStatementsError
from bankstatements.logger import log_error, pipeline_logger

T = TypeVar("T")


@dataclass(frozen=True)
class Period:
  start: date
  end: date
  label: str

  @property
  def month_key(self) -> str:
    """``YYYY-MM`` of the period start."""
    return self.start.strftime("%Y-%m")


def month_period(year: int, month: int) -> Period:
  last_day = calendar.monthrange(year, month)[1]
  return Period(
    start=date(year, month, 1),
    end=date(year, month, last_day),
    label=f"{year:04d}-{month:02d}",
  )


def trailing_months(
  count: int, skip_current: bool = True, today: Optional[date] = None
) -> List[Period]:
  """
  The last ``count`` calendar months, newest first.

  With ``skip_current`` the month containing ``today`` is excluded because
  its statement has not been issued yet.
  """
  today = today or date.today()
  anchor = today.replace(day=1)
  offset = 1 if skip_current else 0
  periods = []
  for i in range(offset, offset + count):
    first = anchor - relativedelta(months=i)
    periods.append(month_period(first.year, first.month))
  return periods


def trailing_years(count: int, today: Optional[date] = None) -> List[Period]:
  """The current calendar year and the ``count - 1`` before it, newest first."""
  today = today or date.today()
  return [
    Period(start=date(year, 1, 1), end=date(year, 12, 31), label=str(year))
    for year in range(today.year, today.year - count, -1)
  ]


def lookback_window(years: int, today: Optional[date] = None) -> Period:
  """One period spanning the last ``years`` years up to ``today``."""
  today = today or date.today()
  return Period(
    start=today - relativedelta(years=years),
    end=today,
    label=f"last-{years}-years",
  )


def bounded(periods: Iterable[Period], not_before: Optional[date]) -> List[Period]:
  """
  Apply a lower bound to a lookback policy.

  Periods ending before ``not_before`` are dropped and a period straddling it
  is clipped, so whichever of the two limits is tighter wins.
  """
  if not_before is None:
    return list(periods)
  result = []
  for period in periods:
    if period.end < not_before:
      continue
    if period.start < not_before:
      period = Period(start=not_before, end=period.end, label=period.label)
    result.append(period)
  return result


def months_since(
  opening_date: Optional[date],
  limit: int,
  skip_current: bool = True,
  today: Optional[date] = None,
) -> List[Period]:
  """Trailing months capped at ``limit`` and at the account opening date."""
  return bounded(trailing_months(limit, skip_current, today), opening_date)


@dataclass
class WindowResult(Generic[T]):
  items: List[T] = field(default_factory=list)
  failed_periods: List[Period] = field(default_factory=list)

  @property
  def complete(self) -> bool:
    return not self.failed_periods


async def paginate_windows(
  periods: Iterable[Period],
  fetch_period: Callable[[Period], Awaitable[List[T]]],
  bank_id: Optional[str] = None,
) -> WindowResult[T]:
  """
  Fetch every period in order and accumulate the results.

  Any typed failure for a single period (transport error, non-2xx, bad
  payload) is logged and recorded in ``failed_periods``. Programming errors
  are not caught.
  """
  result: WindowResult[T] = WindowResult()
  for period in periods:
    try:
      items = await fetch_period(period)
    except BankStatementsError as e:
      log_error(
        pipeline_logger,
        e,
        component="pipeline",
        action="fetch_period",
        error_category="partial_failure",
        bank_id=bank_id,
        metadata={"period": period.label, "error_code": e.error_code},
      )
      result.failed_periods.append(period)
      continue
    result.items.extend(items)

  if result.failed_periods:
    labels = ", ".join(p.label for p in result.failed_periods)
    pipeline_logger.warning(
      f"Skipped {len(result.failed_periods)} failed period(s): {labels}",
      extra={"component": "pipeline", "action": "paginate_windows", "bank_id": bank_id},
    )
  return result
