from .extractors import (
  dig,
  extract_json_assignment,
  extract_next_data,
  extract_token,
  parse_json,
  strip_xssi,
)
from .polling import Poller, PollState
from .tokens import TokenStep, unescape_unicode
from .windowing import (
  Period,
  WindowResult,
  bounded,
  lookback_window,
  month_period,
  months_since,
  paginate_windows,
  trailing_months,
  trailing_years,
)
from .workflow import DocumentWorkflow

__all__ = [
  "DocumentWorkflow",
  "Period",
  "PollState",
  "Poller",
  "TokenStep",
  "WindowResult",
  "bounded",
  "dig",
  "extract_json_assignment",
  "extract_next_data",
  "extract_token",
  "lookback_window",
  "month_period",
  "months_since",
  "paginate_windows",
  "parse_json",
  "strip_xssi",
  "trailing_months",
  "trailing_years",
  "unescape_unicode",
]
