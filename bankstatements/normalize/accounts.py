"""Account and statement list normalization."""

import re
from typing import Iterable, List, Mapping, Optional

from bankstatements.models import Account, AccountType, Statement

_MASK_STRIP = re.compile(r"[^0-9A-Za-z]")


def mask_account_number(raw: Optional[str], digits: int = 4) -> str:
  """Last ``digits`` characters of an account number with punctuation, bullets and spaces removed."""
  if not raw:
    return ""
  cleaned = _MASK_STRIP.sub("", str(raw))
  return cleaned[-digits:] if digits > 0 else cleaned


def map_account_type(
  raw: Optional[str],
  mapping: Mapping[str, AccountType],
  default: AccountType,
) -> AccountType:
  """
  Map an institution sub-type onto ``AccountType``.

  Lookup is case-insensitive. Unknown and missing values map to ``default``
  so the mapping is total.
  """
  if raw is None:
    return default
  key = str(raw).strip().upper()
  for name, account_type in mapping.items():
    if name.upper() == key:
      return account_type
  return default


def dedupe_accounts(accounts: Iterable[Account]) -> List[Account]:
  """Drop repeated ``account_id`` values, keeping first-seen order."""
  seen = set()
  unique = []
  for account in accounts:
    if account.account_id in seen:
      continue
    seen.add(account.account_id)
    unique.append(account)
  return unique


def sort_statements(statements: Iterable[Statement]) -> List[Statement]:
  """Newest first; equal dates keep their original relative order."""
  return sorted(statements, key=lambda s: s.statement_date, reverse=True)
