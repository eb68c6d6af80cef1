"""
Message wire format for entities.

Replies carry entities as camelCase dicts, and later requests send those
same dicts back (``getStatements`` takes an account, ``downloadStatement`` a
statement).
"""

from typing import Any, Dict

from bankstatements.exceptions import MalformedResponseError

from .entities import Account, AccountType, Profile, Statement


def profile_to_dict(profile: Profile) -> Dict[str, Any]:
  return {
    "sessionId": profile.session_id,
    "profileId": profile.profile_id,
    "profileName": profile.profile_name,
  }


def account_to_dict(account: Account) -> Dict[str, Any]:
  return {
    "profile": profile_to_dict(account.profile),
    "accountId": account.account_id,
    "accountName": account.account_name,
    "accountMask": account.account_mask,
    "accountType": account.account_type.value,
  }


def statement_to_dict(statement: Statement) -> Dict[str, Any]:
  return {
    "account": account_to_dict(statement.account),
    "statementId": statement.statement_id,
    "statementDate": statement.statement_date,
  }


def _field(data: Any, key: str, where: str) -> Any:
  if not isinstance(data, dict) or key not in data or data[key] is None:
    raise MalformedResponseError(f"{where}.{key}", reason="missing from message")
  return data[key]


def profile_from_dict(data: Any) -> Profile:
  return Profile(
    session_id=str(_field(data, "sessionId", "profile")),
    profile_id=str(_field(data, "profileId", "profile")),
    profile_name=str(_field(data, "profileName", "profile")),
  )


def account_from_dict(data: Any) -> Account:
  raw_type = _field(data, "accountType", "account")
  try:
    account_type = AccountType(raw_type)
  except ValueError:
    raise MalformedResponseError("account.accountType", reason=f"unknown type {raw_type!r}")
  return Account(
    profile=profile_from_dict(_field(data, "profile", "account")),
    account_id=str(_field(data, "accountId", "account")),
    account_name=str(data.get("accountName") or ""),
    account_mask=str(data.get("accountMask") or ""),
    account_type=account_type,
  )


def statement_from_dict(data: Any) -> Statement:
  return Statement(
    account=account_from_dict(_field(data, "account", "statement")),
    statement_id=str(_field(data, "statementId", "statement")),
    statement_date=str(_field(data, "statementDate", "statement")),
  )
