"""
TD Direct Investing (WebBroker) adapter.

WebBroker keeps the real session in HttpOnly cookies; the readable
``XSRF-TOKEN`` (or, failing that, ``com.td.last_login``) proves a login is
present. Statements for an account group are listed in one request spanning
the whole retention window, and each PDF is produced by a form-encoded export
call that needs the full document descriptor from the listing.
"""

import json
from datetime import timezone
from typing import Any, Dict, List, Optional
from urllib.parse import quote, urlencode

from dateutil import parser as date_parser
from pydantic import ConfigDict
from pydantic.alias_generators import to_camel

from bankstatements.config import InstitutionsConfig
from bankstatements.exceptions import MalformedResponseError
from bankstatements.models import (
  Account,
  AccountType,
  CompositeRef,
  Document,
  Profile,
  Statement,
  decode_ref,
  encode_ref,
  validate_ref,
)
from bankstatements.normalize import mask_account_number, to_iso_date
from bankstatements.pipeline import lookback_window
from bankstatements.session import CookieResolver
from bankstatements.transport import FetchRequest

from .base import ACCOUNTS, DOWNLOAD, PROFILE, STATEMENTS, BankAdapter

TD_CONFIG = InstitutionsConfig.TD_BROKER_CONFIG
API_BASE = TD_CONFIG["base_url"]

# Lookback for the single statement window
TD_LOOKBACK_YEARS = TD_CONFIG["lookback_years"]

JSON_HEADERS = {"Accept": "application/json"}

DESCRIPTIONS = {
  "DIRECT_TRADE_CAD": "Direct Trading - Canadian Dollar",
  "DIRECT_TRADE_USD": "Direct Trading - US Dollar",
  "TFSA": "Tax-Free Savings Account",
  "RRSP": "Registered Retirement Savings Plan",
  "RRIF": "Registered Retirement Income Fund",
  "RESP": "Registered Education Savings Plan",
  "LIRA": "Locked-In Retirement Account",
  "LIF": "Life Income Fund",
}


class TdDocumentRef(CompositeRef):
  """Document descriptor the export endpoint expects back verbatim."""

  model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

  id: str | int
  stmt_date: str
  document_type: Optional[str] = None
  seq: Optional[str | int] = None
  file_type: Optional[str] = None
  run_date: Optional[str] = None
  states: Optional[Dict[str, Any]] = None
  description_code: Optional[str] = None
  mime_type: Optional[str] = None
  doc_type: Optional[str] = None
  group_number: Optional[str] = None
  rr_code: Optional[str] = None


def to_utc_timestamp(value: Optional[str]) -> Optional[str]:
  """``2025-10-01T00:00:00-0400`` -> ``2025-10-01T04:00:00.000Z``; unparseable values pass through."""
  if not value:
    return value
  try:
    parsed = date_parser.isoparse(value)
  except ValueError:
    return value
  if parsed.tzinfo is None:
    parsed = parsed.replace(tzinfo=timezone.utc)
  parsed = parsed.astimezone(timezone.utc)
  return parsed.strftime("%Y-%m-%dT%H:%M:%S.") + f"{parsed.microsecond // 1000:03d}Z"


def _format_date_param(value) -> str:
  return value.strftime("%Y-%m-%dT00:00:00")


class TdBrokerAdapter(BankAdapter):
  bank_id = "td_broker"
  bank_name = "TD Direct Investing (WebBroker)"
  session_resolver = CookieResolver(TD_CONFIG["session_cookies"])

  async def get_profile(self, session_id: str) -> Profile:
    data = await self._get_json(
      FetchRequest(f"{API_BASE}{TD_CONFIG['profile_path']}", headers=JSON_HEADERS),
      PROFILE,
    )

    # Either the bare payload or {"status": "SUCCESS", "payload": {...}}
    payload = data.get("payload") if isinstance(data, dict) and "payload" in data else data
    if not isinstance(payload, dict) or not payload.get("connectId"):
      raise MalformedResponseError("connectId")

    connect_id = str(payload["connectId"])
    return Profile(
      session_id=session_id,
      profile_id=connect_id,
      profile_name=self._profile_name(payload.get("email"), None, None, connect_id),
    )

  async def get_accounts(self, profile: Profile) -> List[Account]:
    data = await self._get_json(
      FetchRequest(f"{API_BASE}{TD_CONFIG['accounts_path']}", headers=JSON_HEADERS),
      ACCOUNTS,
    )

    groups = data if isinstance(data, list) else (data.get("payload") if isinstance(data, dict) else None)
    if not isinstance(groups, list):
      raise MalformedResponseError("payload", reason="account groups are not a list")

    accounts = []
    for group in groups:
      if not isinstance(group, dict) or not group.get("groupId"):
        raise MalformedResponseError("groupId")
      group_number = str(group.get("groupNumber") or "")
      accounts.append(
        Account(
          profile=profile,
          account_id=str(group["groupId"]),
          account_name=group.get("businessLine") or group_number or str(group["groupId"]),
          account_mask=mask_account_number(group_number),
          account_type=AccountType.INVESTMENT,
        )
      )
    return self._dedupe_accounts(accounts)

  async def get_statements(self, account: Account) -> List[Statement]:
    window = lookback_window(TD_LOOKBACK_YEARS)
    path = TD_CONFIG["statements_path"].format(group_id=quote(account.account_id, safe=""))
    data = await self._get_json(
      FetchRequest(
        f"{API_BASE}{path}",
        headers=JSON_HEADERS,
        params={
          "fromDate": _format_date_param(window.start),
          "toDate": _format_date_param(window.end),
          "AJAXREQUEST": "1",
        },
      ),
      STATEMENTS,
    )

    if not isinstance(data, dict):
      raise MalformedResponseError("documents", reason="statement listing is not an object")
    documents = data.get("documents")
    if documents is None:
      documents = (data.get("payload") or {}).get("documents") or []
    if not isinstance(documents, list):
      raise MalformedResponseError("documents")

    statements = []
    for doc in documents:
      ref = validate_ref(TdDocumentRef, doc)
      statements.append(
        Statement(
          account=account,
          statement_id=encode_ref(ref),
          statement_date=to_iso_date(ref.stmt_date),
        )
      )
    return self._sorted_statements(statements)

  async def download_statement(self, statement: Statement) -> Document:
    ref = decode_ref(TdDocumentRef, statement.statement_id)

    export_request = {"type": "ESERVICES", "fileFormat": "PDF"}
    descriptor = ref.model_dump(by_alias=True)
    descriptor["runDate"] = to_utc_timestamp(ref.run_date)
    descriptor["stmtDate"] = to_utc_timestamp(ref.stmt_date)
    code = ref.description_code or ""
    descriptor["description"] = DESCRIPTIONS.get(code, code)
    export_params = {"documentList": [descriptor]}

    body = urlencode(
      {
        "exportRequest": json.dumps(export_request),
        "exportParams": json.dumps(export_params),
      }
    )
    response = await self._request(
      FetchRequest(
        f"{API_BASE}{TD_CONFIG['export_path']}",
        method="POST",
        headers={
          "Content-Type": "application/x-www-form-urlencoded",
          "Accept": "application/pdf,*/*",
        },
        body=body,
      ),
      DOWNLOAD,
    )
    return self._validated_document(response, require_declared_pdf=True)
