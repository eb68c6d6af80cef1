"""
Tangerine adapter.

The documents endpoint first returns the months that have statements, then
answers one month per request with every statement of every account. The
listing filters by statement type to the requested account and stores the
type and file name in the statement id, which the download URL needs.
"""

from typing import Dict, List, Optional, Tuple

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
)
from bankstatements.normalize import map_account_type, mask_account_number, to_iso_date
from bankstatements.pipeline import Period, month_period, paginate_windows
from bankstatements.session import CookieResolver
from bankstatements.transport import FetchRequest

from .base import ACCOUNTS, DOWNLOAD, PROFILE, STATEMENTS, BankAdapter

TANGERINE_CONFIG = InstitutionsConfig.TANGERINE_CONFIG
BASE_URL = TANGERINE_CONFIG["base_url"]

ACCOUNT_TYPES = {
  "CHEQUING": AccountType.CHECKING,
  "SAVINGS": AccountType.SAVINGS,
  "RSP_SAVINGS": AccountType.SAVINGS,
  "TFSA_SAVINGS": AccountType.SAVINGS,
  "RIF_SAVINGS": AccountType.SAVINGS,
  "GIC": AccountType.SAVINGS,
  "CREDIT_CARD": AccountType.CREDIT_CARD,
  "LINE_OF_CREDIT": AccountType.LOAN,
  "MORTGAGE": AccountType.LOAN,
}

# Statement types published for each account category
STATEMENT_TYPES: Dict[AccountType, Tuple[str, ...]] = {
  AccountType.CHECKING: ("CHQ",),
  AccountType.SAVINGS: ("BSTMT",),
  AccountType.CREDIT_CARD: ("VISA",),
  AccountType.LOAN: ("LOC", "MTG"),
  AccountType.INVESTMENT: ("BSTMT",),
}


class TangerineStatementRef(CompositeRef):
  statement_id: str
  statement_type: str
  file_name: str = "statement.pdf"


def _month_from_key(key: str) -> Optional[Period]:
  try:
    year, month = key.split("-")[:2]
    return month_period(int(year), int(month))
  except ValueError:
    return None


class TangerineAdapter(BankAdapter):
  bank_id = "tangerine"
  bank_name = "Tangerine"
  session_resolver = CookieResolver(TANGERINE_CONFIG["session_cookies"])

  def _get(self, path: str, params: Optional[dict] = None, accept: Optional[str] = None, customer: Optional[str] = None) -> FetchRequest:
    headers = {
      "accept": accept or "application/json, text/plain, */*",
      **TANGERINE_CONFIG["headers"],
    }
    if customer:
      headers["x-dynatrace-customer"] = customer
    request = FetchRequest(f"{BASE_URL}{path}", headers=headers, params=params)
    # Service tag is the path plus query string, as sent
    request.headers["x-dynatrace-service"] = request.full_url[len(BASE_URL):]
    return request

  async def get_profile(self, session_id: str) -> Profile:
    data = await self._get_json(self._get(TANGERINE_CONFIG["profile_path"]), PROFILE)
    customer = data.get("customer") if isinstance(data, dict) else None
    if not isinstance(customer, dict):
      raise MalformedResponseError("customer")
    client_number = customer.get("client_number")
    if not client_number:
      raise MalformedResponseError("customer.client_number")

    first, last = customer.get("first_name"), customer.get("last_name")
    full_name = None
    if first or last:
      full_name = " ".join(p for p in (customer.get("title"), first, last) if p)
    return Profile(
      session_id=session_id,
      profile_id=str(client_number),
      profile_name=self._profile_name(full_name, first, last, str(client_number)),
    )

  async def get_accounts(self, profile: Profile) -> List[Account]:
    data = await self._get_json(self._get(TANGERINE_CONFIG["accounts_path"]), ACCOUNTS)
    items = data.get("accounts") if isinstance(data, dict) else None
    if not isinstance(items, list):
      raise MalformedResponseError("accounts")

    accounts = []
    for item in items:
      if not isinstance(item, dict) or not item.get("number"):
        raise MalformedResponseError("accounts.number")
      display_name = item.get("display_name") or ""
      accounts.append(
        Account(
          profile=profile,
          # Encrypted account key; stable across sessions
          account_id=str(item["number"]),
          account_name=item.get("description") or item.get("nickname") or display_name,
          account_mask=mask_account_number(display_name),
          account_type=map_account_type(item.get("type"), ACCOUNT_TYPES, AccountType.SAVINGS),
        )
      )
    return self._dedupe_accounts(accounts)

  async def _statement_months(self, account: Account) -> List[Period]:
    data = await self._get_json(
      self._get(TANGERINE_CONFIG["statements_path"], customer=account.profile.profile_id),
      STATEMENTS,
    )
    months = data.get("months") if isinstance(data, dict) else None
    if not isinstance(months, list):
      raise MalformedResponseError("months")

    periods = []
    for entry in months[: self.settings.trailing_months]:
      key = entry.get("month") if isinstance(entry, dict) else None
      period = _month_from_key(key or "")
      if period is None:
        raise MalformedResponseError("months.month", reason=f"unexpected month {key!r}")
      periods.append(period)
    return periods

  async def get_statements(self, account: Account) -> List[Statement]:
    wanted = STATEMENT_TYPES[account.account_type]
    periods = await self._statement_months(account)

    async def fetch_month(period: Period) -> List[Statement]:
      data = await self._get_json(
        self._get(
          TANGERINE_CONFIG["statements_path"],
          params={
            "need-statement-months": "false",
            "start-month": period.month_key,
            "end-month": period.month_key,
          },
          customer=account.profile.profile_id,
        ),
        STATEMENTS,
      )
      items = data.get("statements") if isinstance(data, dict) else None
      statements = []
      for item in items or []:
        if not isinstance(item, dict) or item.get("statement_type") not in wanted:
          continue
        ref = TangerineStatementRef(
          statement_id=str(item.get("statement_id") or ""),
          statement_type=item["statement_type"],
          file_name=item.get("statement_filename") or "statement.pdf",
        )
        if not ref.statement_id:
          raise MalformedResponseError("statements.statement_id")
        statements.append(
          Statement(
            account=account,
            statement_id=encode_ref(ref),
            statement_date=to_iso_date(item.get("end_date") or ""),
          )
        )
      return statements

    result = await paginate_windows(periods, fetch_month, bank_id=self.bank_id)
    return self._sorted_statements(result.items)

  async def download_statement(self, statement: Statement) -> Document:
    ref = decode_ref(TangerineStatementRef, statement.statement_id)
    path = TANGERINE_CONFIG["download_path"].format(statement_id=ref.statement_id)
    response = await self._request(
      self._get(
        path,
        params={
          "statement-type": ref.statement_type,
          "file-name": ref.file_name,
          "language": "EN",
        },
        accept="application/pdf",
      ),
      DOWNLOAD,
    )
    return self._validated_document(response)