"""
MBNA Canada adapter.

The statement history endpoint answers one calendar year at a time, so the
listing walks the trailing years and keeps going when a year has nothing (the
backend answers 404 for years before the card was opened).
"""

from typing import List

from bankstatements.config import InstitutionsConfig
from bankstatements.exceptions import MalformedResponseError
from bankstatements.models import Account, AccountType, Document, Profile, Statement
from bankstatements.normalize import mask_account_number, to_iso_date
from bankstatements.pipeline import Period, paginate_windows, trailing_years
from bankstatements.session import CookieResolver
from bankstatements.transport import FetchRequest

from .base import ACCOUNTS, DOWNLOAD, PROFILE, STATEMENTS, BankAdapter

MBNA_CONFIG = InstitutionsConfig.MBNA_CA_CONFIG
BASE_URL = MBNA_CONFIG["base_url"]

JSON_HEADERS = {"Accept": "application/json, text/plain, */*"}


class MbnaCaAdapter(BankAdapter):
  bank_id = "mbna_ca"
  bank_name = "MBNA Canada"
  session_resolver = CookieResolver(MBNA_CONFIG["session_cookies"])

  async def get_profile(self, session_id: str) -> Profile:
    data = await self._get_json(
      FetchRequest(f"{BASE_URL}{MBNA_CONFIG['profile_path']}", headers=JSON_HEADERS),
      PROFILE,
    )
    name = data.get("customerName") if isinstance(data, dict) else None
    if not isinstance(name, dict):
      raise MalformedResponseError("customerName")

    first, last = name.get("firstname"), name.get("lastname")
    if not first and not last:
      raise MalformedResponseError("customerName.firstname")

    profile_id = "_".join(p for p in (first, last) if p)
    return Profile(
      session_id=session_id,
      profile_id=profile_id,
      profile_name=self._profile_name(None, first, last, profile_id),
    )

  async def get_accounts(self, profile: Profile) -> List[Account]:
    data = await self._get_json(
      FetchRequest(f"{BASE_URL}{MBNA_CONFIG['accounts_path']}", headers=JSON_HEADERS),
      ACCOUNTS,
    )
    if not isinstance(data, list):
      raise MalformedResponseError("accounts", reason="summary is not a list")

    accounts = []
    for item in data:
      if not isinstance(item, dict) or not item.get("accountId"):
        raise MalformedResponseError("accountId")
      ending_in = str(item.get("endingIn") or "")
      accounts.append(
        Account(
          profile=profile,
          account_id=str(item["accountId"]),
          account_name=item.get("cardName") or f"MBNA {ending_in}".strip(),
          account_mask=mask_account_number(ending_in),
          account_type=AccountType.CREDIT_CARD,
        )
      )
    return self._dedupe_accounts(accounts)

  async def get_statements(self, account: Account) -> List[Statement]:
    async def fetch_year(period: Period) -> List[Statement]:
      path = MBNA_CONFIG["statements_path"].format(
        account_id=account.account_id, year=period.label
      )
      data = await self._get_json(
        FetchRequest(f"{BASE_URL}{path}", headers=JSON_HEADERS), STATEMENTS
      )
      items = data.get("StatementItem") if isinstance(data, dict) else None
      if not isinstance(items, list):
        return []
      statements = []
      for item in items:
        closing = item.get("closingDateFmted") if isinstance(item, dict) else None
        if not closing:
          raise MalformedResponseError("StatementItem.closingDateFmted")
        statements.append(
          Statement(
            account=account,
            # The download URL takes the closing date exactly as listed
            statement_id=str(closing),
            statement_date=to_iso_date(closing),
          )
        )
      return statements

    result = await paginate_windows(
      trailing_years(self.settings.trailing_years), fetch_year, bank_id=self.bank_id
    )
    return self._sorted_statements(result.items)

  async def download_statement(self, statement: Statement) -> Document:
    path = MBNA_CONFIG["download_path"].format(
      account_id=statement.account.account_id, date=statement.statement_id
    )
    response = await self._request(
      FetchRequest(
        f"{BASE_URL}{path}",
        headers={"Accept": "application/pdf, */*"},
        params={
          "format": "PDF",
          "contentDisposition": "attachment",
          "folder": "",
          "insertDocId": "",
        },
      ),
      DOWNLOAD,
    )
    return self._validated_document(response)
