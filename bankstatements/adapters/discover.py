"""
Discover adapter.

Card and bank accounts live on separate subdomains. The portal answers a card
view and a bank view of the customer; a customer with only one kind of
account gets an error from the other, so both are queried and merged. Card
PDFs are served for whichever account the ``dfsedskey`` cookie selects.
"""

import asyncio
import re
from typing import Any, List, Optional, Tuple
from urllib.parse import quote

from bankstatements.config import InstitutionsConfig
from bankstatements.exceptions import AuthError, BankStatementsError, MalformedResponseError
from bankstatements.logger import adapter_logger
from bankstatements.models import Account, AccountType, Document, Profile, Statement
from bankstatements.normalize import map_account_type, to_iso_date
from bankstatements.pipeline import dig, parse_json
from bankstatements.session import CookieResolver, CredentialStore
from bankstatements.transport import FetchRequest

from .base import ACCOUNTS, DOWNLOAD, PROFILE, STATEMENTS, BankAdapter

DISCOVER_CONFIG = InstitutionsConfig.DISCOVER_CONFIG
PORTAL_URL = DISCOVER_CONFIG["portal_url"]
CARD_URL = DISCOVER_CONFIG["card_url"]
BANK_URL = DISCOVER_CONFIG["bank_url"]

JSON_HEADERS = {"Accept": "application/json"}

BANK_ACCOUNT_TYPES = {
  "002": AccountType.CHECKING,
  "checking": AccountType.CHECKING,
  "003": AccountType.SAVINGS,
  "savings": AccountType.SAVINGS,
}

_PDF_DATE = re.compile(r"date=(\d{8})")
_LAST_STATEMENT = re.compile(r"(\d{2})/(\d{2})/(\d{4})")


class DiscoverSessionResolver(CookieResolver):
  """All three login cookies must be present; the customer id is the session."""

  def find(self, store: CredentialStore) -> Optional[str]:
    values = [store.cookie(name) for name in self.names]
    if not all(values):
      return None
    return values[0]


class DiscoverAdapter(BankAdapter):
  bank_id = "discover"
  bank_name = "Discover"
  session_resolver = DiscoverSessionResolver(DISCOVER_CONFIG["session_cookies"])

  async def _portal_info(self, stage: str) -> Tuple[Optional[dict], Optional[dict]]:
    """Card and bank views of the customer; a view that fails is None."""
    results = await asyncio.gather(
      self._get_json(
        FetchRequest(f"{PORTAL_URL}{DISCOVER_CONFIG['card_info_path']}", headers=JSON_HEADERS),
        stage,
        "card info",
      ),
      self._get_json(
        FetchRequest(f"{PORTAL_URL}{DISCOVER_CONFIG['bank_info_path']}", headers=JSON_HEADERS),
        stage,
        "bank info",
      ),
      return_exceptions=True,
    )

    views = []
    errors = []
    for label, result in zip(("card", "bank"), results):
      if isinstance(result, BankStatementsError):
        adapter_logger.debug(f"Discover {label} view unavailable: {result.message}")
        errors.append(result)
        views.append(None)
      elif isinstance(result, BaseException):
        raise result
      else:
        views.append(result if isinstance(result, dict) else None)

    if len(errors) == len(results):
      raise errors[0]
    return views[0], views[1]

  async def get_profile(self, session_id: str) -> Profile:
    try:
      card_view, bank_view = await self._portal_info(PROFILE)
    except AuthError:
      raise
    except BankStatementsError as e:
      raise AuthError(reason=e.message)

    profile = dig(card_view, "profile") or dig(bank_view, "profile")
    if not isinstance(profile, dict) or not profile.get("email"):
      raise MalformedResponseError("profile.email")
    return Profile(
      session_id=session_id,
      profile_id=profile["email"],
      profile_name=self._profile_name(profile.get("name"), None, None, "Discover User"),
    )

  def _to_account(self, profile: Profile, item: Any) -> Optional[Account]:
    if not isinstance(item, dict) or not item.get("accountId"):
      return None
    last_four = str(item.get("lastFourAccountNumber") or "")
    if item.get("accountType") == "CARD":
      return Account(
        profile=profile,
        account_id=str(item["accountId"]),
        account_name=item.get("accountDesc") or f"Card {last_four}",
        account_mask=last_four,
        account_type=AccountType.CREDIT_CARD,
      )
    if item.get("accountType") == "BANK":
      return Account(
        profile=profile,
        account_id=str(item["accountId"]),
        account_name=item.get("accountDesc") or f"Account {last_four}",
        account_mask=last_four,
        account_type=map_account_type(
          item.get("accountSubType"), BANK_ACCOUNT_TYPES, AccountType.CHECKING
        ),
      )
    return None

  async def get_accounts(self, profile: Profile) -> List[Account]:
    card_view, bank_view = await self._portal_info(ACCOUNTS)

    accounts = []
    for view in (card_view, bank_view):
      if not view:
        continue
      # selectedAccount matches the view; accounts holds the other kind
      items = [view.get("selectedAccount")] + list(view.get("accounts") or [])
      for item in items:
        account = self._to_account(profile, item)
        if account:
          accounts.append(account)
    return self._dedupe_accounts(accounts)

  async def get_statements(self, account: Account) -> List[Statement]:
    if account.account_type == AccountType.CREDIT_CARD:
      statements = await self._card_statements(account)
    else:
      statements = await self._bank_statements(account)
    return self._sorted_statements(statements)

  async def _card_statements(self, account: Account) -> List[Statement]:
    recent = await self._get_json(
      FetchRequest(
        f"{CARD_URL}{DISCOVER_CONFIG['card_recent_path']}",
        headers=JSON_HEADERS,
        params={"source": "achome", "transOnly": "Y", "selAcct": account.account_id},
      ),
      STATEMENTS,
      "recent",
    )
    last_statement = dig(recent, "summaryData.lastStmtDate")
    if not last_statement:
      return []
    match = _LAST_STATEMENT.search(str(last_statement))
    if not match:
      raise MalformedResponseError(
        "summaryData.lastStmtDate", reason=f"unexpected date {last_statement!r}"
      )
    month, day, year = match.groups()

    outer = await self._get_json(
      FetchRequest(
        f"{CARD_URL}{DISCOVER_CONFIG['card_statements_path']}",
        headers=JSON_HEADERS,
        params={"stmtDate": f"{year}{month}{day}"},
      ),
      STATEMENTS,
      "stmt",
    )
    # The listing is a JSON document embedded as a string
    inner = outer.get("jsonResponse") if isinstance(outer, dict) else None
    if not isinstance(inner, str):
      raise MalformedResponseError("jsonResponse")
    listing = parse_json(inner, "jsonResponse")

    statements = []
    for item in (listing or {}).get("statements") or []:
      if not item.get("pdfAvailable") or not item.get("pdfUri"):
        continue
      date_match = _PDF_DATE.search(item["pdfUri"])
      if not date_match:
        continue
      statement_id = date_match.group(1)
      statements.append(
        Statement(
          account=account,
          statement_id=statement_id,
          statement_date=to_iso_date(statement_id),
        )
      )
    return statements

  async def _bank_statements(self, account: Account) -> List[Statement]:
    path = DISCOVER_CONFIG["bank_statements_path"].format(account_id=account.account_id)
    data = await self._get_json(
      FetchRequest(f"{BANK_URL}{path}", headers=JSON_HEADERS), STATEMENTS
    )
    if not isinstance(data, list):
      raise MalformedResponseError("statements", reason="expected an array of statements")

    statements = []
    for item in data:
      if not isinstance(item, dict) or not item.get("id") or not item.get("statementDate"):
        continue
      href = next(
        (link.get("href") for link in item.get("links") or [] if link.get("rel") == "binary"),
        None,
      )
      statements.append(
        Statement(
          account=account,
          # Pre-signed download URL when the listing has one
          statement_id=href or str(item["id"]),
          statement_date=to_iso_date(item["statementDate"]),
        )
      )
    return statements

  async def download_statement(self, statement: Statement) -> Document:
    if statement.account.account_type == AccountType.CREDIT_CARD:
      return await self._download_card(statement)
    return await self._download_bank(statement)

  async def _download_card(self, statement: Statement) -> Document:
    async with self.credentials.scoped_cookie(DISCOVER_CONFIG["account_cookie"], statement.account.account_id):
      response = await self._request(
        FetchRequest(
          f"{CARD_URL}{DISCOVER_CONFIG['card_pdf_path']}",
          headers={"Accept": "application/pdf, */*"},
          params={"view": "true", "date": statement.statement_id},
        ),
        DOWNLOAD,
      )
    return self._validated_document(response, require_declared_pdf=True)

  async def _download_bank(self, statement: Statement) -> Document:
    if statement.statement_id.startswith(("http://", "https://")):
      url = statement.statement_id
    else:
      path = DISCOVER_CONFIG["bank_statements_path"].format(account_id=statement.account.account_id)
      url = f"{BANK_URL}{path}/{quote(statement.statement_id, safe='')}"
    response = await self._request(
      FetchRequest(
        url,
        headers={
          "Accept": "application/pdf",
          "Referer": f"{BANK_URL}/web/deposits/documents/statements",
        },
      ),
      DOWNLOAD,
    )
    return self._validated_document(response, require_declared_pdf=True)
