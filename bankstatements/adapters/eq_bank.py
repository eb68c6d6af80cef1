"""
EQ Bank adapter.

The bearer token sits AES-encrypted in session storage, keyed by a passphrase
cookie. There is no statement listing; statements are synthesized from the
trailing months the account has been open. EQ Bank renders statement PDFs in
the browser, so there is nothing server-side to download.
"""

import secrets
import uuid
from datetime import date, datetime, time
from typing import Any, Dict, List, Optional

from bankstatements.config import InstitutionsConfig
from bankstatements.exceptions import DownloadError, MalformedResponseError, SessionNotFoundError
from bankstatements.logger import adapter_logger
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
from bankstatements.normalize import to_iso_date
from bankstatements.pipeline import months_since
from bankstatements.session import EncryptedTokenResolver, is_token_fresh
from bankstatements.transport import FetchRequest

from .base import ACCOUNTS, PROFILE, BankAdapter

EQ_CONFIG = InstitutionsConfig.EQ_BANK_CONFIG
BASE_URL = EQ_CONFIG["base_url"]
ORIGIN = EQ_CONFIG["origin"]

SAVINGS_TYPES = {"HISA", "USD_HISA", "TFSA", "RRSP", "FHSA"}


class EqProfileRef(CompositeRef):
  mnemonic: str
  email: str = ""


class EqAccountRef(CompositeRef):
  account_id: str
  opening_date: Optional[str] = None
  account_number: Optional[str] = None
  product_type: Optional[str] = None


class EqStatementRef(CompositeRef):
  """Card statements carry datetime bounds; deposit statements an MMYYYY month."""

  account_id: str
  start: str
  end: str
  month_year: Optional[str] = None


def map_eq_account_type(account_type: Optional[str], product_type: Optional[str]) -> AccountType:
  if product_type == "CARD" or account_type == "PPC":
    return AccountType.CREDIT_CARD
  if account_type in SAVINGS_TYPES:
    return AccountType.SAVINGS
  return AccountType.CHECKING


def eq_account_mask(item: Dict[str, Any]) -> str:
  number = item.get("accountNumber") or ""
  cards = item.get("cards") or []
  if item.get("productType") == "CARD" and cards and cards[0].get("lastFourDigits"):
    return str(cards[0]["lastFourDigits"])
  # Deposit numbers are nine digits; the last three identify the account
  if len(number) == 9:
    return number[6:]
  if item.get("cardNumber"):
    return str(item["cardNumber"]).replace("*", "")[-4:]
  if number:
    return number[-4:]
  return str(item.get("accountId") or "")[:8]


def _local_bound(day: date, end: bool = False) -> str:
  moment = datetime.combine(day, time(23, 59, 59) if end else time.min).astimezone()
  return moment.isoformat(timespec="seconds")


def _traceparent() -> str:
  return f"00-{secrets.token_hex(16)}-{secrets.token_hex(8)}-01"


class EqBankAdapter(BankAdapter):
  bank_id = "eq_bank"
  bank_name = "EQ Bank"
  session_resolver = EncryptedTokenResolver(
    EQ_CONFIG["passphrase_cookie_prefix"], EQ_CONFIG["token_storage_key"]
  )

  def get_session_id(self) -> str:
    token = super().get_session_id()
    if not is_token_fresh(token):
      adapter_logger.info("EQ Bank access token is expired or about to expire")
      raise SessionNotFoundError(tried=self.session_resolver.locations(), bank_id=self.bank_id)
    return token

  def _headers(self, session_id: str, email: Optional[str] = None) -> Dict[str, str]:
    headers = {
      "accept": "application/json, text/plain, */*",
      "accept-language": "en-CA",
      "authorization": f"Bearer {session_id}",
      "channel": "WEB",
      "correlationid": str(uuid.uuid4()),
      "traceparent": _traceparent(),
      "origin": ORIGIN,
      "referer": f"{ORIGIN}/",
    }
    if email:
      headers["email"] = email
    return headers

  async def get_profile(self, session_id: str) -> Profile:
    data = await self._get_json(
      FetchRequest(EQ_CONFIG["profile_url"], headers=self._headers(session_id)), PROFILE
    )
    details = self._require(data, "data.customerDetails")
    if not isinstance(details, dict):
      raise MalformedResponseError("data.customerDetails")

    mnemonic = str(details.get("mnemonic") or "unknown")
    return Profile(
      session_id=session_id,
      profile_id=encode_ref(EqProfileRef(mnemonic=mnemonic, email=details.get("email") or "")),
      profile_name=self._profile_name(
        details.get("customerName"),
        details.get("customerFirstName"),
        details.get("customerLastName"),
        f"User {mnemonic}",
      ),
    )

  async def get_accounts(self, profile: Profile) -> List[Account]:
    owner = decode_ref(EqProfileRef, profile.profile_id)
    data = await self._get_json(
      FetchRequest(
        f"{BASE_URL}{EQ_CONFIG['accounts_path']}",
        headers=self._headers(profile.session_id, owner.email),
      ),
      ACCOUNTS,
    )
    if not isinstance(data, list):
      raise MalformedResponseError("accounts", reason="account list is not an array")

    accounts = []
    for item in data:
      if not isinstance(item, dict) or not item.get("accountId"):
        raise MalformedResponseError("accountId")
      if "CLOSED" in (item.get("restrictionStatus"), item.get("cardStatus")):
        continue
      ref = EqAccountRef(
        account_id=str(item["accountId"]),
        opening_date=item.get("accountOpeningDate"),
        account_number=item.get("accountNumber"),
        product_type=item.get("productType"),
      )
      name = item.get("accountName") or "EQ Bank"
      accounts.append(
        Account(
          profile=profile,
          account_id=encode_ref(ref),
          account_name=f"{name} ({item['currency']})" if item.get("currency") else name,
          account_mask=eq_account_mask(item),
          account_type=map_eq_account_type(item.get("accountType"), item.get("productType")),
        )
      )
    return self._dedupe_accounts(accounts)

  async def get_statements(self, account: Account) -> List[Statement]:
    ref = decode_ref(EqAccountRef, account.account_id)
    opening = None
    if ref.opening_date:
      opening = date.fromisoformat(to_iso_date(ref.opening_date, "accountOpeningDate"))

    statements = []
    for period in months_since(opening, self.settings.trailing_months):
      if ref.product_type == "CARD":
        statement_ref = EqStatementRef(
          account_id=ref.account_id,
          start=_local_bound(period.start),
          end=_local_bound(period.end, end=True),
        )
      else:
        statement_ref = EqStatementRef(
          account_id=ref.account_number or ref.account_id,
          start=period.start.isoformat(),
          end=period.end.isoformat(),
          month_year=period.start.strftime("%m%Y"),
        )
      statements.append(
        Statement(
          account=account,
          statement_id=encode_ref(statement_ref),
          statement_date=period.end.isoformat(),
        )
      )
    return self._sorted_statements(statements)

  async def download_statement(self, statement: Statement) -> Document:
    raise DownloadError(
      "EQ Bank renders statement PDFs in the browser; no server-side download is available",
      error_code="DOWNLOAD_UNSUPPORTED",
      details={"bank_id": self.bank_id, "statement_date": statement.statement_date},
    )
