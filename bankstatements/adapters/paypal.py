"""
PayPal adapter.

The PayPal balance is always listed as a checking account. A rewards credit
card is listed as well when the summary page links to it. Balance statements
come from a JSON listing. Card statements come from a GraphQL endpoint that
needs a CSRF token scraped from the card page first.
"""

import re
from typing import Any, Dict, List

from bankstatements.config import InstitutionsConfig
from bankstatements.exceptions import MalformedResponseError
from bankstatements.models import Account, AccountType, Document, Profile, Statement
from bankstatements.normalize import to_iso_date
from bankstatements.pipeline import TokenStep, dig
from bankstatements.session import ChainResolver, CookieResolver, StorageResolver
from bankstatements.transport import FetchRequest

from .base import ACCOUNTS, DOWNLOAD, PROFILE, STATEMENTS, BankAdapter

PAYPAL_CONFIG = InstitutionsConfig.PAYPAL_CONFIG
BASE_URL = PAYPAL_CONFIG["base_url"]

BALANCE_ACCOUNT_ID = "paypal_balance_usd"
CREDIT_LINK = "/myaccount/credit/rewards-card/"

_CREDIT_ACCOUNT_ID = re.compile(r'creditAccountId["\s:]+([0-9A-F-]{36})', re.IGNORECASE)
_ENCRYPTED_ACCOUNT = re.compile(r'encryptedAccountNumber["\s:]+([A-Z0-9]+)', re.IGNORECASE)
_CARD_MASK = re.compile(r"••(\d{4})")
_CARD_NAME = re.compile(r'"header"\s*:\s*"([^"]*PayPal[^"]*(?:Cashback|Credit)[^"]*)"', re.IGNORECASE)
_CSRF = re.compile(r'"_csrf":"([^"]+)"')

STATEMENT_HEADERS_OPERATION = "Web_CONSUMER_REWARDS_US_Hub_StatementHeaders"
STATEMENT_HEADERS_QUERY = """query Web_CONSUMER_REWARDS_US_Hub_StatementHeaders($creditAccountId: CreditAccountId!, $creditProductIdentifier: CreditProductIdentifier!) {
  revolvingCreditStatementHeaders(
    creditProductIdentifier: $creditProductIdentifier
    creditAccountId: $creditAccountId
  ) {
    statementHeaders {
      statementId
      formattedClosingDate {
        formattedDateString
        formattedDateStringLong
      }
    }
  }
}"""

PDF_ACCEPT = "application/octet-stream, application/pdf"


def parse_credit_card(html: str) -> Dict[str, str] | None:
  """Card id, name and mask from the summary page, or None without a card."""
  if CREDIT_LINK not in html:
    return None
  match = _CREDIT_ACCOUNT_ID.search(html) or _ENCRYPTED_ACCOUNT.search(html)
  if not match:
    raise MalformedResponseError("creditAccountId", reason="credit card linked but no account id")
  mask = _CARD_MASK.search(html)
  name = _CARD_NAME.search(html)
  return {
    "account_id": match.group(1),
    "account_mask": mask.group(1) if mask else "",
    "account_name": re.sub(r"\s*••\d{4}$", "", name.group(1)).strip() if name else "PayPal Credit Card",
  }


class PaypalAdapter(BankAdapter):
  bank_id = "paypal"
  bank_name = "PayPal"
  # nsid is HttpOnly; these readable values track the same login
  session_resolver = ChainResolver(
    StorageResolver("local", ["vf"]),
    StorageResolver("session", ["PP_NC"]),
    CookieResolver(["TLTSID"]),
  )

  def _csrf_step(self, stage: str) -> TokenStep:
    async def fetch_card_page() -> str:
      response = await self._request(
        FetchRequest(f"{BASE_URL}{PAYPAL_CONFIG['credit_page_path']}"), stage
      )
      return response.text()

    return TokenStep(
      name="csrf",
      fetch_page=fetch_card_page,
      pattern=_CSRF,
      key="x-csrf-token",
    )

  async def get_profile(self, session_id: str) -> Profile:
    data = await self._get_json(
      FetchRequest(
        f"{BASE_URL}{PAYPAL_CONFIG['profile_path']}", headers={"accept": "application/json"}
      ),
      PROFILE,
    )
    first_name = self._require(data, "userInfo.firstName")
    return Profile(
      session_id=session_id,
      profile_id=session_id,
      profile_name=self._profile_name(None, first_name, dig(data, "userInfo.lastName"), session_id),
    )

  async def get_accounts(self, profile: Profile) -> List[Account]:
    response = await self._request(
      FetchRequest(
        f"{BASE_URL}{PAYPAL_CONFIG['summary_path']}",
        headers={"accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8"},
      ),
      ACCOUNTS,
    )
    html = response.text()

    accounts = [
      Account(
        profile=profile,
        account_id=BALANCE_ACCOUNT_ID,
        account_name="PayPal Balance (USD)",
        account_mask="USD",
        account_type=AccountType.CHECKING,
      )
    ]
    card = parse_credit_card(html)
    if card:
      accounts.append(Account(profile=profile, account_type=AccountType.CREDIT_CARD, **card))
    return self._dedupe_accounts(accounts)

  async def get_statements(self, account: Account) -> List[Statement]:
    if account.account_type == AccountType.CREDIT_CARD:
      return self._sorted_statements(await self._credit_statements(account))
    return self._sorted_statements(await self._balance_statements(account))

  async def _balance_statements(self, account: Account) -> List[Statement]:
    data = await self._get_json(
      FetchRequest(
        f"{BASE_URL}{PAYPAL_CONFIG['balance_statements_path']}",
        headers={"accept": "application/json"},
      ),
      STATEMENTS,
    )
    groups = dig(data, "data.statements")
    if not isinstance(groups, list):
      raise MalformedResponseError("data.statements")

    statements = []
    for group in groups:
      for detail in (group or {}).get("details") or []:
        raw = str(detail.get("date") or "")
        if not raw:
          raise MalformedResponseError("data.statements.details.date")
        # YYYYMMDD, which is also what the download wants as monthList
        statements.append(
          Statement(account=account, statement_id=raw, statement_date=to_iso_date(raw))
        )
    return statements

  async def _credit_statements(self, account: Account) -> List[Statement]:
    headers: Dict[str, Any] = {"accept": "application/json"}
    await self._csrf_step(STATEMENTS).run(headers)
    path = PAYPAL_CONFIG["credit_graphql_path"].format(operation=STATEMENT_HEADERS_OPERATION)
    data = await self._get_json(
      FetchRequest.json_post(
        f"{BASE_URL}{path}",
        {
          "operationName": STATEMENT_HEADERS_OPERATION,
          "variables": {
            "creditAccountId": account.account_id,
            "creditProductIdentifier": PAYPAL_CONFIG["credit_product"],
          },
          "query": STATEMENT_HEADERS_QUERY,
        },
        headers=headers,
      ),
      STATEMENTS,
    )
    if dig(data, "errors"):
      raise MalformedResponseError("data.revolvingCreditStatementHeaders", reason=str(data["errors"]))
    headers_list = dig(data, "data.revolvingCreditStatementHeaders.statementHeaders") or []

    statements = []
    for header in headers_list:
      statement_id = (header or {}).get("statementId")
      if not statement_id:
        raise MalformedResponseError("statementHeaders.statementId")
      statements.append(
        Statement(
          account=account,
          statement_id=str(statement_id),
          statement_date=to_iso_date(statement_id),
        )
      )
    return statements

  async def download_statement(self, statement: Statement) -> Document:
    if statement.account.account_type == AccountType.CREDIT_CARD:
      headers: Dict[str, Any] = {"accept": PDF_ACCEPT}
      await self._csrf_step(DOWNLOAD).run(headers)
      request = FetchRequest.json_post(
        f"{BASE_URL}{PAYPAL_CONFIG['credit_download_path']}",
        {
          "variables": {
            "statementId": statement.statement_id,
            "creditAccountId": statement.account.account_id,
          }
        },
        headers=headers,
      )
    else:
      request = FetchRequest(
        f"{BASE_URL}{PAYPAL_CONFIG['balance_download_path']}",
        headers={"accept": PDF_ACCEPT},
        params={"monthList": statement.statement_id.replace("-", ""), "reportType": "standard"},
      )
    response = await self._request(request, DOWNLOAD)
    # Undersized files are error pages served as octet-stream
    return self._validated_document(response, min_size=self.settings.min_document_bytes)
