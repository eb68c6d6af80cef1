"""
Wise adapter.

Wise has no statement listing: any date range can be requested, so the
listing synthesizes one statement per trailing month. Downloading one means
asking Wise to generate it. Generated statements are kept for 30 days, so the
refresh call is checked for an existing match before a new request is
created and polled.
"""

import re
from datetime import date, timedelta
from typing import Any, Dict, List, Optional

from bankstatements.config import InstitutionsConfig
from bankstatements.exceptions import MalformedResponseError
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
from bankstatements.normalize import mask_account_number, to_iso_date
from bankstatements.pipeline import (
  DocumentWorkflow,
  PollState,
  dig,
  extract_next_data,
  trailing_months,
)
from bankstatements.session import CookieResolver
from bankstatements.transport import FetchRequest

from .base import ACCOUNTS, DOWNLOAD, PROFILE, BankAdapter

WISE_CONFIG = InstitutionsConfig.WISE_CONFIG
BASE_URL = WISE_CONFIG["base_url"]
STATEMENTS_URL = BASE_URL + WISE_CONFIG["statements_path"]

BALANCE_URN = "urn:wise:balances:"
LIST_ITEM_CONTROL = "statements-list-item-with-action"
DOWNLOAD_BUTTON_CONTROL = "statements-download-action-button"

_REQUEST_ID_IN_TAG = re.compile(r"statement-requests/([a-f0-9-]+)/")
_REQUEST_ID_IN_ACTION = re.compile(r"balance-statement/([a-f0-9-]+)")

HTML_HEADERS = {
  "accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*",
  "sec-fetch-dest": "document",
  "sec-fetch-mode": "navigate",
  "sec-fetch-site": "same-origin",
}


class WiseRangeRef(CompositeRef):
  from_date: str
  to_date: str

  @property
  def date_range(self) -> str:
    return f"{self.from_date},{self.to_date}"


def _balance_entries(launchpad: Dict[str, Any]) -> List[Dict[str, Any]]:
  """Balance tiles nested under launchpad sections -> "Section - Balances"."""
  entries = []
  for section in launchpad.get("components") or []:
    for component in (section or {}).get("components") or []:
      if component.get("trackingName") != "Section - Balances":
        continue
      for balance in component.get("components") or []:
        if BALANCE_URN in (balance.get("urn") or "") and balance.get("type") == "BALANCE":
          entries.append(balance)
  return entries


def _title_range(title: str) -> Optional[tuple[str, str]]:
  """``October 1, 2025 - October 31, 2025`` or ``1 October 2025 - 31 October 2025``."""
  parts = [p.strip() for p in (title or "").split(" - ")]
  if len(parts) != 2:
    return None
  try:
    return to_iso_date(parts[0]), to_iso_date(parts[1])
  except MalformedResponseError:
    return None


def find_matching_request(refresh_data: Any, ref: WiseRangeRef) -> Optional[str]:
  """Request id of an already generated statement covering exactly ``ref``."""
  if not isinstance(refresh_data, dict):
    return None
  for layout_item in refresh_data.get("layout") or []:
    if layout_item.get("control") != LIST_ITEM_CONTROL:
      continue
    for item in layout_item.get("items") or []:
      if _title_range(item.get("title") or "") != (ref.from_date, ref.to_date):
        continue
      for tag in item.get("tags") or []:
        if not isinstance(tag, str):
          continue
        match = _REQUEST_ID_IN_TAG.search(tag)
        if match:
          return match.group(1)
  return None


def is_ready(poll_data: Any) -> bool:
  for layout_item in (poll_data or {}).get("layout") or []:
    for component in layout_item.get("components") or []:
      if component.get("control") == DOWNLOAD_BUTTON_CONTROL and component.get("content"):
        return True
  return False


class WiseAdapter(BankAdapter):
  bank_id = "wise"
  bank_name = "Wise"
  session_resolver = CookieResolver(prefix=WISE_CONFIG["session_cookie_prefix"])

  def _api_headers(self, referer: str, accept: str = "application/json") -> Dict[str, str]:
    return {
      "accept": accept,
      "content-type": "application/json",
      "origin": BASE_URL,
      "referer": referer,
      "x-access-token": WISE_CONFIG["access_token"],
      "time-zone": WISE_CONFIG["time_zone"],
      "sec-fetch-dest": "empty",
      "sec-fetch-mode": "cors",
      "sec-fetch-site": "same-origin",
    }

  async def _home_data(self, stage: str) -> Dict[str, Any]:
    response = await self._request(
      FetchRequest(f"{BASE_URL}{WISE_CONFIG['home_path']}", headers=HTML_HEADERS),
      stage,
    )
    return extract_next_data(response.text())

  async def get_profile(self, session_id: str) -> Profile:
    data = await self._home_data(PROFILE)
    page_props = self._require(data, "props.pageProps", "pageProps")
    self._require(page_props, "session.userId")
    profile_id = str(self._require(page_props, "selectedProfile.id"))
    return Profile(
      session_id=session_id,
      profile_id=profile_id,
      profile_name=self._profile_name(
        dig(page_props, "selectedProfile.fullName"), None, None, profile_id
      ),
    )

  async def get_accounts(self, profile: Profile) -> List[Account]:
    data = await self._home_data(ACCOUNTS)
    launchpad = self._require(data, "props.pageProps.launchpadData", "launchpadData")
    if not isinstance(launchpad, dict):
      raise MalformedResponseError("launchpadData")

    accounts = []
    for balance in _balance_entries(launchpad):
      balance_id = balance["urn"].split(":")[-1]
      label = dig(balance, "label.text") or ""
      accounts.append(
        Account(
          profile=profile,
          account_id=balance_id,
          # Currency code, as Wise shows it
          account_name=balance.get("title") or balance_id,
          account_mask=mask_account_number(label) or balance_id[-4:],
          account_type=AccountType.CHECKING,
        )
      )
    return self._dedupe_accounts(accounts)

  async def get_statements(self, account: Account) -> List[Statement]:
    statements = []
    for period in trailing_months(self.settings.trailing_months, skip_current=True):
      ref = WiseRangeRef(from_date=period.start.isoformat(), to_date=period.end.isoformat())
      statements.append(
        Statement(
          account=account,
          statement_id=encode_ref(ref),
          statement_date=period.start.isoformat(),
        )
      )
    return self._sorted_statements(statements)

  def _generation_body(self, ref: WiseRangeRef, balance_id: str) -> Dict[str, Any]:
    today = date.today()
    yesterday = today - timedelta(days=1)
    try:
      balances = [int(balance_id)]
    except ValueError:
      raise MalformedResponseError("account_id", reason="balance id is not numeric")
    return {
      "todayRange": f"{today.isoformat()},{today.isoformat()}",
      "yesterdayRange": f"{yesterday.isoformat()},{yesterday.isoformat()}",
      "lastMonthRange": ref.date_range,
      "lastQuarterRange": "",
      "lastYearRange": "",
      "previousDateRange": ref.date_range,
      "previousFrom": ref.from_date,
      "previousTo": ref.to_date,
      "dateRange": ref.date_range,
      "from": ref.from_date,
      "to": ref.to_date,
      "balances": balances,
      "fileFormat": "PDF",
      "splitFees": True,
      "locale": WISE_CONFIG["locale"],
    }

  async def download_statement(self, statement: Statement) -> Document:
    ref = decode_ref(WiseRangeRef, statement.statement_id)
    profile_id = statement.account.profile.profile_id
    balance_id = statement.account.account_id
    statements_url = STATEMENTS_URL.format(profile_id=profile_id)
    listing_referer = (
      f"{BASE_URL}/balances/statements/balance-statement"
      f"?balance_id={balance_id}&df=true&schedule=custom"
    )

    async def find_existing() -> Optional[str]:
      data = await self._get_json(
        FetchRequest.json_post(
          statements_url,
          {"schedule": "custom"},
          headers=self._api_headers(listing_referer, accept="*/*"),
          params={"action": "refresh", "balanceId": balance_id},
        ),
        DOWNLOAD,
        "refresh",
      )
      return find_matching_request(data, ref)

    async def create() -> str:
      data = await self._get_json(
        FetchRequest.json_post(
          f"{statements_url}/create",
          self._generation_body(ref, balance_id),
          headers=self._api_headers(
            f"{BASE_URL}/balances/statements/balance-statement/create"
            f"?balance_id={balance_id}&df=true&schedule=monthly"
          ),
          params={"action": "request", "referrer": "create", "balanceId": balance_id},
        ),
        DOWNLOAD,
        "create",
      )
      action_url = dig(data, "action.url")
      match = _REQUEST_ID_IN_ACTION.search(action_url or "")
      if not match:
        raise MalformedResponseError("action.url", reason="no statement request id")
      return match.group(1)

    async def check_status(request_id: str) -> PollState:
      data = await self._get_json(
        FetchRequest.json_post(
          f"{statements_url}/{request_id}",
          self._generation_body(ref, balance_id),
          headers=self._api_headers(
            f"{BASE_URL}/balances/statements/balance-statement/{request_id}"
            f"?balance_id={balance_id}"
          ),
          params={"referrer": "create", "balanceId": balance_id},
        ),
        DOWNLOAD,
        "status",
      )
      if isinstance(data, dict) and data.get("error"):
        adapter_logger.warning(f"Wise statement generation failed: {data['error']}")
        return PollState.FAILED
      return PollState.READY if is_ready(data) else PollState.PENDING

    async def fetch(request_id: str) -> Document:
      path = WISE_CONFIG["download_path"].format(profile_id=profile_id, request_id=request_id)
      response = await self._request(
        FetchRequest(
          f"{BASE_URL}{path}",
          headers={
            k: v
            for k, v in self._api_headers(listing_referer, accept="*/*").items()
            if k not in ("origin", "time-zone")
          },
        ),
        DOWNLOAD,
      )
      return self._validated_document(response)

    workflow = DocumentWorkflow(
      find_existing=find_existing,
      create=create,
      check_status=check_status,
      fetch=fetch,
      poller=self._poller(label=ref.date_range),
    )
    return await workflow.resolve()
