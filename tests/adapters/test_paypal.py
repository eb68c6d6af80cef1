"""Tests for the PayPal adapter."""

import json

import pytest

from bankstatements.adapters.paypal import BALANCE_ACCOUNT_ID, PaypalAdapter, parse_credit_card
from bankstatements.exceptions import EmptyDocumentError, MalformedResponseError, SessionNotFoundError
from bankstatements.models import Account, AccountType, Statement
from bankstatements.session import InMemoryCredentialStore

from tests.conftest import PDF_BYTES, json_response, pdf_response, text_response

CARD_ID = "0A1B2C3D-4E5F-6789-ABCD-EF0123456789"
SUMMARY_WITH_CARD = f"""
<a href="/myaccount/credit/rewards-card/?source=FINANCIAL_SNAPSHOT">Card</a>
<script>{{"creditAccountId":"{CARD_ID}","header":"PayPal Cashback Mastercard ••4321"}}</script>
<span>••4321</span>
"""
CARD_PAGE = '<script>{"_csrf":"tok\\u002Fen"}</script>'
LARGE_PDF = PDF_BYTES + b"0" * 12000


@pytest.fixture
def adapter(transport, settings):
  credentials = InMemoryCredentialStore(local_storage={"vf": "vf-token"})
  return PaypalAdapter(credentials, transport, settings=settings)


@pytest.fixture
def balance(profile):
  return Account(profile, BALANCE_ACCOUNT_ID, "PayPal Balance (USD)", "USD", AccountType.CHECKING)


@pytest.fixture
def card(profile):
  return Account(profile, CARD_ID, "PayPal Cashback Mastercard", "4321", AccountType.CREDIT_CARD)


class TestSession:
  def test_local_storage_first(self, adapter):
    assert adapter.get_session_id() == "vf-token"

  def test_falls_back_to_cookie(self, transport, settings):
    credentials = InMemoryCredentialStore({"TLTSID": "tlt"})

    assert PaypalAdapter(credentials, transport, settings=settings).get_session_id() == "tlt"

  def test_lists_every_location(self, transport, settings):
    with pytest.raises(SessionNotFoundError) as exc_info:
      PaypalAdapter(InMemoryCredentialStore(), transport, settings=settings).get_session_id()

    assert exc_info.value.details["tried"] == ["localStorage:vf", "sessionStorage:PP_NC", "cookie:TLTSID"]


class TestProfileAndAccounts:
  async def test_profile(self, adapter, transport):
    transport.add("GET", "smartchat/chat-meta", json_response({"userInfo": {"firstName": "Jane", "lastName": "Doe"}}))

    profile = await adapter.get_profile("vf-token")

    assert profile.profile_id == "vf-token"
    assert profile.profile_name == "Jane Doe"

  async def test_profile_without_first_name(self, adapter, transport):
    transport.add("GET", "smartchat/chat-meta", json_response({"userInfo": {}}))

    with pytest.raises(MalformedResponseError):
      await adapter.get_profile("vf-token")

  async def test_balance_only(self, adapter, transport, profile):
    transport.add("GET", "paypal.com/myaccount/summary", text_response("<html>no card</html>"))

    accounts = await adapter.get_accounts(profile)

    assert [(a.account_id, a.account_type) for a in accounts] == [(BALANCE_ACCOUNT_ID, AccountType.CHECKING)]

  async def test_balance_and_card(self, adapter, transport, profile):
    transport.add("GET", "paypal.com/myaccount/summary", text_response(SUMMARY_WITH_CARD))

    accounts = await adapter.get_accounts(profile)

    assert len(accounts) == 2
    assert accounts[1].account_id == CARD_ID
    assert accounts[1].account_name == "PayPal Cashback Mastercard"
    assert accounts[1].account_mask == "4321"
    assert accounts[1].account_type == AccountType.CREDIT_CARD

  def test_card_link_without_id(self):
    with pytest.raises(MalformedResponseError):
      parse_credit_card('<a href="/myaccount/credit/rewards-card/">x</a>')


class TestStatements:
  async def test_balance_statements(self, adapter, transport, balance):
    transport.add(
      "GET",
      "statements/api/statements",
      json_response({"data": {"statements": [{"details": [{"date": "20250901"}, {"date": "20251001"}]}]}}),
    )

    statements = await adapter.get_statements(balance)

    assert [s.statement_id for s in statements] == ["20251001", "20250901"]
    assert statements[0].statement_date == "2025-10-01"

  async def test_card_statements_use_csrf(self, adapter, transport, card):
    transport.add("GET", "rewards-card/?source", text_response(CARD_PAGE))
    transport.add(
      "POST",
      "graphql/Web_CONSUMER_REWARDS_US_Hub_StatementHeaders",
      json_response(
        {"data": {"revolvingCreditStatementHeaders": {"statementHeaders": [{"statementId": "2025-09-15"}, {"statementId": "2025-10-15"}]}}}
      ),
    )

    statements = await adapter.get_statements(card)

    assert [s.statement_date for s in statements] == ["2025-10-15", "2025-09-15"]
    query = transport.calls_to("graphql", "POST")[0]
    assert query.headers["x-csrf-token"] == "tok/en"
    assert json.loads(query.body)["variables"]["creditAccountId"] == CARD_ID

  async def test_graphql_errors(self, adapter, transport, card):
    transport.add("GET", "rewards-card/?source", text_response(CARD_PAGE))
    transport.add("POST", "graphql/", json_response({"errors": [{"message": "denied"}]}))

    with pytest.raises(MalformedResponseError):
      await adapter.get_statements(card)

  async def test_missing_csrf(self, adapter, transport, card):
    transport.add("GET", "rewards-card/?source", text_response("<html></html>"))

    with pytest.raises(MalformedResponseError) as exc_info:
      await adapter.get_statements(card)

    assert exc_info.value.field == "csrf"


class TestDownload:
  async def test_balance_download(self, adapter, transport, balance):
    transport.add("GET", "statements/download", pdf_response(LARGE_PDF, "application/octet-stream"))

    document = await adapter.download_statement(Statement(balance, "20251001", "2025-10-01"))

    assert document.size == len(LARGE_PDF)
    assert transport.calls[0].params == {"monthList": "20251001", "reportType": "standard"}

  async def test_undersized_file_rejected(self, adapter, transport, balance):
    transport.add("GET", "statements/download", pdf_response(PDF_BYTES, "application/octet-stream"))

    with pytest.raises(EmptyDocumentError):
      await adapter.download_statement(Statement(balance, "20251001", "2025-10-01"))

  async def test_card_download(self, adapter, transport, card):
    transport.add("GET", "rewards-card/?source", text_response(CARD_PAGE))
    transport.add("POST", "statement/download", pdf_response(LARGE_PDF))

    await adapter.download_statement(Statement(card, "2025-10-15", "2025-10-15"))

    call = transport.calls_to("statement/download", "POST")[0]
    assert call.headers["x-csrf-token"] == "tok/en"
    assert json.loads(call.body) == {"variables": {"statementId": "2025-10-15", "creditAccountId": CARD_ID}}
