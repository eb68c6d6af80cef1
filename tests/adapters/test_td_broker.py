"""Tests for the TD WebBroker adapter."""

import json
from urllib.parse import parse_qs

import pytest

from bankstatements.adapters.td_broker import TdBrokerAdapter, TdDocumentRef, to_utc_timestamp
from bankstatements.exceptions import (
  AuthError,
  InvalidContentTypeError,
  MalformedResponseError,
  NoDataError,
  SessionNotFoundError,
)
from bankstatements.models import AccountType, decode_ref
from bankstatements.session import InMemoryCredentialStore

from tests.conftest import error_response, json_response, pdf_response, text_response

DOCUMENTS = [
  {
    "id": 101,
    "stmtDate": "2025-09-30T00:00:00-0400",
    "runDate": "2025-10-02T00:00:00-0400",
    "descriptionCode": "TFSA",
    "groupNumber": "5XY123",
    "mimeType": "application/pdf",
  },
  {
    "id": 102,
    "stmtDate": "2025-10-31T00:00:00-0400",
    "runDate": "2025-11-02T00:00:00-0400",
    "descriptionCode": "RRSP",
    "groupNumber": "5XY123",
  },
]


@pytest.fixture
def adapter(transport, settings):
  credentials = InMemoryCredentialStore({"XSRF-TOKEN": "xsrf-1"})
  return TdBrokerAdapter(credentials, transport, settings=settings)


class TestSession:
  def test_xsrf_token(self, adapter):
    assert adapter.get_session_id() == "xsrf-1"

  def test_falls_back_to_last_login(self, transport, settings):
    credentials = InMemoryCredentialStore({"com.td.last_login": "1700000000"})

    assert TdBrokerAdapter(credentials, transport, settings=settings).get_session_id() == "1700000000"

  def test_no_cookies(self, transport, settings):
    with pytest.raises(SessionNotFoundError):
      TdBrokerAdapter(InMemoryCredentialStore(), transport, settings=settings).get_session_id()


class TestProfile:
  async def test_wrapped_payload(self, adapter, transport):
    transport.add(
      "GET",
      "eservices/profile",
      json_response({"status": "SUCCESS", "payload": {"connectId": "C123", "email": "jane@example.com"}}),
    )

    profile = await adapter.get_profile("xsrf-1")

    assert profile.profile_id == "C123"
    assert profile.profile_name == "jane@example.com"
    assert profile.session_id == "xsrf-1"

  async def test_name_falls_back_to_connect_id(self, adapter, transport):
    transport.add("GET", "eservices/profile", json_response({"connectId": "C123"}))

    assert (await adapter.get_profile("xsrf-1")).profile_name == "C123"

  async def test_missing_connect_id(self, adapter, transport):
    transport.add("GET", "eservices/profile", json_response({"payload": {}}))

    with pytest.raises(MalformedResponseError):
      await adapter.get_profile("xsrf-1")

  async def test_server_error_is_auth(self, adapter, transport):
    transport.add("GET", "eservices/profile", error_response(500))

    with pytest.raises(AuthError):
      await adapter.get_profile("xsrf-1")


class TestAccounts:
  async def test_groups_become_investment_accounts(self, adapter, transport, profile):
    transport.add(
      "GET",
      "account-groups",
      json_response(
        {
          "payload": [
            {"groupId": "g-1", "groupNumber": "5XY-123", "businessLine": "Direct Investing"},
            {"groupId": "g-2", "groupNumber": "6AB456"},
            {"groupId": "g-1", "groupNumber": "5XY-123"},
          ]
        }
      ),
    )

    accounts = await adapter.get_accounts(profile)

    assert [a.account_id for a in accounts] == ["g-1", "g-2"]
    assert accounts[0].account_name == "Direct Investing"
    assert accounts[0].account_mask == "Y123"
    assert accounts[1].account_name == "6AB456"
    assert all(a.account_type == AccountType.INVESTMENT for a in accounts)

  async def test_no_groups(self, adapter, transport, profile):
    transport.add("GET", "account-groups", json_response([]))

    with pytest.raises(NoDataError):
      await adapter.get_accounts(profile)

  async def test_group_without_id(self, adapter, transport, profile):
    transport.add("GET", "account-groups", json_response([{"groupNumber": "1"}]))

    with pytest.raises(MalformedResponseError):
      await adapter.get_accounts(profile)


class TestStatements:
  async def test_single_window_listing(self, adapter, transport, checking_account):
    transport.add("GET", "eservices/statements/acct-1", json_response({"documents": DOCUMENTS}))

    statements = await adapter.get_statements(checking_account)

    assert [s.statement_date for s in statements] == ["2025-10-31", "2025-09-30"]
    ref = decode_ref(TdDocumentRef, statements[1].statement_id)
    assert ref.id == 101
    assert ref.description_code == "TFSA"

    calls = transport.calls_to("eservices/statements")
    assert len(calls) == 1
    assert calls[0].params["fromDate"].endswith("T00:00:00")
    assert calls[0].params["AJAXREQUEST"] == "1"

  async def test_payload_documents(self, adapter, transport, checking_account):
    transport.add("GET", "eservices/statements", json_response({"payload": {"documents": []}}))

    assert await adapter.get_statements(checking_account) == []

  async def test_document_without_date(self, adapter, transport, checking_account):
    transport.add("GET", "eservices/statements", json_response({"documents": [{"id": 1}]}))

    with pytest.raises(MalformedResponseError):
      await adapter.get_statements(checking_account)


class TestDownload:
  async def _statement(self, adapter, transport, account):
    transport.add("GET", "eservices/statements", json_response({"documents": DOCUMENTS[:1]}))
    return (await adapter.get_statements(account))[0]

  async def test_export_form_body(self, adapter, transport, checking_account, pdf_bytes):
    statement = await self._statement(adapter, transport, checking_account)
    transport.add("POST", "/v1/export", pdf_response())

    document = await adapter.download_statement(statement)

    assert document.content == pdf_bytes
    call = transport.calls_to("/v1/export", "POST")[0]
    form = parse_qs(call.body)
    assert json.loads(form["exportRequest"][0]) == {"type": "ESERVICES", "fileFormat": "PDF"}
    descriptor = json.loads(form["exportParams"][0])["documentList"][0]
    assert descriptor["id"] == 101
    assert descriptor["stmtDate"] == "2025-09-30T04:00:00.000Z"
    assert descriptor["description"] == "Tax-Free Savings Account"

  async def test_html_reply_rejected(self, adapter, transport, checking_account):
    statement = await self._statement(adapter, transport, checking_account)
    transport.add("POST", "/v1/export", text_response("<html>Session expired</html>"))

    with pytest.raises(InvalidContentTypeError):
      await adapter.download_statement(statement)


class TestUtcTimestamp:
  def test_converts_offset(self):
    assert to_utc_timestamp("2025-10-01T00:00:00-0400") == "2025-10-01T04:00:00.000Z"

  def test_naive_is_utc(self):
    assert to_utc_timestamp("2025-10-01T00:00:00") == "2025-10-01T00:00:00.000Z"

  def test_unparseable_passes_through(self):
    assert to_utc_timestamp("soon") == "soon"
    assert to_utc_timestamp(None) is None
