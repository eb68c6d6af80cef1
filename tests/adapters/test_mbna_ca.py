"""Tests for the MBNA Canada adapter."""

from datetime import date

import pytest

from bankstatements.adapters.mbna_ca import MbnaCaAdapter
from bankstatements.exceptions import DownloadError, MalformedResponseError, SessionNotFoundError
from bankstatements.models import Account, AccountType, Statement
from bankstatements.session import InMemoryCredentialStore

from tests.conftest import error_response, json_response, pdf_response

THIS_YEAR = date.today().year


@pytest.fixture
def adapter(transport, settings):
  credentials = InMemoryCredentialStore({"com.td.last_login": "1700000000"})
  return MbnaCaAdapter(credentials, transport, settings=settings)


@pytest.fixture
def card(profile):
  return Account(profile, "00123", "MBNA Rewards", "9876", AccountType.CREDIT_CARD)


class TestProfile:
  async def test_name_parts(self, adapter, transport):
    transport.add(
      "GET", "customer-profile", json_response({"customerName": {"firstname": "Jane", "lastname": "Doe"}})
    )

    profile = await adapter.get_profile("1700000000")

    assert profile.profile_id == "Jane_Doe"
    assert profile.profile_name == "Jane Doe"

  async def test_missing_name(self, adapter, transport):
    transport.add("GET", "customer-profile", json_response({"customerName": {}}))

    with pytest.raises(MalformedResponseError):
      await adapter.get_profile("1700000000")

  def test_session_cookie_required(self, transport, settings):
    with pytest.raises(SessionNotFoundError):
      MbnaCaAdapter(InMemoryCredentialStore(), transport, settings=settings).get_session_id()


class TestAccounts:
  async def test_cards(self, adapter, transport, profile):
    transport.add(
      "GET",
      "accounts/summary",
      json_response(
        [
          {"accountId": "00123", "endingIn": "9876", "cardName": "MBNA Rewards"},
          {"accountId": "00456", "endingIn": "1111"},
        ]
      ),
    )

    accounts = await adapter.get_accounts(profile)

    assert [a.account_mask for a in accounts] == ["9876", "1111"]
    assert accounts[1].account_name == "MBNA 1111"
    assert all(a.account_type == AccountType.CREDIT_CARD for a in accounts)

  async def test_summary_not_a_list(self, adapter, transport, profile):
    transport.add("GET", "accounts/summary", json_response({"error": "x"}))

    with pytest.raises(MalformedResponseError):
      await adapter.get_accounts(profile)


class TestStatements:
  async def test_walks_seven_years_and_skips_failures(self, adapter, transport, card):
    transport.add(
      "GET",
      f"statement-history/{THIS_YEAR}",
      json_response({"StatementItem": [{"closingDateFmted": f"{THIS_YEAR}-01-15"}]}),
    )
    transport.add("GET", f"statement-history/{THIS_YEAR - 1}", error_response(500))
    transport.add(
      "GET",
      f"statement-history/{THIS_YEAR - 2}",
      json_response(
        {
          "StatementItem": [
            {"closingDateFmted": f"{THIS_YEAR - 2}-11-15"},
            {"closingDateFmted": f"{THIS_YEAR - 2}-12-15"},
          ]
        }
      ),
    )
    transport.add("GET", "statement-history/", error_response(404))

    statements = await adapter.get_statements(card)

    assert [s.statement_date for s in statements] == [
      f"{THIS_YEAR}-01-15",
      f"{THIS_YEAR - 2}-12-15",
      f"{THIS_YEAR - 2}-11-15",
    ]
    assert statements[0].statement_id == f"{THIS_YEAR}-01-15"
    assert len(transport.calls_to("statement-history/")) == 7

  async def test_year_without_items(self, adapter, transport, card):
    transport.add("GET", "statement-history/", json_response({}))

    assert await adapter.get_statements(card) == []


class TestDownload:
  async def test_download(self, adapter, transport, card, pdf_bytes):
    transport.add("GET", "selected-date/2025-10-15", pdf_response(content_type="application/octet-stream"))
    statement = Statement(account=card, statement_id="2025-10-15", statement_date="2025-10-15")

    document = await adapter.download_statement(statement)

    assert document.content == pdf_bytes
    call = transport.calls[0]
    assert "/accounts/00123/statement-history/open-save/selected-date/2025-10-15" in call.url
    assert call.params["format"] == "PDF"

  async def test_download_failure(self, adapter, transport, card):
    transport.add("GET", "selected-date", error_response(500))

    with pytest.raises(DownloadError):
      await adapter.download_statement(Statement(card, "2025-10-15", "2025-10-15"))
