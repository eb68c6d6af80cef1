"""Tests for the EQ Bank adapter."""

import base64
import time
from datetime import date

import pytest
from dateutil.relativedelta import relativedelta

from bankstatements.adapters.eq_bank import (
  EqAccountRef,
  EqBankAdapter,
  EqProfileRef,
  EqStatementRef,
  eq_account_mask,
  map_eq_account_type,
)
from bankstatements.exceptions import AuthError, DownloadError, SessionNotFoundError
from bankstatements.models import Account, AccountType, Profile, decode_ref, encode_ref
from bankstatements.session import InMemoryCredentialStore

from tests.conftest import error_response, json_response
from tests.session.test_resolvers import encrypt_openssl_aes, make_jwt

PASSPHRASE = b"eq-passphrase"


def eq_credentials(token: str) -> InMemoryCredentialStore:
  return InMemoryCredentialStore(
    {"eq_uuid_1f2e": base64.b64encode(PASSPHRASE).decode()},
    session_storage={"ZXFUb2tlbg==": encrypt_openssl_aes(token.encode(), PASSPHRASE)},
  )


@pytest.fixture
def token():
  return make_jwt(exp=int(time.time()) + 3600)


@pytest.fixture
def adapter(transport, settings, token):
  return EqBankAdapter(eq_credentials(token), transport, settings=settings)


@pytest.fixture
def eq_profile(token):
  return Profile(token, encode_ref(EqProfileRef(mnemonic="JDOE1", email="jane@example.com")), "Jane Doe")


def eq_account(profile, opening_date, product_type=None):
  ref = EqAccountRef(
    account_id="a-1", opening_date=opening_date, account_number="100200345", product_type=product_type
  )
  account_type = AccountType.CREDIT_CARD if product_type == "CARD" else AccountType.SAVINGS
  return Account(profile, encode_ref(ref), "HISA (CAD)", "345", account_type)


class TestSession:
  def test_decrypts_fresh_token(self, adapter, token):
    assert adapter.get_session_id() == token

  def test_expired_token_is_not_a_session(self, transport, settings):
    stale = make_jwt(exp=int(time.time()) + 30)
    adapter = EqBankAdapter(eq_credentials(stale), transport, settings=settings)

    with pytest.raises(SessionNotFoundError):
      adapter.get_session_id()

  def test_missing_storage(self, transport, settings):
    with pytest.raises(SessionNotFoundError):
      EqBankAdapter(InMemoryCredentialStore(), transport, settings=settings).get_session_id()


class TestProfile:
  async def test_profile(self, adapter, transport, token):
    transport.add(
      "GET",
      "login-details",
      json_response(
        {"data": {"customerDetails": {"mnemonic": "JDOE1", "email": "jane@example.com", "customerName": "Jane Doe"}}}
      ),
    )

    profile = await adapter.get_profile(token)

    assert profile.profile_name == "Jane Doe"
    assert decode_ref(EqProfileRef, profile.profile_id).email == "jane@example.com"
    headers = transport.calls[0].headers
    assert headers["authorization"] == f"Bearer {token}"
    assert headers["channel"] == "WEB"
    assert headers["traceparent"].startswith("00-")

  async def test_name_fallback(self, adapter, transport, token):
    transport.add("GET", "login-details", json_response({"data": {"customerDetails": {"mnemonic": "JDOE1"}}}))

    assert (await adapter.get_profile(token)).profile_name == "User JDOE1"

  async def test_unauthorized(self, adapter, transport, token):
    transport.add("GET", "login-details", error_response(401, "Unauthorized"))

    with pytest.raises(AuthError):
      await adapter.get_profile(token)


class TestAccounts:
  async def test_skips_closed_and_sends_email(self, adapter, transport, eq_profile):
    transport.add(
      "GET",
      "accounts/v2/accounts",
      json_response(
        [
          {"accountId": "a-1", "accountName": "HISA", "currency": "CAD", "accountType": "HISA", "accountNumber": "100200345"},
          {"accountId": "a-2", "accountType": "HISA", "restrictionStatus": "CLOSED"},
          {
            "accountId": "c-1",
            "accountName": "Card",
            "productType": "CARD",
            "accountType": "PPC",
            "cards": [{"lastFourDigits": "7788"}],
          },
        ]
      ),
    )

    accounts = await adapter.get_accounts(eq_profile)

    assert [a.account_name for a in accounts] == ["HISA (CAD)", "Card"]
    assert [a.account_mask for a in accounts] == ["345", "7788"]
    assert [a.account_type for a in accounts] == [AccountType.SAVINGS, AccountType.CREDIT_CARD]
    assert transport.calls[0].headers["email"] == "jane@example.com"
    assert decode_ref(EqAccountRef, accounts[0].account_id).account_number == "100200345"

  @pytest.mark.parametrize(
    "item,expected",
    [
      ({"accountNumber": "123456789"}, "789"),
      ({"cardNumber": "****1234"}, "1234"),
      ({"accountNumber": "9988776655"}, "6655"),
      ({"accountId": "abcdef123456"}, "abcdef12"),
    ],
  )
  def test_mask_rules(self, item, expected):
    assert eq_account_mask(item) == expected

  def test_type_mapping(self):
    assert map_eq_account_type("PPC", None) == AccountType.CREDIT_CARD
    assert map_eq_account_type("TFSA", None) == AccountType.SAVINGS
    assert map_eq_account_type("JOINT_CHQ", None) == AccountType.CHECKING


class TestStatements:
  async def test_old_account_uses_limit(self, adapter, eq_profile):
    statements = await adapter.get_statements(eq_account(eq_profile, "2015-03-02"))

    assert len(statements) == 12
    ref = decode_ref(EqStatementRef, statements[0].statement_id)
    assert ref.account_id == "100200345"
    assert ref.month_year == date.fromisoformat(ref.start).strftime("%m%Y")
    assert statements[0].statement_date == ref.end

  async def test_window_bounded_by_opening_date(self, adapter, eq_profile):
    opened = date.today().replace(day=1) - relativedelta(months=2)

    statements = await adapter.get_statements(eq_account(eq_profile, opened.isoformat()))

    assert len(statements) == 2

  async def test_card_statements_use_datetime_bounds(self, adapter, eq_profile):
    statements = await adapter.get_statements(eq_account(eq_profile, "2015-03-02T10:00:00Z", "CARD"))

    ref = decode_ref(EqStatementRef, statements[0].statement_id)
    assert ref.account_id == "a-1"
    assert "T00:00:00" in ref.start
    assert "T23:59:59" in ref.end
    assert ref.month_year is None

  async def test_download_unsupported(self, adapter, eq_profile):
    statements = await adapter.get_statements(eq_account(eq_profile, "2015-03-02"))

    with pytest.raises(DownloadError) as exc_info:
      await adapter.download_statement(statements[0])

    assert exc_info.value.error_code == "DOWNLOAD_UNSUPPORTED"
