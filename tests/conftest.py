import json
from typing import Any, Dict, List, Optional, Tuple

import pytest

from bankstatements.config import PipelineSettings
from bankstatements.models import Account, AccountType, Profile, Statement
from bankstatements.session import InMemoryCredentialStore
from bankstatements.transport import FetchRequest, FetchResponse, Transport

# Smallest byte string that sniffs as a PDF
PDF_BYTES = b"%PDF-1.7\n1 0 obj\n<<>>\nendobj\ntrailer\n<<>>\n%%EOF\n"


def json_response(data: Any, status: int = 200, headers: Optional[Dict[str, str]] = None) -> FetchResponse:
  return FetchResponse(
    status=status,
    status_text="OK" if status < 400 else "Error",
    headers={"Content-Type": "application/json", **(headers or {})},
    body=json.dumps(data).encode("utf-8"),
  )


def text_response(text: str, status: int = 200, content_type: str = "text/html") -> FetchResponse:
  return FetchResponse(
    status=status,
    status_text="OK" if status < 400 else "Error",
    headers={"Content-Type": content_type},
    body=text.encode("utf-8"),
  )


def pdf_response(body: bytes = PDF_BYTES, content_type: str = "application/pdf") -> FetchResponse:
  return FetchResponse(status=200, status_text="OK", headers={"Content-Type": content_type}, body=body)


def error_response(status: int, status_text: str = "Error") -> FetchResponse:
  return FetchResponse(status=status, status_text=status_text, body=b"")


class ScriptedTransport(Transport):
  """
  Transport fake driven by a route table.

  Routes match on method and a URL substring, first match wins. Each route
  holds a list of responses consumed in order; the last one repeats. A
  response may be an exception instance, which is raised instead.
  """

  def __init__(self):
    self.routes: List[Tuple[str, str, List[Any]]] = []
    self.calls: List[FetchRequest] = []

  def add(self, method: str, fragment: str, *responses: Any) -> "ScriptedTransport":
    self.routes.append((method.upper(), fragment, list(responses)))
    return self

  def calls_to(self, fragment: str, method: Optional[str] = None) -> List[FetchRequest]:
    return [
      c
      for c in self.calls
      if fragment in c.full_url and (method is None or c.method == method.upper())
    ]

  async def fetch(self, request: FetchRequest) -> FetchResponse:
    self.calls.append(request)
    url = request.full_url
    for method, fragment, responses in self.routes:
      if method != request.method.upper() or fragment not in url:
        continue
      response = responses.pop(0) if len(responses) > 1 else responses[0]
      if isinstance(response, Exception):
        raise response
      return response
    raise AssertionError(f"Unexpected request: {request.method} {url}")


class FakeSleep:
  """Records requested delays instead of sleeping."""

  def __init__(self):
    self.delays: List[float] = []

  async def __call__(self, seconds: float) -> None:
    self.delays.append(seconds)


@pytest.fixture
def transport():
  return ScriptedTransport()


@pytest.fixture
def fake_sleep():
  return FakeSleep()


@pytest.fixture
def settings():
  return PipelineSettings(
    poll_interval=1.0,
    poll_max_attempts=5,
    min_document_bytes=10240,
    trailing_months=12,
    trailing_years=7,
  )


@pytest.fixture
def credentials():
  return InMemoryCredentialStore()


@pytest.fixture
def pdf_bytes():
  return PDF_BYTES


@pytest.fixture
def profile():
  return Profile(session_id="session-1", profile_id="42", profile_name="Jane Doe")


@pytest.fixture
def checking_account(profile):
  return Account(
    profile=profile,
    account_id="acct-1",
    account_name="Everyday Chequing",
    account_mask="4567",
    account_type=AccountType.CHECKING,
  )


@pytest.fixture
def make_statement(checking_account):
  def _make(statement_id: str, statement_date: str, account: Optional[Account] = None) -> Statement:
    return Statement(
      account=account or checking_account,
      statement_id=statement_id,
      statement_date=statement_date,
    )

  return _make
