"""
Base class for institution adapters.

Adapters are constructed with their collaborators injected: a credential
store to read the session from, a transport to talk to the institution, and a
settings snapshot. The helpers here give every adapter the same status-code
handling, JSON parsing, normalization and document validation.
"""

import time
from abc import ABC, abstractmethod
from typing import Any, Iterable, List, Optional

from bankstatements.config import PipelineSettings
from bankstatements.exceptions import (
  AuthError,
  BankRequestError,
  DownloadError,
  MalformedResponseError,
  NoDataError,
  SessionNotFoundError,
)
from bankstatements.logger import adapter_logger, log_bank_request
from bankstatements.models import Account, Document, Profile, Statement
from bankstatements.normalize import dedupe_accounts, sort_statements, validate_document
from bankstatements.pipeline import Poller, parse_json
from bankstatements.pipeline.polling import SleepFunc
from bankstatements.pipeline.extractors import dig
from bankstatements.session import CredentialStore, SessionResolver
from bankstatements.transport import FetchRequest, FetchResponse, Transport

PROFILE = "profile"
ACCOUNTS = "accounts"
STATEMENTS = "statements"
DOWNLOAD = "download"


class BankAdapter(ABC):
  """
  One financial institution behind the five-operation contract.

  Subclasses set ``bank_id``, ``bank_name`` and either a
  ``session_resolver`` or their own ``get_session_id``.
  """

  bank_id: str = ""
  bank_name: str = ""
  session_resolver: Optional[SessionResolver] = None

  def __init__(
    self,
    credentials: CredentialStore,
    transport: Transport,
    settings: Optional[PipelineSettings] = None,
    sleep: Optional[SleepFunc] = None,
  ):
    self.credentials = credentials
    self.transport = transport
    self.settings = settings or PipelineSettings.from_env()
    self.sleep = sleep

  # ==========================================================================
  # Contract
  # ==========================================================================

  def get_session_id(self) -> str:
    if self.session_resolver is None:
      raise SessionNotFoundError(tried=[], bank_id=self.bank_id)
    value = self.session_resolver.find(self.credentials)
    if not value:
      raise SessionNotFoundError(
        tried=self.session_resolver.locations(), bank_id=self.bank_id
      )
    return value

  @abstractmethod
  async def get_profile(self, session_id: str) -> Profile:
    pass

  @abstractmethod
  async def get_accounts(self, profile: Profile) -> List[Account]:
    pass

  @abstractmethod
  async def get_statements(self, account: Account) -> List[Statement]:
    pass

  @abstractmethod
  async def download_statement(self, statement: Statement) -> Document:
    pass

  # ==========================================================================
  # Plumbing
  # ==========================================================================

  async def _request(self, request: FetchRequest, stage: str) -> FetchResponse:
    """
    Perform a request and map failure statuses onto the error taxonomy.

    401/403 raise ``AuthError`` at every stage. Other non-2xx statuses raise
    ``AuthError`` during profile lookup, ``DownloadError`` during download and
    ``BankRequestError`` otherwise.
    """
    start = time.monotonic()
    response = await self.transport.fetch(request)
    duration_ms = (time.monotonic() - start) * 1000
    log_bank_request(
      adapter_logger,
      self.bank_id,
      request.method,
      request.url,
      response.status,
      duration_ms,
    )

    if response.ok:
      return response

    status, text = response.status, response.status_text
    if status in (401, 403) or stage == PROFILE:
      raise AuthError(status, text)
    if stage == DOWNLOAD:
      raise DownloadError(
        f"Failed to download statement: {status} {text}".strip(), status=status
      )
    raise BankRequestError(
      f"Failed to get {stage}: {status} {text}".strip(),
      status=status,
      status_text=text,
      url=request.url,
    )

  async def _get_json(self, request: FetchRequest, stage: str, field: Optional[str] = None) -> Any:
    response = await self._request(request, stage)
    return self._json(response, field or stage)

  def _json(self, response: FetchResponse, field: str = "body") -> Any:
    return parse_json(response.text(), field)

  def _require(self, data: Any, path: str, field: Optional[str] = None) -> Any:
    """Value at a dotted path; missing or empty raises ``MalformedResponseError``."""
    value = dig(data, path)
    if value is None or value == "":
      raise MalformedResponseError(field or path)
    return value

  def _profile_name(
    self,
    full_name: Optional[str],
    first_name: Optional[str],
    last_name: Optional[str],
    holder_id: str,
  ) -> str:
    """Full name, else first/last, else the holder id."""
    if full_name and full_name.strip():
      return full_name.strip()
    joined = " ".join(p.strip() for p in (first_name, last_name) if p and p.strip())
    return joined or holder_id

  def _dedupe_accounts(self, accounts: Iterable[Account]) -> List[Account]:
    unique = dedupe_accounts(accounts)
    if not unique:
      raise NoDataError("accounts", bank_id=self.bank_id)
    return unique

  def _sorted_statements(self, statements: Iterable[Statement]) -> List[Statement]:
    return sort_statements(statements)

  def _validated_document(
    self,
    response: FetchResponse,
    min_size: Optional[int] = None,
    require_declared_pdf: bool = False,
  ) -> Document:
    return validate_document(
      response.body,
      response.header("content-type"),
      min_size=min_size,
      require_declared_pdf=require_declared_pdf,
    )

  def _poller(self, label: Optional[str] = None) -> Poller:
    return Poller(
      interval=self.settings.poll_interval,
      max_attempts=self.settings.poll_max_attempts,
      sleep=self.sleep,
      label=label,
    )
