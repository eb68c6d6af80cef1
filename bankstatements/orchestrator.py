"""
Statement orchestrator.

Picks the adapter for a bank id or page hostname and runs the contract
operations in order for a caller. The orchestrator holds no state between
calls: every top-level operation derives the session again from the
credential store.
"""

import time
from typing import Any, Callable, Dict, List, Optional

from bankstatements.adapters import BankAdapter, find_adapter_for_hostname, get_adapter_class
from bankstatements.config import PipelineSettings
from bankstatements.exceptions import BankStatementsError, InvalidMessageError
from bankstatements.logger import get_logger, log_error
from bankstatements.models import (
  Account,
  Statement,
  account_from_dict,
  account_to_dict,
  statement_from_dict,
  statement_to_dict,
)
from bankstatements.normalize import to_data_url
from bankstatements.pipeline.polling import SleepFunc
from bankstatements.session import CredentialStore
from bankstatements.transport import Transport

logger = get_logger("bankstatements.orchestrator")


class StatementOrchestrator:
  """
  Runs the adapter contract for one institution.

  Args:
      credentials: Store the session is read from
      transport: Transport all adapter requests go through
      bank_id: Adapter to use; takes precedence over ``hostname``
      hostname: Page hostname used to find the adapter when no bank id is given
      settings: Pipeline settings passed to the adapter
      sleep: Sleep function for polling, for tests
      enabled: Optional allow-list of bank ids
  """

  def __init__(
    self,
    credentials: CredentialStore,
    transport: Transport,
    bank_id: Optional[str] = None,
    hostname: Optional[str] = None,
    settings: Optional[PipelineSettings] = None,
    sleep: Optional[SleepFunc] = None,
    enabled: Optional[List[str]] = None,
  ):
    if bank_id:
      adapter_class = get_adapter_class(bank_id, enabled)
    elif hostname:
      adapter_class = find_adapter_for_hostname(hostname, enabled)
    else:
      raise ValueError("Either bank_id or hostname is required")

    self.adapter: BankAdapter = adapter_class(credentials, transport, settings=settings, sleep=sleep)
    self._handlers: Dict[str, Callable[[Dict[str, Any]], Any]] = {
      "getBankId": self._handle_bank_id,
      "getBankName": self._handle_bank_name,
      "getSessionId": self._handle_session_id,
      "getAccounts": self._handle_accounts,
      "getStatements": self._handle_statements,
      "downloadStatement": self._handle_download,
    }

  # ==========================================================================
  # Operations
  # ==========================================================================

  def get_bank_id(self) -> str:
    return self.adapter.bank_id

  def get_bank_name(self) -> str:
    return self.adapter.bank_name

  def get_session_id(self) -> str:
    return self.adapter.get_session_id()

  async def get_accounts(self) -> List[Account]:
    session_id = self.adapter.get_session_id()
    profile = await self.adapter.get_profile(session_id)
    return await self.adapter.get_accounts(profile)

  async def get_statements(self, account: Account) -> List[Statement]:
    self.adapter.get_session_id()
    return await self.adapter.get_statements(account)

  async def download_statement(self, statement: Statement) -> str:
    """Download a statement and return it as a ``data:`` URL."""
    self.adapter.get_session_id()
    document = await self.adapter.download_statement(statement)
    logger.info(
      f"Downloaded {self.adapter.bank_id} statement {statement.statement_date} "
      f"({document.size} bytes)"
    )
    return to_data_url(document)

  # ==========================================================================
  # Message handling
  # ==========================================================================

  async def _handle_bank_id(self, message: Dict[str, Any]) -> str:
    return self.get_bank_id()

  async def _handle_bank_name(self, message: Dict[str, Any]) -> str:
    return self.get_bank_name()

  async def _handle_session_id(self, message: Dict[str, Any]) -> str:
    return self.get_session_id()

  async def _handle_accounts(self, message: Dict[str, Any]) -> List[Dict[str, Any]]:
    return [account_to_dict(a) for a in await self.get_accounts()]

  async def _handle_statements(self, message: Dict[str, Any]) -> List[Dict[str, Any]]:
    if not message.get("account"):
      raise InvalidMessageError("getStatements", "account")
    account = account_from_dict(message["account"])
    return [statement_to_dict(s) for s in await self.get_statements(account)]

  async def _handle_download(self, message: Dict[str, Any]) -> str:
    if not message.get("statement"):
      raise InvalidMessageError("downloadStatement", "statement")
    return await self.download_statement(statement_from_dict(message["statement"]))

  async def handle(self, message: Dict[str, Any]) -> Dict[str, Any]:
    """
    Answer one ``{"action": ...}`` message.

    Returns ``{"success": True, "data": ...}``, or for typed failures
    ``{"success": False, "error": message, "error_code": code}`` with the
    error message passed through unchanged.
    """
    action = message.get("action")
    handler = self._handlers.get(action)
    if handler is None:
      return {
        "success": False,
        "error": f"Unknown action: {action}",
        "error_code": "UNKNOWN_ACTION",
      }

    start = time.monotonic()
    try:
      data = await handler(message)
    except BankStatementsError as e:
      log_error(
        logger,
        e,
        component="orchestrator",
        action=action,
        error_category=e.error_code,
        bank_id=self.adapter.bank_id,
      )
      return {"success": False, "error": e.message, "error_code": e.error_code}

    logger.debug(
      f"{self.adapter.bank_id} {action} answered in {(time.monotonic() - start) * 1000:.0f}ms"
    )
    return {"success": True, "data": data}
