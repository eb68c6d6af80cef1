"""
The adapter contract.

Every institution adapter provides these members with these shapes. The
conformance checker reads this file's syntax tree to learn the required
members, so keep it declarative: annotated constants and method stubs only.
"""

from typing import List, Protocol, runtime_checkable

from bankstatements.models import Account, Document, Profile, Statement


@runtime_checkable
class BankAdapterContract(Protocol):
  # Stable identifier, unique across adapters (e.g. "td_broker")
  bank_id: str
  # Display name, unique across adapters
  bank_name: str

  def get_session_id(self) -> str:
    """Read the credential from the injected store. No network I/O."""
    ...

  async def get_profile(self, session_id: str) -> Profile:
    ...

  async def get_accounts(self, profile: Profile) -> List[Account]:
    ...

  async def get_statements(self, account: Account) -> List[Statement]:
    ...

  async def download_statement(self, statement: Statement) -> Document:
    ...
