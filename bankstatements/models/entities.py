"""
Canonical entities shared by every adapter.

Entities are immutable and ephemeral: adapters build them from responses and
hand them straight back to the caller. Nothing in the core caches them.
"""

from dataclasses import dataclass
from enum import Enum


class AccountType(str, Enum):
  """Closed set of account categories every institution maps onto."""

  CHECKING = "Checking"
  SAVINGS = "Savings"
  CREDIT_CARD = "CreditCard"
  LOAN = "Loan"
  INVESTMENT = "Investment"


@dataclass(frozen=True)
class Profile:
  """
  The logged-in holder.

  ``session_id`` is the credential the adapter derived for this call. It is
  carried for the duration of a call chain and never persisted.
  """

  session_id: str
  profile_id: str
  profile_name: str


@dataclass(frozen=True)
class Account:
  profile: Profile
  account_id: str
  account_name: str
  account_mask: str
  account_type: AccountType


@dataclass(frozen=True)
class Statement:
  """
  One downloadable statement.

  ``statement_id`` is opaque outside the adapter that produced it and holds
  everything that adapter needs to fetch the document later.
  """

  account: Account
  statement_id: str
  statement_date: str


@dataclass(frozen=True)
class Document:
  """A downloaded statement file."""

  content: bytes
  content_type: str = "application/pdf"

  @property
  def size(self) -> int:
    return len(self.content)
