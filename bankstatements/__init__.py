"""
bankstatements: statement retrieval from logged-in online banking sessions.

Each institution is an adapter implementing the same five operations
(session, profile, accounts, statements, download). The orchestrator picks an
adapter and runs them; the conformance checker keeps every adapter honest
against the declared contract.
"""

from .exceptions import BankStatementsError
from .models import Account, AccountType, Document, Profile, Statement
from .orchestrator import StatementOrchestrator

__version__ = "0.1.0"

__all__ = [
  "Account",
  "AccountType",
  "BankStatementsError",
  "Document",
  "Profile",
  "Statement",
  "StatementOrchestrator",
]
