"""
Institution adapters.

Each module implements the five-operation contract for one institution.
"""

from .base import BankAdapter
from .contract import BankAdapterContract
from .registry import (
  adapter_classes,
  find_adapter_for_hostname,
  get_adapter_class,
  iter_adapter_modules,
)

__all__ = [
  "BankAdapter",
  "BankAdapterContract",
  "adapter_classes",
  "find_adapter_for_hostname",
  "get_adapter_class",
  "iter_adapter_modules",
]
