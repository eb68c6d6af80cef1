"""
Adapter discovery and lookup.

Every module in this package that defines a concrete ``BankAdapter`` subclass
is an institution adapter. Discovery walks the package with ``pkgutil``, so
adding an institution means adding a module.
"""

import importlib
import inspect
import pkgutil
from types import ModuleType
from typing import Dict, Iterator, List, Optional, Type

from bankstatements.config import EnvConfig, InstitutionsConfig
from bankstatements.exceptions import UnsupportedBankError

from .base import BankAdapter

PACKAGE = "bankstatements.adapters"
INFRASTRUCTURE_MODULES = frozenset({"base", "contract", "registry"})


def iter_adapter_modules(package: str = PACKAGE) -> Iterator[ModuleType]:
  """Import and yield every adapter module in ``package``."""
  pkg = importlib.import_module(package)
  for info in sorted(pkgutil.iter_modules(pkg.__path__), key=lambda m: m.name):
    if info.ispkg or info.name.startswith("_") or info.name in INFRASTRUCTURE_MODULES:
      continue
    yield importlib.import_module(f"{package}.{info.name}")


def adapter_classes_in(module: ModuleType) -> List[Type[BankAdapter]]:
  """Concrete ``BankAdapter`` subclasses defined (not imported) in ``module``."""
  return [
    obj
    for _, obj in inspect.getmembers(module, inspect.isclass)
    if issubclass(obj, BankAdapter)
    and obj is not BankAdapter
    and obj.__module__ == module.__name__
    and not inspect.isabstract(obj)
  ]


def adapter_classes(enabled: Optional[List[str]] = None) -> Dict[str, Type[BankAdapter]]:
  """
  Map bank id to adapter class.

  Args:
      enabled: Optional allow-list of bank ids; defaults to ENABLED_BANKS,
          and an empty list means every adapter
  """
  allow = enabled if enabled is not None else EnvConfig.ENABLED_BANKS
  classes: Dict[str, Type[BankAdapter]] = {}
  for module in iter_adapter_modules():
    for cls in adapter_classes_in(module):
      if allow and cls.bank_id not in allow:
        continue
      classes[cls.bank_id] = cls
  return classes


def get_adapter_class(bank_id: str, enabled: Optional[List[str]] = None) -> Type[BankAdapter]:
  classes = adapter_classes(enabled)
  if bank_id not in classes:
    raise UnsupportedBankError(bank_id)
  return classes[bank_id]


def _host_matches(hostname: str, suffix: str) -> bool:
  return hostname == suffix or hostname.endswith("." + suffix)


def find_adapter_for_hostname(hostname: str, enabled: Optional[List[str]] = None) -> Type[BankAdapter]:
  """
  Adapter serving a page hostname.

  The most specific (longest) matching suffix wins, so a dedicated host such
  as ``webbroker.td.com`` beats a broader domain.
  """
  hostname = (hostname or "").lower().strip(".")
  classes = adapter_classes(enabled)
  best: Optional[Type[BankAdapter]] = None
  best_len = -1
  for bank_id, suffixes in InstitutionsConfig.hostnames().items():
    if bank_id not in classes:
      continue
    for suffix in suffixes:
      if _host_matches(hostname, suffix) and len(suffix) > best_len:
        best, best_len = classes[bank_id], len(suffix)
  if best is None:
    raise UnsupportedBankError(hostname)
  return best
