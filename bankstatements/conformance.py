"""
Adapter conformance checking.

The required members are read from the syntax tree of
``bankstatements/adapters/contract.py`` rather than hard-coded, so changing
the contract file changes what is enforced. Every discovered adapter module
is then checked against it at runtime.
"""

import ast
import inspect
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional

from bankstatements.adapters import contract
from bankstatements.adapters.registry import PACKAGE, adapter_classes_in, iter_adapter_modules
from bankstatements.exceptions import ConformanceError
from bankstatements.logger import get_logger

logger = get_logger("bankstatements.conformance")

CONSTANT = "constant"
SYNC = "sync"
ASYNC = "async"


@dataclass(frozen=True)
class MemberSpec:
  name: str
  kind: str
  arity: int = 0


@dataclass
class ConformanceReport:
  violations: List[str] = field(default_factory=list)
  checked_modules: List[str] = field(default_factory=list)

  @property
  def ok(self) -> bool:
    return not self.violations

  def raise_for_violations(self) -> None:
    if self.violations:
      raise ConformanceError(self.violations)


def _arity(node: ast.FunctionDef | ast.AsyncFunctionDef) -> int:
  positional = node.args.posonlyargs + node.args.args
  names = [a.arg for a in positional]
  if names and names[0] == "self":
    names = names[1:]
  return len(names)


def parse_contract(source: Optional[str] = None) -> List[MemberSpec]:
  """
  Required members declared by the contract class.

  Annotated class attributes are string constants, ``def`` is a synchronous
  method and ``async def`` an asynchronous one.
  """
  if source is None:
    source = Path(contract.__file__).read_text(encoding="utf-8")
  tree = ast.parse(source)

  members: List[MemberSpec] = []
  for node in ast.walk(tree):
    if not isinstance(node, ast.ClassDef):
      continue
    for item in node.body:
      if isinstance(item, ast.AnnAssign) and isinstance(item.target, ast.Name):
        members.append(MemberSpec(item.target.id, CONSTANT))
      elif isinstance(item, ast.AsyncFunctionDef):
        members.append(MemberSpec(item.name, ASYNC, _arity(item)))
      elif isinstance(item, ast.FunctionDef):
        members.append(MemberSpec(item.name, SYNC, _arity(item)))
  return members


def _required_params(func) -> int:
  params = list(inspect.signature(func).parameters.values())
  if params and params[0].name == "self":
    params = params[1:]
  return sum(
    1
    for p in params
    if p.kind in (p.POSITIONAL_ONLY, p.POSITIONAL_OR_KEYWORD) and p.default is p.empty
  )


def check_class(cls, members: List[MemberSpec]) -> List[str]:
  """Violations of one adapter class against the contract members."""
  violations = []
  label = f"{cls.__module__}.{cls.__name__}"
  for member in members:
    if not hasattr(cls, member.name):
      violations.append(f"{label}: missing {member.name}")
      continue
    value = getattr(cls, member.name)

    if member.kind == CONSTANT:
      if not isinstance(value, str):
        violations.append(f"{label}: {member.name} must be a string, got {type(value).__name__}")
      elif not value.strip():
        violations.append(f"{label}: {member.name} is empty")
      continue

    if not callable(value):
      violations.append(f"{label}: {member.name} is not callable")
      continue
    is_async = inspect.iscoroutinefunction(value)
    if member.kind == ASYNC and not is_async:
      violations.append(f"{label}: {member.name} must be async")
    elif member.kind == SYNC and is_async:
      violations.append(f"{label}: {member.name} must not be async")

    arity = _required_params(value)
    if arity != member.arity:
      violations.append(
        f"{label}: {member.name} takes {arity} argument(s), expected {member.arity}"
      )
  return violations


def check_conformance(package: str = PACKAGE, contract_source: Optional[str] = None) -> ConformanceReport:
  """Check every adapter module in ``package`` against the contract."""
  members = parse_contract(contract_source)
  report = ConformanceReport()
  seen_ids: Dict[str, str] = {}
  seen_names: Dict[str, str] = {}

  for module in iter_adapter_modules(package):
    report.checked_modules.append(module.__name__)
    classes = adapter_classes_in(module)
    if not classes:
      report.violations.append(f"{module.__name__}: no adapter class")
      continue

    for cls in classes:
      report.violations.extend(check_class(cls, members))
      label = f"{module.__name__}.{cls.__name__}"
      for attr, seen in (("bank_id", seen_ids), ("bank_name", seen_names)):
        value = getattr(cls, attr, None)
        if not isinstance(value, str) or not value:
          continue
        if value in seen:
          report.violations.append(f"{label}: duplicate {attr} {value!r} (also {seen[value]})")
        else:
          seen[value] = label

  if report.violations:
    logger.warning(
      f"Adapter conformance: {len(report.violations)} violation(s) "
      f"across {len(report.checked_modules)} module(s)"
    )
  else:
    logger.debug(f"Adapter conformance: {len(report.checked_modules)} module(s) conform")
  return report
