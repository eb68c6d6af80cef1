"""Tests for the adapter conformance checker."""

import textwrap

import pytest

from bankstatements.adapters.base import BankAdapter
from bankstatements.conformance import (
  ASYNC,
  CONSTANT,
  SYNC,
  MemberSpec,
  check_class,
  check_conformance,
  parse_contract,
)
from bankstatements.exceptions import ConformanceError


class TestParseContract:
  def test_reads_shipped_contract(self):
    members = {m.name: m for m in parse_contract()}

    assert members["bank_id"] == MemberSpec("bank_id", CONSTANT)
    assert members["bank_name"] == MemberSpec("bank_name", CONSTANT)
    assert members["get_session_id"] == MemberSpec("get_session_id", SYNC, 0)
    assert members["get_profile"] == MemberSpec("get_profile", ASYNC, 1)
    assert members["download_statement"] == MemberSpec("download_statement", ASYNC, 1)

  def test_contract_source_drives_requirements(self):
    source = textwrap.dedent(
      """
      class Contract:
          region: str
          async def refresh(self, token, scope): ...
      """
    )

    assert parse_contract(source) == [
      MemberSpec("region", CONSTANT),
      MemberSpec("refresh", ASYNC, 2),
    ]


class Incomplete(BankAdapter):
  bank_id = ""
  bank_name = 7

  def get_session_id(self, extra):
    return "x"

  def get_profile(self, session_id):
    return None

  async def get_accounts(self, profile):
    return []

  async def get_statements(self):
    return []

  async def download_statement(self, statement):
    return None


class TestCheckClass:
  def test_reports_each_violation(self):
    violations = check_class(Incomplete, parse_contract())
    text = "\n".join(violations)

    assert "bank_id is empty" in text
    assert "bank_name must be a string" in text
    assert "get_session_id takes 1 argument(s), expected 0" in text
    assert "get_profile must be async" in text
    assert "get_statements takes 0 argument(s), expected 1" in text
    assert "get_accounts" not in text

  def test_missing_member(self):
    violations = check_class(Incomplete, [MemberSpec("region", CONSTANT)])

    assert violations == [f"{Incomplete.__module__}.Incomplete: missing region"]


class TestCheckConformance:
  def test_shipped_adapters_conform(self):
    report = check_conformance()

    assert report.ok, report.violations
    assert len(report.checked_modules) == 7
    report.raise_for_violations()

  def test_detects_duplicates_and_empty_modules(self, tmp_path, monkeypatch):
    package = tmp_path / "sample_adapters"
    package.mkdir()
    (package / "__init__.py").write_text("")
    (package / "helpers.py").write_text("VALUE = 1\n")
    adapter_source = textwrap.dedent(
      """
      from bankstatements.adapters.base import BankAdapter
      from bankstatements.session import CookieResolver


      class {name}(BankAdapter):
          bank_id = "shared"
          bank_name = "{display}"
          session_resolver = CookieResolver(["SESSION"])

          async def get_profile(self, session_id): ...
          async def get_accounts(self, profile): ...
          async def get_statements(self, account): ...
          async def download_statement(self, statement): ...
      """
    )
    (package / "first.py").write_text(adapter_source.format(name="First", display="First Bank"))
    (package / "second.py").write_text(adapter_source.format(name="Second", display="Second Bank"))
    monkeypatch.syspath_prepend(str(tmp_path))

    report = check_conformance(package="sample_adapters")

    assert not report.ok
    assert "sample_adapters.helpers: no adapter class" in report.violations
    assert any("duplicate bank_id 'shared'" in v for v in report.violations)
    with pytest.raises(ConformanceError):
      report.raise_for_violations()
