"""
Credential store capability.

Adapters never read process-wide state. Everything a session resolver needs
(cookies, local storage, session storage) comes through a ``CredentialStore``
handed to the adapter at construction.
"""

import asyncio
from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict, List, Optional


class CredentialStore(ABC):
  """Read access to the browser-side credential locations."""

  def __init__(self):
    # Serializes scoped_cookie blocks; the cookie namespace is shared
    self._scope_lock = asyncio.Lock()

  @abstractmethod
  def cookie(self, name: str) -> Optional[str]:
    """Return the cookie value, or None when absent."""

  @abstractmethod
  def cookies(self) -> Dict[str, str]:
    """Return every visible cookie in insertion order."""

  @abstractmethod
  def local_item(self, key: str) -> Optional[str]:
    pass

  @abstractmethod
  def session_item(self, key: str) -> Optional[str]:
    pass

  @abstractmethod
  def local_keys(self) -> List[str]:
    pass

  @abstractmethod
  def session_keys(self) -> List[str]:
    pass

  @abstractmethod
  def set_cookie(self, name: str, value: Optional[str]) -> None:
    """Set a cookie, or delete it when ``value`` is None."""

  def cookie_header(self) -> str:
    """Render cookies as a ``Cookie`` request header value."""
    return "; ".join(f"{name}={value}" for name, value in self.cookies().items())

  @asynccontextmanager
  async def scoped_cookie(self, name: str, value: str) -> AsyncIterator[None]:
    """
    Set a cookie for the duration of a block.

    The previous value (or absence) is restored on exit, including when the
    block raises, so an account-selection cookie never leaks into calls made
    for another account. Blocks on the same store run one at a time: a
    concurrent caller waits until the cookie has been restored.

    Example:
        async with credentials.scoped_cookie("dfsedskey", account_id):
            response = await transport.fetch(request)
    """
    async with self._scope_lock:
      previous = self.cookie(name)
      self.set_cookie(name, value)
      try:
        yield
      finally:
        self.set_cookie(name, previous)


class InMemoryCredentialStore(CredentialStore):
  """Dictionary-backed store used by the orchestrator and tests."""

  def __init__(
    self,
    cookies: Optional[Dict[str, str]] = None,
    local_storage: Optional[Dict[str, str]] = None,
    session_storage: Optional[Dict[str, str]] = None,
  ):
    super().__init__()
    self._cookies: Dict[str, str] = dict(cookies or {})
    self._local: Dict[str, str] = dict(local_storage or {})
    self._session: Dict[str, str] = dict(session_storage or {})

  @classmethod
  def from_cookie_header(
    cls,
    header: str,
    local_storage: Optional[Dict[str, str]] = None,
    session_storage: Optional[Dict[str, str]] = None,
  ) -> "InMemoryCredentialStore":
    """
    Build a store from a ``document.cookie`` style string.

    Values keep any embedded ``=`` (base64 padding); pairs without a name are
    dropped.
    """
    cookies: Dict[str, str] = {}
    for part in (header or "").split(";"):
      name, sep, value = part.strip().partition("=")
      name = name.strip()
      if not name or not sep:
        continue
      cookies[name] = value.strip()
    return cls(cookies, local_storage, session_storage)

  def cookie(self, name: str) -> Optional[str]:
    return self._cookies.get(name)

  def cookies(self) -> Dict[str, str]:
    return dict(self._cookies)

  def local_item(self, key: str) -> Optional[str]:
    return self._local.get(key)

  def session_item(self, key: str) -> Optional[str]:
    return self._session.get(key)

  def local_keys(self) -> List[str]:
    return list(self._local)

  def session_keys(self) -> List[str]:
    return list(self._session)

  def set_cookie(self, name: str, value: Optional[str]) -> None:
    if value is None:
      self._cookies.pop(name, None)
    else:
      self._cookies[name] = value
