"""
Session resolution strategies.

Each resolver answers one question, "where does this institution keep the
credential?", synchronously and without network I/O. A resolver either returns
a non-empty string or raises ``SessionNotFoundError`` naming every location it
tried; it never returns a falsy value.
"""

import base64
import binascii
import hashlib
import time
from abc import ABC, abstractmethod
from typing import List, Optional, Sequence

import jwt
from cryptography.hazmat.primitives import padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from bankstatements.config.constants import TOKEN_EXPIRY_BUFFER_SECONDS
from bankstatements.exceptions import SessionNotFoundError
from bankstatements.logger import logger

from .credentials import CredentialStore

OPENSSL_MAGIC = b"Salted__"
AES_KEY_SIZE = 32
AES_IV_SIZE = 16


class SessionResolver(ABC):
  @abstractmethod
  def locations(self) -> List[str]:
    """Human-readable list of the places this resolver reads."""

  @abstractmethod
  def find(self, store: CredentialStore) -> Optional[str]:
    """Return the credential, or None when it is not present."""

  def resolve(self, store: CredentialStore) -> str:
    value = self.find(store)
    if not value:
      raise SessionNotFoundError(tried=self.locations())
    return value


class CookieResolver(SessionResolver):
  """
  First non-empty cookie among ``names``, in the order given.

  With ``prefix`` set the resolver instead scans for the first cookie whose
  name starts with the prefix and returns ``name=value``, for institutions
  that encode the user id in the cookie name itself.
  """

  def __init__(self, names: Sequence[str] = (), prefix: Optional[str] = None):
    if not names and not prefix:
      raise ValueError("CookieResolver needs cookie names or a prefix")
    self.names = list(names)
    self.prefix = prefix

  def locations(self) -> List[str]:
    tried = [f"cookie:{name}" for name in self.names]
    if self.prefix:
      tried.append(f"cookie:{self.prefix}*")
    return tried

  def find(self, store: CredentialStore) -> Optional[str]:
    for name in self.names:
      value = store.cookie(name)
      if value:
        return value
    if self.prefix:
      for name, value in store.cookies().items():
        if name.startswith(self.prefix):
          return f"{name}={value}"
    return None


class StorageResolver(SessionResolver):
  """First non-empty key in local or session storage."""

  def __init__(self, area: str, keys: Sequence[str]):
    if area not in ("local", "session"):
      raise ValueError(f"Unknown storage area: {area}")
    self.area = area
    self.keys = list(keys)

  def locations(self) -> List[str]:
    return [f"{self.area}Storage:{key}" for key in self.keys]

  def find(self, store: CredentialStore) -> Optional[str]:
    read = store.local_item if self.area == "local" else store.session_item
    for key in self.keys:
      value = read(key)
      if value:
        return value
    return None


class StoragePrefixResolver(SessionResolver):
  """First non-empty storage entry whose key starts with ``prefix``, in sorted key order."""

  def __init__(self, area: str, prefix: str):
    if area not in ("local", "session"):
      raise ValueError(f"Unknown storage area: {area}")
    self.area = area
    self.prefix = prefix

  def locations(self) -> List[str]:
    return [f"{self.area}Storage:{self.prefix}*"]

  def find(self, store: CredentialStore) -> Optional[str]:
    if self.area == "local":
      keys, read = store.local_keys(), store.local_item
    else:
      keys, read = store.session_keys(), store.session_item
    for key in sorted(k for k in keys if k.startswith(self.prefix)):
      value = read(key)
      if value:
        return value
    return None


class ChainResolver(SessionResolver):
  """Try resolvers in a fixed priority order; the first hit wins."""

  def __init__(self, *resolvers: SessionResolver):
    if not resolvers:
      raise ValueError("ChainResolver needs at least one resolver")
    self.resolvers = list(resolvers)

  def locations(self) -> List[str]:
    tried: List[str] = []
    for resolver in self.resolvers:
      tried.extend(resolver.locations())
    return tried

  def find(self, store: CredentialStore) -> Optional[str]:
    for resolver in self.resolvers:
      value = resolver.find(store)
      if value:
        return value
    return None


# ============================================================================
# Encrypted token
# ============================================================================


def evp_bytes_to_key(
  passphrase: bytes,
  salt: bytes,
  key_size: int = AES_KEY_SIZE,
  iv_size: int = AES_IV_SIZE,
) -> tuple[bytes, bytes]:
  """OpenSSL EVP_BytesToKey with MD5 and a single iteration."""
  derived = b""
  block = b""
  while len(derived) < key_size + iv_size:
    block = hashlib.md5(block + passphrase + salt).digest()
    derived += block
  return derived[:key_size], derived[key_size : key_size + iv_size]


def decrypt_openssl_aes(ciphertext_b64: str, passphrase: bytes) -> bytes:
  """
  Decrypt an OpenSSL ``Salted__`` AES-256-CBC payload.

  Raises:
      ValueError: payload is not base64, lacks the salt header, or does not
          decrypt to correctly padded plaintext
  """
  try:
    raw = base64.b64decode(ciphertext_b64, validate=True)
  except binascii.Error as e:
    raise ValueError(f"ciphertext is not base64: {e}")

  if len(raw) < 32 or raw[:8] != OPENSSL_MAGIC:
    raise ValueError("ciphertext lacks the Salted__ header")

  salt, body = raw[8:16], raw[16:]
  if len(body) % 16:
    raise ValueError("ciphertext is not a whole number of blocks")

  key, iv = evp_bytes_to_key(passphrase, salt)
  decryptor = Cipher(algorithms.AES(key), modes.CBC(iv)).decryptor()
  padded = decryptor.update(body) + decryptor.finalize()

  unpadder = padding.PKCS7(algorithms.AES.block_size).unpadder()
  return unpadder.update(padded) + unpadder.finalize()


class EncryptedTokenResolver(SessionResolver):
  """
  Bearer token kept encrypted in session storage.

  The passphrase lives base64-encoded in a cookie whose name starts with
  ``cookie_prefix``; the ciphertext lives under ``storage_key``. The decrypted
  plaintext must look like a JWT (``eyJ`` prefix).
  """

  def __init__(self, cookie_prefix: str, storage_key: str):
    self.cookie_prefix = cookie_prefix
    self.storage_key = storage_key

  def locations(self) -> List[str]:
    return [f"cookie:{self.cookie_prefix}*", f"sessionStorage:{self.storage_key}"]

  def _passphrase(self, store: CredentialStore) -> Optional[bytes]:
    for name, value in store.cookies().items():
      if name.startswith(self.cookie_prefix) and value:
        try:
          return base64.b64decode(value)
        except (binascii.Error, ValueError):
          logger.warning(f"Cookie {name} does not hold a base64 passphrase")
          return None
    return None

  def find(self, store: CredentialStore) -> Optional[str]:
    passphrase = self._passphrase(store)
    if not passphrase:
      return None

    ciphertext = store.session_item(self.storage_key)
    if not ciphertext:
      return None

    try:
      plaintext = decrypt_openssl_aes(ciphertext, passphrase)
    except ValueError as e:
      logger.warning(f"Could not decrypt session token: {e}")
      return None

    token = plaintext.decode("utf-8", errors="replace")
    if not token.startswith("eyJ"):
      logger.warning("Decrypted session token is not a JWT")
      return None
    return token


# ============================================================================
# JWT freshness
# ============================================================================


def token_expiry(token: str) -> Optional[int]:
  """Unverified ``exp`` claim in epoch seconds, or None when absent or unreadable."""
  try:
    claims = jwt.decode(
      token,
      options={"verify_signature": False, "verify_exp": False},
      algorithms=["HS256", "RS256", "ES256"],
    )
  except jwt.PyJWTError:
    return None

  exp = claims.get("exp")
  if isinstance(exp, (int, float)):
    return int(exp)
  return None


def is_token_fresh(
  token: str,
  buffer_seconds: int = TOKEN_EXPIRY_BUFFER_SECONDS,
  now: Optional[float] = None,
) -> bool:
  """True when the token carries no expiry or expires more than ``buffer_seconds`` from now."""
  exp = token_expiry(token)
  if exp is None:
    return True
  current = time.time() if now is None else now
  return exp - current > buffer_seconds
