from .credentials import CredentialStore, InMemoryCredentialStore
from .resolvers import (
  ChainResolver,
  CookieResolver,
  EncryptedTokenResolver,
  SessionResolver,
  StoragePrefixResolver,
  StorageResolver,
  decrypt_openssl_aes,
  evp_bytes_to_key,
  is_token_fresh,
  token_expiry,
)

__all__ = [
  "ChainResolver",
  "CookieResolver",
  "CredentialStore",
  "EncryptedTokenResolver",
  "InMemoryCredentialStore",
  "SessionResolver",
  "StoragePrefixResolver",
  "StorageResolver",
  "decrypt_openssl_aes",
  "evp_bytes_to_key",
  "is_token_fresh",
  "token_expiry",
]
