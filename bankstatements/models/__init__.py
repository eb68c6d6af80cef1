from .entities import Account, AccountType, Document, Profile, Statement
from .refs import CompositeRef, decode_ref, encode_ref, validate_ref
from .wire import (
  account_from_dict,
  account_to_dict,
  profile_from_dict,
  profile_to_dict,
  statement_from_dict,
  statement_to_dict,
)

__all__ = [
  "Account",
  "AccountType",
  "CompositeRef",
  "Document",
  "Profile",
  "Statement",
  "account_from_dict",
  "account_to_dict",
  "decode_ref",
  "encode_ref",
  "profile_from_dict",
  "profile_to_dict",
  "statement_from_dict",
  "statement_to_dict",
  "validate_ref",
]
