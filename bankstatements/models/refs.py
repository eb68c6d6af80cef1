"""
Typed composite identifiers.

Adapters that need more than one value to find a statement later (a document
descriptor, a date range, an account key plus opening date) declare a pydantic
model for it. The model is serialized to an opaque string only when it crosses
the adapter boundary as ``account_id`` or ``statement_id``.
"""

import base64
import json
from typing import Type, TypeVar

from pydantic import BaseModel, ConfigDict, ValidationError

from bankstatements.exceptions import MalformedResponseError

RefT = TypeVar("RefT", bound="CompositeRef")


class CompositeRef(BaseModel):
  """Base class for adapter-private composite identifiers."""

  model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)


def encode_ref(ref: CompositeRef) -> str:
  """Serialize a composite id to a URL-safe opaque token."""
  raw = ref.model_dump_json(by_alias=True, exclude_none=True)
  return base64.urlsafe_b64encode(raw.encode("utf-8")).decode("ascii").rstrip("=")


def decode_ref(model: Type[RefT], token: str) -> RefT:
  """
  Rebuild a composite id from its opaque token.

  Raises:
      MalformedResponseError: token is not a valid encoding of ``model``;
          ``field`` names the first offending field when pydantic reports one
  """
  if not token:
    raise MalformedResponseError(model.__name__, reason="empty identifier")

  padded = token + "=" * (-len(token) % 4)
  try:
    payload = json.loads(base64.urlsafe_b64decode(padded.encode("ascii")))
  except (ValueError, UnicodeError) as e:
    raise MalformedResponseError(model.__name__, reason=f"undecodable identifier: {e}")

  return validate_ref(model, payload)


def validate_ref(model: Type[RefT], payload: object) -> RefT:
  """
  Build a composite id from a response fragment.

  Raises:
      MalformedResponseError: ``field`` names the first offending field
  """
  if not isinstance(payload, dict):
    raise MalformedResponseError(model.__name__, reason="expected an object")

  try:
    return model.model_validate(payload)
  except ValidationError as e:
    errors = e.errors()
    if not errors:
      raise MalformedResponseError(model.__name__)
    field = ".".join(str(part) for part in errors[0]["loc"]) or model.__name__
    raise MalformedResponseError(field, reason=errors[0]["msg"])
