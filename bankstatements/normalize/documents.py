"""
Downloaded document validation.

A statement download "succeeds" at the HTTP level far more often than it
actually yields a PDF: login pages come back as 200 text/html, and some
backends answer with an empty or truncated octet-stream. Every adapter passes
its payload through ``validate_document`` before returning it.
"""

import base64
import binascii
from typing import Optional
from urllib.parse import unquote_to_bytes

from bankstatements.config.constants import (
  PDF_CONTENT_TYPE,
  PDF_MAGIC,
  UNRELIABLE_CONTENT_TYPES,
)
from bankstatements.exceptions import (
  EmptyDocumentError,
  InvalidContentTypeError,
  MalformedResponseError,
)
from bankstatements.models import Document


def media_type(content_type: Optional[str]) -> str:
  return (content_type or "").split(";", 1)[0].strip().lower()


def looks_like_pdf(content: bytes) -> bool:
  return content.lstrip()[: len(PDF_MAGIC)] == PDF_MAGIC


def validate_document(
  content: Optional[bytes],
  content_type: Optional[str],
  min_size: Optional[int] = None,
  require_declared_pdf: bool = False,
) -> Document:
  """
  Check that a payload is a non-empty PDF.

  Args:
      content: Raw response body
      content_type: Declared Content-Type header, possibly with parameters
      min_size: Reject payloads smaller than this many bytes as truncated
      require_declared_pdf: Reject anything not declared as PDF, even when
          the bytes sniff as one

  Raises:
      EmptyDocumentError: zero bytes, or fewer than ``min_size``
      InvalidContentTypeError: declared type is not PDF, or an unreliable
          declared type whose bytes do not start with ``%PDF-``
  """
  content = content or b""
  if len(content) == 0:
    raise EmptyDocumentError(0)

  declared = media_type(content_type)
  if "pdf" in declared:
    pass
  elif declared in UNRELIABLE_CONTENT_TYPES and not require_declared_pdf:
    if not looks_like_pdf(content):
      raise InvalidContentTypeError(declared)
  else:
    raise InvalidContentTypeError(declared)

  if min_size and len(content) < min_size:
    raise EmptyDocumentError(len(content), min_size)

  return Document(content=content, content_type=PDF_CONTENT_TYPE)


def decode_bridge_body(body: str) -> bytes:
  """
  Decode a body string produced by the fetch bridge.

  Binary payloads arrive as ``data:<type>;base64,<payload>`` URLs; anything
  else is response text.
  """
  if not body.startswith("data:"):
    return body.encode("utf-8")

  header, sep, payload = body.partition(",")
  if not sep:
    raise MalformedResponseError("body", reason="data URL has no payload separator")

  if header.endswith(";base64"):
    try:
      return base64.b64decode(payload, validate=False)
    except (binascii.Error, ValueError) as e:
      raise MalformedResponseError("body", reason=f"invalid base64 payload: {e}")
  return unquote_to_bytes(payload)


def to_data_url(document: Document) -> str:
  """Render a document as a ``data:`` URL for message replies."""
  encoded = base64.b64encode(document.content).decode("ascii")
  return f"data:{document.content_type};base64,{encoded}"
