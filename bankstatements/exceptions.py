"""
Custom Exception Types for bankstatements.

Every failure an adapter can surface to a caller maps onto one of these types.
Each carries a stable error code and a details dict so the orchestrator can
hand the message back verbatim and callers can branch on the type.
"""

from typing import Optional, Dict, Any, List
from datetime import datetime, timezone


class BankStatementsError(Exception):
  """
  Base exception for all bankstatements errors.

  Attributes:
      message: Human-readable error message
      error_code: Application-specific error code for categorization
      details: Additional error context and metadata
      timestamp: When the error occurred
  """

  def __init__(
    self,
    message: str,
    error_code: Optional[str] = None,
    details: Optional[Dict[str, Any]] = None,
  ):
    super().__init__(message)
    self.message = message
    self.error_code = error_code or self.__class__.__name__
    self.details = details or {}
    self.timestamp = datetime.now(timezone.utc).isoformat()

  def to_dict(self) -> Dict[str, Any]:
    """Convert exception to dictionary for message replies."""
    return {
      "error": self.error_code,
      "message": self.message,
      "details": self.details,
      "timestamp": self.timestamp,
    }


# ============================================================================
# Session Exceptions
# ============================================================================


class SessionNotFoundError(BankStatementsError):
  """Raised when no credential could be located in the credential store."""

  def __init__(self, tried: Optional[List[str]] = None, bank_id: Optional[str] = None):
    tried = tried or []
    message = "Session not found"
    if tried:
      message = f"Session not found (tried: {', '.join(tried)})"
    details: Dict[str, Any] = {"tried": tried}
    if bank_id:
      details["bank_id"] = bank_id
    super().__init__(message, error_code="SESSION_NOT_FOUND", details=details)


class AuthError(BankStatementsError):
  """Raised when the institution rejects the session."""

  def __init__(
    self,
    status: Optional[int] = None,
    status_text: str = "",
    reason: Optional[str] = None,
  ):
    if reason is None:
      reason = f"Authentication failed: {status} {status_text}".strip()
    super().__init__(
      reason,
      error_code="AUTH_FAILED",
      details={"status": status, "status_text": status_text},
    )
    self.status = status
    self.status_text = status_text


# ============================================================================
# Response Exceptions
# ============================================================================


class MalformedResponseError(BankStatementsError):
  """Raised when a response lacks a required field or cannot be parsed."""

  def __init__(self, field: str, reason: Optional[str] = None, **kwargs):
    message = f"Malformed response: missing or invalid '{field}'"
    if reason:
      message = f"{message} ({reason})"
    details = {"field": field}
    details.update(kwargs)
    super().__init__(message, error_code="MALFORMED_RESPONSE", details=details)
    self.field = field


class NoDataError(BankStatementsError):
  """Raised when a well-formed response contains no accounts."""

  def __init__(self, what: str = "accounts", bank_id: Optional[str] = None):
    details: Dict[str, Any] = {"what": what}
    if bank_id:
      details["bank_id"] = bank_id
    super().__init__(f"No {what} found", error_code="NO_DATA", details=details)


class BankRequestError(BankStatementsError):
  """Raised when a request fails outside the profile and download stages."""

  def __init__(
    self,
    message: str,
    status: Optional[int] = None,
    status_text: str = "",
    url: Optional[str] = None,
  ):
    details: Dict[str, Any] = {"status": status, "status_text": status_text}
    if url:
      details["url"] = url
    super().__init__(message, error_code="BANK_REQUEST_FAILED", details=details)
    self.status = status
    self.status_text = status_text


# ============================================================================
# Download Exceptions
# ============================================================================


class DownloadError(BankStatementsError):
  """Raised when a statement document cannot be retrieved."""

  def __init__(
    self,
    message: str,
    error_code: Optional[str] = None,
    details: Optional[Dict[str, Any]] = None,
    status: Optional[int] = None,
  ):
    details = dict(details or {})
    if status is not None:
      details["status"] = status
    super().__init__(
      message, error_code=error_code or "DOWNLOAD_FAILED", details=details
    )
    self.status = status


class InvalidContentTypeError(DownloadError):
  """Raised when the document is not a PDF."""

  def __init__(self, content_type: str):
    super().__init__(
      f"Expected application/pdf, received '{content_type or 'unknown'}'",
      error_code="INVALID_CONTENT_TYPE",
      details={"content_type": content_type},
    )
    self.content_type = content_type


class EmptyDocumentError(DownloadError):
  """Raised when the document is empty or implausibly small."""

  def __init__(self, size: int, min_size: Optional[int] = None):
    if min_size and size > 0:
      message = f"Document is too small ({size} bytes, minimum {min_size})"
    else:
      message = "Document is empty"
    super().__init__(
      message,
      error_code="EMPTY_DOCUMENT",
      details={"size": size, "min_size": min_size},
    )
    self.size = size


class DownloadTimeoutError(DownloadError):
  """Raised when a generated document never becomes ready."""

  def __init__(self, attempts: int, label: Optional[str] = None):
    target = f" for {label}" if label else ""
    super().__init__(
      f"Document{target} not ready after {attempts} attempts",
      error_code="DOWNLOAD_TIMEOUT",
      details={"attempts": attempts, "label": label},
    )
    self.attempts = attempts


# ============================================================================
# Registry and Conformance Exceptions
# ============================================================================


class UnsupportedBankError(BankStatementsError):
  """Raised when no adapter matches a bank id or hostname."""

  def __init__(self, key: str):
    super().__init__(
      f"No adapter registered for '{key}'",
      error_code="UNSUPPORTED_BANK",
      details={"key": key},
    )


class InvalidMessageError(BankStatementsError):
  """Raised when an orchestrator message lacks a required field."""

  def __init__(self, action: str, field: str):
    super().__init__(
      f"{field[:1].upper()}{field[1:]} is required for {action}",
      error_code="INVALID_MESSAGE",
      details={"action": action, "field": field},
    )


class ConformanceError(BankStatementsError):
  """Raised when one or more adapters violate the adapter contract."""

  def __init__(self, violations: List[str]):
    preview = "; ".join(violations[:5])
    more = f" (+{len(violations) - 5} more)" if len(violations) > 5 else ""
    super().__init__(
      f"{len(violations)} contract violation(s): {preview}{more}",
      error_code="CONFORMANCE_FAILED",
      details={"violations": violations},
    )
    self.violations = violations
