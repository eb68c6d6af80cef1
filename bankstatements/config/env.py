"""
Centralized environment variable configuration.

This module provides a single source of truth for all environment variables,
with type conversions, validation, and default values.

Organization:
- Helper functions for type-safe env var access
- Core application settings
- Transport settings (timeouts, throttling)
- Statement pipeline settings (polling, document validation)
- Bank selection
"""

import os
from typing import List

from .constants import (
  DEFAULT_HTTP_TIMEOUT,
  DEFAULT_MIN_DOCUMENT_BYTES,
  DEFAULT_POLL_INTERVAL_SECONDS,
  DEFAULT_POLL_MAX_ATTEMPTS,
  DEFAULT_REQUESTS_PER_SECOND,
)


# ==========================================================================
# HELPER FUNCTIONS FOR TYPE-SAFE ENVIRONMENT VARIABLE ACCESS
# ==========================================================================


def get_int_env(key: str, default: int) -> int:
  """
  Get an integer environment variable with safe type conversion.

  Args:
      key: Environment variable name
      default: Default value if not set or invalid

  Returns:
      Integer value from environment or default
  """
  try:
    return int(os.getenv(key, str(default)))
  except (ValueError, TypeError):
    # Use print instead of logger to avoid circular import
    print(f"Warning: Invalid {key} value, using default: {default}")
    return default


def get_float_env(key: str, default: float) -> float:
  """
  Get a float environment variable with safe type conversion.

  Args:
      key: Environment variable name
      default: Default value if not set or invalid

  Returns:
      Float value from environment or default
  """
  try:
    return float(os.getenv(key, str(default)))
  except (ValueError, TypeError):
    # Use print instead of logger to avoid circular import
    print(f"Warning: Invalid {key} value, using default: {default}")
    return default


def get_str_env(key: str, default: str = "") -> str:
  """Get a string environment variable."""
  return os.getenv(key, default)


def get_list_env(key: str, default: str = "", separator: str = ",") -> List[str]:
  """
  Get a list environment variable (comma-separated by default).

  Args:
      key: Environment variable name
      default: Default value if not set
      separator: String separator for list items

  Returns:
      List of strings from environment or default
  """
  value = os.getenv(key, default)
  if not value:
    return []
  return [item.strip() for item in value.split(separator) if item.strip()]


# ==========================================================================
# MAIN CONFIGURATION CLASS
# ==========================================================================


class EnvConfig:
  """
  Centralized environment variable configuration.

  Variables are organized into logical groups for easier maintenance.
  All variables use type-safe helper functions for consistent behavior.
  """

  # ==========================================================================
  # CORE APPLICATION SETTINGS
  # ==========================================================================

  ENVIRONMENT = get_str_env("ENVIRONMENT", "dev")
  LOG_LEVEL = get_str_env("LOG_LEVEL", "INFO")

  # ==========================================================================
  # TRANSPORT
  # ==========================================================================

  HTTP_TIMEOUT_SECONDS = get_int_env("HTTP_TIMEOUT_SECONDS", DEFAULT_HTTP_TIMEOUT)
  REQUESTS_PER_SECOND = get_float_env(
    "REQUESTS_PER_SECOND", DEFAULT_REQUESTS_PER_SECOND
  )

  # ==========================================================================
  # STATEMENT PIPELINE
  # ==========================================================================

  # Generate-then-poll workflows (fixed interval, hard attempt ceiling)
  POLL_INTERVAL_SECONDS = get_float_env(
    "POLL_INTERVAL_SECONDS", DEFAULT_POLL_INTERVAL_SECONDS
  )
  POLL_MAX_ATTEMPTS = get_int_env("POLL_MAX_ATTEMPTS", DEFAULT_POLL_MAX_ATTEMPTS)

  # Payloads below this size are treated as truncated when an adapter cannot
  # trust the declared content type
  MIN_DOCUMENT_BYTES = get_int_env("MIN_DOCUMENT_BYTES", DEFAULT_MIN_DOCUMENT_BYTES)

  # ==========================================================================
  # BANK SELECTION
  # ==========================================================================

  # Empty means every registered adapter is available
  ENABLED_BANKS = get_list_env("ENABLED_BANKS", "")

  # ==========================================================================
  # HELPER METHODS
  # ==========================================================================

  @classmethod
  def is_development(cls) -> bool:
    """Check if running in development environment."""
    return cls.ENVIRONMENT.lower() in ["dev", "development", "local"]

  @classmethod
  def validate(cls) -> List[str]:
    """
    Validate numeric settings.

    Returns:
        List of validation errors (empty if all valid)
    """
    errors = []

    if cls.HTTP_TIMEOUT_SECONDS < 1:
      errors.append("HTTP_TIMEOUT_SECONDS must be at least 1")
    if cls.REQUESTS_PER_SECOND <= 0:
      errors.append("REQUESTS_PER_SECOND must be positive")
    if cls.POLL_INTERVAL_SECONDS < 0:
      errors.append("POLL_INTERVAL_SECONDS must not be negative")
    if cls.POLL_MAX_ATTEMPTS < 1:
      errors.append("POLL_MAX_ATTEMPTS must be at least 1")
    if cls.MIN_DOCUMENT_BYTES < 0:
      errors.append("MIN_DOCUMENT_BYTES must not be negative")

    return errors


env = EnvConfig()
