"""Per-adapter snapshot of the pipeline settings."""

import logging
from dataclasses import dataclass

from .constants import (
  DEFAULT_MIN_DOCUMENT_BYTES,
  DEFAULT_POLL_INTERVAL_SECONDS,
  DEFAULT_POLL_MAX_ATTEMPTS,
  TRAILING_MONTHS,
  TRAILING_YEARS,
)
from .env import EnvConfig

logger = logging.getLogger(__name__)


class ConfigValidationError(Exception):
  """Raised when configuration validation fails."""

  pass


@dataclass(frozen=True)
class PipelineSettings:
  """
  Tunables an adapter consults while resolving statements.

  Captured once at construction so a running adapter never observes a
  configuration change halfway through a call.
  """

  poll_interval: float = DEFAULT_POLL_INTERVAL_SECONDS
  poll_max_attempts: int = DEFAULT_POLL_MAX_ATTEMPTS
  min_document_bytes: int = DEFAULT_MIN_DOCUMENT_BYTES
  trailing_months: int = TRAILING_MONTHS
  trailing_years: int = TRAILING_YEARS

  @classmethod
  def from_env(cls) -> "PipelineSettings":
    """
    Snapshot the environment configuration.

    Raises:
        ConfigValidationError: a numeric setting is out of range
    """
    errors = EnvConfig.validate()
    if errors:
      logger.error("Configuration validation failed:")
      for error in errors:
        logger.error(f"  - {error}")
      raise ConfigValidationError(
        f"Configuration validation failed with {len(errors)} errors: "
        + "; ".join(errors)
      )

    return cls(
      poll_interval=EnvConfig.POLL_INTERVAL_SECONDS,
      poll_max_attempts=EnvConfig.POLL_MAX_ATTEMPTS,
      min_document_bytes=EnvConfig.MIN_DOCUMENT_BYTES,
    )
