"""
Structured Logging Configuration for bankstatements.

JSON logs keyed by bank and action so a failed statement run can be traced
from one search: which institution, which stage, which status code.

Key Features:
- Tiered logging (Critical/Operational/Debug)
- Structured JSON output outside development
- Automatic log level management by environment
- Request timing and error categorization
"""

import json
import logging
import logging.config
import traceback
from datetime import datetime, timezone
from typing import Any

from bankstatements.config.env import EnvConfig


class StructuredFormatter(logging.Formatter):
  """
  JSON formatter for searchable structured logs.

  - Timestamp in ISO format
  - Consistent field names for filtering
  - component/action pairs for each pipeline stage
  - Metadata preserved as searchable fields
  """

  def format(self, record: logging.LogRecord) -> str:
    log_entry = {
      "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc)
      .isoformat()
      .replace("+00:00", "Z"),
      "level": record.levelname,
      "component": getattr(record, "component", record.name),
      "message": record.getMessage(),
    }

    if hasattr(record, "action"):
      log_entry["action"] = record.action

    # Institution context
    if getattr(record, "bank_id", None):
      log_entry["bank_id"] = record.bank_id
    if getattr(record, "method", None):
      log_entry["method"] = record.method

    if hasattr(record, "duration_ms"):
      log_entry["duration_ms"] = record.duration_ms
    if hasattr(record, "status_code"):
      log_entry["status_code"] = record.status_code

    if record.levelno >= logging.ERROR:
      if record.exc_info:
        log_entry["error"] = {
          "type": record.exc_info[0].__name__ if record.exc_info[0] else "Unknown",
          "message": str(record.exc_info[1]) if record.exc_info[1] else "",
          "traceback": traceback.format_exception(*record.exc_info),
        }

      if hasattr(record, "error_category"):
        log_entry["error_category"] = record.error_category

    if hasattr(record, "metadata"):
      log_entry["metadata"] = record.metadata

    return json.dumps(log_entry, default=str, separators=(",", ":"))


class TieredLogFilter:
  """
  Filter logs by tier.

  Tier 1 (Critical): ERROR, CRITICAL
  Tier 2 (Operational): INFO, WARNING
  Tier 3 (Debug): DEBUG
  """

  def __init__(self, tier: str):
    self.tier = tier

  def filter(self, record: logging.LogRecord) -> bool:
    if self.tier == "critical":
      return record.levelno >= logging.ERROR
    elif self.tier == "operational":
      return logging.INFO <= record.levelno < logging.ERROR
    elif self.tier == "debug":
      return record.levelno == logging.DEBUG
    return True


def get_logging_config(environment: str | None = None) -> dict[str, Any]:
  """
  Generate logging configuration based on environment.

  - prod: INFO level, structured output, no debug logs
  - staging: INFO level, with debug logs enabled
  - test: WARNING level, minimal output for clean test runs
  - dev: DEBUG level, all logs enabled (unless LOG_LEVEL overrides)
  """
  env = environment or EnvConfig.ENVIRONMENT

  log_level_override = getattr(EnvConfig, "LOG_LEVEL", None)

  if env == "prod":
    default_level = "INFO"
    enable_debug = False
  elif env == "staging":
    default_level = "INFO"
    enable_debug = True
  elif env == "test":
    default_level = "WARNING"
    enable_debug = False
  else:  # dev
    default_level = log_level_override or "DEBUG"
    enable_debug = default_level == "DEBUG"

  app_handlers = ["critical", "operational"] if env != "dev" else ["console"]

  config = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
      "structured": {
        "()": StructuredFormatter,
      },
      "simple": {"format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s"},
    },
    "filters": {
      "critical_filter": {"()": TieredLogFilter, "tier": "critical"},
      "operational_filter": {"()": TieredLogFilter, "tier": "operational"},
      "debug_filter": {"()": TieredLogFilter, "tier": "debug"},
    },
    "handlers": {
      "critical": {
        "class": "logging.StreamHandler",
        "level": "ERROR",
        "formatter": "structured",
        "filters": ["critical_filter"],
        "stream": "ext://sys.stderr",
      },
      "operational": {
        "class": "logging.StreamHandler",
        "level": "INFO",
        "formatter": "structured",
        "filters": ["operational_filter"],
        "stream": "ext://sys.stdout",
      },
      "console": {
        "class": "logging.StreamHandler",
        "level": default_level,
        "formatter": "simple" if env == "dev" else "structured",
        "stream": "ext://sys.stdout",
      },
    },
    "loggers": {
      "bankstatements": {
        "level": default_level,
        "handlers": list(app_handlers),
        "propagate": False,
      },
      "bankstatements.adapters": {
        "level": default_level,
        "handlers": list(app_handlers),
        "propagate": False,
      },
      "bankstatements.pipeline": {
        "level": default_level,
        "handlers": list(app_handlers),
        "propagate": False,
      },
      # Third-party loggers (reduced verbosity)
      "aiohttp": {
        "level": "WARNING",
        "handlers": ["operational"] if env != "dev" else ["console"],
        "propagate": False,
      },
      "asyncio": {
        "level": "WARNING",
        "handlers": ["critical"] if env != "dev" else ["console"],
        "propagate": False,
      },
    },
    "root": {
      "level": "WARNING",
      "handlers": ["critical"] if env != "dev" else ["console"],
    },
  }

  if enable_debug:
    config["handlers"]["debug"] = {
      "class": "logging.StreamHandler",
      "level": "DEBUG",
      "formatter": "structured",
      "filters": ["debug_filter"],
      "stream": "ext://sys.stdout",
    }

    for logger_name in [
      "bankstatements",
      "bankstatements.adapters",
      "bankstatements.pipeline",
    ]:
      if env != "dev":
        config["loggers"][logger_name]["handlers"].append("debug")

  return config


def setup_logging(environment: str | None = None) -> None:
  """Initialize structured logging configuration."""
  config = get_logging_config(environment)
  logging.config.dictConfig(config)


def get_logger(name: str) -> logging.Logger:
  """Get a logger with structured logging capabilities."""
  return logging.getLogger(name)


def log_bank_request(
  logger: logging.Logger,
  bank_id: str,
  method: str,
  url: str,
  status_code: int,
  duration_ms: float,
) -> None:
  """Log a completed round-trip to an institution."""
  extra = {
    "component": "transport",
    "action": "bank_request",
    "bank_id": bank_id,
    "method": method,
    "status_code": status_code,
    "duration_ms": duration_ms,
    "metadata": {"url": url.split("?", 1)[0]},
  }
  if status_code >= 400:
    logger.warning(
      f"{method} {url} - {status_code} ({duration_ms:.2f}ms)", extra=extra
    )
  else:
    logger.debug(f"{method} {url} - {status_code} ({duration_ms:.2f}ms)", extra=extra)


def log_error(
  logger: logging.Logger,
  error: Exception,
  component: str,
  action: str,
  error_category: str = "application",
  bank_id: str | None = None,
  metadata: dict[str, Any] | None = None,
) -> None:
  """Log error with structured data for easy searching."""
  logger.error(
    f"Error in {component}.{action}: {error!s}",
    exc_info=True,
    extra={
      "component": component,
      "action": action,
      "error_category": error_category,
      "bank_id": bank_id,
      "metadata": metadata or {},
    },
  )
