"""
bankstatements logging entry point.

Configures structured logging once on import and exposes the package logger
plus component loggers for adapters and the pipeline.
"""

import logging

from .config import env
from .config.logging import (
  setup_logging,
  get_logger,
  log_bank_request,
  log_error,
)

setup_logging()

logger = get_logger("bankstatements")

if env.is_development():
  # aiohttp is chatty at DEBUG
  logging.getLogger("aiohttp").setLevel(logging.WARNING)
  logging.getLogger("aiohttp.access").setLevel(logging.WARNING)
  logging.getLogger("asyncio").setLevel(logging.WARNING)

adapter_logger = get_logger("bankstatements.adapters")
pipeline_logger = get_logger("bankstatements.pipeline")

__all__ = [
  "logger",
  "adapter_logger",
  "pipeline_logger",
  "log_bank_request",
  "log_error",
  "get_logger",
]
