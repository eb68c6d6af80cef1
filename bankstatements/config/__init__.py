"""
Centralized configuration package for bankstatements.

This package provides a single source of truth for all configuration settings,
including environment variables, constants, and institution endpoints.
"""

# Import env first to avoid circular dependencies
from .env import EnvConfig, env
from .institutions import InstitutionsConfig
from .settings import ConfigValidationError, PipelineSettings

__all__ = [
  # Environment exports
  "EnvConfig",
  # Institution exports
  "InstitutionsConfig",
  # Pipeline exports
  "ConfigValidationError",
  "PipelineSettings",
  "env",
]
