"""Application configuration helpers."""

from __future__ import annotations

from .classification import ClassificationConfig, get_classification_config
from .env import optional_env_var, require_env_vars
from .errors import (
    ConfigurationError,
    InvalidConfigurationValueError,
    MissingConfigurationError,
)
from .http_resilience import RateLimit, ResilienceConfig, RetryPolicy
from .logging import configure_logging
from .reasoner import ReasonerConfig, get_reasoner_config
from .storage import DatabaseConfig, StorageConfig, get_database_config, get_storage_config

__all__ = [
    "ClassificationConfig",
    "ConfigurationError",
    "DatabaseConfig",
    "InvalidConfigurationValueError",
    "MissingConfigurationError",
    "RateLimit",
    "ReasonerConfig",
    "ResilienceConfig",
    "RetryPolicy",
    "StorageConfig",
    "configure_logging",
    "get_classification_config",
    "get_database_config",
    "get_reasoner_config",
    "get_storage_config",
    "optional_env_var",
    "require_env_vars",
]
