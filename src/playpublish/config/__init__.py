"""Application configuration helpers."""

from __future__ import annotations

from .env import optional_env_var, require_env_vars
from .errors import ConfigurationError, MissingConfigurationError
from .http_resilience import RateLimit, ResilienceConfig, RetryPolicy
from .logging import configure_logging
from .publisher import (
    PUBLISHER_SCOPES,
    PublisherConfig,
    ServiceAccountKey,
    get_publisher_config,
    get_service_account_key,
)

__all__ = [
    "PUBLISHER_SCOPES",
    "ConfigurationError",
    "MissingConfigurationError",
    "PublisherConfig",
    "RateLimit",
    "ResilienceConfig",
    "RetryPolicy",
    "ServiceAccountKey",
    "configure_logging",
    "get_publisher_config",
    "get_service_account_key",
    "optional_env_var",
    "require_env_vars",
]
