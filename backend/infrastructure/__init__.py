"""
Watchtower Infrastructure Module
Configuration, errors and RPC access shared by every bot
"""

from .errors import (
    WatchtowerError,
    ConfigurationError,
    ValidationError,
    NormalizationError,
    ProviderError,
    EmitterError,
    ErrorCode,
    ErrorTracker,
    error_tracker,
    retry,
)

from .config import (
    WatchtowerConfig,
    Environment,
    FeatureFlags,
    config,
    get_config,
    reload_config,
)

__all__ = [
    # Errors
    "WatchtowerError",
    "ConfigurationError",
    "ValidationError",
    "NormalizationError",
    "ProviderError",
    "EmitterError",
    "ErrorCode",
    "ErrorTracker",
    "error_tracker",
    "retry",

    # Config
    "WatchtowerConfig",
    "Environment",
    "FeatureFlags",
    "config",
    "get_config",
    "reload_config",
]
