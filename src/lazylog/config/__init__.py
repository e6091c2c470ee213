"""
lazylog - Configuration Management

This module provides configuration management including:
- YAML configuration loading and validation
- Environment variable handling
- Configuration defaults and overrides
"""

from lazylog.config.environment import (
    SECRET_KEY_ENV_VAR,
    EnvironmentConfig,
    ensure_dotenv_loaded,
    load_environment,
    reset_environment,
)
from lazylog.config.loader import (
    CONFIG_ENV_VAR,
    DEFAULT_CONFIG_PATHS,
    ENV_VAR_OVERRIDES,
    ConfigLoader,
    ConfigurationError,
    create_default_config,
    get_config,
    get_loader,
    load_config,
    load_config_from_env,
    reload_config,
    reset_config,
)
from lazylog.config.models import (
    DEFAULT_FORMATS,
    BenchmarkConfig,
    LazylogConfig,
    LoggingConfig,
    LogLevel,
    SafetyConfig,
)

__all__ = [
    # Config models
    "LogLevel",
    "LoggingConfig",
    "BenchmarkConfig",
    "SafetyConfig",
    "LazylogConfig",
    "DEFAULT_FORMATS",
    # Loader
    "ConfigLoader",
    "ConfigurationError",
    "load_config",
    "load_config_from_env",
    "get_config",
    "reload_config",
    "reset_config",
    "create_default_config",
    "get_loader",
    "CONFIG_ENV_VAR",
    "DEFAULT_CONFIG_PATHS",
    "ENV_VAR_OVERRIDES",
    # Environment
    "EnvironmentConfig",
    "SECRET_KEY_ENV_VAR",
    "load_environment",
    "ensure_dotenv_loaded",
    "reset_environment",
]
