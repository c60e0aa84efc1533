"""Configuration module for Fleet Console."""

from .settings import config, APIConfig, ExportConfig, ViewConfig, AppConfig, Config
from .logging_config import setup_logging, get_logger
from .config_loader import (
    ConfigurationError,
    EndpointConfig,
    get_endpoint_config,
    list_endpoints,
    load_endpoints,
    clear_config_cache,
)

__all__ = [
    # Settings
    "config",
    "APIConfig",
    "ExportConfig",
    "ViewConfig",
    "AppConfig",
    "Config",
    # Logging
    "setup_logging",
    "get_logger",
    # Endpoint table
    "ConfigurationError",
    "EndpointConfig",
    "get_endpoint_config",
    "list_endpoints",
    "load_endpoints",
    "clear_config_cache",
]
