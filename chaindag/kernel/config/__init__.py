"""Configuration models and loader."""

from chaindag.kernel.config.loader import (
    ConfigLoader,
    clear_config_cache,
    load_config,
    load_parameters,
)
from chaindag.kernel.config.models import ChainDAGConfig, ExecutionConfig, LoggingConfig

__all__ = [
    "ChainDAGConfig",
    "ConfigLoader",
    "ExecutionConfig",
    "LoggingConfig",
    "clear_config_cache",
    "load_config",
    "load_parameters",
]
