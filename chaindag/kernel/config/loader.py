"""Configuration loader for chaindag.

Supports two config sources:

1. **kind: Config YAML**, loaded via explicit path or the
   ``CHAINDAG_CONFIG_PATH`` env var.
2. **pyproject.toml [tool.chaindag]**, the auto-discovery fallback.

``${VAR}`` references in string values are substituted from the environment,
and ``CHAINDAG_*`` variables override file values. Deployment parameter files
(JSON or YAML) are loaded here as well.
"""

from __future__ import annotations

import json
import os
import re
import tomllib
from collections.abc import Callable
from functools import lru_cache
from pathlib import Path
from typing import Any

import yaml

from chaindag.kernel.config.models import ChainDAGConfig, ExecutionConfig, LoggingConfig
from chaindag.kernel.exceptions import ConfigurationError
from chaindag.kernel.logging import get_logger

_TRUTHY_VALUES = frozenset({"true", "1", "yes", "on", "enabled"})
_FALSY_VALUES = frozenset({"false", "0", "no", "off", "disabled"})

ENV_VAR_PATTERN = re.compile(r"\$\{([^}]+)\}")

logger = get_logger(__name__)


def _parse_bool_env(value: str) -> bool:
    """Parse boolean from environment variable value.

    Raises
    ------
    ValueError
        If value is not a recognized boolean string
    """
    normalized = value.lower().strip()
    if normalized in _TRUTHY_VALUES:
        return True
    if normalized in _FALSY_VALUES:
        return False
    expected = _TRUTHY_VALUES | _FALSY_VALUES
    raise ValueError(f"Invalid boolean value: {value!r}. Expected one of: {expected}")


def substitute_env_vars(data: Any) -> Any:
    """Recursively replace ``${VAR}`` with environment values.

    Unknown variables keep their placeholder.

    Examples
    --------
    >>> os.environ["CHAINDAG_DOC_DIR"] = "/tmp/deployments"
    >>> substitute_env_vars({"dir": "${CHAINDAG_DOC_DIR}", "n": 2})
    {'dir': '/tmp/deployments', 'n': 2}
    """
    if isinstance(data, str):

        def replacer(match: re.Match[str]) -> str:
            value = os.environ.get(match.group(1))
            if value is None:
                logger.debug(f"Environment variable ${{{match.group(1)}}} not found")
                return match.group(0)
            return value

        return ENV_VAR_PATTERN.sub(replacer, data)
    if isinstance(data, dict):
        return {key: substitute_env_vars(value) for key, value in data.items()}
    if isinstance(data, list):
        return [substitute_env_vars(item) for item in data]
    return data


class ConfigLoader:
    """Loads and processes chaindag configuration files."""

    def load_config_file(self, path: str | Path | None = None) -> ChainDAGConfig:
        """Load configuration from YAML or pyproject.toml.

        Raises
        ------
        FileNotFoundError
            If an explicit path does not exist or nothing is discovered
        """
        config_path = self._find_config_file(path)
        return _load_and_parse_cached(str(config_path.absolute()))

    def _load_and_parse(self, config_path: Path) -> ChainDAGConfig:
        logger.info(f"Loading configuration from {config_path}")
        if config_path.suffix in (".yaml", ".yml"):
            return self._load_yaml_config(config_path)
        return self._load_toml_config(config_path)

    def _load_yaml_config(self, config_path: Path) -> ChainDAGConfig:
        with config_path.open("r", encoding="utf-8") as f:
            data = yaml.safe_load(f)

        if not isinstance(data, dict):
            raise ConfigurationError(
                str(config_path), f"expected a mapping, got {type(data).__name__}"
            )
        if data.get("kind") != "Config":
            raise ConfigurationError(
                str(config_path),
                "YAML config must use 'kind: Config' manifest format, "
                f"got 'kind: {data.get('kind')}'",
            )
        spec = data.get("spec") or {}
        if not isinstance(spec, dict):
            raise ConfigurationError(str(config_path), "'spec' must be a mapping")
        return self._parse_config(substitute_env_vars(spec))

    def _load_toml_config(self, config_path: Path) -> ChainDAGConfig:
        with config_path.open("rb") as f:
            data = tomllib.load(f)

        section = data.get("tool", {}).get("chaindag")
        if section is None:
            if config_path.name == "pyproject.toml":
                logger.warning("No [tool.chaindag] section found in pyproject.toml, using defaults")
                return self._parse_config({})
            section = data
        return self._parse_config(substitute_env_vars(section))

    def _find_config_file(self, path: str | Path | None) -> Path:
        """Find configuration file.

        Discovery order:
        1. Explicit path argument
        2. ``CHAINDAG_CONFIG_PATH`` env var
        3. ``pyproject.toml`` in CWD or a parent directory with ``[tool.chaindag]``
        """
        if path:
            config_path = Path(path)
            if not config_path.exists():
                raise FileNotFoundError(f"Configuration file not found: {config_path}")
            return config_path

        if env_path := os.getenv("CHAINDAG_CONFIG_PATH"):
            config_path = Path(env_path)
            if config_path.exists():
                return config_path
            logger.warning(f"CHAINDAG_CONFIG_PATH set but file not found: {config_path}")

        current = Path.cwd()
        while True:
            pyproject = current / "pyproject.toml"
            if pyproject.exists():
                with pyproject.open("rb") as f:
                    if "chaindag" in tomllib.load(f).get("tool", {}):
                        return pyproject
            if current == current.parent:
                break
            current = current.parent

        raise FileNotFoundError(
            "No configuration file found. Provide a kind: Config YAML path, "
            "set CHAINDAG_CONFIG_PATH, or add [tool.chaindag] to pyproject.toml"
        )

    def _parse_config(self, data: dict[str, Any]) -> ChainDAGConfig:
        config = ChainDAGConfig()
        config.deployments_dir = os.getenv(
            "CHAINDAG_DEPLOYMENTS_DIR", data.get("deployments_dir", config.deployments_dir)
        )
        config.execution = self._parse_execution_config(data.get("execution", {}))
        config.logging = self._parse_logging_config(data.get("logging", {}))
        if "settings" in data:
            config.settings = dict(data["settings"])
        return config

    def _parse_execution_config(self, execution_data: dict[str, Any]) -> ExecutionConfig:
        """Parse execution defaults.

        Environment variables take precedence over config file values:
        - CHAINDAG_MAX_CONCURRENCY
        - CHAINDAG_STRATEGY
        - CHAINDAG_FUTURE_TIMEOUT
        - CHAINDAG_MAX_RETRIES
        """
        values = dict(execution_data)
        overrides: dict[str, tuple[str, Callable[[str], Any]]] = {
            "max_concurrency": ("CHAINDAG_MAX_CONCURRENCY", int),
            "strategy": ("CHAINDAG_STRATEGY", str),
            "future_timeout": ("CHAINDAG_FUTURE_TIMEOUT", float),
            "max_retries": ("CHAINDAG_MAX_RETRIES", int),
        }
        for key, (env_name, convert) in overrides.items():
            if env_value := os.getenv(env_name):
                try:
                    values[key] = convert(env_value)
                except ValueError as e:
                    raise ConfigurationError(env_name, str(e)) from e

        unknown = set(values) - set(ExecutionConfig.__dataclass_fields__)
        if unknown:
            raise ConfigurationError("execution", f"unknown keys: {', '.join(sorted(unknown))}")
        return ExecutionConfig(**values)

    def _parse_logging_config(self, logging_data: dict[str, Any]) -> LoggingConfig:
        """Parse logging configuration with environment variable overrides.

        - CHAINDAG_LOG_LEVEL: Log level
        - CHAINDAG_LOG_FORMAT: Output format (console, json, structured, rich)
        - CHAINDAG_LOG_FILE: Optional file path for log output
        - CHAINDAG_LOG_COLOR: Use color output (true/false)
        """
        level = logging_data.get("level", "INFO")
        format_type = logging_data.get("format", "structured")
        output_file = logging_data.get("output_file")
        use_color = logging_data.get("use_color", True)

        if env_level := os.getenv("CHAINDAG_LOG_LEVEL"):
            level = env_level.upper()
        if env_format := os.getenv("CHAINDAG_LOG_FORMAT"):
            format_type = env_format.lower()
        if env_file := os.getenv("CHAINDAG_LOG_FILE"):
            output_file = env_file
        if env_color := os.getenv("CHAINDAG_LOG_COLOR"):
            try:
                use_color = _parse_bool_env(env_color)
            except ValueError as e:
                logger.warning(f"Invalid CHAINDAG_LOG_COLOR value: {e}")

        return LoggingConfig(
            level=level,
            format=format_type,
            output_file=output_file,
            use_color=use_color,
            include_timestamp=logging_data.get("include_timestamp", True),
            backtrace=logging_data.get("backtrace", True),
            diagnose=logging_data.get("diagnose", False),
        )


@lru_cache(maxsize=32)
def _load_and_parse_cached(path_str: str) -> ChainDAGConfig:
    return ConfigLoader()._load_and_parse(Path(path_str))


def load_config(path: str | Path | None = None) -> ChainDAGConfig:
    """Load configuration from file or return defaults.

    An explicit *path* that does not exist is an error; failed discovery
    falls back to defaults.

    Raises
    ------
    ConfigurationError
        If an explicit path does not exist or the file is malformed
    """
    try:
        return ConfigLoader().load_config_file(path)
    except FileNotFoundError as e:
        if path:
            raise ConfigurationError("config", str(e)) from e
        logger.debug("No configuration file found, using defaults")
        return ConfigLoader()._parse_config({})


def clear_config_cache() -> None:
    """Clear the configuration cache (e.g., after editing config files in tests)."""
    _load_and_parse_cached.cache_clear()


def load_parameters(path: str | Path) -> dict[str, dict[str, Any]]:
    """Load deployment parameters (``module_id -> name -> value``) from JSON or YAML.

    Raises
    ------
    ConfigurationError
        If the file is missing or not a mapping of mappings
    """
    parameters_path = Path(path)
    if not parameters_path.exists():
        raise ConfigurationError("parameters", f"file not found: {parameters_path}")

    text = parameters_path.read_text(encoding="utf-8")
    try:
        if parameters_path.suffix in (".yaml", ".yml"):
            data = yaml.safe_load(text)
        else:
            data = json.loads(text)
    except (yaml.YAMLError, json.JSONDecodeError) as e:
        raise ConfigurationError("parameters", f"cannot parse {parameters_path}: {e}") from e

    data = data or {}
    if not isinstance(data, dict) or not all(isinstance(v, dict) for v in data.values()):
        raise ConfigurationError(
            "parameters", "expected a mapping of module ids to parameter mappings"
        )
    return {str(module_id): dict(params) for module_id, params in data.items()}
