"""Configuration data models for chaindag."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal

from chaindag.kernel.exceptions import ValidationError
from chaindag.kernel.validation.retry import RetryConfig


@dataclass(frozen=True, slots=True)
class LoggingConfig:
    """Logging configuration for chaindag.

    Attributes
    ----------
    level : str, default="INFO"
        Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    format : str, default="structured"
        Output format (console, json, structured, rich)
    output_file : str | None, default=None
        Optional file path to write logs to
    use_color : bool, default=True
        Use ANSI color codes (auto-disabled for non-TTY)
    include_timestamp : bool, default=True
        Include timestamp in log output
    backtrace : bool, default=True
        Enable backtrace for debugging
    diagnose : bool, default=False
        Enable diagnose mode with variable values

    Examples
    --------
    TOML configuration:

    ```toml
    [tool.chaindag.logging]
    level = "DEBUG"
    format = "rich"
    ```

    Environment variable overrides:

    ```bash
    export CHAINDAG_LOG_LEVEL=DEBUG
    export CHAINDAG_LOG_FORMAT=json
    export CHAINDAG_LOG_FILE=/var/log/chaindag/deploy.log
    ```
    """

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    format: Literal["console", "json", "structured", "rich"] = "structured"
    output_file: str | None = None
    use_color: bool = True
    include_timestamp: bool = True
    backtrace: bool = True
    diagnose: bool = False


@dataclass(frozen=True, slots=True)
class ExecutionConfig:
    """Execution defaults for deployments.

    Attributes
    ----------
    max_concurrency : int
        Maximum number of futures executing at once
    strategy : str | None
        Execution strategy (``basic`` or ``create2``); ``None`` continues with the
        recorded strategy of an existing deployment, else ``basic``
    future_timeout : float | None
        Per-future timeout in seconds; None disables it
    max_retries : int
        Retries after the first attempt for transient network failures
    retry_delay : float
        Initial delay before the first retry, in seconds
    retry_backoff : float
        Delay multiplier applied after each retry
    poll_interval : float
        Delay between confirmation queries, in seconds
    """

    max_concurrency: int = 8
    strategy: str | None = None
    future_timeout: float | None = None
    max_retries: int = 2
    retry_delay: float = 1.0
    retry_backoff: float = 2.0
    poll_interval: float = 0.05

    def __post_init__(self) -> None:
        """Validate execution limits.

        Raises
        ------
        ValidationError
            If a limit is out of range
        """
        if self.max_concurrency < 1:
            raise ValidationError("max_concurrency", "must be at least 1", self.max_concurrency)
        if self.max_retries < 0:
            raise ValidationError("max_retries", "cannot be negative", self.max_retries)
        if self.future_timeout is not None and self.future_timeout <= 0:
            raise ValidationError("future_timeout", "must be positive", self.future_timeout)

    def retry_config(self) -> RetryConfig:
        return RetryConfig(
            max_attempts=self.max_retries + 1,
            delay=self.retry_delay,
            backoff=self.retry_backoff,
        )


@dataclass(slots=True)
class ChainDAGConfig:
    """Complete chaindag configuration.

    Attributes
    ----------
    deployments_dir : str
        Directory holding one journal per deployment id
    execution : ExecutionConfig
        Execution defaults
    logging : LoggingConfig
        Logging configuration
    settings : dict[str, Any]
        Additional custom settings

    Examples
    --------
    TOML configuration in pyproject.toml:

    ```toml
    [tool.chaindag]
    deployments_dir = "build/deployments"

    [tool.chaindag.execution]
    max_concurrency = 4
    strategy = "create2"
    future_timeout = 120.0

    [tool.chaindag.logging]
    level = "DEBUG"
    ```
    """

    deployments_dir: str = "deployments"
    execution: ExecutionConfig = field(default_factory=ExecutionConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    settings: dict[str, Any] = field(default_factory=dict)
