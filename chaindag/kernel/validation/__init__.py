"""Pre-flight validation and retry policy."""

from chaindag.kernel.validation.retry import RetryConfig, execute_with_retry, is_transient
from chaindag.kernel.validation.validator import validate_deployment, validate_future

__all__ = [
    "RetryConfig",
    "execute_with_retry",
    "is_transient",
    "validate_deployment",
    "validate_future",
]
