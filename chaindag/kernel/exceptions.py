"""Core exception hierarchy for chaindag.

This module provides a centralized exception hierarchy for the deployment
engine. All chaindag exceptions inherit from ChainDAGError for easy exception
handling. Errors are grouped the way they surface to the operator: build
errors abort before validation, validation and reconciliation errors abort
before any network interaction, execution errors fail a single future, and
invariant violations always indicate a bug in plan construction.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence

# ============================================================================
# Base Exception
# ============================================================================


class ChainDAGError(Exception):
    """Base exception for all chaindag errors.

    This is the root exception that all chaindag-specific exceptions inherit from.
    Catch this to handle all chaindag errors.
    """

    pass


# ============================================================================
# Configuration & Resource Errors
# ============================================================================


class ConfigurationError(ChainDAGError):
    """Raised when configuration is invalid or missing.

    Examples
    --------
    Example usage::

        raise ConfigurationError("parameters", "file not found")
    """

    def __init__(self, component: str, reason: str) -> None:
        """Initialize configuration error.

        Args
        ----
            component: Name of the component with invalid configuration
            reason: Explanation of what's wrong
        """
        super().__init__(f"Configuration error in '{component}': {reason}")
        self.component = component
        self.reason = reason


class ResourceNotFoundError(ChainDAGError):
    """Raised when a required resource cannot be found.

    Examples
    --------
    Example usage::

        raise ResourceNotFoundError("artifact", "Foo", ["Bar", "Baz"])
    """

    def __init__(
        self, resource_type: str, resource_id: str, available: list[str] | None = None
    ) -> None:
        """Initialize resource not found error.

        Args
        ----
            resource_type: Type of resource (e.g., "artifact", "deployment", "future")
            resource_id: Identifier of the missing resource
            available: List of available resources (optional)
        """
        msg = f"{resource_type.title()} '{resource_id}' not found"
        if available:
            msg += f". Available: {', '.join(available[:5])}"
            if len(available) > 5:
                msg += f" ... and {len(available) - 5} more"
        super().__init__(msg)
        self.resource_type = resource_type
        self.resource_id = resource_id
        self.available = available


# ============================================================================
# Build Errors
# ============================================================================


class BuildError(ChainDAGError):
    """Raised while assembling modules and futures into a deployment graph."""

    __slots__ = ()


class DuplicateFutureError(BuildError):
    """Raised when a future id is registered twice."""

    def __init__(self, future_id: str) -> None:
        super().__init__(f"Future '{future_id}' already exists")
        self.future_id = future_id


class ModuleRedefinitionError(BuildError):
    """Raised when a different module definition is used under an existing id."""

    def __init__(self, module_id: str) -> None:
        super().__init__(
            f"Module '{module_id}' was already built from a different definition"
        )
        self.module_id = module_id


# ============================================================================
# Validation Errors
# ============================================================================


class ValidationError(ChainDAGError):
    """Raised when a single field fails validation.

    Examples
    --------
    Example usage::

        raise ValidationError("max_concurrency", "must be positive", value=0)
    """

    def __init__(self, field: str, constraint: str, value: object = None) -> None:
        """Initialize validation error.

        Args
        ----
            field: Name of the field that failed validation
            constraint: Description of the validation constraint
            value: The invalid value (optional)
        """
        if value is not None:
            msg = f"Validation failed for '{field}': {constraint} (got {value!r})"
        else:
            msg = f"Validation failed for '{field}': {constraint}"
        super().__init__(msg)
        self.field = field
        self.constraint = constraint
        self.value = value


class DeploymentValidationError(ChainDAGError):
    """Raised when pre-flight validation reports errors for one or more futures."""

    def __init__(self, errors: Mapping[str, Sequence[str]]) -> None:
        self.errors = {future_id: list(msgs) for future_id, msgs in errors.items() if msgs}
        lines = [
            f"  {future_id}: {msg}" for future_id, msgs in self.errors.items() for msg in msgs
        ]
        super().__init__("Validation failed:\n" + "\n".join(lines))


# ============================================================================
# Reconciliation Errors
# ============================================================================


class ReconciliationError(ChainDAGError):
    """Raised when recorded execution state conflicts with the new plan."""

    def __init__(self, failures: Mapping[str, str]) -> None:
        self.failures = dict(failures)
        lines = [f"  {future_id}: {reason}" for future_id, reason in self.failures.items()]
        super().__init__("Reconciliation failed:\n" + "\n".join(lines))


# ============================================================================
# Execution Errors
# ============================================================================


class ExecutionError(ChainDAGError):
    """Raised when a future fails to execute against the network."""

    transient: bool = False

    def __init__(self, future_id: str, reason: str) -> None:
        self.future_id = future_id
        self.reason = reason
        super().__init__(f"Future '{future_id}' failed: {reason}")


class TransientNetworkError(ExecutionError):
    """Network hiccup or nonce contention; safe to retry."""

    transient = True


class RevertError(ExecutionError):
    """The transaction or call reverted on-chain."""


class OutOfGasError(ExecutionError):
    """The transaction ran out of gas."""


class FutureTimeoutError(ExecutionError):
    """Confirmation was not observed within the future's timeout."""

    def __init__(self, future_id: str, timeout: float) -> None:
        self.timeout = timeout
        super().__init__(future_id, f"timed out after {timeout}s")


# ============================================================================
# Internal Invariant Violations
# ============================================================================


class InvariantViolationError(ChainDAGError):
    """Raised when an internal invariant is broken.

    These are never user-correctable and are never retried.
    """

    pass


class CycleDetectedError(InvariantViolationError):
    """Raised when a cycle is detected in the deployment graph."""

    __slots__ = ()


class InvalidTransitionError(InvariantViolationError):
    """Raised when a state transition violates the execution state machine."""

    def __init__(self, future_id: str, from_status: str | None, to_status: str) -> None:
        self.future_id = future_id
        self.from_status = from_status
        self.to_status = to_status
        super().__init__(
            f"Invalid transition for future '{future_id}': {from_status} -> {to_status}"
        )


__all__ = [
    # Base
    "ChainDAGError",
    # Configuration & Resource
    "ConfigurationError",
    "ResourceNotFoundError",
    # Build
    "BuildError",
    "DuplicateFutureError",
    "ModuleRedefinitionError",
    # Validation
    "ValidationError",
    "DeploymentValidationError",
    # Reconciliation
    "ReconciliationError",
    # Execution
    "ExecutionError",
    "TransientNetworkError",
    "RevertError",
    "OutOfGasError",
    "FutureTimeoutError",
    # Invariants
    "InvariantViolationError",
    "CycleDetectedError",
    "InvalidTransitionError",
]
