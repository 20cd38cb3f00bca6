"""Retry with exponential backoff for transient network failures.

Only errors the predicate accepts are retried; by default that is any
:class:`~chaindag.kernel.exceptions.ExecutionError` flagged ``transient``.
Reverts and out-of-gas failures are never retried.

Examples
--------
Basic usage::

    config = RetryConfig(max_attempts=3, delay=0.5)
    receipt = await execute_with_retry(submit_and_wait, config)
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from chaindag.kernel.exceptions import ExecutionError
from chaindag.kernel.logging import get_logger

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

logger = get_logger(__name__)


@dataclass(frozen=True, slots=True)
class RetryConfig:
    """Configuration for retry behavior with exponential backoff.

    Parameters
    ----------
    max_attempts : int
        Total number of attempts. 1 means no retries (single attempt).
    delay : float
        Initial delay in seconds before the first retry.
    backoff : float
        Multiplier applied to the delay after each retry.
    max_delay : float
        Maximum delay cap in seconds.
    """

    max_attempts: int = 3
    delay: float = 1.0
    backoff: float = 2.0
    max_delay: float = 30.0

    @property
    def has_retries(self) -> bool:
        """Whether this config enables retries (max_attempts > 1)."""
        return self.max_attempts > 1

    def compute_delay(self, attempt: int) -> float:
        """Compute the delay after a failed attempt (1-indexed).

        Examples
        --------
        >>> cfg = RetryConfig(delay=1.0, backoff=2.0, max_delay=10.0)
        >>> cfg.compute_delay(1)
        1.0
        >>> cfg.compute_delay(3)
        4.0
        >>> cfg.compute_delay(10)
        10.0
        """
        return min(self.delay * (self.backoff ** (attempt - 1)), self.max_delay)


def is_transient(error: BaseException) -> bool:
    """Default retry predicate: transient execution errors only."""
    return isinstance(error, ExecutionError) and error.transient


async def execute_with_retry(
    fn: Callable[[int], Awaitable[Any]],
    config: RetryConfig,
    *,
    retry_on: Callable[[BaseException], bool] = is_transient,
    on_retry: Callable[[int, int, Exception, float], Awaitable[None] | None] | None = None,
) -> Any:
    """Execute an async callable with retry and exponential backoff.

    Parameters
    ----------
    fn : Callable[[int], Awaitable[Any]]
        Async callable receiving the 1-indexed attempt number.
    config : RetryConfig
        Retry configuration.
    retry_on : callable
        Predicate deciding whether an error is retried.
    on_retry : callable, optional
        Invoked (and awaited, if it returns an awaitable) before each retry
        sleep with ``(attempt, max_attempts, error, delay)``.

    Returns
    -------
    Any
        The return value of *fn*.

    Examples
    --------
    >>> import asyncio
    >>> async def ok(attempt): return 42
    >>> asyncio.run(execute_with_retry(ok, RetryConfig()))
    42
    """
    for attempt in range(1, config.max_attempts + 1):
        try:
            return await fn(attempt)
        except Exception as exc:
            if attempt >= config.max_attempts or not retry_on(exc):
                raise
            delay = config.compute_delay(attempt)
            logger.warning(
                f"Attempt {attempt}/{config.max_attempts} failed: {exc}; retrying in {delay:.2f}s"
            )
            if on_retry is not None:
                pending = on_retry(attempt, config.max_attempts, exc, delay)
                if pending is not None:
                    await pending
            await asyncio.sleep(delay)

    raise AssertionError("unreachable")  # pragma: no cover
