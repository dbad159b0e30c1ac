"""Bounded retry with linear backoff for calls to external services."""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ResilientExecutor:
    """Run an async operation with retries, backoff and a per-attempt timeout."""

    def __init__(
        self,
        attempts: int = 3,
        base_delay: float = 0.5,
        timeout: float | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        """Initialize the executor.

        Args:
            attempts: Total number of attempts, including the first one
            base_delay: Delay unit in seconds; attempt ``n`` waits ``base_delay * n``
            timeout: Per-attempt timeout in seconds, or None for no limit
            sleep: Sleep coroutine, replaceable in tests
        """
        if attempts < 1:
            raise ValueError("attempts must be at least 1")
        self.attempts = attempts
        self.base_delay = base_delay
        self.timeout = timeout
        self._sleep = sleep

    def backoff_delay(self, attempt: int) -> float:
        return self.base_delay * attempt

    async def execute(
        self,
        operation_name: str,
        fn: Callable[[], Awaitable[T]],
        timeout: float | None = None,
    ) -> T:
        """Run ``fn`` until it succeeds or attempts are exhausted.

        Args:
            operation_name: Name used in log entries
            fn: Zero-argument callable returning a fresh awaitable per attempt
            timeout: Overrides the executor's per-attempt timeout

        Returns:
            The value returned by ``fn``

        Raises:
            Exception: The error of the last attempt once all attempts failed
        """
        timeout = self.timeout if timeout is None else timeout
        last_error: Exception | None = None

        for attempt in range(1, self.attempts + 1):
            log_fields = {"operation": operation_name, "attempt": attempt, "max_attempts": self.attempts}
            try:
                if timeout is not None:
                    result = await asyncio.wait_for(fn(), timeout)
                else:
                    result = await fn()
            except Exception as e:
                last_error = e
                logger.warning(
                    f"{operation_name} attempt {attempt}/{self.attempts} failed: "
                    f"{type(e).__name__}: {e}",
                    extra={**log_fields, "outcome": "error"},
                )
                if attempt < self.attempts:
                    await self._sleep(self.backoff_delay(attempt))
                continue

            logger.debug(
                f"{operation_name} attempt {attempt}/{self.attempts} succeeded",
                extra={**log_fields, "outcome": "ok"},
            )
            return result

        logger.error(f"{operation_name} failed after {self.attempts} attempts: {last_error}")
        raise last_error
