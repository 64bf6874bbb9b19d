"""
Retry Policy

Shared bounded exponential backoff used around blob backend calls.
"""

import time
from dataclasses import dataclass, field
from typing import Callable, Iterator, Optional, Tuple, Type, TypeVar

from .errors import StorageBackendUnavailableError

T = TypeVar("T")


@dataclass(frozen=True)
class RetryPolicy:
    """
    Value object describing how a transient failure is retried.

    Attributes:
        max_attempts: Total number of attempts, including the first one
        initial_delay: Seconds to wait before the second attempt
        multiplier: Factor applied to the delay after each failed attempt
        max_delay: Upper bound for a single delay
        retry_on: Exception types considered transient
        sleep: Function used to wait (injectable for tests)
    """

    max_attempts: int = 3
    initial_delay: float = 0.2
    multiplier: float = 2.0
    max_delay: float = 5.0
    retry_on: Tuple[Type[BaseException], ...] = (StorageBackendUnavailableError,)
    sleep: Callable[[float], None] = field(default=time.sleep, compare=False, repr=False)

    def __post_init__(self):
        if self.max_attempts < 1:
            raise ValueError(f"max_attempts must be at least 1, got {self.max_attempts}")
        if self.initial_delay < 0 or self.max_delay < 0:
            raise ValueError("Retry delays must not be negative")
        if self.multiplier < 1:
            raise ValueError(f"multiplier must be >= 1, got {self.multiplier}")

    def delays(self) -> Iterator[float]:
        """Yield the wait before each retry (max_attempts - 1 values)."""
        delay = self.initial_delay
        for _ in range(self.max_attempts - 1):
            yield min(delay, self.max_delay)
            delay *= self.multiplier

    def is_retryable(self, error: BaseException) -> bool:
        """A failure is retried when it is one of retry_on and flags itself retryable."""
        if not isinstance(error, self.retry_on):
            return False
        return getattr(error, "retryable", True)

    def call(
        self,
        func: Callable[[], T],
        on_retry: Optional[Callable[[int, BaseException, float], None]] = None,
    ) -> T:
        """
        Run func, retrying transient failures with exponential backoff.

        Args:
            func: Zero-argument callable to run
            on_retry: Optional hook called as on_retry(attempt, error, delay)
                before each wait

        Returns:
            Whatever func returns

        Raises:
            The first non-retryable error, or the last error once all
            attempts are used.
        """
        delays = self.delays()
        attempt = 1
        while True:
            try:
                return func()
            except Exception as e:
                if not self.is_retryable(e):
                    raise
                delay = next(delays, None)
                if delay is None:
                    raise
                if on_retry is not None:
                    on_retry(attempt, e, delay)
                self.sleep(delay)
                attempt += 1

    def with_sleep(self, sleep: Callable[[float], None]) -> "RetryPolicy":
        """Copy of this policy that waits with a different function."""
        return RetryPolicy(
            max_attempts=self.max_attempts,
            initial_delay=self.initial_delay,
            multiplier=self.multiplier,
            max_delay=self.max_delay,
            retry_on=self.retry_on,
            sleep=sleep,
        )


NO_RETRY = RetryPolicy(max_attempts=1)
