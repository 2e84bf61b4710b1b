"""Bounded exponential-backoff retry for single request/response calls."""
import logging
import time
from dataclasses import dataclass
from typing import Callable, Tuple, Type, TypeVar

logger = logging.getLogger(__name__)

RequestT = TypeVar("RequestT")
ResponseT = TypeVar("ResponseT")

BACKOFF_MULTIPLIER = 2


def call_with_retry(
    attempts: int,
    initial_delay: float,
    fn: Callable[[RequestT], ResponseT],
    request: RequestT,
    retry_on: Tuple[Type[BaseException], ...] = (Exception,),
    sleep: Callable[[float], None] = time.sleep
) -> ResponseT:
    """
    Invoke ``fn(request)``, retrying failures with exponential backoff.

    The delay starts at ``initial_delay`` and doubles after every failed
    attempt. No delay follows the final attempt, so the worst-case total
    wait is ``initial_delay * (2 ** (attempts - 1) - 1)``.

    Args:
        attempts: Maximum number of invocations (at least 1)
        initial_delay: Seconds to wait after the first failure
        fn: Single request/response operation
        request: Argument passed to ``fn`` on every attempt
        retry_on: Exception types that trigger a retry; others propagate at once
        sleep: Blocking sleep function, replaceable in tests

    Returns:
        The first successful result of ``fn``

    Raises:
        The exception raised by the final attempt, unchanged
    """
    if attempts < 1:
        raise ValueError("attempts must be at least 1")

    delay = initial_delay
    remaining = attempts
    while True:
        try:
            return fn(request)
        except retry_on as e:
            remaining -= 1
            if remaining <= 0:
                logger.error(
                    f"Call failed after {attempts} attempts: {e}",
                    extra={"attempts": attempts, "error_type": type(e).__name__}
                )
                raise
            logger.warning(
                f"Attempt {attempts - remaining}/{attempts} failed: {e}. "
                f"Retrying in {delay}s..."
            )
            sleep(delay)
            delay *= BACKOFF_MULTIPLIER


@dataclass(frozen=True)
class RetryPolicy:
    """Immutable retry configuration."""
    max_attempts: int = 3
    initial_delay: float = 1.0
    backoff_multiplier: int = BACKOFF_MULTIPLIER

    def __post_init__(self):
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.initial_delay < 0:
            raise ValueError("initial_delay cannot be negative")
        if self.backoff_multiplier != BACKOFF_MULTIPLIER:
            raise ValueError(f"backoff_multiplier is fixed at {BACKOFF_MULTIPLIER}")

    def max_total_delay(self) -> float:
        """Longest time spent sleeping when every attempt fails."""
        return self.initial_delay * (self.backoff_multiplier ** (self.max_attempts - 1) - 1)

    def call(
        self,
        fn: Callable[[RequestT], ResponseT],
        request: RequestT,
        retry_on: Tuple[Type[BaseException], ...] = (Exception,),
        sleep: Callable[[float], None] = time.sleep
    ) -> ResponseT:
        return call_with_retry(
            self.max_attempts,
            self.initial_delay,
            fn,
            request,
            retry_on=retry_on,
            sleep=sleep
        )
