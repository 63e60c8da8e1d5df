"""Bounded retry for calls that lag behind or transiently reject."""

import time
from dataclasses import dataclass
from typing import Callable, TypeVar

from loguru import logger

T = TypeVar("T")


class RetryableError(Exception):
    """Raised by an attempt to ask for another try."""

    def __init__(self, cause: Exception):
        super().__init__(str(cause))
        self.cause = cause


class RetryTimeoutError(Exception):
    """The budget ran out while attempts were still asking to retry."""

    def __init__(self, timeout: float, attempts: int, last_error: Exception | None):
        super().__init__(
            f"timeout after {timeout:g}s and {attempts} attempts. Last error: {last_error}"
        )
        self.timeout = timeout
        self.attempts = attempts
        self.last_error = last_error


@dataclass(frozen=True)
class BackoffPolicy:
    """Exponential delay between attempts."""

    min_delay: float = 0.5
    max_delay: float = 10.0
    multiplier: float = 2.0

    def delays(self):
        delay = self.min_delay
        while True:
            yield delay
            delay = min(delay * self.multiplier, self.max_delay)


def retry(
    timeout: float,
    attempt: Callable[[], T],
    *,
    policy: BackoffPolicy = BackoffPolicy(),
    sleep: Callable[[float], None] = time.sleep,
    clock: Callable[[], float] = time.monotonic,
) -> T:
    """Call ``attempt`` until it returns, fails fatally, or ``timeout`` elapses.

    ``attempt`` raises ``RetryableError`` to be tried again; any other
    exception propagates unchanged.

    Raises:
        RetryTimeoutError: The budget is spent. Carries the last cause.
    """
    deadline = clock() + timeout
    delays = policy.delays()
    attempts = 0
    last_error: Exception | None = None

    while True:
        attempts += 1
        try:
            return attempt()
        except RetryableError as e:
            last_error = e.cause

        remaining = deadline - clock()
        if remaining <= 0:
            raise RetryTimeoutError(timeout, attempts, last_error)
        delay = min(next(delays), remaining)
        logger.debug(f"Attempt {attempts} not converged ({last_error}), retrying in {delay:.2f}s")
        sleep(delay)


def converge(
    timeout: float,
    attempt: Callable[[], T],
    *,
    policy: BackoffPolicy = BackoffPolicy(),
    sleep: Callable[[float], None] = time.sleep,
    clock: Callable[[], float] = time.monotonic,
) -> T:
    """``retry``, then on timeout exactly one final direct attempt.

    Raises:
        RetryTimeoutError: The final attempt still asked to retry.
    """
    try:
        return retry(timeout, attempt, policy=policy, sleep=sleep, clock=clock)
    except RetryTimeoutError as e:
        logger.info(f"Convergence {e}; making one final attempt")
        try:
            return attempt()
        except RetryableError as final:
            raise RetryTimeoutError(timeout, e.attempts + 1, final.cause) from final.cause
