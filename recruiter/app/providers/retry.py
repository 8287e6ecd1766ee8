"""Retry state machine with linear backoff for completion calls.

A logical call moves through attempts ``1..max_attempts``. Each failure is
recorded in a ``RetryState``; the ``RetryPolicy`` decides whether another
attempt is allowed and how long to wait before it. Waiting is delegated to
an injectable ``sleep`` coroutine so tests (or other schedulers) can drive
the loop without real delays.
"""

import asyncio
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Optional, Tuple, Type, TypeVar

from recruiter.app.core.logging import get_log_context, get_logger
from recruiter.app.exceptions import ExhaustedRetriesError, TransientError

logger = get_logger(__name__)

T = TypeVar("T")

SleepFunc = Callable[[float], Awaitable[None]]


@dataclass
class RetryPolicy:
    """Configuration for retry behavior with linear backoff.

    Attributes:
        max_attempts: Total attempts including the first one (default: 3)
        base_delay: Seconds added per failed attempt (default: 1.0)
        retryable_exceptions: Exception types that allow another attempt

    Example:
        >>> policy = RetryPolicy(max_attempts=3, base_delay=1.0)
        >>> policy.calculate_delay(attempt=3)  # Wait before the third attempt
        2.0
    """

    max_attempts: int = 3
    base_delay: float = 1.0
    retryable_exceptions: Tuple[Type[Exception], ...] = (TransientError,)

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.base_delay < 0:
            raise ValueError("base_delay must not be negative")

    def calculate_delay(self, attempt: int) -> float:
        """Delay in seconds before ``attempt`` (1-indexed).

        Linear: attempt 1 starts immediately, attempt n waits
        ``(n - 1) * base_delay``.
        """
        return max(0, attempt - 1) * self.base_delay

    def is_retryable(self, exception: BaseException) -> bool:
        return isinstance(exception, self.retryable_exceptions)


@dataclass
class RetryState:
    """Progress of one logical call.

    ``attempt`` counts attempts started so far and never exceeds the
    policy's ``max_attempts``.
    """

    max_attempts: int
    attempt: int = 0
    last_error: Optional[TransientError] = None
    delays: list[float] = field(default_factory=list)

    @property
    def exhausted(self) -> bool:
        return self.attempt >= self.max_attempts

    def begin_attempt(self) -> int:
        if self.exhausted:
            raise RuntimeError("no attempts left")
        self.attempt += 1
        return self.attempt

    def record_failure(self, error: TransientError) -> None:
        self.last_error = error


async def run_with_retry(
    operation: Callable[[int], Awaitable[T]],
    policy: Optional[RetryPolicy] = None,
    sleep: SleepFunc = asyncio.sleep,
) -> Tuple[T, RetryState]:
    """Run ``operation`` until it succeeds or the policy gives up.

    ``operation`` receives the 1-indexed attempt number. Attempts run one
    after another; the next one starts only after the previous one failed
    and the backoff delay elapsed.

    Returns:
        The operation's result and the final ``RetryState``.

    Raises:
        ExhaustedRetriesError: Every attempt failed with a retryable error.
        Exception: Any non-retryable error, unchanged, on the attempt it
            occurred.
    """
    retry_policy = policy or RetryPolicy()
    state = RetryState(max_attempts=retry_policy.max_attempts)

    while not state.exhausted:
        attempt = state.begin_attempt()
        if attempt > 1:
            delay = retry_policy.calculate_delay(attempt)
            state.delays.append(delay)
            await sleep(delay)

        try:
            return await operation(attempt), state
        except Exception as e:
            if not retry_policy.is_retryable(e):
                logger.debug(
                    f"Non-retryable {type(e).__name__} on attempt {attempt}",
                    extra=get_log_context(attempt=attempt),
                )
                raise
            state.record_failure(e)  # type: ignore[arg-type]
            logger.warning(
                f"Attempt {attempt}/{retry_policy.max_attempts} failed: {e}",
                extra=get_log_context(attempt=attempt),
            )

    if state.last_error is None:
        raise RuntimeError("retry loop ended without an attempt")
    logger.error(
        f"Giving up after {state.attempt} attempt(s): {state.last_error}",
        extra=get_log_context(attempt=state.attempt),
    )
    raise ExhaustedRetriesError(state.last_error, state.attempt)
