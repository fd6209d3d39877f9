"""Retry coordinator with a linear (fixed-delay) backoff.

The coordinator wraps a whole reconciliation attempt. Errors flagged
``retryable`` (transport failures, timeouts, rate limits) are retried after a
blocking sleep; terminal errors (bad input, rejected credentials) end the loop
immediately. When attempts are exhausted the original error is surfaced in
the outcome and the notifier is told.

Usage:
    coordinator = RetryCoordinator(RetryPolicy(max_attempts=3, delay_seconds=5))
    outcome = coordinator.with_retry(lambda: reconciler.reconcile(order), subject_id=order.order_id)
    if not outcome.success:
        print(outcome.error)
"""

import time
from dataclasses import dataclass
from typing import Any, Callable, Optional

from core.errors import OrderSyncError, RateLimitError, error_code
from core.observability.logging import get_logger, with_correlation
from core.observability.metrics import record_retry
from core.workflow.base import FailureNotifier


logger = get_logger(__name__)


@dataclass
class RetryPolicy:
    """Configuration for retry behavior."""
    max_attempts: int = 3
    delay_seconds: float = 5.0
    sleep: Callable[[float], None] = time.sleep

    def get_delay(self, attempt: int, error: Optional[BaseException] = None) -> float:
        """Delay before the next attempt (the same for every attempt)."""
        delay = self.delay_seconds
        if isinstance(error, RateLimitError):
            delay = max(delay, float(error.retry_after))
        return delay

    def is_retryable(self, error: BaseException) -> bool:
        return isinstance(error, OrderSyncError) and error.retryable


@dataclass
class RetryOutcome:
    """Result of a retried call: either a value or the last error."""
    value: Any = None
    error: Optional[BaseException] = None
    attempts: int = 0

    @property
    def success(self) -> bool:
        return self.error is None

    def unwrap(self) -> Any:
        """Return the value, or raise the original error."""
        if self.error is not None:
            raise self.error
        return self.value


class RetryCoordinator:
    """Runs a callable under a RetryPolicy."""

    def __init__(
        self,
        policy: Optional[RetryPolicy] = None,
        notifier: Optional[FailureNotifier] = None,
    ):
        self.policy = policy or RetryPolicy()
        self.notifier = notifier

    def with_retry(
        self,
        fn: Callable[[], Any],
        max_attempts: Optional[int] = None,
        delay_seconds: Optional[float] = None,
        operation: str = "reconcile",
        subject_id: Optional[str] = None,
    ) -> RetryOutcome:
        """Call ``fn`` until it succeeds, fails terminally, or runs out of attempts.

        Args:
            fn: Zero-argument callable performing one full attempt
            max_attempts: Override the policy's attempt count
            delay_seconds: Override the policy's fixed delay
            operation: Name used in logs and metrics
            subject_id: Id reported to the notifier (e.g. the order id)

        Returns:
            RetryOutcome with the value, or the last error and attempt count

        Exceptions that are not OrderSyncError propagate unchanged.
        """
        attempts_allowed = max(1, max_attempts if max_attempts is not None else self.policy.max_attempts)
        policy = self.policy
        if delay_seconds is not None:
            policy = RetryPolicy(
                max_attempts=attempts_allowed,
                delay_seconds=delay_seconds,
                sleep=self.policy.sleep,
            )

        last_error: Optional[OrderSyncError] = None
        attempt = 0

        for attempt in range(1, attempts_allowed + 1):
            with with_correlation(attempt=attempt):
                try:
                    return RetryOutcome(value=fn(), attempts=attempt)
                except OrderSyncError as e:
                    last_error = e

                    if not policy.is_retryable(e):
                        logger.warning(
                            f"{operation} failed with non-retryable {type(e).__name__}: {e}",
                            extra_fields={"error_code": e.code},
                        )
                        break

                    if attempt >= attempts_allowed:
                        break

                    delay = policy.get_delay(attempt, e)
                    logger.warning(
                        f"{operation} failed with {type(e).__name__}: {e}, "
                        f"retrying in {delay:.1f}s (attempt {attempt + 1}/{attempts_allowed})",
                        extra_fields={"error_code": e.code},
                    )
                    record_retry(operation, attempt, e.code)
                    policy.sleep(delay)

        logger.error(
            f"{operation} gave up after {attempt} attempt(s): {last_error}",
            extra_fields={"error_code": error_code(last_error)},
        )
        if self.notifier is not None:
            self.notifier.notify_failure(subject_id or operation, attempt, last_error)

        return RetryOutcome(error=last_error, attempts=attempt)
