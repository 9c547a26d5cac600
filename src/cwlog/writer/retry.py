# src/cwlog/writer/retry.py
"""Delivery retry policy with tenacity integration.

Each delivery attempt reports a tagged RetryOutcome instead of raising, so
the policy can tell the four cases apart without sentinel errors:

- SUCCESS: stop, the batch is stored
- RETRY: counted against the attempt budget, linear backoff before retrying
- RETRY_IMMEDIATE: not counted, no backoff (stale sequence token)
- FATAL: stop, raise the attached error

Backoff is linear: after the n-th counted failure the policy sleeps
n * backoff_unit before the next attempt.
"""

import time
from collections.abc import Callable
from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING

import structlog
from tenacity import RetryCallState, Retrying, retry_if_result

from cwlog.writer.errors import (
    AlreadyAcceptedError,
    DeliveryError,
    DeliveryRejectedError,
    DestinationNotFoundError,
    InvalidSequenceTokenError,
    MaxRetriesExceeded,
)

if TYPE_CHECKING:
    from cwlog.core.config import WriterSettings

logger = structlog.get_logger(__name__)


class RetryAction(StrEnum):
    """What the policy does after an attempt."""

    SUCCESS = "success"
    RETRY = "retry"
    RETRY_IMMEDIATE = "retry_immediate"
    FATAL = "fatal"


@dataclass(frozen=True, slots=True)
class RetryOutcome:
    """Result of one delivery attempt.

    error is None only for SUCCESS outcomes that did not come from an
    error (an already-accepted batch still carries its error for logging).
    """

    action: RetryAction
    error: BaseException | None = None

    @classmethod
    def success(cls, error: BaseException | None = None) -> "RetryOutcome":
        return cls(RetryAction.SUCCESS, error)

    @classmethod
    def retry(cls, error: BaseException) -> "RetryOutcome":
        return cls(RetryAction.RETRY, error)

    @classmethod
    def retry_immediate(cls, error: BaseException) -> "RetryOutcome":
        return cls(RetryAction.RETRY_IMMEDIATE, error)

    @classmethod
    def fatal(cls, error: BaseException) -> "RetryOutcome":
        return cls(RetryAction.FATAL, error)


def classify_error(error: BaseException) -> RetryOutcome:
    """Map a delivery error to the policy's next action.

    - AlreadyAcceptedError -> SUCCESS
    - InvalidSequenceTokenError with an expected token -> RETRY_IMMEDIATE
    - DeliveryRejectedError -> FATAL
    - DestinationNotFoundError and anything else -> RETRY

    A stale-token error without an expected token cannot heal itself on
    the next attempt, so it is counted like any other failure.
    """
    if isinstance(error, AlreadyAcceptedError):
        return RetryOutcome.success(error)
    if isinstance(error, InvalidSequenceTokenError):
        if error.expected_token is None:
            return RetryOutcome.retry(error)
        return RetryOutcome.retry_immediate(error)
    if isinstance(error, DeliveryRejectedError):
        return RetryOutcome.fatal(error)
    if isinstance(error, DestinationNotFoundError):
        return RetryOutcome.retry(error)
    return RetryOutcome.retry(error)


@dataclass
class RetryConfig:
    """Configuration for delivery retries.

    max_attempts is the number of COUNTED attempts. Immediate retries do
    not consume it; they have their own ceiling, max_immediate_retries,
    after which a stale-token error is counted like any other failure.
    """

    max_attempts: int = 5
    backoff_unit: float = 0.1  # seconds
    max_immediate_retries: int = 10

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        if self.backoff_unit < 0:
            raise ValueError("backoff_unit must be >= 0")
        if self.max_immediate_retries < 0:
            raise ValueError("max_immediate_retries must be >= 0")

    @classmethod
    def from_settings(cls, settings: "WriterSettings") -> "RetryConfig":
        """Factory from WriterSettings config model."""
        return cls(
            max_attempts=settings.max_retries,
            backoff_unit=settings.backoff_unit_seconds,
        )


@dataclass
class RetryStats:
    """Attempt accounting for one run() call."""

    attempts: int = 0
    counted_failures: int = 0
    immediate_retries: int = 0


class RetryPolicy:
    """Runs a delivery attempt until it succeeds, fails fatally or runs out.

    Example:
        policy = RetryPolicy(RetryConfig(max_attempts=5))
        stats = policy.run(lambda: attempt_delivery(batch))
    """

    def __init__(self, config: RetryConfig, *, sleep: Callable[[float], None] = time.sleep) -> None:
        """Initialize with config.

        Args:
            config: Retry configuration
            sleep: Sleep function; tests pass a recorder
        """
        self._config = config
        self._sleep = sleep

    @property
    def config(self) -> RetryConfig:
        return self._config

    def _backoff(self, seconds: float) -> None:
        # tenacity also "sleeps" 0s before immediate retries
        if seconds > 0:
            self._sleep(seconds)

    def run(self, attempt: Callable[[], RetryOutcome]) -> RetryStats:
        """Execute attempt() under the retry policy.

        Args:
            attempt: Performs one delivery and reports its outcome. Must not
                raise for delivery failures; an exception escaping it is
                propagated unchanged.

        Returns:
            Attempt statistics for the successful run

        Raises:
            MaxRetriesExceeded: If max_attempts counted failures occurred
            DeliveryError: The attached error of a FATAL outcome
        """
        stats = RetryStats()

        def tracked_attempt() -> RetryOutcome:
            outcome = attempt()
            stats.attempts += 1
            if outcome.action == RetryAction.RETRY_IMMEDIATE:
                if stats.immediate_retries >= self._config.max_immediate_retries:
                    logger.warning(
                        "Too many consecutive immediate retries, counting failure",
                        immediate_retries=stats.immediate_retries,
                    )
                    outcome = RetryOutcome.retry(_require_error(outcome))
                else:
                    stats.immediate_retries += 1
            if outcome.action == RetryAction.RETRY:
                stats.counted_failures += 1
                if stats.counted_failures < self._config.max_attempts:
                    logger.warning(
                        "Delivery attempt failed, retrying",
                        attempt=stats.counted_failures,
                        max_attempts=self._config.max_attempts,
                        error=str(outcome.error),
                        error_type=type(outcome.error).__name__,
                    )
            return outcome

        def should_stop(retry_state: RetryCallState) -> bool:
            return stats.counted_failures >= self._config.max_attempts

        def wait(retry_state: RetryCallState) -> float:
            outcome: RetryOutcome = retry_state.outcome.result()  # type: ignore[union-attr]
            if outcome.action == RetryAction.RETRY_IMMEDIATE:
                return 0.0
            return stats.counted_failures * self._config.backoff_unit

        retrying = Retrying(
            stop=should_stop,
            wait=wait,
            retry=retry_if_result(lambda o: o.action in (RetryAction.RETRY, RetryAction.RETRY_IMMEDIATE)),
            sleep=self._backoff,
            # Hand the last outcome back instead of raising RetryError
            retry_error_callback=lambda retry_state: retry_state.outcome.result(),  # type: ignore[union-attr]
        )
        final: RetryOutcome = retrying(tracked_attempt)

        if final.action == RetryAction.SUCCESS:
            return stats
        error = _require_error(final)
        if final.action == RetryAction.FATAL:
            if isinstance(error, DeliveryError):
                raise error
            raise DeliveryRejectedError(str(error)) from error
        raise MaxRetriesExceeded(stats.counted_failures, error) from error


def _require_error(outcome: RetryOutcome) -> BaseException:
    # Only SUCCESS outcomes may lack an error
    assert outcome.error is not None, f"{outcome.action} outcome without an error"
    return outcome.error
