"""
Retry strategies.

The transport only needs one pattern: run an attempt, decide whether the outcome
is transient, sleep for the next entry of a fixed backoff schedule and try again.
The strategy never raises on its own; it hands the last outcome back to the caller,
which decides how to classify it.
"""

import logging
import time
from dataclasses import dataclass
from typing import Callable, Generic, Optional, Sequence, Tuple, Type, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar('T')

DEFAULT_BACKOFF_SECONDS: Tuple[float, ...] = (1.0, 3.0)


@dataclass
class AttemptOutcome(Generic[T]):
    """
    Result of a retried operation.

    Attributes:
        result: Value returned by the last attempt, if it returned
        error: Exception raised by the last attempt, if it raised
        attempts: Number of physical attempts made
    """
    result: Optional[T] = None
    error: Optional[BaseException] = None
    attempts: int = 0

    @property
    def raised(self) -> bool:
        return self.error is not None


class BackoffRetryStrategy:
    """
    Retry an operation with a fixed, escalating backoff schedule.

    One initial attempt is made, followed by one retry per entry in ``backoff``.
    """

    def __init__(
        self,
        backoff: Sequence[float] = DEFAULT_BACKOFF_SECONDS,
        retry_exceptions: Tuple[Type[BaseException], ...] = (Exception,),
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.backoff = tuple(backoff)
        self.retry_exceptions = retry_exceptions
        self.sleep = sleep

    @property
    def retries(self) -> int:
        return len(self.backoff)

    def execute(
        self,
        func: Callable[[], T],
        should_retry: Callable[[T], bool],
        context: str = "operation",
        on_discard: Optional[Callable[[T], None]] = None,
    ) -> AttemptOutcome[T]:
        """
        Run ``func`` until it succeeds or the backoff schedule is exhausted.

        Args:
            func: Zero-argument callable performing one attempt
            should_retry: Predicate telling whether a returned value is transient
            context: Context description for log messages
            on_discard: Called with every returned value that is retried, so the
                caller can release it

        Returns:
            AttemptOutcome describing the last attempt
        """
        outcome: AttemptOutcome[T] = AttemptOutcome()

        for attempt in range(self.retries + 1):
            if attempt > 0:
                delay = self.backoff[attempt - 1]
                logger.debug(
                    f"Retrying {context}: retry_count={attempt}, backoff_seconds={delay}"
                )
                self.sleep(delay)

            outcome.attempts = attempt + 1
            try:
                result = func()
            except self.retry_exceptions as e:
                outcome.result, outcome.error = None, e
                logger.debug(f"Attempt {attempt + 1} failed for {context}: {e}")
                continue

            outcome.result, outcome.error = result, None
            if not should_retry(result):
                if attempt > 0:
                    logger.info(f"Operation '{context}' settled on attempt {attempt + 1}")
                return outcome
            if attempt < self.retries and on_discard is not None:
                on_discard(result)

        logger.error(f"All {outcome.attempts} attempts failed for {context}")
        return outcome
