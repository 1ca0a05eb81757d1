"""
Retry helpers on top of tenacity.

Phase retries of the execution coordinator: fixed delay, a bounded
number of attempts, and only errors marked retryable are repeated.
"""

import logging
from typing import Any, Callable, Optional

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    after_log,
    retry_if_exception,
    stop_after_attempt,
    wait_fixed,
)

from ...core.errors import WorkflowEngineError

logger = logging.getLogger("workflow-engine.infrastructure.retry")


def is_retryable_error(exception: BaseException) -> bool:
    """
    Determine if an error is retryable.

    Only typed engine errors that declare themselves retryable
    (TransientFailure) are repeated.
    """
    return isinstance(exception, WorkflowEngineError) and exception.is_retryable


def create_phase_retrying(
    max_attempts: int,
    delay_seconds: float = 0.0,
    before_sleep: Optional[Callable[[RetryCallState], Any]] = None,
    retry_predicate: Callable[[BaseException], bool] = is_retryable_error
) -> AsyncRetrying:
    """
    Create an AsyncRetrying controller for one phase.

    Args:
        max_attempts: Total attempts including the first one
        delay_seconds: Fixed wait between attempts
        before_sleep: Hook called before each wait (state bookkeeping)
        retry_predicate: Which errors are retried

    Returns:
        AsyncRetrying that re-raises the last underlying error
    """
    return AsyncRetrying(
        stop=stop_after_attempt(max(max_attempts, 1)),
        wait=wait_fixed(delay_seconds),
        retry=retry_if_exception(retry_predicate),
        before_sleep=before_sleep,
        after=after_log(logger, logging.DEBUG),
        reraise=True,
    )
