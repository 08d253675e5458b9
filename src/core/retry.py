"""Bounded retry policies built on tenacity.

This module is shared by archive downloads and entity store writes.
Callers choose which exception types count as transient.
"""

from __future__ import annotations

import time
from typing import Callable

from tenacity import (
    RetryCallState,
    Retrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from core.constants import MAX_RETRY_DELAY_SECONDS
from core.logging_config import get_logger

_LOGGER = get_logger(__name__)


def build_retrying(
    *,
    attempts: int,
    base_delay: float,
    retry_on: tuple[type[BaseException], ...],
    description: str,
    sleep: Callable[[float], None] = time.sleep,
) -> Retrying:
    """Build a retry policy with capped exponential backoff.

    The first retry waits ``base_delay`` seconds and each later one doubles
    it, up to ``MAX_RETRY_DELAY_SECONDS``.

    Args:
        attempts: Maximum number of calls, at least one.
        base_delay: Delay after the first failure in seconds.
        retry_on: Exception types treated as transient.
        description: Short label used in retry log events.
        sleep: Sleep function, replaceable in tests.

    Returns:
        A tenacity ``Retrying`` that re-raises the last transient error once
        attempts are exhausted. Other errors propagate immediately.
    """
    return Retrying(
        stop=stop_after_attempt(attempts),
        wait=wait_exponential(multiplier=base_delay, max=MAX_RETRY_DELAY_SECONDS),
        retry=retry_if_exception_type(retry_on),
        before_sleep=_log_retry(description, attempts),
        sleep=sleep,
        reraise=True,
    )


def _log_retry(description: str, attempts: int) -> Callable[[RetryCallState], None]:
    def _before_sleep(retry_state: RetryCallState) -> None:
        error = retry_state.outcome.exception() if retry_state.outcome else None
        delay = retry_state.next_action.sleep if retry_state.next_action else 0.0
        _LOGGER.warning(
            "operation_retry_scheduled",
            operation=description,
            attempt=retry_state.attempt_number,
            max_attempts=attempts,
            delay_seconds=delay,
            error=str(error),
        )

    return _before_sleep
