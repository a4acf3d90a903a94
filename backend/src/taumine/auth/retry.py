"""Retry policy for calls into the authentication backend."""

from typing import Any, Callable, TypeVar

import httpx
from sqlalchemy.exc import IntegrityError, OperationalError
from tenacity import (
    RetryCallState,
    Retrying,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential_jitter,
)
from tenacity.wait import wait_base

from taumine.logging_config import get_logger
from taumine.settings import settings

logger = get_logger(__name__)

T = TypeVar("T")

INITIAL_DELAY_SECONDS = 1.0
MAX_DELAY_SECONDS = 10.0
BACKOFF_FACTOR = 2


def is_retryable_error(error: BaseException) -> bool:
    """Transient connectivity failures are retried; everything else is not."""
    if isinstance(error, IntegrityError):
        return False
    if isinstance(error, OperationalError):
        return True
    if isinstance(error, (httpx.TransportError, TimeoutError, ConnectionError)):
        return True
    if isinstance(error, httpx.HTTPStatusError):
        status = error.response.status_code
        return status == 429 or 500 <= status < 600
    return False


def _log_retry(retry_state: RetryCallState) -> None:
    error = retry_state.outcome.exception() if retry_state.outcome else None
    logger.warning(
        "auth_call_retrying",
        attempt=retry_state.attempt_number,
        wait_seconds=round(retry_state.next_action.sleep, 2) if retry_state.next_action else None,
        error=str(error),
    )


def auth_retrying(
    max_attempts: int | None = None,
    wait: wait_base | None = None,
) -> Retrying:
    """Build the retry controller for auth calls.

    Exponential backoff from 1s doubling up to 10s, with random jitter.

    Args:
        max_attempts: Total attempts (defaults to settings)
        wait: Override the wait strategy (tests use ``wait_none()``)
    """
    return Retrying(
        stop=stop_after_attempt(max_attempts or settings.auth_max_attempts),
        wait=wait or wait_exponential_jitter(
            initial=INITIAL_DELAY_SECONDS,
            max=MAX_DELAY_SECONDS,
            exp_base=BACKOFF_FACTOR,
            jitter=INITIAL_DELAY_SECONDS,
        ),
        retry=retry_if_exception(is_retryable_error),
        before_sleep=_log_retry,
        reraise=True,
    )


def call_with_retry(
    fn: Callable[..., T],
    *args: Any,
    retrying: Retrying | None = None,
    **kwargs: Any,
) -> T:
    """Call ``fn`` under the auth retry policy."""
    retrying = retrying or auth_retrying()
    return retrying(fn, *args, **kwargs)
