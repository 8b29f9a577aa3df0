"""Polling utilities: retry a condition at a fixed interval until it succeeds or a deadline passes."""

import threading
import time
from collections.abc import Callable
from typing import TypeVar

from tenacity import (
    RetryCallState,
    RetryError,
    Retrying,
    retry_if_exception_type,
    retry_if_result,
    stop_after_delay,
    wait_fixed,
)

from vconnect.core.exceptions import OperationCancelledError, StageTimeoutError
from vconnect.utils.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


class ConditionNotMet(Exception):
    """Raised by a poll condition that is not met yet, carrying the reason."""

    def __init__(self, cause: BaseException | None = None):
        super().__init__(str(cause) if cause else "condition not met")
        self.cause = cause


def _cancellable_sleep(stage: str, cancel_event: threading.Event | None) -> Callable[[float], None]:
    def sleep(seconds: float) -> None:
        if cancel_event is None:
            time.sleep(seconds)
            return
        if cancel_event.wait(seconds):
            raise OperationCancelledError(stage)

    return sleep


def poll_until(
    condition: Callable[[], T | None],
    *,
    interval: float,
    timeout: float,
    stage: str,
    cancel_event: threading.Event | None = None,
) -> T:
    """Call condition until it returns a value other than None.

    The first attempt runs immediately. A condition that returns None or raises
    ConditionNotMet is retried after interval seconds; any other exception is
    propagated as-is without retrying.

    Args:
        condition: Callable returning the result, or None when not done yet
        interval: Seconds between attempts
        timeout: Seconds after which polling gives up
        stage: Stage name used in errors and logs
        cancel_event: Event that aborts polling when set

    Returns:
        The first non-None result of condition

    Raises:
        StageTimeoutError: If the deadline passes; wraps the last ConditionNotMet cause
        OperationCancelledError: If cancel_event is set while waiting
    """
    if cancel_event is not None and cancel_event.is_set():
        raise OperationCancelledError(stage)

    def before_sleep(retry_state: RetryCallState) -> None:
        logger.debug("poll_attempt_pending", stage=stage, attempt=retry_state.attempt_number)

    retrying = Retrying(
        stop=stop_after_delay(timeout),
        wait=wait_fixed(interval),
        retry=retry_if_result(lambda result: result is None)
        | retry_if_exception_type(ConditionNotMet),
        sleep=_cancellable_sleep(stage, cancel_event),
        before_sleep=before_sleep,
    )

    try:
        return retrying(condition)
    except RetryError as e:
        last_error = None
        if e.last_attempt.failed:
            exception = e.last_attempt.exception()
            if isinstance(exception, ConditionNotMet):
                last_error = exception.cause
        logger.warning("poll_timed_out", stage=stage, timeout=timeout)
        raise StageTimeoutError(stage, timeout, last_error) from last_error
