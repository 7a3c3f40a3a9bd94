"""Retry with exponential backoff."""

import time
from typing import Callable, Optional, TypeVar

from weather_dashboard.config import INITIAL_DELAY_S, MAX_RETRIES
from weather_dashboard.logging_config import logger

T = TypeVar("T")


def retry_with_backoff(
    operation: Callable[[], T],
    max_retries: int = MAX_RETRIES,
    initial_delay_s: float = INITIAL_DELAY_S,
    *,
    retry_if: Optional[Callable[[Exception], bool]] = None,
    sleep: Optional[Callable[[float], None]] = None,
    event_prefix: str = "REQUEST",
    log_context: Optional[dict] = None,
) -> T:
    """Call ``operation`` until it succeeds or the attempts run out.

    The wait before retry ``n`` (0-based) is ``initial_delay_s * 2 ** n``.
    Every failure is retried unless ``retry_if`` returns False for it.

    Args:
        operation: Zero-argument callable to attempt.
        max_retries: Maximum number of calls to ``operation``.
        initial_delay_s: Delay before the first retry, in seconds.
        retry_if: Predicate deciding whether a failure is worth retrying.
        sleep: Replacement for ``time.sleep``.
        event_prefix: Log event prefix for consistent names.
        log_context: Extra log fields for retry events.

    Returns:
        The result of the first successful call.

    Raises:
        ValueError: If ``max_retries`` is less than 1.
        Exception: The last failure raised by ``operation``.
    """
    if max_retries < 1:
        raise ValueError("max_retries must be at least 1")
    log_context = log_context or {}

    for attempt in range(max_retries):
        try:
            return operation()
        except Exception as exc:
            if attempt == max_retries - 1:
                raise
            if retry_if is not None and not retry_if(exc):
                logger.info(
                    f"{event_prefix}_NOT_RETRIED",
                    **log_context,
                    attempt=attempt + 1,
                    error=str(exc),
                )
                raise
            delay = initial_delay_s * (2**attempt)
            logger.warning(
                f"{event_prefix}_RETRY",
                **log_context,
                attempt=attempt + 2,
                delay_s=delay,
                error=str(exc),
            )
            (sleep or time.sleep)(delay)
