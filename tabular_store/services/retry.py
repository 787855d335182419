"""Retry with linear backoff."""

import logging
import time
from typing import Callable, Tuple, Type, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


def retry(
    fn: Callable[[], T],
    attempts: int = 3,
    backoff_seconds: float = 0.05,
    retry_on: Tuple[Type[BaseException], ...] = (Exception,),
    sleep: Callable[[float], None] = time.sleep,
) -> T:
    """
    Call ``fn`` until it succeeds or ``attempts`` calls have failed.

    Sleeps ``backoff_seconds * n`` after the n-th failure. The last
    exception is re-raised.
    """
    if attempts < 1:
        raise ValueError("attempts must be at least 1")

    for attempt in range(1, attempts + 1):
        try:
            return fn()
        except retry_on as e:
            if attempt == attempts:
                logger.warning("Giving up after %d attempts: %s", attempts, e)
                raise
            logger.info("Attempt %d/%d failed: %s", attempt, attempts, e)
            sleep(backoff_seconds * attempt)
    raise AssertionError("unreachable")
