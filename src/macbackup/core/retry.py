"""Bounded polling with optional backoff.

Used wherever the tool waits on state it does not control, such as iCloud
Drive metadata. Timeouts are attempt caps, not wall-clock deadlines.
"""

import time
from collections.abc import Callable


def poll_until(
    predicate: Callable[[], bool],
    interval: float,
    max_attempts: int,
    backoff: float = 1.0,
    max_interval: float | None = None,
    on_retry: Callable[[int], None] | None = None,
    sleep: Callable[[float], None] = time.sleep,
) -> bool:
    """Evaluate `predicate` until it returns True or attempts run out.

    Args:
        predicate: Condition to poll
        interval: Initial sleep between attempts (seconds)
        max_attempts: Maximum number of predicate evaluations
        backoff: Multiplier applied to the interval after each sleep
        max_interval: Upper bound for the interval, if any
        on_retry: Called with the attempt number after each failed attempt,
            before sleeping (not called after the final attempt)
        sleep: Sleep function, replaceable in tests

    Returns:
        True if the predicate succeeded within the budget
    """
    delay = interval
    for attempt in range(1, max_attempts + 1):
        if predicate():
            return True
        if attempt == max_attempts:
            break
        if on_retry is not None:
            on_retry(attempt)
        sleep(delay)
        delay *= backoff
        if max_interval is not None:
            delay = min(delay, max_interval)
    return False
