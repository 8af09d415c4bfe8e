import logging
from asyncio import sleep

logger = logging.getLogger(__name__)


def backoff_delay(attempt):
    """1s, 2s, 4s, ... before the next attempt."""
    return 2 ** (attempt - 1)


def fixed_delay(seconds):
    return lambda attempt: seconds


async def retry(operation, *, attempts, delay, what):
    """
    Await `operation()` up to `attempts` times.

    `delay(attempt)` gives the seconds to sleep after a failed attempt.
    The last error is re-raised once the attempts are used up.
    """
    for attempt in range(1, attempts + 1):
        try:
            return await operation()
        except Exception as e:
            if attempt == attempts:
                raise
            wait = delay(attempt)
            logger.warning(f"Attempt {attempt} to {what} failed, retrying in {wait}s... Error: {e!r}")
            await sleep(wait)
