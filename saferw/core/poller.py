"""
Polling a sentinel until it disappears or the retry budget runs out.
"""
import logging
import time
from pathlib import Path

from saferw.core.fs import Filesystem
from saferw.core.lockfile import check
from saferw.core.options import DEFAULT_RETRIES, DEFAULT_WAIT_MS, RetryPolicy

logger = logging.getLogger("saferw.poller")


def delay(ms: int = 100) -> int:
    """Sleep the calling thread for `ms` milliseconds. Returns `ms`."""
    time.sleep(ms / 1000)
    return ms


def check_and_wait(
    sentinel: Path | str,
    wait_ms: int = DEFAULT_WAIT_MS,
    retries: int = DEFAULT_RETRIES,
    *,
    fs: Filesystem | None = None,
) -> bool:
    """
    Returns False as soon as the sentinel is seen absent (lock is free).
    Returns True if the first check and `retries` more checks, `wait_ms` apart,
    all found it present (lock is busy).
    """
    if wait_ms < 0 or retries < 0:
        raise ValueError(f"wait_ms and retries must be >= 0, got {wait_ms}, {retries}")

    remaining = retries
    while check(sentinel, fs=fs):
        if remaining == 0:
            logger.debug("Lock %s still held after %d retries", sentinel, retries)
            return True
        delay(wait_ms)
        remaining -= 1
    return False


def wait_until_free(sentinel: Path | str, policy: RetryPolicy, *,
                    fs: Filesystem | None = None) -> bool:
    """check_and_wait driven by a RetryPolicy. True means busy."""
    return check_and_wait(sentinel, policy.wait_ms, policy.retries, fs=fs)
