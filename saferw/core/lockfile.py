"""
Sentinel-file locking.

A lock on `data.json` is the file `data.json.lock`. Whoever manages to create
the sentinel owns the lock; removing it releases the lock. Nothing else about
the sentinel is meaningful, only whether it exists.
"""
import logging
import os
import time
from pathlib import Path

from saferw.core.errors import AlreadyLockedError, LockIOError
from saferw.core.fs import Filesystem, local_fs
from saferw.core.options import LOCK_SUFFIX, RetryPolicy

logger = logging.getLogger("saferw.lockfile")

_SINGLE_ATTEMPT = RetryPolicy(retries=0)


def sentinel_path(path: Path | str) -> Path:
    """The sentinel guarding `path`, e.g. `notes.txt` -> `notes.txt.lock`."""
    path = Path(path)
    return path.with_name(path.name + LOCK_SUFFIX)


def lock(sentinel: Path | str, policy: RetryPolicy | None = None, *,
         fs: Filesystem | None = None) -> bool:
    """
    Create the sentinel, failing if it already exists.
    `policy` retries the create call itself when it hits an existing sentinel;
    by default only one attempt is made.
    """
    fs = fs or local_fs
    policy = policy or _SINGLE_ATTEMPT
    sentinel = Path(sentinel)
    content = f"{os.getpid()}\n".encode("ascii")

    attempts_left = policy.retries
    while True:
        try:
            fs.create_exclusive(sentinel, content)
            logger.debug("Acquired lock %s", sentinel)
            return True
        except FileExistsError as e:
            if attempts_left <= 0:
                raise AlreadyLockedError(sentinel) from e
        except OSError as e:
            raise LockIOError(sentinel, e) from e
        attempts_left -= 1
        logger.debug("Lock %s is held, %d retries left", sentinel, attempts_left)
        time.sleep(policy.wait_seconds)


def unlock(sentinel: Path | str, *, fs: Filesystem | None = None) -> bool:
    """Remove the sentinel. A sentinel that is already gone counts as released."""
    fs = fs or local_fs
    sentinel = Path(sentinel)
    try:
        fs.remove(sentinel)
    except FileNotFoundError:
        logger.debug("Lock %s already released", sentinel)
        return True
    except OSError as e:
        raise LockIOError(sentinel, e) from e
    logger.debug("Released lock %s", sentinel)
    return True


def check(sentinel: Path | str, *, fs: Filesystem | None = None) -> bool:
    """
    True if the sentinel is currently present. Never creates or removes anything.
    Takes no options: there is no staleness handling to configure.
    """
    fs = fs or local_fs
    sentinel = Path(sentinel)
    try:
        return fs.exists(sentinel)
    except FileNotFoundError:
        return False
    except OSError as e:
        raise LockIOError(sentinel, e) from e
