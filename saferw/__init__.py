"""
saferw: advisory, sentinel-file locking for reading and writing shared files.

A file `data.json` is guarded by `data.json.lock`. safe_read / safe_write wait
for the sentinel to go away, create it, do their I/O, and always remove it.
"""
from importlib.metadata import version, PackageNotFoundError

from saferw.core.accessor import locked, safe_read, safe_write
from saferw.core.errors import (
    AccessError, AlreadyLockedError, FileLockedError, LockError, LockIOError, SafeRWError,
)
from saferw.core.lockfile import check, lock, sentinel_path, unlock
from saferw.core.options import IoOptions, RetryPolicy
from saferw.core.poller import check_and_wait, delay

try:
    __version__ = version("saferw")
except PackageNotFoundError:
    __version__ = "unknown"
__app_name__ = "saferw"

__all__ = [
    "AccessError", "AlreadyLockedError", "FileLockedError", "IoOptions", "LockError",
    "LockIOError", "RetryPolicy", "SafeRWError", "check", "check_and_wait", "delay",
    "lock", "locked", "safe_read", "safe_write", "sentinel_path", "unlock",
]
