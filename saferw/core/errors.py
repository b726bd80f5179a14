"""
Exceptions raised by the lock primitive and the safe accessor.
"""
from pathlib import Path


class SafeRWError(Exception):
    """Base saferw exception."""


class LockError(SafeRWError):
    """Raised when a sentinel file cannot be created, removed or inspected."""

    def __init__(self, path: Path | str, message: str):
        super().__init__(message)
        self.path = Path(path)


class AlreadyLockedError(LockError):
    """The sentinel already exists, someone else holds the lock."""

    def __init__(self, path: Path | str):
        super().__init__(path, f"already locked: {path}")


class LockIOError(LockError):
    """Any filesystem failure on the sentinel other than the expected ones."""

    def __init__(self, path: Path | str, cause: OSError):
        super().__init__(path, f"lock I/O error on {path}: {cause}")
        self.cause = cause


class AccessError(SafeRWError):
    """Raised by safe_read / safe_write before any I/O is attempted."""


class FileLockedError(AccessError):
    """
    Polling gave up while the sentinel was still present. Happens before any
    acquire attempt, so nothing needs releasing.
    """

    def __init__(self, path: Path | str):
        super().__init__(f"file locked: {path}")
        self.path = Path(path)
