"""
The filesystem operations the lock and accessor layers depend on.

Everything goes through a Filesystem object so tests (or callers on exotic
storage) can swap in their own. Errors are plain OSError subclasses; callers
translate them.
"""
import os
from pathlib import Path
from typing import Protocol


class Filesystem(Protocol):
    """Capability needed by saferw. Paths are always pathlib.Path."""

    def create_exclusive(self, path: Path, content: bytes = b"") -> None:
        """Create `path`, failing with FileExistsError if it exists."""

    def remove(self, path: Path) -> None:
        """Delete `path`. FileNotFoundError if absent."""

    def exists(self, path: Path) -> bool:
        """True if something exists at `path`."""

    def read_all(self, path: Path) -> bytes:
        """Whole file contents."""

    def write_all(self, path: Path, data: bytes) -> None:
        """Replace the file contents with `data`."""


class LocalFilesystem:
    """Filesystem backed by the local OS."""

    def create_exclusive(self, path: Path, content: bytes = b"") -> None:
        # O_EXCL makes the create-if-absent atomic, also on NFSv3+
        fd = os.open(path, os.O_CREAT | os.O_EXCL | os.O_WRONLY, 0o644)
        try:
            if content:
                os.write(fd, content)
        finally:
            os.close(fd)

    def remove(self, path: Path) -> None:
        path.unlink()

    def exists(self, path: Path) -> bool:
        try:
            path.lstat()
        except FileNotFoundError:
            return False
        return True

    def read_all(self, path: Path) -> bytes:
        return path.read_bytes()

    def write_all(self, path: Path, data: bytes) -> None:
        path.write_bytes(data)


local_fs = LocalFilesystem()
