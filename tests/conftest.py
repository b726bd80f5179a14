"""
Global fixtures live here

Every test gets its own scratch directory, so sentinels never leak between tests.
"""
import threading
from pathlib import Path
import pytest

from saferw.core.fs import LocalFilesystem


class FaultyFilesystem(LocalFilesystem):
    """
    LocalFilesystem that raises on chosen operations. Records every call so
    tests can assert on the order of lock/I/O/release.
    """
    def __init__(self, fail: dict[str, OSError] | None = None):
        self.fail = fail or {}
        self.calls: list[tuple[str, Path]] = []

    def _maybe_fail(self, op: str, path: Path) -> None:
        self.calls.append((op, path))
        if op in self.fail:
            raise self.fail[op]

    def create_exclusive(self, path, content=b""):
        self._maybe_fail("create_exclusive", path)
        super().create_exclusive(path, content)

    def remove(self, path):
        self._maybe_fail("remove", path)
        super().remove(path)

    def exists(self, path):
        self._maybe_fail("exists", path)
        return super().exists(path)

    def read_all(self, path):
        self._maybe_fail("read_all", path)
        return super().read_all(path)

    def write_all(self, path, data):
        self._maybe_fail("write_all", path)
        super().write_all(path, data)

    def ops(self) -> list[str]:
        """Operation names in call order."""
        return [op for op, _ in self.calls]


@pytest.fixture
def target(tmp_path: Path) -> Path:
    """A protected file path (not created)."""
    return tmp_path / "shared.txt"


@pytest.fixture
def sentinel(target: Path) -> Path:
    """The sentinel guarding `target`."""
    return target.with_name(target.name + ".lock")


@pytest.fixture
def remove_later():
    """
    Schedule a file removal on a background thread, simulating another
    process releasing its lock. Timers are joined at teardown.
    """
    timers: list[threading.Timer] = []

    def _schedule(path: Path, after_ms: int) -> None:
        t = threading.Timer(after_ms / 1000, path.unlink, kwargs={"missing_ok": True})
        t.start()
        timers.append(t)

    yield _schedule
    for t in timers:
        t.join()


@pytest.fixture
def faulty_fs():
    """Factory for FaultyFilesystem instances."""
    return FaultyFilesystem
