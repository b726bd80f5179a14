"""
Tests for safe_read / safe_write and the locked() sandwich they share.
"""
import errno
import logging
import threading
import time
import pytest

from saferw.core.accessor import locked, safe_read, safe_write
from saferw.core.errors import AlreadyLockedError, FileLockedError, LockIOError, SafeRWError
from saferw.core.fs import LocalFilesystem
from saferw.core.lockfile import lock
from saferw.core.options import IoOptions, RetryPolicy

FAST = IoOptions(poll=RetryPolicy(wait_ms=5, retries=2))


def test_write_then_read(target, sentinel):
    safe_write(target, "SAFEWRITE")
    assert target.read_text(encoding="utf-8") == "SAFEWRITE"
    assert safe_read(target) == "SAFEWRITE"
    assert not sentinel.exists()


def test_write_read_bytes_without_encoding(target, sentinel):
    raw = IoOptions(encoding=None)
    safe_write(target, b"\x00\xffdata", raw)
    assert safe_read(target, raw) == b"\x00\xffdata"
    assert not sentinel.exists()


def test_encoding_is_honoured(target):
    latin = IoOptions(encoding="latin-1")
    safe_write(target, "café", latin)
    assert target.read_bytes() == "café".encode("latin-1")
    assert safe_read(target, latin) == "café"


def test_str_without_encoding_is_rejected_before_locking(target, sentinel):
    with pytest.raises(TypeError):
        safe_write(target, "text", IoOptions(encoding=None))
    assert not sentinel.exists()
    assert not target.exists()


def test_operation_order(target, faulty_fs):
    fs = faulty_fs()
    safe_write(target, "X", fs=fs)
    assert fs.ops() == ["exists", "create_exclusive", "write_all", "remove"]


def test_write_fails_when_already_locked(target, sentinel):
    lock(sentinel)
    with pytest.raises(FileLockedError, match="file locked") as exc_info:
        safe_write(target, "SAFEWRITE", FAST)
    assert exc_info.value.path == sentinel
    assert not target.exists()
    # someone else's lock is left alone
    assert sentinel.exists()


def test_read_fails_when_already_locked(target, sentinel):
    target.write_text("OLD", encoding="utf-8")
    lock(sentinel)
    with pytest.raises(FileLockedError, match="file locked"):
        safe_read(target, FAST)


def test_busy_lock_makes_no_acquire_attempt(target, sentinel, faulty_fs):
    sentinel.touch()
    fs = faulty_fs()
    with pytest.raises(FileLockedError):
        safe_write(target, "X", FAST, fs=fs)
    assert "create_exclusive" not in fs.ops()
    assert "remove" not in fs.ops()


def test_write_proceeds_once_lock_removed(target, sentinel, remove_later):
    lock(sentinel)
    remove_later(sentinel, 50)
    patient = IoOptions(poll=RetryPolicy(wait_ms=20, retries=20))
    safe_write(target, "SAFEWRITE", patient)
    assert target.read_text(encoding="utf-8") == "SAFEWRITE"
    assert not sentinel.exists()


def test_read_proceeds_once_lock_removed(target, sentinel, remove_later):
    target.write_text("SAFEREAD", encoding="utf-8")
    lock(sentinel)
    remove_later(sentinel, 50)
    patient = IoOptions(poll=RetryPolicy(wait_ms=20, retries=20))
    assert safe_read(target, patient) == "SAFEREAD"
    assert not sentinel.exists()


def test_lost_race_surfaces_already_locked(target, faulty_fs):
    fs = faulty_fs({"create_exclusive": FileExistsError(errno.EEXIST, "exists")})
    with pytest.raises(AlreadyLockedError):
        safe_write(target, "X", fs=fs)
    assert fs.ops() == ["exists", "create_exclusive"]
    assert not target.exists()


def test_io_failure_still_releases(target, sentinel, faulty_fs):
    boom = OSError(errno.ENOSPC, "disk full")
    fs = faulty_fs({"write_all": boom})
    with pytest.raises(OSError) as exc_info:
        safe_write(target, "X", fs=fs)
    assert exc_info.value is boom
    assert fs.ops()[-1] == "remove"
    assert not sentinel.exists()


def test_read_missing_file_releases(target, sentinel):
    with pytest.raises(FileNotFoundError):
        safe_read(target)
    assert not sentinel.exists()


def test_io_error_wins_over_release_error(target, sentinel, faulty_fs, caplog):
    boom = OSError(errno.EIO, "write failed")
    fs = faulty_fs({
        "write_all": boom,
        "remove": PermissionError(errno.EACCES, "denied"),
    })
    with caplog.at_level(logging.WARNING, logger="saferw.accessor"):
        with pytest.raises(OSError) as exc_info:
            safe_write(target, "X", fs=fs)
    assert exc_info.value is boom
    assert any("also failed" in note for note in exc_info.value.__notes__)
    assert "Could not release" in caplog.text
    sentinel.unlink()


def test_release_error_after_success_propagates(target, sentinel, faulty_fs):
    fs = faulty_fs({"remove": PermissionError(errno.EACCES, "denied")})
    with pytest.raises(LockIOError):
        safe_write(target, "X", fs=fs)
    # the write itself happened, but the caller is told cleanup failed
    assert target.read_text(encoding="utf-8") == "X"
    sentinel.unlink()


def test_locked_holds_sentinel_inside_block(target, sentinel):
    with locked(target) as held:
        assert held == sentinel
        assert sentinel.exists()
    assert not sentinel.exists()


def test_locked_releases_on_exception(target, sentinel):
    with pytest.raises(ValueError, match="Intentional Crash"):
        with locked(target):
            raise ValueError("Intentional Crash")
    assert not sentinel.exists()


class _ExclusionProbe(LocalFilesystem):
    """Counts how many writers are inside write_all at the same time."""
    def __init__(self):
        self._guard = threading.Lock()
        self.active = 0
        self.max_active = 0

    def write_all(self, path, data):
        with self._guard:
            self.active += 1
            self.max_active = max(self.max_active, self.active)
        time.sleep(0.005)
        super().write_all(path, data)
        with self._guard:
            self.active -= 1


def test_concurrent_writers_are_mutually_exclusive(target, sentinel):
    fs = _ExclusionProbe()
    options = IoOptions(
        poll=RetryPolicy(wait_ms=1, retries=2000),
        acquire=RetryPolicy(wait_ms=1, retries=2000),
    )
    errors: list[SafeRWError] = []

    def writer(n: int) -> None:
        try:
            safe_write(target, f"writer-{n}", options, fs=fs)
        except SafeRWError as e:
            errors.append(e)

    threads = [threading.Thread(target=writer, args=(n,)) for n in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert errors == []
    assert fs.max_active == 1
    assert target.read_text(encoding="utf-8").startswith("writer-")
    assert not sentinel.exists()


def test_flat_dict_options(target, sentinel):
    lock(sentinel)
    start = time.monotonic()
    with pytest.raises(FileLockedError):
        safe_write(target, "X", {"wait": 10, "retries": 2})
    assert time.monotonic() - start >= 0.02
    assert not target.exists()


def test_unknown_encoding_rejected_before_locking(target, sentinel):
    with pytest.raises(ValueError, match="unknown encoding"):
        safe_write(target, "X", IoOptions(encoding="no-such-codec"))
    assert not sentinel.exists()
