"""
Safe read/write of a file guarded by its sentinel lock.

Every guarded operation follows the same sandwich:
wait until free -> acquire -> I/O -> release, where the release happens
whether or not the I/O succeeded.
"""
from collections.abc import Iterator
from contextlib import contextmanager
import logging
from pathlib import Path
from typing import Any

from saferw.core.errors import FileLockedError, LockIOError
from saferw.core.fs import Filesystem, local_fs
from saferw.core.lockfile import lock, sentinel_path, unlock
from saferw.core.options import IoOptions, RetryPolicy, resolve_options
from saferw.core.poller import wait_until_free

logger = logging.getLogger("saferw.accessor")


def release_after_failure(sentinel: Path, error: BaseException, fs: Filesystem | None) -> None:
    """
    Release a sentinel while `error` is propagating. A failing release must not
    replace `error`, so it is logged and attached to it as a note instead.
    """
    try:
        unlock(sentinel, fs=fs)
    except LockIOError as release_error:
        logger.warning(
            "Could not release %s after failed I/O (%s): %s",
            sentinel, type(error).__name__, release_error,
        )
        error.add_note(f"release of {sentinel} also failed: {release_error}")


@contextmanager
def held(sentinel: Path, policy: RetryPolicy, *, fs: Filesystem | None = None) -> Iterator[Path]:
    """
    Acquire `sentinel` (no polling first) and release it when the block exits,
    however it exits. Acquire errors propagate without a release attempt.
    """
    lock(sentinel, policy, fs=fs)
    try:
        yield sentinel
    except BaseException as e:
        release_after_failure(sentinel, e, fs)
        raise
    # release errors propagate here
    unlock(sentinel, fs=fs)


@contextmanager
def locked(path: Path | str, options: IoOptions | dict[str, Any] | None = None, *,
           fs: Filesystem | None = None) -> Iterator[Path]:
    """
    Hold the sentinel lock of `path` for the duration of the block.
    Yields the sentinel path.

    Raises FileLockedError if the lock stays busy for the whole polling budget,
    and lets acquire errors (e.g. AlreadyLockedError after losing a race)
    propagate without attempting a release.
    """
    options = resolve_options(options)
    sentinel = sentinel_path(path)

    if wait_until_free(sentinel, options.poll, fs=fs):
        raise FileLockedError(sentinel)
    with held(sentinel, options.acquire, fs=fs):
        yield sentinel


def encode_payload(data: str | bytes, encoding: str | None) -> bytes:
    """Turn the caller's data into bytes according to `encoding`."""
    if isinstance(data, (bytes, bytearray, memoryview)):
        return bytes(data)
    if encoding is None:
        raise TypeError("str data needs an encoding; pass bytes or set IoOptions.encoding")
    return data.encode(encoding)


def decode_payload(raw: bytes, encoding: str | None) -> str | bytes:
    """Inverse of encode_payload: bytes stay bytes when there is no encoding."""
    return raw if encoding is None else raw.decode(encoding)


def held_write(sentinel: Path, path: Path, payload: bytes, policy: RetryPolicy,
               fs: Filesystem) -> None:
    """Acquire, write `payload`, release. The polling step is the caller's job."""
    with held(sentinel, policy, fs=fs):
        fs.write_all(path, payload)
    logger.debug("Wrote %d bytes to %s", len(payload), path)


def held_read(sentinel: Path, path: Path, policy: RetryPolicy, fs: Filesystem) -> bytes:
    """Acquire, read all of `path`, release."""
    with held(sentinel, policy, fs=fs):
        raw = fs.read_all(path)
    logger.debug("Read %d bytes from %s", len(raw), path)
    return raw


def safe_write(path: Path | str, data: str | bytes,
               options: IoOptions | dict[str, Any] | None = None, *,
               fs: Filesystem | None = None) -> None:
    """
    Write `data` to `path` while holding its sentinel lock.
    `options` may also be a flat dict, e.g. {"wait": 100, "retries": 10}.
    """
    options = resolve_options(options)
    fs = fs or local_fs
    path = Path(path)
    payload = encode_payload(data, options.encoding)
    sentinel = sentinel_path(path)
    if wait_until_free(sentinel, options.poll, fs=fs):
        raise FileLockedError(sentinel)
    held_write(sentinel, path, payload, options.acquire, fs)


def safe_read(path: Path | str, options: IoOptions | dict[str, Any] | None = None, *,
              fs: Filesystem | None = None) -> str | bytes:
    """Read all of `path` while holding its sentinel lock."""
    options = resolve_options(options)
    fs = fs or local_fs
    path = Path(path)
    sentinel = sentinel_path(path)
    if wait_until_free(sentinel, options.poll, fs=fs):
        raise FileLockedError(sentinel)
    raw = held_read(sentinel, path, options.acquire, fs)
    return decode_payload(raw, options.encoding)
