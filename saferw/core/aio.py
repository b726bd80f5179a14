"""
asyncio versions of the poller and the safe accessor.

Poll delays are `asyncio.sleep`, so other tasks keep running while a lock is
busy. Filesystem calls run in the default executor via `asyncio.to_thread`.
Semantics match saferw.core.poller and saferw.core.accessor exactly.

Cancellation: a worker thread cannot be interrupted, so a task cancelled while
it acquires or releases only stops waiting. safe_write / safe_read run the
whole acquire -> I/O -> release sequence in one thread, which finishes (and
releases) on its own. locked() releases a sentinel that is created after its
task was cancelled as soon as the acquiring thread returns.
"""
import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from functools import partial
import logging
from pathlib import Path
from typing import Any

from saferw.core.accessor import (
    decode_payload, encode_payload, held_read, held_write, release_after_failure,
)
from saferw.core.errors import FileLockedError
from saferw.core.fs import Filesystem, local_fs
from saferw.core.lockfile import check, lock, sentinel_path, unlock
from saferw.core.options import DEFAULT_RETRIES, DEFAULT_WAIT_MS, IoOptions, resolve_options

logger = logging.getLogger("saferw.aio")


async def delay(ms: int = 100) -> int:
    """Suspend the current task for `ms` milliseconds. Returns `ms`."""
    await asyncio.sleep(ms / 1000)
    return ms


async def check_and_wait(
    sentinel: Path | str,
    wait_ms: int = DEFAULT_WAIT_MS,
    retries: int = DEFAULT_RETRIES,
    *,
    fs: Filesystem | None = None,
) -> bool:
    """Async check_and_wait. False means free, True means still busy."""
    if wait_ms < 0 or retries < 0:
        raise ValueError(f"wait_ms and retries must be >= 0, got {wait_ms}, {retries}")

    remaining = retries
    while await asyncio.to_thread(check, sentinel, fs=fs):
        if remaining == 0:
            logger.debug("Lock %s still held after %d retries", sentinel, retries)
            return True
        await delay(wait_ms)
        remaining -= 1
    return False


def _release_if_acquired(sentinel: Path, error: BaseException, fs: Filesystem | None,
                         acquiring: asyncio.Future) -> None:
    """Done-callback for an acquire whose task was cancelled while it ran."""
    if acquiring.cancelled() or acquiring.exception() is not None:
        return
    logger.debug("Releasing %s acquired after cancellation", sentinel)
    release_after_failure(sentinel, error, fs)


async def _wait_until_free_or_raise(sentinel: Path, options: IoOptions,
                                    fs: Filesystem | None) -> None:
    if await check_and_wait(sentinel, options.poll.wait_ms, options.poll.retries, fs=fs):
        raise FileLockedError(sentinel)


@asynccontextmanager
async def locked(path: Path | str, options: IoOptions | dict[str, Any] | None = None, *,
                 fs: Filesystem | None = None) -> AsyncIterator[Path]:
    """Async counterpart of saferw.core.accessor.locked."""
    options = resolve_options(options)
    sentinel = sentinel_path(path)

    await _wait_until_free_or_raise(sentinel, options, fs)
    acquiring = asyncio.ensure_future(asyncio.to_thread(lock, sentinel, options.acquire, fs=fs))
    try:
        await asyncio.shield(acquiring)
    except asyncio.CancelledError as e:
        acquiring.add_done_callback(partial(_release_if_acquired, sentinel, e, fs))
        raise

    try:
        yield sentinel
    except BaseException as e:
        await asyncio.shield(asyncio.to_thread(release_after_failure, sentinel, e, fs))
        raise
    # release errors propagate here
    await asyncio.shield(asyncio.to_thread(unlock, sentinel, fs=fs))


async def safe_write(path: Path | str, data: str | bytes,
                     options: IoOptions | dict[str, Any] | None = None, *,
                     fs: Filesystem | None = None) -> None:
    """Write `data` to `path` while holding its sentinel lock."""
    options = resolve_options(options)
    fs = fs or local_fs
    path = Path(path)
    payload = encode_payload(data, options.encoding)
    sentinel = sentinel_path(path)
    await _wait_until_free_or_raise(sentinel, options, fs)
    await asyncio.to_thread(held_write, sentinel, path, payload, options.acquire, fs)


async def safe_read(path: Path | str, options: IoOptions | dict[str, Any] | None = None, *,
                    fs: Filesystem | None = None) -> str | bytes:
    """Read all of `path` while holding its sentinel lock."""
    options = resolve_options(options)
    fs = fs or local_fs
    path = Path(path)
    sentinel = sentinel_path(path)
    await _wait_until_free_or_raise(sentinel, options, fs)
    raw = await asyncio.to_thread(held_read, sentinel, path, options.acquire, fs)
    return decode_payload(raw, options.encoding)
