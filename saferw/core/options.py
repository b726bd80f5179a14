"""
Retry and I/O options shared by the poller, the lock primitive and the
safe accessor.
"""
import codecs
from typing import Any
from pydantic import BaseModel, ConfigDict, Field, field_validator

DEFAULT_WAIT_MS = 50
DEFAULT_RETRIES = 3
DEFAULT_ENCODING = "utf-8"
LOCK_SUFFIX = ".lock"


class RetryPolicy(BaseModel):
    """
    Constant-interval retry budget. `retries` counts the attempts made after
    the first one, so the total number of attempts is `retries + 1`.
    """
    model_config = ConfigDict(frozen=True)

    wait_ms: int = Field(DEFAULT_WAIT_MS, ge=0, description="Delay between attempts (ms)")
    retries: int = Field(DEFAULT_RETRIES, ge=0, description="Extra attempts after the first")

    @property
    def wait_seconds(self) -> float:
        """wait_ms as seconds, for time.sleep / asyncio.sleep."""
        return self.wait_ms / 1000

    @property
    def max_wait_ms(self) -> int:
        """Upper bound on time spent sleeping under this policy."""
        return self.wait_ms * self.retries


class IoOptions(BaseModel):
    """
    Options for one safe read or write.
    `poll` drives the wait-until-free loop, `acquire` the sentinel create call.
    `encoding=None` means raw bytes in and out.
    """
    model_config = ConfigDict(frozen=True)

    encoding: str | None = DEFAULT_ENCODING
    poll: RetryPolicy = Field(default_factory=RetryPolicy)
    acquire: RetryPolicy = Field(default_factory=lambda: RetryPolicy(retries=0))

    @field_validator("encoding")
    @classmethod
    def known_encoding(cls, value: str | None) -> str | None:
        """Reject encodings Python does not know before any lock is taken."""
        if value is not None:
            try:
                codecs.lookup(value)
            except LookupError as e:
                raise ValueError(f"unknown encoding: {value}") from e
        return value

    @classmethod
    def from_flat(cls, data: dict[str, Any]) -> 'IoOptions':
        """
        Build IoOptions from flat keys:
        encoding, wait, retries (polling), retry_wait, lock_retries (create call).
        Unknown keys are ignored.
        """
        poll = RetryPolicy(
            wait_ms=data.get("wait", DEFAULT_WAIT_MS),
            retries=data.get("retries", DEFAULT_RETRIES),
        )
        acquire = RetryPolicy(
            wait_ms=data.get("retry_wait", poll.wait_ms),
            retries=data.get("lock_retries", 0),
        )
        return cls(
            encoding=data.get("encoding", DEFAULT_ENCODING),
            poll=poll,
            acquire=acquire,
        )

DEFAULT_OPTIONS = IoOptions()


def resolve_options(options: IoOptions | dict[str, Any] | None) -> IoOptions:
    """Accept IoOptions, a flat dict of option names (see from_flat), or None for defaults."""
    if options is None:
        return DEFAULT_OPTIONS
    if isinstance(options, dict):
        return IoOptions.from_flat(options)
    return options
