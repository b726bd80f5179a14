"""
Persisted defaults for saferw, mostly used by the command line.
"""
from dataclasses import asdict, dataclass, fields
import json
import os
from pathlib import Path
from typing import Any

from saferw.core.options import (
    DEFAULT_ENCODING, DEFAULT_RETRIES, DEFAULT_WAIT_MS, IoOptions, RetryPolicy,
)

SETTINGS_FILE = "settings.json"
ENV_PREFIX = "SAFERW_"

@dataclass
class Settings:
    """Default lock options for saferw."""
    wait_ms: int = DEFAULT_WAIT_MS
    retries: int = DEFAULT_RETRIES
    lock_retries: int = 0
    encoding: str | None = DEFAULT_ENCODING
    verbose: bool = False

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> 'Settings':
        """Hydrate Settings from a dictionary, ignoring unknown keys."""
        valid_keys = {f.name for f in fields(cls)}
        filtered_data = {k: v for k, v in data.items() if k in valid_keys}
        return cls(**filtered_data)

    def to_dict(self) -> dict[str, Any]:
        """Serialize Settings to a dictionary."""
        return asdict(self)

    def with_env(self, environ: dict[str, str] | None = None) -> 'Settings':
        """
        Return a copy with SAFERW_WAIT_MS, SAFERW_RETRIES, SAFERW_LOCK_RETRIES and
        SAFERW_ENCODING applied. An empty SAFERW_ENCODING means raw bytes.
        """
        environ = os.environ if environ is None else environ
        data = self.to_dict()
        for key in ("wait_ms", "retries", "lock_retries"):
            raw = environ.get(ENV_PREFIX + key.upper())
            if raw is not None:
                try:
                    data[key] = int(raw)
                except ValueError as e:
                    raise ValueError(f"{ENV_PREFIX}{key.upper()} must be an integer, got {raw!r}") from e
        if (enc := environ.get(ENV_PREFIX + "ENCODING")) is not None:
            data["encoding"] = enc or None
        return Settings.from_dict(data)

    def to_options(self) -> IoOptions:
        """Build the IoOptions these settings describe."""
        return IoOptions(
            encoding=self.encoding,
            poll=RetryPolicy(wait_ms=self.wait_ms, retries=self.retries),
            acquire=RetryPolicy(wait_ms=self.wait_ms, retries=self.lock_retries),
        )

# --- Persistence functions ---

def load_settings(settings_dir: Path) -> Settings:
    """Load settings from a JSON file in the settings directory."""
    path = settings_dir / SETTINGS_FILE
    if not path.exists():
        return Settings()
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
        settings = Settings.from_dict(data)
        settings.to_options()  # raises on out-of-range or mistyped values
        return settings
    except (json.JSONDecodeError, TypeError, AttributeError, ValueError):
        # If file is corrupted or invalid, return default settings (failsafe)
        return Settings()

def save_settings(settings_dir: Path, settings: Settings) -> Path:
    """Save settings to a JSON file in the settings directory."""
    settings_dir.mkdir(parents=True, exist_ok=True)
    path = settings_dir / SETTINGS_FILE
    path.write_text(json.dumps(settings.to_dict(), indent=2), encoding="utf-8")
    return path
