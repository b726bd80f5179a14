"""
Runtime context for the saferw command line: logging, settings and the
resulting default IoOptions.
"""
from dataclasses import dataclass
import logging
import os
from pathlib import Path

from saferw.core import paths
from saferw.core.options import IoOptions
from saferw.core.settings import Settings, load_settings


@dataclass
class Runtime:
    """Configuration for one saferw invocation."""
    settings_dir: Path
    settings: Settings
    logger: logging.Logger

    @property
    def options(self) -> IoOptions:
        """Default IoOptions derived from the settings."""
        return self.settings.to_options()


def build_runtime(
    *,
    settings_dir: Path | None = None,
    verbose: bool = False,
    wait_ms: int | None = None,
    retries: int | None = None,
    lock_retries: int | None = None,
    encoding: str | None = None,
    raw: bool = False,
) -> Runtime:
    """
    Builds and returns a Runtime. Precedence for lock options is
    explicit arguments > SAFERW_* environment > settings.json > defaults.
    `raw=True` switches to bytes I/O regardless of any configured encoding.

    Raises ValueError (pydantic ValidationError included) on invalid
    environment values or overrides.
    """
    # 1. Settings
    if settings_dir is not None:
        settings_dir = settings_dir.expanduser().resolve()
    elif env := os.getenv("SAFERW_SETTINGS_DIR"):
        settings_dir = Path(env).expanduser().resolve()
    else:
        settings_dir = paths.default_settings_dir()
    settings = load_settings(settings_dir).with_env()
    overrides = {
        "wait_ms": wait_ms, "retries": retries, "lock_retries": lock_retries, "encoding": encoding,
    }
    data = settings.to_dict()
    data.update({k: v for k, v in overrides.items() if v is not None})
    if raw:
        data["encoding"] = None
    data["verbose"] = verbose or settings.verbose
    settings = Settings.from_dict(data)
    settings.to_options()
    # 2. Logging
    logger = logging.getLogger("saferw")
    if not logging.getLogger().hasHandlers():
        logging.basicConfig(
            level=logging.DEBUG if settings.verbose else logging.INFO,
            format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        )
    logger.setLevel(logging.DEBUG if settings.verbose else logging.INFO)
    # 3. Create context
    return Runtime(settings_dir=settings_dir, settings=settings, logger=logger)
