"""
Default paths for saferw configuration.
"""
from pathlib import Path
from platformdirs import user_config_dir

APP_NAME = 'saferw'

def default_settings_dir() -> Path:
    """Get the default settings directory for saferw."""
    return Path(user_config_dir(APP_NAME)).expanduser().resolve()
