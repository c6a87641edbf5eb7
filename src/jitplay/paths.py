"""Where jitplay keeps its catalog, logs and downloaded tracks."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from platformdirs import AppDirs, user_downloads_dir

DEFAULT_APP_NAME = "jitplay"
CATALOG_FILE_NAME = "music_data.json"
LOG_SUBDIR = "logs"


@lru_cache(maxsize=4)
def get_app_dirs(app_name: str = DEFAULT_APP_NAME) -> AppDirs:
    return AppDirs(app_name)


def _existing(path: Path) -> Path:
    path.mkdir(parents=True, exist_ok=True)
    return path


def data_dir(app_name: str = DEFAULT_APP_NAME) -> Path:
    """Per-user data root; the catalog file and the log folder live here."""
    return _existing(Path(get_app_dirs(app_name).user_data_dir))


def log_dir(app_name: str = DEFAULT_APP_NAME) -> Path:
    return _existing(data_dir(app_name) / LOG_SUBDIR)


def catalog_path(app_name: str = DEFAULT_APP_NAME) -> Path:
    """Default catalog file. Only its folder is created; the file is user supplied."""
    return data_dir(app_name) / CATALOG_FILE_NAME


def downloads_dir() -> Path:
    """The platform Downloads folder, used as the default download target."""
    return _existing(Path(user_downloads_dir()))
