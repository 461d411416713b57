"""Where the ledger database lives."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Final

from .env import env_bool

APP_DIR_NAME: Final[str] = "ledgerlink"
DEFAULT_DB_FILENAME: Final[str] = "ledgerlink.db"


@dataclass(frozen=True, slots=True)
class StorageConfig:
    data_dir: Path
    database_filename: str = DEFAULT_DB_FILENAME

    def database_path(self, *, create_dir: bool = True) -> Path:
        directory = self.data_dir.expanduser().resolve()
        if create_dir:
            directory.mkdir(parents=True, exist_ok=True)
        return directory / self.database_filename

    def sqlite_uri(self) -> str:
        return f"sqlite+pysqlite:///{self.database_path()}"


@dataclass(frozen=True, slots=True)
class DatabaseConfig:
    uri: str
    # Echo SQL through the ``sqlalchemy.engine`` logger.
    echo: bool = False


def default_data_dir() -> Path:
    """``$XDG_DATA_HOME/ledgerlink``, or ``%LOCALAPPDATA%\\ledgerlink`` on Windows."""

    if os.name == "nt":
        root = os.getenv("LOCALAPPDATA") or str(Path.home() / "AppData" / "Local")
    else:
        root = os.getenv("XDG_DATA_HOME") or str(Path.home() / ".local" / "share")
    return Path(root) / APP_DIR_NAME


def get_storage_config() -> StorageConfig:
    configured = os.getenv("LEDGERLINK_DATA_DIR")
    return StorageConfig(data_dir=Path(configured) if configured else default_data_dir())


def get_database_config(*, storage: StorageConfig | None = None) -> DatabaseConfig:
    echo = env_bool("LEDGERLINK_DB_ECHO", False)
    uri = os.getenv("DATABASE_URI")
    if not uri:
        uri = (storage or get_storage_config()).sqlite_uri()
    return DatabaseConfig(uri=uri, echo=echo)
