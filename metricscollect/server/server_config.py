"""Server settings from command-line flags, overridden by environment variables."""

from __future__ import annotations

import argparse
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any, Callable

from metricscollect.configgetter import (
    ConfigError,
    get_config_bool,
    get_config_int64,
    get_config_string,
)
from metricscollect.logger import Logger

__all__ = [
    "ServerConfig",
    "load_config",
    "ADDR_ENV",
    "STORE_INTERVAL_ENV",
    "FILE_STORAGE_PATH_ENV",
    "RESTORE_ENV",
    "DATABASE_DSN_ENV",
    "HASH_KEY_ENV",
]

ADDR_ENV = "ADDRESS"
STORE_INTERVAL_ENV = "STORE_INTERVAL"
FILE_STORAGE_PATH_ENV = "FILE_STORAGE_PATH"
RESTORE_ENV = "RESTORE"
DATABASE_DSN_ENV = "DATABASE_DSN"
HASH_KEY_ENV = "KEY"

_TRUE_WORDS = frozenset({"1", "t", "T", "TRUE", "true", "True"})
_FALSE_WORDS = frozenset({"0", "f", "F", "FALSE", "false", "False"})


@dataclass(frozen=True)
class ServerConfig:
    """Settings the metrics server runs with."""

    addr: str = "localhost:8080"
    store_interval: int = 300
    file_storage_path: str = ""
    restore: bool = True
    database_dsn: str = ""
    hash_key: str = ""


def _flag_bool(text: str) -> bool:
    if text in _TRUE_WORDS:
        return True
    if text in _FALSE_WORDS:
        return False
    raise argparse.ArgumentTypeError(f"invalid boolean value {text!r}")


def _parser() -> argparse.ArgumentParser:
    defaults = ServerConfig()
    parser = argparse.ArgumentParser(description="Metrics collection server.")
    parser.add_argument("-a", dest="addr", default=defaults.addr, help="server addr")
    parser.add_argument(
        "-i", dest="store_interval", type=int, default=defaults.store_interval,
        help="store interval",
    )
    parser.add_argument(
        "-f", dest="file_storage_path", default=defaults.file_storage_path,
        help="file storage path",
    )
    parser.add_argument(
        "-r", dest="restore", type=_flag_bool, nargs="?", const=True,
        default=defaults.restore, help="restore flag",
    )
    parser.add_argument(
        "-d", dest="database_dsn", default=defaults.database_dsn,
        help="database data source name",
    )
    parser.add_argument("-k", dest="hash_key", default=defaults.hash_key, help="hash key")
    return parser


_ENV_OVERRIDES: tuple[tuple[str, str, Callable[[str], Any]], ...] = (
    ("addr", ADDR_ENV, get_config_string),
    ("store_interval", STORE_INTERVAL_ENV, get_config_int64),
    ("file_storage_path", FILE_STORAGE_PATH_ENV, get_config_string),
    ("restore", RESTORE_ENV, get_config_bool),
    ("database_dsn", DATABASE_DSN_ENV, get_config_string),
    ("hash_key", HASH_KEY_ENV, get_config_string),
)


def load_config(logger: Logger, argv: Sequence[str] | None = None) -> ServerConfig:
    """Parse ``argv`` flags, then apply every environment variable that is set and valid."""
    values = vars(_parser().parse_args(argv))

    for field, key, getter in _ENV_OVERRIDES:
        try:
            values[field] = getter(key)
        except ConfigError as exc:
            logger.errorw("can't get env", "msg", exc)

    config = ServerConfig(**values)
    logger.infow(
        "envs",
        "addr", config.addr,
        "storeInterval", config.store_interval,
        "fileStoragePath", config.file_storage_path,
        "restore", config.restore,
        "databaseDsn", config.database_dsn,
        "hashKey", config.hash_key,
    )
    return config