"""Agent settings from command-line flags, overridden by environment variables."""

from __future__ import annotations

import argparse
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any, Callable

from metricscollect.configgetter import ConfigError, get_config_int64, get_config_string
from metricscollect.logger import Logger

__all__ = [
    "AgentConfig",
    "load_config",
    "ADDR_ENV",
    "REPORT_INTERVAL_ENV",
    "POLL_INTERVAL_ENV",
    "HASH_KEY_ENV",
    "RATE_LIMIT_ENV",
    "FIXED_IV_ENV",
]

ADDR_ENV = "ADDRESS"
REPORT_INTERVAL_ENV = "REPORT_INTERVAL"
POLL_INTERVAL_ENV = "POLL_INTERVAL"
HASH_KEY_ENV = "KEY"
RATE_LIMIT_ENV = "RATE_LIMIT"
FIXED_IV_ENV = "SYPHER"


@dataclass(frozen=True)
class AgentConfig:
    """Settings the metrics agent runs with."""

    addr: str = "localhost:8080"
    report_interval: int = 10
    poll_interval: int = 2
    hash_key: str = ""
    rate_limit: int = 2
    fixed_iv: str = "1234567890123456"


def _parser() -> argparse.ArgumentParser:
    defaults = AgentConfig()
    parser = argparse.ArgumentParser(description="Metrics collection agent.")
    parser.add_argument("-a", dest="addr", default=defaults.addr, help="addr")
    parser.add_argument(
        "-r", dest="report_interval", type=int, default=defaults.report_interval, help="report"
    )
    parser.add_argument(
        "-p", dest="poll_interval", type=int, default=defaults.poll_interval, help="poll"
    )
    parser.add_argument("-k", dest="hash_key", default=defaults.hash_key, help="hash key")
    parser.add_argument(
        "-l", dest="rate_limit", type=int, default=defaults.rate_limit, help="rate limit"
    )
    parser.add_argument("-S", dest="fixed_iv", default=defaults.fixed_iv, help="sypher")
    return parser


_ENV_OVERRIDES: tuple[tuple[str, str, Callable[[str], Any]], ...] = (
    ("addr", ADDR_ENV, get_config_string),
    ("report_interval", REPORT_INTERVAL_ENV, get_config_int64),
    ("poll_interval", POLL_INTERVAL_ENV, get_config_int64),
    ("hash_key", HASH_KEY_ENV, get_config_string),
    ("rate_limit", RATE_LIMIT_ENV, get_config_int64),
    ("fixed_iv", FIXED_IV_ENV, get_config_string),
)


def load_config(logger: Logger, argv: Sequence[str] | None = None) -> AgentConfig:
    """Parse ``argv`` flags, then apply every environment variable that is set and valid."""
    values = vars(_parser().parse_args(argv))

    for field, key, getter in _ENV_OVERRIDES:
        try:
            values[field] = getter(key)
        except ConfigError as exc:
            logger.errorw("can't get env", "msg", exc)

    return AgentConfig(**values)