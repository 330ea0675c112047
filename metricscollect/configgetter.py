"""Typed lookups of configuration values held in environment variables."""

from __future__ import annotations

import math
import os
import re

__all__ = [
    "ConfigError",
    "get_config_string",
    "get_config_int64",
    "get_config_float64",
    "get_config_bool",
]

_INT_PATTERN = re.compile(r"[+-]?[0-9]+")
_INT64_MIN = -(1 << 63)
_INT64_MAX = (1 << 63) - 1
_TRUE_WORDS = frozenset({"1", "t", "T", "TRUE", "true", "True"})
_FALSE_WORDS = frozenset({"0", "f", "F", "FALSE", "false", "False"})


class ConfigError(ValueError):
    """Raised when a configuration value is missing or cannot be parsed."""


def _lookup(key: str) -> str:
    value = os.environ.get(key, "")
    if not value:
        raise ConfigError(f"error in getting {key} value")
    return value


def _parse_int64(text: str) -> int:
    if not _INT_PATTERN.fullmatch(text):
        raise ValueError(f"invalid syntax: {text!r}")
    value = int(text)
    if not _INT64_MIN <= value <= _INT64_MAX:
        raise ValueError(f"value out of range: {text!r}")
    return value


def _parse_float64(text: str) -> float:
    if text != text.strip() or "_" in text:
        raise ValueError(f"invalid syntax: {text!r}")
    unsigned = text.lower().lstrip("+-")
    if unsigned.startswith("0x"):
        value = float.fromhex(text)
    else:
        value = float(text)
    if math.isinf(value) and unsigned not in ("inf", "infinity"):
        raise ValueError(f"value out of range: {text!r}")
    return value


def _parse_bool(text: str) -> bool:
    if text in _TRUE_WORDS:
        return True
    if text in _FALSE_WORDS:
        return False
    raise ValueError(f"invalid syntax: {text!r}")


def get_config_string(key: str) -> str:
    """Return the non-empty string stored under ``key``."""
    return _lookup(key)


def get_config_int64(key: str) -> int:
    """Return the base-10 signed 64-bit integer stored under ``key``."""
    raw = _lookup(key)
    try:
        return _parse_int64(raw)
    except ValueError as exc:
        raise ConfigError(f"can't convert {raw} to int64, reason: {exc}") from exc


def get_config_float64(key: str) -> float:
    """Return the floating point number stored under ``key``."""
    raw = _lookup(key)
    try:
        return _parse_float64(raw)
    except ValueError as exc:
        raise ConfigError(f"can't convert {raw} to float64, reason: {exc}") from exc


def get_config_bool(key: str) -> bool:
    """Return the boolean stored under ``key`` (1/t/true or 0/f/false forms)."""
    raw = _lookup(key)
    try:
        return _parse_bool(raw)
    except ValueError as exc:
        raise ConfigError(f"can't convert {raw} to bool, reason: {exc}") from exc