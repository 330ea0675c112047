"""Logging interface with printf-style, plain and key/value methods."""

from __future__ import annotations

import json
import logging
import re
from typing import Any, Protocol, runtime_checkable

__all__ = ["Logger", "StructuredLogger"]

_VERB_MAP = {"%v": "%s", "%+v": "%s", "%t": "%s", "%q": "%r"}
_VERB_PATTERN = re.compile(r"%\+v|%v|%t|%q")


@runtime_checkable
class Logger(Protocol):
    """What the services need from a logger."""

    def debugf(self, fmt: str, *args: Any) -> None: ...
    def infof(self, fmt: str, *args: Any) -> None: ...
    def warnf(self, fmt: str, *args: Any) -> None: ...
    def errorf(self, fmt: str, *args: Any) -> None: ...

    def debugw(self, msg: str, *args: Any) -> None: ...
    def infow(self, msg: str, *args: Any) -> None: ...
    def warnw(self, msg: str, *args: Any) -> None: ...
    def errorw(self, msg: str, *args: Any) -> None: ...

    def debug(self, *args: Any) -> None: ...
    def info(self, *args: Any) -> None: ...
    def warn(self, *args: Any) -> None: ...
    def error(self, *args: Any) -> None: ...

    def sync(self) -> None: ...


def _text(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if value is None:
        return "<nil>"
    return str(value)


def _sprint(args: tuple[Any, ...]) -> str:
    """Join operands, adding a space only between two non-string operands."""
    parts: list[str] = []
    previous_is_str = True
    for position, arg in enumerate(args):
        is_str = isinstance(arg, str)
        if position and not is_str and not previous_is_str:
            parts.append(" ")
        parts.append(_text(arg))
        previous_is_str = is_str
    return "".join(parts)


def _sprintf(fmt: str, args: tuple[Any, ...]) -> str:
    if not args:
        return fmt
    template = _VERB_PATTERN.sub(lambda m: _VERB_MAP[m.group(0)], fmt)
    converted = tuple(_text(a) if isinstance(a, bool) or a is None else a for a in args)
    try:
        return template % converted
    except (TypeError, ValueError):
        return f"{fmt} {_sprint(args)}"


def _pair_fields(keys_and_values: tuple[Any, ...]) -> dict[str, Any]:
    fields: dict[str, Any] = {}
    items = iter(keys_and_values)
    for key in items:
        try:
            value = next(items)
        except StopIteration:
            fields["ignored"] = key
            break
        fields[str(key)] = value
    return fields


class StructuredLogger:
    """A :class:`Logger` backed by the standard ``logging`` module.

    Key/value calls attach their fields to the record as ``record.fields`` and
    append them to the message as JSON.
    """

    def __init__(self, name: str) -> None:
        self._logger = logging.getLogger(name)
        self._logger.setLevel(logging.INFO)

    def _emit(self, level: int, message: str, fields: dict[str, Any] | None = None) -> None:
        if not self._logger.isEnabledFor(level):
            return
        if fields:
            message = f"{message} {json.dumps(fields, default=str)}"
        self._logger.log(level, "%s", message, extra={"fields": fields or {}}, stacklevel=3)

    def debug(self, *args: Any) -> None:
        self._emit(logging.DEBUG, _sprint(args))

    def info(self, *args: Any) -> None:
        self._emit(logging.INFO, _sprint(args))

    def warn(self, *args: Any) -> None:
        self._emit(logging.WARNING, _sprint(args))

    def error(self, *args: Any) -> None:
        self._emit(logging.ERROR, _sprint(args))

    def debugf(self, fmt: str, *args: Any) -> None:
        self._emit(logging.DEBUG, _sprintf(fmt, args))

    def infof(self, fmt: str, *args: Any) -> None:
        self._emit(logging.INFO, _sprintf(fmt, args))

    def warnf(self, fmt: str, *args: Any) -> None:
        self._emit(logging.WARNING, _sprintf(fmt, args))

    def errorf(self, fmt: str, *args: Any) -> None:
        self._emit(logging.ERROR, _sprintf(fmt, args))

    def debugw(self, msg: str, *args: Any) -> None:
        self._emit(logging.DEBUG, msg, _pair_fields(args))

    def infow(self, msg: str, *args: Any) -> None:
        self._emit(logging.INFO, msg, _pair_fields(args))

    def warnw(self, msg: str, *args: Any) -> None:
        self._emit(logging.WARNING, msg, _pair_fields(args))

    def errorw(self, msg: str, *args: Any) -> None:
        self._emit(logging.ERROR, msg, _pair_fields(args))

    def sync(self) -> None:
        """Flush every handler reachable from this logger."""
        logger: logging.Logger | None = self._logger
        while logger is not None:
            for handler in logger.handlers:
                handler.flush()
            logger = logger.parent if logger.propagate else None