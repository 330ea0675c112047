"""HTTP handlers of the metrics server."""

from __future__ import annotations

import json
import math
from dataclasses import dataclass
from decimal import Decimal
from typing import Any

from werkzeug.exceptions import ClientDisconnected
from werkzeug.wrappers import Request, Response

from metricscollect.logger import Logger
from metricscollect.server.business.models import MetricsCollector, MetricType, RawMetric
from metricscollect.server.middleware import _request_uri

__all__ = ["MetricsAPI"]

_TEXT = "text/plain; charset=utf-8"
_JSON = "application/json"
_HTML = "text/html"

_INT64_MIN = -(1 << 63)
_INT64_MAX = (1 << 63) - 1
_UNIT_FIELDS = ("id", "type", "delta", "value")


def _decimal_text(value: Decimal) -> str:
    """Plain decimal notation without exponent or trailing fractional zeros."""
    text = format(value, "f")
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return "0" if text == "-0" else text


def _float_digits(value: float) -> tuple[str, int]:
    """Shortest digits of ``abs(value)`` and the decimal point position."""
    _, digits, exponent = Decimal(repr(abs(value))).normalize().as_tuple()
    text = "".join(map(str, digits))
    return text, len(text) + int(exponent)


def _fixed(digits: str, point: int) -> str:
    if point <= 0:
        return "0." + "0" * -point + digits
    if point >= len(digits):
        return digits + "0" * (point - len(digits))
    return digits[:point] + "." + digits[point:]


def _scientific(digits: str, point: int, *, pad_negative: bool) -> str:
    exponent = point - 1
    mantissa = digits[0] + ("." + digits[1:] if len(digits) > 1 else "")
    if exponent < 0:
        width = "02d" if pad_negative else "d"
        return f"{mantissa}e-{format(-exponent, width)}"
    return f"{mantissa}e+{exponent:02d}"


def _json_float(value: float) -> str:
    """Encode a float the way a JSON number is written in responses."""
    if not math.isfinite(value):
        raise ValueError(f"json: unsupported value: {value!r}")
    if value == 0:
        return "-0" if math.copysign(1.0, value) < 0 else "0"
    sign = "-" if value < 0 else ""
    digits, point = _float_digits(value)
    magnitude = abs(value)
    if magnitude < 1e-6 or magnitude >= 1e21:
        return sign + _scientific(digits, point, pad_negative=False)
    return sign + _fixed(digits, point)


def _short_float(value: float) -> str:
    """Shortest general-format text of a float."""
    if value == 0:
        return "-0" if math.copysign(1.0, value) < 0 else "0"
    sign = "-" if value < 0 else ""
    digits, point = _float_digits(value)
    exponent = point - 1
    if exponent < -4 or exponent >= 6:
        return sign + _scientific(digits, point, pad_negative=True)
    return sign + _fixed(digits, point)


def _json_string(text: str) -> str:
    encoded = json.dumps(text, ensure_ascii=False)
    for raw, escaped in (
        ("<", "\\u003c"),
        (">", "\\u003e"),
        ("&", "\\u0026"),
        ("\u2028", "\\u2028"),
        ("\u2029", "\\u2029"),
    ):
        encoded = encoded.replace(raw, escaped)
    return encoded


def _reject_constant(name: str) -> float:
    raise ValueError(f"invalid number literal {name}")


def _finite_float(text: str) -> float:
    value = float(text)
    if math.isinf(value):
        raise ValueError(f"number {text} out of range")
    return value


def _load_json(request: Request) -> Any:
    """Read and decode the request body; raise ``ValueError`` on any failure."""
    try:
        raw = request.get_data()
    except (OSError, ClientDisconnected) as exc:
        raise ValueError(f"can't read body: {exc}") from exc
    return json.loads(
        raw.decode("utf-8", errors="replace"),
        parse_constant=_reject_constant,
        parse_float=_finite_float,
    )


@dataclass
class _Unit:
    id: str = ""
    type: str = ""
    delta: int | None = None
    value: float | None = None

    @classmethod
    def from_json(cls, data: Any) -> _Unit:
        if data is None:
            return cls()
        if not isinstance(data, dict):
            raise ValueError("cannot unmarshal non-object into a metric")
        unit = cls()
        for key, item in data.items():
            name = key if key in _UNIT_FIELDS else key.lower()
            if name not in _UNIT_FIELDS or item is None:
                continue
            if name in ("id", "type"):
                if not isinstance(item, str):
                    raise ValueError(f"cannot unmarshal {item!r} into field {name}")
                setattr(unit, name, item)
            elif name == "delta":
                if isinstance(item, bool) or not isinstance(item, int):
                    raise ValueError(f"cannot unmarshal {item!r} into field delta")
                if not _INT64_MIN <= item <= _INT64_MAX:
                    raise ValueError(f"number {item} overflows int64")
                unit.delta = item
            else:
                if isinstance(item, bool) or not isinstance(item, (int, float)):
                    raise ValueError(f"cannot unmarshal {item!r} into field value")
                try:
                    unit.value = float(item)
                except OverflowError as exc:
                    raise ValueError(f"number {item} out of range") from exc
        return unit

    def to_json(self) -> str:
        parts = [f'"id":{_json_string(self.id)}', f'"type":{_json_string(self.type)}']
        if self.delta is not None:
            parts.append(f'"delta":{self.delta}')
        if self.value is not None:
            parts.append(f'"value":{_json_float(self.value)}')
        return "{" + ",".join(parts) + "}"


def _respond(status: int, content_type: str, body: str = "") -> Response:
    return Response(body, status=status, content_type=content_type)


class MetricsAPI:
    """The server's endpoints; each takes a request and the URL variables."""

    def __init__(self, collector: MetricsCollector, logger: Logger) -> None:
        self._collector = collector
        self._logger = logger

    def update_metric(self, request: Request, **kwargs: Any) -> Response:
        """Update one metric given as ``/update/<type>/<name>/<value>``."""
        parts = _request_uri(request).split("/")
        metric_type, metric_name, metric_value = parts[2], parts[3], parts[4]

        if not metric_type or not metric_name or not metric_value:
            return _respond(400, _TEXT)

        try:
            self._collector.update_metrics(
                [RawMetric(id=metric_name, type=metric_type, value=metric_value)]
            )
        except Exception:
            return _respond(400, _TEXT)
        return _respond(200, _TEXT)

    def update_metric_json(self, request: Request, **kwargs: Any) -> Response:
        """Update one metric sent as a JSON object and echo its new value."""
        try:
            unit = _Unit.from_json(_load_json(request))
        except ValueError:
            return _respond(400, _JSON)

        if unit.delta is not None:
            metric_value = str(unit.delta)
        elif unit.value is not None:
            metric_value = _short_float(unit.value)
        else:
            return _respond(400, _JSON)

        try:
            counters, gauges = self._collector.update_metrics(
                [RawMetric(id=unit.id, type=unit.type, value=metric_value)]
            )
        except Exception:
            return _respond(400, _JSON)

        if counters:
            result = _Unit(id=counters[0].id, type=MetricType.COUNTER.value,
                           delta=int(counters[0].delta))
        elif gauges:
            result = _Unit(id=gauges[0].id, type=MetricType.GAUGE.value,
                           value=float(gauges[0].value))
        else:
            raise RuntimeError("smth terrible happened with business UpdateMetrics func")

        return _respond(200, _JSON, result.to_json())

    def update_metrics_json(self, request: Request, **kwargs: Any) -> Response:
        """Update a JSON array of metrics and return their new values."""
        try:
            data = _load_json(request)
            if data is not None and not isinstance(data, list):
                raise ValueError("cannot unmarshal non-array into a list of metrics")
            units = [_Unit.from_json(item) for item in data or []]
        except ValueError:
            return _respond(400, _JSON)

        raw_metrics = []
        for unit in units:
            if unit.delta is not None:
                metric_value = str(unit.delta)
            elif unit.value is not None:
                metric_value = _decimal_text(Decimal(repr(unit.value)))
            else:
                return _respond(400, _JSON)
            raw_metrics.append(RawMetric(id=unit.id, type=unit.type, value=metric_value))

        try:
            counters, gauges = self._collector.update_metrics(raw_metrics)
        except Exception:
            return _respond(400, _JSON)

        results = [
            _Unit(id=m.id, type=MetricType.COUNTER.value, delta=int(m.delta)) for m in counters
        ] + [
            _Unit(id=m.id, type=MetricType.GAUGE.value, value=float(m.value)) for m in gauges
        ]
        body = "[" + ",".join(u.to_json() for u in results) + "]" if results else "null"
        return _respond(200, _JSON, body)

    def get_metric_value(self, request: Request, **kwargs: Any) -> Response:
        """Return a metric's value as plain text; URL variables ``type`` and ``name``."""
        metric_type = kwargs.get("type", "")
        metric_name = kwargs.get("name", "")
        if not metric_type or not metric_name:
            return _respond(400, _TEXT)

        try:
            value, _ = self._collector.get_metric_value(metric_type, metric_name)
        except Exception as exc:
            raise RuntimeError(f"can't get metric val, reason: {exc}") from exc

        if value is None:
            return _respond(404, _TEXT)
        return _respond(200, _TEXT, _decimal_text(value))

    def get_metric_value_json(self, request: Request, **kwargs: Any) -> Response:
        """Return the metric named in the JSON request body with its value."""
        try:
            unit = _Unit.from_json(_load_json(request))
        except ValueError:
            return _respond(400, _JSON)

        try:
            value, kind = self._collector.get_metric_value(unit.type, unit.id)
        except Exception as exc:
            raise RuntimeError(f"can't get metric val, reason: {exc}") from exc

        if value is None:
            return _respond(404, _JSON)

        result = _Unit(id=unit.id, type=unit.type)
        if kind is MetricType.COUNTER:
            result.delta = int(value)
        elif kind is MetricType.GAUGE:
            result.value = float(value)
        else:
            self._logger.errorw("unknown metric type", "type", kind)
            raise RuntimeError("get unknown metric type from business")

        return _respond(200, _JSON, result.to_json())

    def get_all_metrics(self, request: Request, **kwargs: Any) -> Response:
        """Return every metric as an HTML list."""
        counters, gauges = self._collector.get_all_metrics()

        parts = ["<html><body><h1></h1><ul>"]
        parts.extend(f"<li>{m.id}: {_decimal_text(m.delta)}</li>" for m in counters)
        parts.extend(f"<li>{m.id}: {_decimal_text(m.value)}</li>" for m in gauges)
        parts.append("</ul></body></html>")

        return _respond(200, _HTML, "[" + " ".join(parts) + "]")

    def ping_db(self, request: Request, **kwargs: Any) -> Response:
        """Answer 200 if the storage backend is reachable, raise otherwise."""
        self._collector.ping_db()
        return Response(status=200)