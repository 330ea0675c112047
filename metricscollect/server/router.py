"""URL routing of the metrics server."""

from __future__ import annotations

from typing import Any, Callable

from werkzeug.exceptions import HTTPException, NotFound
from werkzeug.routing import Map, RequestRedirect, Rule
from werkzeug.wrappers import Request, Response

from metricscollect.logger import Logger
from metricscollect.server.handlers import MetricsAPI
from metricscollect.server.middleware import accept

__all__ = [
    "build_app",
    "UPDATE_METRIC_PATH",
    "UPDATE_METRIC_JSON_PATH",
    "UPDATE_METRICS_JSON_PATH",
    "GET_METRIC_VALUE_PATH",
    "GET_METRIC_VALUE_JSON_PATH",
    "GET_ALL_METRICS_PATH",
    "PING_DB_PATH",
]

UPDATE_METRIC_PATH = "/update/<type>/<name>/<value>"
UPDATE_METRIC_JSON_PATH = "/update/"
UPDATE_METRICS_JSON_PATH = "/updates/"
GET_METRIC_VALUE_PATH = "/value/<type>/<name>"
GET_METRIC_VALUE_JSON_PATH = "/value/"
GET_ALL_METRICS_PATH = "/"
PING_DB_PATH = "/ping"

_ROUTES: tuple[tuple[str, str, str], ...] = (
    (UPDATE_METRIC_PATH, "update_metric", "POST"),
    (UPDATE_METRIC_JSON_PATH, "update_metric_json", "POST"),
    (UPDATE_METRICS_JSON_PATH, "update_metrics_json", "POST"),
    (GET_METRIC_VALUE_PATH, "get_metric_value", "GET"),
    (GET_METRIC_VALUE_JSON_PATH, "get_metric_value_json", "POST"),
    (GET_ALL_METRICS_PATH, "get_all_metrics", "GET"),
    (PING_DB_PATH, "ping_db", "GET"),
)


def build_app(api: MetricsAPI, logger: Logger) -> Callable[..., Any]:
    """Return a WSGI application dispatching the server's routes to ``api``."""
    url_map = Map(
        [Rule(path, endpoint=name, methods=[method]) for path, name, method in _ROUTES],
        merge_slashes=False,
    )
    handlers = {name: accept(getattr(api, name), logger) for _, name, _ in _ROUTES}

    @Request.application
    def app(request: Request) -> Response:
        adapter = url_map.bind_to_environ(request.environ)
        try:
            endpoint, values = adapter.match()
        except RequestRedirect:
            return NotFound().get_response(request.environ)
        except HTTPException as exc:
            return exc.get_response(request.environ)
        return handlers[endpoint](request, **values)

    return app