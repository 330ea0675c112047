"""Request middleware for the metrics server's HTTP handlers.

A handler is a callable taking a :class:`werkzeug.wrappers.Request` plus the
URL variables as keyword arguments and returning a
:class:`werkzeug.wrappers.Response`.
"""

from __future__ import annotations

import functools
import gzip
import io
import traceback
import zlib
from typing import Any, Callable

from werkzeug.wrappers import Request, Response

from metricscollect.logger import Logger

__all__ = [
    "Handler",
    "log_middleware",
    "panic_middleware",
    "compress_middleware",
    "decompress_middleware",
    "error_middleware",
    "accept",
]

Handler = Callable[..., Response]


def _request_uri(request: Request) -> str:
    """Return the request target as the client sent it."""
    environ = request.environ
    raw = environ.get("REQUEST_URI") or environ.get("RAW_URI")
    if raw:
        return raw
    query = request.query_string.decode("latin-1")
    return request.path + (f"?{query}" if query else "")


def _with_body(request: Request, body: bytes) -> Request:
    environ: dict[str, Any] = dict(request.environ)
    environ["wsgi.input"] = io.BytesIO(body)
    environ["CONTENT_LENGTH"] = str(len(body))
    return type(request)(environ)


def _plain_error(message: str, status: int) -> Response:
    response = Response(message + "\n", status=status, content_type="text/plain; charset=utf-8")
    response.headers["X-Content-Type-Options"] = "nosniff"
    return response


def log_middleware(handler: Handler, logger: Logger) -> Handler:
    """Log entering and leaving every request."""

    @functools.wraps(handler)
    def wrapper(request: Request, **kwargs: Any) -> Response:
        uri = _request_uri(request)
        logger.infow("entering", "method", request.method, "url", uri)
        response = handler(request, **kwargs)
        logger.infow("leaving", "method", request.method, "url", uri)
        return response

    return wrapper


def panic_middleware(handler: Handler, logger: Logger) -> Handler:
    """Turn any exception escaping ``handler`` into a logged 500 response."""

    @functools.wraps(handler)
    def wrapper(request: Request, **kwargs: Any) -> Response:
        try:
            return handler(request, **kwargs)
        except Exception as exc:
            logger.errorw(
                "panic happened",
                "reason", exc,
                "stacktrace", traceback.format_exc(),
            )
            return Response(status=500)

    return wrapper


def compress_middleware(handler: Handler, logger: Logger) -> Handler:
    """Gzip the response body when the client accepts gzip."""

    @functools.wraps(handler)
    def wrapper(request: Request, **kwargs: Any) -> Response:
        if "gzip" not in request.headers.get("Accept-Encoding", ""):
            return handler(request, **kwargs)
        response = handler(request, **kwargs)
        response.set_data(gzip.compress(response.get_data(), compresslevel=1, mtime=0))
        response.headers["Content-Encoding"] = "gzip"
        return response

    return wrapper


def decompress_middleware(handler: Handler, logger: Logger) -> Handler:
    """Gunzip the request body when it is sent gzip-encoded."""

    @functools.wraps(handler)
    def wrapper(request: Request, **kwargs: Any) -> Response:
        if request.headers.get("Content-Encoding") == "gzip":
            raw = request.get_data()
            try:
                if not raw:
                    raise EOFError("empty gzip stream")
                body = gzip.decompress(raw)
            except (OSError, EOFError, zlib.error):
                return _plain_error("Failed to decompress request body", 400)
            request = _with_body(request, body)
        return handler(request, **kwargs)

    return wrapper


def error_middleware(handler: Handler, logger: Logger) -> Handler:
    """Log an error raised by ``handler`` and answer with status 500."""

    @functools.wraps(handler)
    def wrapper(request: Request, **kwargs: Any) -> Response:
        try:
            return handler(request, **kwargs)
        except Exception as exc:
            logger.errorw(
                "error happened",
                "url", _request_uri(request),
                "reason", exc,
            )
            return Response(status=500)

    return wrapper


_CHAIN: tuple[Callable[[Handler, Logger], Handler], ...] = (
    panic_middleware,
    log_middleware,
    decompress_middleware,
    compress_middleware,
)


def accept(handler: Handler, logger: Logger) -> Handler:
    """Wrap ``handler`` in the full middleware chain used by the router."""
    wrapped = error_middleware(handler, logger)
    for middleware in _CHAIN:
        wrapped = middleware(wrapped, logger)
    return wrapped