import gzip

from werkzeug.test import EnvironBuilder
from werkzeug.wrappers import Response

from metricscollect.server.middleware import (
    accept,
    compress_middleware,
    decompress_middleware,
    error_middleware,
    log_middleware,
    panic_middleware,
)


class RecordingLogger:
    def __init__(self):
        self.calls = []

    def __getattr__(self, name):
        def record(*args):
            self.calls.append((name, args))

        return record


def ok_handler(request, **kwargs):
    return Response("OK", status=200)


def make_request(path="/test", method="GET", data=None, headers=None):
    return EnvironBuilder(path=path, method=method, data=data, headers=headers).get_request()


def test_log_middleware():
    logger = RecordingLogger()
    response = log_middleware(ok_handler, logger)(make_request())
    assert response.status_code == 200
    assert logger.calls == [
        ("infow", ("entering", "method", "GET", "url", "/test")),
        ("infow", ("leaving", "method", "GET", "url", "/test")),
    ]


def test_panic_middleware():
    logger = RecordingLogger()

    def boom(request, **kwargs):
        raise RuntimeError("test panic")

    response = panic_middleware(boom, logger)(make_request())
    assert response.status_code == 500
    assert len(logger.calls) == 1
    name, args = logger.calls[0]
    assert name == "errorw"
    assert args[0] == "panic happened"
    assert args[1] == "reason"
    assert str(args[2]) == "test panic"
    assert args[3] == "stacktrace"
    assert "test panic" in args[4]


def test_compress_middleware():
    handler = compress_middleware(ok_handler, RecordingLogger())
    response = handler(make_request(headers={"Accept-Encoding": "gzip"}))
    assert response.headers.get("Content-Encoding") == "gzip"
    assert gzip.decompress(response.get_data()) == b"OK"


def test_compress_middleware_without_gzip_accept():
    handler = compress_middleware(ok_handler, RecordingLogger())
    response = handler(make_request())
    assert "Content-Encoding" not in response.headers
    assert response.get_data() == b"OK"


def test_compress_middleware_empty_body_still_gzip():
    def empty(request, **kwargs):
        return Response(status=404)

    response = compress_middleware(empty, RecordingLogger())(
        make_request(headers={"Accept-Encoding": "gzip"})
    )
    assert response.status_code == 404
    assert gzip.decompress(response.get_data()) == b""


def test_decompress_middleware():
    seen = []

    def echo(request, **kwargs):
        seen.append(request.get_data())
        return Response("OK")

    handler = decompress_middleware(echo, RecordingLogger())
    body = gzip.compress(b"gzip request")
    response = handler(
        make_request(method="POST", data=body, headers={"Content-Encoding": "gzip"})
    )
    assert response.get_data() == b"OK"
    assert seen == [b"gzip request"]


def test_decompress_middleware_bad_body():
    handler = decompress_middleware(ok_handler, RecordingLogger())
    response = handler(
        make_request(method="POST", data=b"not gzip", headers={"Content-Encoding": "gzip"})
    )
    assert response.status_code == 400
    assert response.get_data() == b"Failed to decompress request body\n"


def test_error_middleware():
    logger = RecordingLogger()

    def failing(request, **kwargs):
        raise ValueError("test error")

    response = error_middleware(failing, logger)(make_request())
    assert response.status_code == 500
    assert len(logger.calls) == 1
    name, args = logger.calls[0]
    assert name == "errorw"
    assert args[:4] == ("error happened", "url", "/test", "reason")
    assert str(args[4]) == "test error"


def test_accept_round_trip_through_gzip():
    def echo(request, **kwargs):
        return Response(request.get_data() + kwargs["suffix"].encode())

    handler = accept(echo, RecordingLogger())
    response = handler(
        make_request(
            method="POST",
            data=gzip.compress(b"payload"),
            headers={"Content-Encoding": "gzip", "Accept-Encoding": "gzip"},
        ),
        suffix="!",
    )
    assert response.status_code == 200
    assert gzip.decompress(response.get_data()) == b"payload!"


def test_accept_turns_errors_into_500():
    logger = RecordingLogger()

    def failing(request, **kwargs):
        raise RuntimeError("broken")

    response = accept(failing, logger)(make_request())
    assert response.status_code == 500
    assert [name for name, _ in logger.calls] == ["infow", "errorw", "infow"]