"""Entry point of the metrics server."""

from __future__ import annotations

import logging
import signal
import threading
from collections.abc import Sequence

from werkzeug.serving import make_server

from metricscollect.buildinfo import print_version
from metricscollect.logger import Logger, StructuredLogger
from metricscollect.server.business.collector import Collector
from metricscollect.server.handlers import MetricsAPI
from metricscollect.server.router import build_app
from metricscollect.server.server_config import ServerConfig, load_config
from metricscollect.server.storage.interface import Storage
from metricscollect.server.storage.memory import MemoryStorage

__all__ = ["new_storage", "main"]


def new_storage(config: ServerConfig, logger: Logger) -> Storage:
    """Create the storage backend the configuration asks for."""
    if config.database_dsn:
        raise RuntimeError(
            "database storage was requested but no database backend is available"
        )
    return MemoryStorage(logger, config.file_storage_path, config.restore)


def _split_addr(addr: str) -> tuple[str, int]:
    host, sep, port = addr.rpartition(":")
    if not sep:
        raise ValueError(f"address {addr!r}: missing port in address")
    host = host.strip("[]") or "0.0.0.0"
    return host, int(port)


def _serve(app: object, addr: str, logger: Logger) -> None:
    try:
        host, port = _split_addr(addr)
        server = make_server(host, port, app, threaded=True)
    except (OSError, ValueError) as exc:
        logger.infow("server exit", "reason", exc)
        return

    stop = threading.Event()

    def _on_signal(signum: int, frame: object) -> None:
        stop.set()

    previous = {sig: signal.signal(sig, _on_signal) for sig in (signal.SIGINT, signal.SIGTERM)}
    worker = threading.Thread(target=server.serve_forever, daemon=True)
    worker.start()
    try:
        while not stop.wait(0.5) and worker.is_alive():
            pass
    finally:
        server.shutdown()
        worker.join()
        server.server_close()
        for sig, handler in previous.items():
            signal.signal(sig, handler)
    logger.infow("server exit", "reason", "http: Server closed")


def main(argv: Sequence[str] | None = None) -> int:
    """Run the metrics server until interrupted."""
    print_version()
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(message)s")
    logger = StructuredLogger("metricscollect.server")
    try:
        config = load_config(logger, argv)

        try:
            storage = new_storage(config, logger)
        except (OSError, ValueError, RuntimeError) as exc:
            logger.errorw("cant create db svc", "reason", exc)
            raise RuntimeError("db initialization failed") from exc

        try:
            collector = Collector(storage, logger)
            try:
                _serve(build_app(MetricsAPI(collector, logger), logger), config.addr, logger)
            finally:
                collector.close()
        finally:
            storage.close()
    finally:
        logger.sync()
    return 0