"""Entry point of the metrics agent."""

from __future__ import annotations

import logging
import signal
import threading
from collections.abc import Sequence

from metricscollect.agent.agent_config import load_config
from metricscollect.agent.service import MetricsAgent
from metricscollect.buildinfo import print_version
from metricscollect.logger import StructuredLogger

__all__ = ["main"]


def main(argv: Sequence[str] | None = None) -> int:
    """Run the metrics agent until interrupted."""
    print_version()
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(message)s")
    logger = StructuredLogger("metricscollect.agent")
    try:
        config = load_config(logger, argv)
        agent = MetricsAgent(
            logger,
            config.poll_interval,
            config.report_interval,
            config.hash_key,
            f"http://{config.addr}/updates/",
            config.rate_limit,
        )

        stop = threading.Event()
        failures: list[BaseException] = []

        def _on_signal(signum: int, frame: object) -> None:
            stop.set()

        def _run() -> None:
            try:
                agent.run(stop)
            except BaseException as exc:
                failures.append(exc)

        previous = {sig: signal.signal(sig, _on_signal) for sig in (signal.SIGINT, signal.SIGTERM)}
        try:
            worker = threading.Thread(target=_run, name="metrics-agent")
            worker.start()
            while worker.is_alive():
                worker.join(0.5)
        finally:
            for sig, handler in previous.items():
                signal.signal(sig, handler)
            agent.close()

        if failures:
            raise failures[0]
    finally:
        logger.sync()
    return 0