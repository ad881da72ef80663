"""RQ worker entrypoint.

``chord-worker`` listens on WORKER_QUEUE_NAMES; pass queue names as arguments
to dedicate a process to some of them (e.g. ``chord-worker matching``).
"""

from __future__ import annotations

import logging
import os
import socket
import sys
from collections.abc import Sequence

from redis import Redis
from rq import Queue, Worker

from chord.core.config import settings

logger = logging.getLogger("chord.worker")


def build_worker(queue_names: Sequence[str], connection: Redis) -> Worker:
    queues = [Queue(name, connection=connection) for name in queue_names]
    # Partitioned matching runs several of these side by side; rq requires distinct names.
    name = f"chord-{socket.gethostname()}-{os.getpid()}"
    return Worker(queues, connection=connection, name=name)


def main(argv: Sequence[str] | None = None) -> None:
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        force=True,
    )
    queue_names = list(argv if argv is not None else sys.argv[1:]) or settings.worker_queue_names
    worker = build_worker(queue_names, Redis.from_url(settings.redis_url))
    logger.info("Worker %s listening on %s", worker.name, ", ".join(queue_names))
    worker.work(with_scheduler=True)


if __name__ == "__main__":
    main()
