"""Entry point for the catalog admin RQ worker."""
from __future__ import annotations

import logging
import os

from rq import SimpleWorker, Worker

from backend.admin_api.services.queue import JobQueueService
from backend.admin_api.settings import AdminSettings


def main() -> None:
    """Start an RQ worker that runs sync jobs from the admin queue."""

    settings = AdminSettings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    queue_service = JobQueueService(settings)

    # Windows has no fork.
    worker_class = SimpleWorker if os.name == "nt" else Worker
    worker = worker_class(
        [queue_service.queue],
        connection=queue_service.connection,
        name=settings.queue_worker_name,
    )
    worker.work(with_scheduler=False)


if __name__ == "__main__":  # pragma: no cover - manual entrypoint
    main()
