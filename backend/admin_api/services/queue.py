"""Redis-backed job queue integration for the admin service."""
from __future__ import annotations

from typing import Any

from redis import Redis
from redis.exceptions import RedisError
from rq import Queue

from ..schemas import JobLogCreate, JobModel
from ..settings import AdminSettings
from ..stores.job_log_store import JobLogStore
from ..stores.job_store import JobStore
from .connections import create_redis_connection
from .tasks import execute_admin_job


class JobQueueError(RuntimeError):
    """Raised when the queue cannot accept a job."""


class JobQueueService:
    """Encapsulates the Redis queue connection and enqueue workflow."""

    def __init__(self, settings: AdminSettings, connection: Redis | None = None) -> None:
        self._settings = settings
        self._connection = connection if connection is not None else create_redis_connection(settings)
        self._queue = Queue(settings.redis_queue_name, connection=self._connection)

    @property
    def queue(self) -> Queue:
        """Expose the underlying RQ queue for workers and diagnostics."""

        return self._queue

    @property
    def connection(self) -> Redis:
        return self._connection

    def ping(self) -> bool:
        """Check whether the queue backend is reachable."""

        try:
            return bool(self._connection.ping())
        except RedisError:
            return False

    def enqueue(
        self,
        job_store: JobStore,
        log_store: JobLogStore,
        job_type: str,
        payload: dict[str, Any] | None = None,
    ) -> JobModel:
        """Persist a job and enqueue it for asynchronous execution."""

        job = job_store.enqueue(job_type, payload)
        log_store.append(
            job.id,
            JobLogCreate(
                level="info",
                message=f"Job {job_type} enqueued",
                context={"payload": payload} if payload else None,
            ),
        )

        try:
            self._queue.enqueue(
                execute_admin_job,
                job_id=job.id,
                job_timeout=self._settings.sync_lock_timeout,
                kwargs={
                    "job_id": job.id,
                    "job_type": job_type,
                    "payload": payload,
                    "settings": self._settings.model_dump(),
                    "worker_name": self._settings.queue_worker_name,
                },
            )
        except RedisError as exc:
            log_store.append(
                job.id,
                JobLogCreate(level="error", message="Failed to enqueue job", context={"error": str(exc)}),
            )
            job_store.mark_failed(job.id, error_message="queue_unavailable", progress=0.0)
            raise JobQueueError("Unable to enqueue job") from exc

        return job
