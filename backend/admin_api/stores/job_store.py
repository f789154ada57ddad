"""Database-backed job store for background sync jobs."""
from __future__ import annotations

from datetime import datetime
from threading import Lock
from typing import Any, Iterable
from uuid import uuid4

from sqlalchemy import func
from sqlmodel import Session, select

from ..models import JobRecord
from ..schemas import JobMetricsModel, JobModel

_TERMINAL_STATUSES = {"completed", "failed", "cancelled"}


class JobStore:
    """Thread-safe CRUD interface for admin jobs."""

    def __init__(self, engine) -> None:
        self._engine = engine
        self._lock = Lock()

    def enqueue(self, job_type: str, payload: dict[str, Any] | None = None) -> JobModel:
        """Create a queued job entry and return its model representation."""

        record = JobRecord(id=uuid4().hex, type=job_type, status="queued", payload=payload)
        with self._lock, Session(self._engine) as session:
            session.add(record)
            session.commit()
            session.refresh(record)
            return _to_model(record)

    def list(
        self,
        *,
        limit: int = 50,
        statuses: list[str] | None = None,
        job_type: str | None = None,
    ) -> list[JobModel]:
        """Return the most recent jobs with optional status and type filters."""

        statement = select(JobRecord)
        normalized = sorted({status.lower() for status in statuses or [] if status})
        if normalized:
            statement = statement.where(JobRecord.status.in_(normalized))
        if job_type:
            statement = statement.where(JobRecord.type == job_type)

        statement = statement.order_by(JobRecord.created_at.desc()).limit(limit)
        with Session(self._engine) as session:
            records: Iterable[JobRecord] = session.exec(statement)
            return [_to_model(record) for record in records]

    def get(self, job_id: str) -> JobModel | None:
        with Session(self._engine) as session:
            record = session.get(JobRecord, job_id)
            return _to_model(record) if record else None

    def mark_running(self, job_id: str, *, worker_id: str | None = None) -> JobModel:
        return self._transition(
            job_id, status="running", progress=0.0, started_at=datetime.utcnow(), worker_id=worker_id
        )

    def mark_completed(
        self, job_id: str, *, result: dict[str, Any] | None = None, progress: float = 1.0
    ) -> JobModel:
        return self._transition(
            job_id, status="completed", progress=progress, finished_at=datetime.utcnow(), result=result
        )

    def mark_failed(self, job_id: str, *, error_message: str, progress: float | None = None) -> JobModel:
        return self._transition(
            job_id,
            status="failed",
            progress=progress,
            finished_at=datetime.utcnow(),
            error_message=error_message,
        )

    def mark_cancelled(self, job_id: str, *, reason: str | None = None) -> JobModel:
        return self._transition(
            job_id, status="cancelled", finished_at=datetime.utcnow(), error_message=reason
        )

    def is_cancelled(self, job_id: str) -> bool:
        job = self.get(job_id)
        return job is not None and job.status == "cancelled"

    def _transition(self, job_id: str, **changes: Any) -> JobModel:
        with self._lock, Session(self._engine) as session:
            record = session.get(JobRecord, job_id)
            if record is None:
                raise RuntimeError(f"Job {job_id} not found")

            for key, value in changes.items():
                if value is None:
                    continue
                if key == "started_at" and record.started_at is not None:
                    continue
                setattr(record, key, value)
            record.updated_at = datetime.utcnow()

            session.add(record)
            session.commit()
            session.refresh(record)
            return _to_model(record)

    def metrics(self) -> JobMetricsModel:
        """Compute aggregate statistics for persisted jobs."""

        with Session(self._engine) as session:
            total = session.exec(select(func.count()).select_from(JobRecord)).one()
            status_counts = dict(
                session.exec(
                    select(JobRecord.status, func.count()).group_by(JobRecord.status)
                ).all()
            )
            type_counts = dict(
                session.exec(select(JobRecord.type, func.count()).group_by(JobRecord.type)).all()
            )
            finished_rows = session.exec(
                select(JobRecord.started_at, JobRecord.finished_at)
                .where(JobRecord.finished_at.is_not(None))
                .where(JobRecord.status.in_(sorted(_TERMINAL_STATUSES)))
            ).all()

        durations = [
            (finished - started).total_seconds()
            for started, finished in finished_rows
            if started and finished
        ]
        finished_times = [finished for _started, finished in finished_rows if finished]
        return JobMetricsModel(
            total=total,
            status_counts=status_counts,
            type_counts=type_counts,
            average_duration_seconds=sum(durations) / len(durations) if durations else None,
            last_finished_at=max(finished_times) if finished_times else None,
        )


def _to_model(record: JobRecord) -> JobModel:
    duration_seconds: float | None = None
    if record.started_at and record.finished_at:
        duration_seconds = (record.finished_at - record.started_at).total_seconds()

    return JobModel(
        id=record.id,
        type=record.type,
        status=record.status,
        progress=record.progress,
        worker_id=record.worker_id,
        payload=record.payload,
        result=record.result,
        created_at=record.created_at,
        updated_at=record.updated_at,
        started_at=record.started_at,
        finished_at=record.finished_at,
        error_message=record.error_message,
        duration_seconds=duration_seconds,
    )
