"""RQ task entrypoints executed by background workers."""
from __future__ import annotations

import logging
from typing import Any, Callable

from rq import get_current_job

from backend.catalog_sync import SyncReport, SyncResults

from ..db import create_engine_from_settings
from ..schemas import ConfigModel, JobLogCreate
from ..settings import AdminSettings
from ..stores.catalog_store import CatalogStore
from ..stores.config_store import ConfigStore
from ..stores.job_log_store import JobLogStore
from ..stores.job_store import JobStore
from .connections import create_redis_connection
from .sync_service import SyncService

logger = logging.getLogger(__name__)

SYNC_JOB_TYPE = "sync"

SyncRunner = Callable[[ConfigModel, str | None], SyncReport | SyncResults]


def execute_admin_job(
    *,
    job_id: str,
    job_type: str,
    payload: dict[str, Any] | None,
    settings: dict[str, Any],
    worker_name: str,
) -> None:
    """Background worker entrypoint for admin jobs."""

    resolved_settings = AdminSettings.model_validate(settings)
    engine = create_engine_from_settings(resolved_settings)

    current_job = get_current_job()
    worker_id = worker_name
    if current_job and getattr(current_job, "worker_name", None):  # pragma: no cover - runtime path
        worker_id = current_job.worker_name  # type: ignore[assignment]

    try:
        run_admin_job(
            job_id=job_id,
            job_type=job_type,
            payload=payload,
            job_store=JobStore(engine),
            log_store=JobLogStore(engine),
            config_store=ConfigStore(engine),
            worker_id=worker_id,
            sync_runner=lambda config, routine: _default_sync_runner(resolved_settings, config, routine),
        )
    finally:
        engine.dispose()


def run_admin_job(
    *,
    job_id: str,
    job_type: str,
    payload: dict[str, Any] | None,
    job_store: JobStore,
    log_store: JobLogStore,
    config_store: ConfigStore,
    worker_id: str,
    sync_runner: SyncRunner,
) -> None:
    """Execute one job against the given stores, recording its lifecycle."""

    if job_store.is_cancelled(job_id):
        log_store.log(job_id, "warning", "Job was cancelled before it started")
        return

    job_store.mark_running(job_id, worker_id=worker_id)
    log_store.append(job_id, JobLogCreate(level="info", message="Job started", context=None))

    try:
        log_store.append(
            job_id,
            JobLogCreate(
                level="info",
                message=f"Executing {job_type} job",
                context={"payload": payload} if payload else None,
            ),
        )

        result: dict[str, Any] | None = None
        if job_type == SYNC_JOB_TYPE:
            result = _execute_sync_job(job_id, log_store, config_store, payload, sync_runner)
        else:
            log_store.log(job_id, "warning", f"Unknown job type: {job_type}")

        job_store.mark_completed(job_id, result=result, progress=1.0)
        log_store.append(job_id, JobLogCreate(level="info", message="Job completed", context=None))
    except Exception as exc:
        logger.exception("Job %s failed", job_id)
        job_store.mark_failed(job_id, error_message=str(exc), progress=0.0)
        log_store.log(job_id, "error", "Job failed", error=str(exc))
        raise


def _execute_sync_job(
    job_id: str,
    log_store: JobLogStore,
    config_store: ConfigStore,
    payload: dict[str, Any] | None,
    sync_runner: SyncRunner,
) -> dict[str, Any]:
    """Run a full sync, or the single routine named in ``payload["routine"]``."""

    config = config_store.read()
    routine = (payload or {}).get("routine")
    log_store.log(
        job_id,
        "info",
        f"Syncing with file server {config.fileserver_url}",
        routine=routine or "full",
    )

    outcome = sync_runner(config, routine)
    results = outcome.results if isinstance(outcome, SyncReport) else [outcome]
    for result in results:
        errors = result.errors["movies"] + result.errors["tv"]
        log_store.log(
            job_id,
            "warning" if errors else "info",
            f"{result.family}: {result.writes} writes",
            processed=result.processed,
            errors=errors,
        )

    if isinstance(outcome, SyncReport):
        return {
            "startTime": outcome.start_time.isoformat(),
            "duration": outcome.duration,
            "writes": outcome.writes,
            "missingMedia": outcome.missing_media,
            "missingMp4": outcome.missing_mp4,
        }
    return outcome.to_dict()


def _default_sync_runner(
    settings: AdminSettings, config: ConfigModel, routine: str | None
) -> SyncReport | SyncResults:
    catalog = CatalogStore.from_settings(settings)
    service = SyncService(settings, create_redis_connection(settings))
    try:
        if routine:
            return service.run_routine(catalog, config, routine)
        return service.run_full_sync(catalog, config)
    finally:
        catalog.close()
