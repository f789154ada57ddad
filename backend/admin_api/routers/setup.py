"""Initial setup endpoint for the admin service."""
from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException

from ..dependencies import get_config_store, get_job_log_store, get_job_queue, get_job_store
from ..schemas import ConfigModel, JobModel, SetupRequest, SetupResponse
from ..services.queue import JobQueueError, JobQueueService
from ..services.tasks import SYNC_JOB_TYPE
from ..stores.config_store import ConfigStore
from ..stores.job_log_store import JobLogStore
from ..stores.job_store import JobStore

router = APIRouter(tags=["setup"])


@router.post("/setup", response_model=SetupResponse)
def perform_setup(
    request: SetupRequest,
    config_store: ConfigStore = Depends(get_config_store),
    job_store: JobStore = Depends(get_job_store),
    log_store: JobLogStore = Depends(get_job_log_store),
    queue: JobQueueService = Depends(get_job_queue),
) -> SetupResponse:
    """Persist the initial configuration and optionally queue a first sync."""

    config = config_store.replace(
        ConfigModel.model_validate(request.model_dump(exclude={"run_initial_sync"}))
    )

    job: JobModel | None = None
    if request.run_initial_sync:
        try:
            job = queue.enqueue(job_store, log_store, SYNC_JOB_TYPE)
        except JobQueueError as exc:
            raise HTTPException(status_code=503, detail=str(exc)) from exc

    return SetupResponse(config=config, job=job)
