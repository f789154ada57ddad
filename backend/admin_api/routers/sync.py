"""Catalog sync endpoints."""
from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException
from pymongo.errors import PyMongoError

from backend.catalog_sync import FileServerError, SyncError
from backend.catalog_sync.orchestrator import Catalog

from ..dependencies import get_catalog_store, get_config_store, get_sync_service
from ..schemas import LastSyncModel, SyncResponse, SyncResultsModel
from ..services.sync_service import SyncInProgressError, SyncService, UnknownRoutineError
from ..stores.config_store import ConfigStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin/sync", tags=["sync"])


def _translate(exc: Exception) -> HTTPException:
    if isinstance(exc, SyncInProgressError):
        return HTTPException(status_code=409, detail=str(exc))
    if isinstance(exc, FileServerError):
        return HTTPException(status_code=502, detail=str(exc))
    logger.error("Sync failed: %s", exc)
    return HTTPException(status_code=500, detail=str(exc))


@router.post("", response_model=SyncResponse)
def run_full_sync(
    catalog: Catalog = Depends(get_catalog_store),
    config_store: ConfigStore = Depends(get_config_store),
    service: SyncService = Depends(get_sync_service),
) -> SyncResponse:
    """Reconcile the catalog with the file server and report missing media."""

    try:
        report = service.run_full_sync(catalog, config_store.read())
    except (SyncError, SyncInProgressError, PyMongoError) as exc:
        raise _translate(exc) from exc

    return SyncResponse(
        message=f"Sync completed with {report.writes} writes",
        start_time=report.start_time,
        duration=report.duration,
        missing_media=report.missing_media,
        missing_mp4=report.missing_mp4,
        results=[SyncResultsModel.model_validate(result.to_dict()) for result in report.results],
    )


@router.get("/last", response_model=LastSyncModel)
def last_sync(catalog: Catalog = Depends(get_catalog_store)) -> LastSyncModel:
    """Return when the last full sync finished."""

    try:
        return LastSyncModel(last_sync_time=catalog.last_synced())
    except PyMongoError as exc:
        raise HTTPException(status_code=500, detail=str(exc)) from exc


@router.post("/{routine}", response_model=SyncResultsModel)
def run_routine(
    routine: str,
    catalog: Catalog = Depends(get_catalog_store),
    config_store: ConfigStore = Depends(get_config_store),
    service: SyncService = Depends(get_sync_service),
) -> SyncResultsModel:
    """Run a single sync routine such as ``captions`` or ``video-url``."""

    try:
        results = service.run_routine(catalog, config_store.read(), routine)
    except UnknownRoutineError as exc:
        raise HTTPException(status_code=404, detail=f"Unknown sync routine: {routine}") from exc
    except (SyncError, SyncInProgressError, PyMongoError) as exc:
        raise _translate(exc) from exc
    return SyncResultsModel.model_validate(results.to_dict())
