"""Catalog browsing endpoints for the admin dashboard."""
from fastapi import APIRouter, Depends, HTTPException, Query
from pymongo.errors import PyMongoError

from backend.catalog_sync.orchestrator import Catalog

from ..dependencies import get_catalog_store
from ..schemas import MediaListModel, MediaMetricsModel, MediaTypeOption

router = APIRouter(prefix="/admin/media", tags=["media"])


@router.get("", response_model=MediaListModel)
def list_media(
    media_type: MediaTypeOption = Query(default="movie", alias="type"),
    query: str | None = Query(default=None, description="Optional title search term."),
    page: int = Query(default=1, ge=1, description="Page number starting at 1."),
    page_size: int = Query(default=25, ge=1, le=100),
    catalog: Catalog = Depends(get_catalog_store),
) -> MediaListModel:
    """Return a page of movies or shows ordered by title."""

    try:
        return catalog.list_media(media_type=media_type, query=query, page=page, page_size=page_size)
    except PyMongoError as exc:
        raise HTTPException(status_code=500, detail=str(exc)) from exc


@router.get("/metrics", response_model=MediaMetricsModel)
def media_metrics(catalog: Catalog = Depends(get_catalog_store)) -> MediaMetricsModel:
    """Return catalog counts for dashboards."""

    try:
        return catalog.metrics()
    except PyMongoError as exc:
        raise HTTPException(status_code=500, detail=str(exc)) from exc
