"""Health endpoints."""
from fastapi import APIRouter, Depends

from ..dependencies import get_catalog_store, get_job_queue
from ..schemas import ComponentHealthStatus, HealthStatus
from ..services.queue import JobQueueService
from ..stores.catalog_store import CatalogStore

router = APIRouter(tags=["health"])


def _component(reachable: bool, detail: str) -> ComponentHealthStatus:
    if reachable:
        return ComponentHealthStatus(status="ok")
    return ComponentHealthStatus(status="error", detail=detail)


@router.get("/health", response_model=HealthStatus)
def get_health(
    queue: JobQueueService = Depends(get_job_queue),
    catalog: CatalogStore = Depends(get_catalog_store),
) -> HealthStatus:
    """Report reachability of the job queue and the catalog database.

    The endpoint itself always answers 200 so that a degraded backing
    service can be told apart from a dead API process.
    """

    return HealthStatus(
        queue=_component(queue.ping(), "queue_unreachable"),
        catalog=_component(catalog.ping(), "catalog_unreachable"),
    )
