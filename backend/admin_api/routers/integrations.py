"""Queue proxies for download and transcode integrations."""
from typing import Any, Literal

from fastapi import APIRouter, Depends, HTTPException

from ..dependencies import get_config_store, get_integration_service
from ..services.integrations import (
    IntegrationError,
    IntegrationNotConfiguredError,
    IntegrationService,
)
from ..stores.config_store import ConfigStore

router = APIRouter(prefix="/admin", tags=["integrations"])


@router.get("/{integration}", summary="Integration queue proxy")
def integration_queue(
    integration: Literal["sabnzbd", "radarr", "sonarr", "tdarr"],
    config_store: ConfigStore = Depends(get_config_store),
    service: IntegrationService = Depends(get_integration_service),
) -> Any:
    """Return the upstream queue payload.

    Responds 501 when the integration is not configured so dashboards stop
    polling it.
    """

    try:
        return service.queue(integration, config_store.read())
    except IntegrationNotConfiguredError as exc:
        raise HTTPException(status_code=501, detail=str(exc)) from exc
    except IntegrationError as exc:
        raise HTTPException(status_code=502, detail=str(exc)) from exc
