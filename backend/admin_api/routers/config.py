"""Configuration endpoints."""
from fastapi import APIRouter, Depends

from ..dependencies import get_config_store, get_settings
from ..schemas import ConfigModel, ConfigUpdate
from ..settings import AdminSettings
from ..stores.config_store import ConfigStore

router = APIRouter(prefix="/config", tags=["config"])


@router.get("", response_model=ConfigModel)
def read_config(store: ConfigStore = Depends(get_config_store)) -> ConfigModel:
    """Return the current configuration."""
    return store.read()


@router.put("", response_model=ConfigModel)
def update_config(
    update: ConfigUpdate,
    store: ConfigStore = Depends(get_config_store),
    settings: AdminSettings = Depends(get_settings),
) -> ConfigModel:
    """Update and return the configuration."""

    payload = update.model_copy()
    if payload.fileserver_url is not None and not payload.fileserver_url.strip():
        payload.fileserver_url = settings.default_fileserver_url
    if payload.listing_path is not None and not payload.listing_path.strip():
        payload.listing_path = settings.default_listing_path
    return store.update(payload)
