"""FastAPI dependencies for the admin API."""
from fastapi import Depends, Request

from backend.catalog_sync.orchestrator import Catalog

from .services.integrations import IntegrationService
from .services.queue import JobQueueService
from .services.sync_service import SyncService
from .settings import AdminSettings
from .state import AppState
from .stores.config_store import ConfigStore
from .stores.job_log_store import JobLogStore
from .stores.job_store import JobStore


def get_app_state(request: Request) -> AppState:
    """Resolve the shared application state from the FastAPI request."""
    return request.app.state.app_state


def get_settings(app_state: AppState = Depends(get_app_state)) -> AdminSettings:
    return app_state.settings


def get_config_store(app_state: AppState = Depends(get_app_state)) -> ConfigStore:
    return app_state.config_store


def get_job_store(app_state: AppState = Depends(get_app_state)) -> JobStore:
    return app_state.job_store


def get_job_log_store(app_state: AppState = Depends(get_app_state)) -> JobLogStore:
    return app_state.job_log_store


def get_job_queue(app_state: AppState = Depends(get_app_state)) -> JobQueueService:
    return app_state.job_queue


def get_catalog_store(app_state: AppState = Depends(get_app_state)) -> Catalog:
    """Return the catalog store; tests swap in an in-memory double."""
    return app_state.catalog_store


def get_sync_service(app_state: AppState = Depends(get_app_state)) -> SyncService:
    return app_state.sync_service


def get_integration_service(app_state: AppState = Depends(get_app_state)) -> IntegrationService:
    return app_state.integration_service
