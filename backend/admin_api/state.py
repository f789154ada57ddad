"""Shared state container for the admin API."""
from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy.engine import Engine
from sqlmodel import Session

from backend.catalog_sync.orchestrator import Catalog

from .db import create_engine_from_settings, init_database
from .services.integrations import IntegrationService
from .services.queue import JobQueueService
from .services.sync_service import SyncService
from .settings import AdminSettings
from .stores.catalog_store import CatalogStore
from .stores.config_store import ConfigStore
from .stores.job_log_store import JobLogStore
from .stores.job_store import JobStore


@dataclass(slots=True)
class AppState:
    """Encapsulates mutable application state shared across routers."""

    settings: AdminSettings
    engine: Engine
    config_store: ConfigStore
    job_store: JobStore
    job_log_store: JobLogStore
    job_queue: JobQueueService
    catalog_store: Catalog
    sync_service: SyncService
    integration_service: IntegrationService

    def __init__(self, settings: AdminSettings) -> None:
        self.settings = settings
        self.engine = create_engine_from_settings(settings)
        init_database(self.engine, settings)
        self.config_store = ConfigStore(self.engine)
        self.job_store = JobStore(self.engine)
        self.job_log_store = JobLogStore(self.engine)
        self.job_queue = JobQueueService(settings)
        self.catalog_store = CatalogStore.from_settings(settings)
        self.sync_service = SyncService(settings, self.job_queue.connection)
        self.integration_service = IntegrationService(timeout=settings.integration_timeout)

    def session(self) -> Session:
        """Instantiate a SQLModel session for dependencies."""

        return Session(self.engine)
