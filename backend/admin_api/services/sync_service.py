"""Run catalog syncs for the API and the worker without overlapping runs."""
from __future__ import annotations

import logging
import threading
from concurrent.futures import Future
from typing import Callable, TypeVar

import httpx
from redis import Redis
from redis.exceptions import LockError

from backend.catalog_sync import (
    FileServerClient,
    FileServerConfig,
    MetadataFetcher,
    SyncOrchestrator,
    SyncReport,
    SyncResults,
)
from backend.catalog_sync.orchestrator import Catalog

from ..schemas import ConfigModel
from ..settings import AdminSettings

logger = logging.getLogger(__name__)

SYNC_LOCK_NAME = "catalog-admin:sync-lock"

T = TypeVar("T")


class SyncInProgressError(RuntimeError):
    """Raised when another process holds the sync lock for too long."""


class UnknownRoutineError(KeyError):
    """Raised when a routine name does not match a sync routine."""


def file_server_from_config(config: ConfigModel) -> FileServerConfig:
    return FileServerConfig(
        base_url=config.fileserver_url,
        prefix_path=config.fileserver_prefix_path,
        listing_path=config.listing_path,
    )


class SyncService:
    """Coordinates sync runs.

    Callers in the same process that ask for a full sync while one is running
    wait for it and share its report. Runs in different processes are
    serialized through a Redis lock.
    """

    def __init__(
        self,
        settings: AdminSettings,
        connection: Redis,
        *,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._settings = settings
        self._connection = connection
        self.transport = transport
        self._lock = threading.Lock()
        self._active: Future[SyncReport] | None = None

    @property
    def running(self) -> bool:
        with self._lock:
            return self._active is not None

    def _orchestrate(self, catalog: Catalog, config: ConfigModel, run: Callable[[SyncOrchestrator], T]) -> T:
        file_server = file_server_from_config(config)
        client = FileServerClient(
            file_server, timeout=self._settings.listing_timeout, transport=self.transport
        )
        redis_lock = self._connection.lock(
            SYNC_LOCK_NAME,
            timeout=self._settings.sync_lock_timeout,
            blocking_timeout=self._settings.sync_lock_timeout,
        )
        try:
            acquired = redis_lock.acquire()
        except LockError as exc:
            raise SyncInProgressError("Unable to acquire the sync lock") from exc
        if not acquired:
            raise SyncInProgressError("Another sync is still running")

        try:
            with MetadataFetcher(
                file_server, timeout=self._settings.metadata_timeout, transport=self.transport
            ) as fetcher:
                return run(SyncOrchestrator(catalog, client, fetcher))
        finally:
            try:
                redis_lock.release()
            except LockError:
                logger.warning("Sync lock expired before the sync finished")

    def run_full_sync(self, catalog: Catalog, config: ConfigModel) -> SyncReport:
        """Run a full sync, or wait for the one already running in this process."""

        with self._lock:
            active = self._active
            if active is None:
                active = self._active = Future()
                owner = True
            else:
                owner = False

        if not owner:
            logger.info("Sync already running, waiting for its result")
            return active.result()

        try:
            report = self._orchestrate(catalog, config, lambda orchestrator: orchestrator.run_full_sync())
        except Exception as exc:
            active.set_exception(exc)
            raise
        else:
            active.set_result(report)
            return report
        finally:
            with self._lock:
                self._active = None

    def run_routine(self, catalog: Catalog, config: ConfigModel, name: str) -> SyncResults:
        """Run a single sync routine such as ``captions`` or ``video_url``."""

        routine = name.replace("-", "_")
        if routine not in SyncOrchestrator.ROUTINES:
            raise UnknownRoutineError(name)
        return self._orchestrate(catalog, config, lambda orchestrator: orchestrator.run_routine(routine))
