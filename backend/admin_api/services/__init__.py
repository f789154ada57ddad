"""Service layer for sync runs, background jobs and integrations."""

from .integrations import IntegrationError, IntegrationNotConfiguredError, IntegrationService
from .queue import JobQueueError, JobQueueService
from .sync_service import SyncInProgressError, SyncService, UnknownRoutineError

__all__ = [
    "IntegrationError",
    "IntegrationNotConfiguredError",
    "IntegrationService",
    "JobQueueError",
    "JobQueueService",
    "SyncInProgressError",
    "SyncService",
    "UnknownRoutineError",
]
