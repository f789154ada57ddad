"""Pydantic models exposed by the admin API."""
from __future__ import annotations

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field


class ComponentHealthStatus(BaseModel):
    """Connectivity status of a backing service."""

    status: Literal["ok", "error"] = Field(default="ok")
    detail: str | None = Field(
        default=None, description="Optional diagnostic message when the service is unavailable."
    )


class HealthStatus(BaseModel):
    """Service health payload."""

    status: Literal["ok"] = Field(default="ok")
    version: str = Field(default="0.1.0", description="Semantic version of the API service.")
    queue: ComponentHealthStatus = Field(
        default_factory=ComponentHealthStatus,
        description="Health information for the background job queue.",
    )
    catalog: ComponentHealthStatus = Field(
        default_factory=ComponentHealthStatus,
        description="Health information for the MongoDB catalog.",
    )


class ConfigModel(BaseModel):
    """Represents the persisted file server and integration configuration."""

    fileserver_url: str = Field(..., description="Base URL of the media file server.")
    fileserver_prefix_path: str = Field(default="", description="Prefix path for file server assets.")
    listing_path: str = Field(default="media_list.json", description="Path of the media listing JSON.")
    sabnzbd_url: str | None = Field(default=None)
    sabnzbd_api_key: str | None = Field(default=None)
    radarr_url: str | None = Field(default=None)
    radarr_api_key: str | None = Field(default=None)
    sonarr_url: str | None = Field(default=None)
    sonarr_api_key: str | None = Field(default=None)
    tdarr_url: str | None = Field(default=None)
    tdarr_api_key: str | None = Field(default=None)


class ConfigUpdate(BaseModel):
    """Subset of configuration fields allowed to be updated at runtime.

    Integration URLs and keys may be cleared by sending ``null``.
    """

    fileserver_url: str | None = Field(default=None)
    fileserver_prefix_path: str | None = Field(default=None)
    listing_path: str | None = Field(default=None)
    sabnzbd_url: str | None = Field(default=None)
    sabnzbd_api_key: str | None = Field(default=None)
    radarr_url: str | None = Field(default=None)
    radarr_api_key: str | None = Field(default=None)
    sonarr_url: str | None = Field(default=None)
    sonarr_api_key: str | None = Field(default=None)
    tdarr_url: str | None = Field(default=None)
    tdarr_api_key: str | None = Field(default=None)


class JobModel(BaseModel):
    """Represents a background admin job."""

    id: str
    type: str
    status: Literal["queued", "running", "completed", "failed", "cancelled"]
    progress: float = Field(ge=0, le=1)
    worker_id: str | None = Field(
        default=None, description="Identifier for the worker processing the job."
    )
    payload: dict[str, Any] | None = Field(
        default=None, description="Optional JSON payload forwarded to the runner."
    )
    result: dict[str, Any] | None = Field(
        default=None, description="Summary produced by the job when it completes."
    )
    created_at: datetime = Field(description="Timestamp when the job record was created.")
    updated_at: datetime = Field(description="Timestamp when the job record was last updated.")
    started_at: datetime | None = None
    finished_at: datetime | None = None
    error_message: str | None = None
    duration_seconds: float | None = Field(
        default=None,
        description="Execution duration calculated from started and finished timestamps.",
    )


class SetupRequest(ConfigModel):
    """Payload accepted by the initial setup endpoint."""

    run_initial_sync: bool = Field(
        default=False,
        description="Whether to queue a full catalog sync after persisting configuration.",
    )


class SetupResponse(BaseModel):
    """Response returned after performing initial setup."""

    config: ConfigModel = Field(description="Persisted configuration state after setup.")
    job: JobModel | None = Field(
        default=None,
        description="Sync job queued as part of setup when run_initial_sync is enabled.",
    )


class JobMetricsModel(BaseModel):
    """Aggregate statistics for background job processing."""

    total: int = Field(description="Total number of job records persisted in the store.")
    status_counts: dict[str, int] = Field(default_factory=dict)
    type_counts: dict[str, int] = Field(default_factory=dict)
    average_duration_seconds: float | None = Field(
        default=None,
        description="Average duration in seconds for jobs with start and finish timestamps.",
    )
    last_finished_at: datetime | None = Field(default=None)
    queue_depth: int = Field(
        default=0,
        description="Number of jobs currently waiting in the Redis queue.",
    )


class JobLogCreate(BaseModel):
    """Payload used to append a new job log entry."""

    level: Literal["debug", "info", "warning", "error"] = Field(
        default="info", description="Severity level of the log entry."
    )
    message: str = Field(..., description="Human-readable log message.")
    context: dict[str, Any] | None = Field(
        default=None,
        description="Optional structured context payload for the log entry.",
    )


class JobLogModel(JobLogCreate):
    """Represents a persisted job log entry."""

    id: int
    job_id: str
    created_at: datetime


class JobRunRequest(BaseModel):
    """Payload used to enqueue a new admin job."""

    type: str = Field(..., description="Job type identifier, e.g. sync.")
    payload: dict[str, Any] | None = Field(
        default=None, description="Optional JSON payload forwarded to the job runner."
    )


class JobCancelRequest(BaseModel):
    """Payload used when cancelling a job."""

    reason: str | None = Field(
        default=None, description="Optional reason recorded with the cancellation."
    )


class SyncResultsModel(BaseModel):
    """Outcome of one sync routine."""

    family: str
    processed: dict[str, list[str]] = Field(
        default_factory=dict, description="Titles written, grouped by movies and tv."
    )
    errors: dict[str, list[dict[str, str]]] = Field(
        default_factory=dict, description="Entities skipped, with the reason."
    )
    writes: int = 0


class SyncResponse(BaseModel):
    """Response returned by a full sync."""

    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    message: str = "Sync completed"
    start_time: datetime = Field(alias="startTime")
    duration: float = Field(description="Duration of the sync in seconds.")
    missing_media: dict[str, Any] = Field(alias="missingMedia")
    missing_mp4: dict[str, Any] = Field(alias="missingMp4")
    results: list[SyncResultsModel] = Field(default_factory=list)


class LastSyncModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    last_sync_time: datetime | None = Field(default=None, alias="lastSyncTime")


MediaTypeOption = Literal["movie", "tv"]


class MediaSummaryModel(BaseModel):
    """Catalog entry summary for the admin media listing."""

    title: str
    media_type: MediaTypeOption
    poster_url: str | None = None
    video_url: str | None = None
    season_count: int = 0
    episode_count: int = 0
    metadata_updated: str | None = None


class MediaListModel(BaseModel):
    """Paginated list container for media responses."""

    items: list[MediaSummaryModel]
    total: int
    page: int
    page_size: int


class MediaMetricsModel(BaseModel):
    """Aggregate statistics over the catalog."""

    movies: int = 0
    shows: int = 0
    seasons: int = 0
    episodes: int = 0
    movies_without_video: int = 0
    episodes_without_video: int = 0
    movies_without_captions: int = 0
    last_sync_time: datetime | None = None
