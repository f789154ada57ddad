"""Database models for the admin API."""
from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import Column, JSON
from sqlmodel import Field, SQLModel


class ConfigRecord(SQLModel, table=True):
    """Persisted file server and integration configuration."""

    __tablename__ = "admin_config"

    id: int | None = Field(default=None, primary_key=True)
    fileserver_url: str
    fileserver_prefix_path: str = Field(default="")
    listing_path: str = Field(default="media_list.json")
    sabnzbd_url: str | None = Field(default=None)
    sabnzbd_api_key: str | None = Field(default=None)
    radarr_url: str | None = Field(default=None)
    radarr_api_key: str | None = Field(default=None)
    sonarr_url: str | None = Field(default=None)
    sonarr_api_key: str | None = Field(default=None)
    tdarr_url: str | None = Field(default=None)
    tdarr_api_key: str | None = Field(default=None)
    created_at: datetime = Field(default_factory=datetime.utcnow, nullable=False)
    updated_at: datetime = Field(default_factory=datetime.utcnow, nullable=False)


class JobRecord(SQLModel, table=True):
    """Background job metadata persisted for orchestration."""

    __tablename__ = "admin_jobs"

    id: str = Field(primary_key=True, index=True)
    type: str = Field(index=True)
    status: str = Field(default="queued", index=True)
    progress: float = Field(default=0.0)
    worker_id: str | None = Field(default=None, index=True)
    payload: dict[str, Any] | None = Field(default=None, sa_column=Column(JSON))
    result: dict[str, Any] | None = Field(default=None, sa_column=Column(JSON))
    started_at: datetime | None = Field(default=None, index=True)
    finished_at: datetime | None = Field(default=None, index=True)
    error_message: str | None = Field(default=None)
    created_at: datetime = Field(default_factory=datetime.utcnow, nullable=False)
    updated_at: datetime = Field(default_factory=datetime.utcnow, nullable=False)


class JobLogRecord(SQLModel, table=True):
    """Structured log event associated with an admin job."""

    __tablename__ = "admin_job_logs"

    id: int | None = Field(default=None, primary_key=True)
    job_id: str = Field(index=True)
    level: str = Field(default="info", index=True)
    message: str
    context: dict[str, Any] | None = Field(
        default=None, sa_column=Column(JSON, nullable=True)
    )
    created_at: datetime = Field(default_factory=datetime.utcnow, index=True)
