"""Runtime configuration for the catalog admin API."""
from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class AdminSettings(BaseSettings):
    """Environment-aware settings for the admin API and its worker."""

    default_fileserver_url: str = Field(
        "http://localhost:8080", description="Base URL of the media file server."
    )
    default_fileserver_prefix_path: str = Field(
        default="", description="Path prefix under which the file server publishes media."
    )
    default_listing_path: str = Field(
        default="media_list.json", description="Path of the media listing JSON on the file server."
    )
    database_url: str = Field(
        default="sqlite:///./data/catalog_admin.db",
        description="Connection URL for the admin SQLite database.",
    )
    database_echo: bool = Field(
        default=False, description="Enable SQL echo for debugging queries."
    )
    mongodb_url: str = Field(
        default="mongodb://localhost:27017",
        description="Connection URL for the MongoDB catalog.",
    )
    mongodb_timeout_ms: int = Field(
        default=5000, description="Server selection timeout for catalog operations, in milliseconds."
    )
    media_database: str = Field(default="Media", description="Database holding Movies and TV.")
    config_database: str = Field(
        default="app_config", description="Database holding the syncInfo collection."
    )
    redis_url: str = Field(
        default="redis://localhost:6379/0",
        description="Connection URL for the Redis-backed job queue and sync lock.",
    )
    redis_queue_name: str = Field(
        default="catalog-admin",
        description="RQ queue name used for admin jobs.",
    )
    queue_worker_name: str = Field(
        default="catalog-worker",
        description="Identifier used when reporting job worker executions.",
    )
    listing_timeout: float = Field(
        default=30.0, description="Timeout in seconds for downloading the file server listing."
    )
    metadata_timeout: float = Field(
        default=10.0, description="Timeout in seconds for each metadata sidecar request."
    )
    integration_timeout: float = Field(
        default=5.0, description="Timeout in seconds for SABnzbd/Radarr/Sonarr/Tdarr requests."
    )
    sync_lock_timeout: int = Field(
        default=3600,
        description="Seconds after which a held cross-process sync lock expires.",
    )
    log_level: str = Field(default="INFO", description="Root log level for entry points.")

    model_config = SettingsConfigDict(
        env_prefix="CATALOG_ADMIN_",
        env_file=".env",
        env_file_encoding="utf-8",
    )
