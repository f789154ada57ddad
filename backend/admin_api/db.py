"""Database helpers for the admin API."""
from __future__ import annotations

from pathlib import Path

from sqlalchemy.engine import Engine
from sqlmodel import Session, SQLModel, create_engine

from .models import ConfigRecord
from .schemas import ConfigModel
from .settings import AdminSettings


def _ensure_sqlite_path(database_url: str) -> None:
    """Create parent directories when using a SQLite URL."""

    if database_url.startswith("sqlite:///"):
        path_part = database_url.removeprefix("sqlite:///").split("?")[0]
        if path_part:
            Path(path_part).parent.mkdir(parents=True, exist_ok=True)


def create_engine_from_settings(settings: AdminSettings) -> Engine:
    """Create a SQLModel engine using admin settings."""

    _ensure_sqlite_path(settings.database_url)
    connect_args = {"check_same_thread": False} if settings.database_url.startswith("sqlite") else {}
    return create_engine(settings.database_url, echo=settings.database_echo, connect_args=connect_args)


def init_database(engine: Engine, settings: AdminSettings) -> None:
    """Create tables and seed the configuration row from settings."""

    SQLModel.metadata.create_all(engine)
    with Session(engine) as session:
        if session.get(ConfigRecord, 1) is None:
            session.add(
                ConfigRecord(
                    id=1,
                    fileserver_url=settings.default_fileserver_url,
                    fileserver_prefix_path=settings.default_fileserver_prefix_path,
                    listing_path=settings.default_listing_path,
                )
            )
            session.commit()


def config_from_record(record: ConfigRecord) -> ConfigModel:
    return ConfigModel.model_validate(record.model_dump(exclude={"id", "created_at", "updated_at"}))


def read_config(session: Session) -> ConfigModel:
    """Fetch the persisted configuration as a Pydantic model."""

    record = session.get(ConfigRecord, 1)
    if record is None:
        raise RuntimeError("Configuration record missing from database")
    return config_from_record(record)
