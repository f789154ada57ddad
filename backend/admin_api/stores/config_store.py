"""Database-backed configuration store for the admin API."""
from __future__ import annotations

from datetime import datetime
from threading import Lock
from typing import Any

from sqlmodel import Session

from ..db import config_from_record, read_config
from ..models import ConfigRecord
from ..schemas import ConfigModel, ConfigUpdate

# Fields that always need a value; a null update leaves them unchanged.
_REQUIRED_FIELDS = {"fileserver_url", "fileserver_prefix_path", "listing_path"}


class ConfigStore:
    """Thread-safe interface over the persisted configuration."""

    def __init__(self, engine) -> None:
        self._engine = engine
        self._lock = Lock()

    def read(self) -> ConfigModel:
        """Return the current configuration model."""

        with Session(self._engine) as session:
            return read_config(session)

    def update(self, update: ConfigUpdate) -> ConfigModel:
        """Apply a partial update to the stored configuration."""

        return self._write(_extract_update(update))

    def replace(self, config: ConfigModel) -> ConfigModel:
        """Overwrite every configurable field."""

        return self._write(config.model_dump())

    def _write(self, values: dict[str, Any]) -> ConfigModel:
        with self._lock, Session(self._engine) as session:
            record = session.get(ConfigRecord, 1)
            if record is None:
                raise RuntimeError("Configuration record missing from database")
            for key, value in values.items():
                setattr(record, key, value)
            record.updated_at = datetime.utcnow()
            session.add(record)
            session.commit()
            session.refresh(record)
            return config_from_record(record)


def _extract_update(update: ConfigUpdate) -> dict[str, Any]:
    """Keep explicitly sent fields, ignoring nulls for required ones."""

    payload = update.model_dump(exclude_unset=True)
    return {
        key: value.strip() if isinstance(value, str) else value
        for key, value in payload.items()
        if not (value is None and key in _REQUIRED_FIELDS)
    }
