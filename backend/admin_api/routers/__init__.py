"""Router exports for the admin API."""
from . import config, health, integrations, jobs, media, setup, sync

__all__ = ["config", "health", "integrations", "jobs", "media", "setup", "sync"]
