"""FastAPI service exposing catalog sync and admin endpoints."""

from .app import create_app

__all__ = ["create_app"]
