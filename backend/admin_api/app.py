"""Application factory for the catalog admin API."""
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .routers import config, health, integrations, jobs, media, setup, sync
from .settings import AdminSettings
from .state import AppState


def create_app(settings: AdminSettings | None = None) -> FastAPI:
    """Build and configure the FastAPI application."""

    resolved_settings = settings or AdminSettings()
    app_state = AppState(settings=resolved_settings)

    app = FastAPI(title="Catalog Admin API", version="0.1.0")
    app.state.app_state = app_state
    app.state.settings = app_state.settings

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    for router in (
        setup.router,
        health.router,
        config.router,
        jobs.router,
        sync.router,
        media.router,
        integrations.router,
    ):
        app.include_router(router)

    return app
