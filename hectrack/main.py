from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any, Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from hectrack.routes.dashboard import router as dashboard_router
from hectrack.routes.exports import router as exports_router
from hectrack.routes.projects import router as projects_router
from hectrack.routes.sync import router as sync_router
from hectrack.services.config import get_settings
from hectrack.services.logging_config import configure_logging
from hectrack.services.store import ProjectStore

logger = logging.getLogger(__name__)


def create_app(store: Optional[ProjectStore] = None) -> FastAPI:
    settings = get_settings()
    configure_logging(settings.log_level, json_output=settings.log_json)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        await app.state.store.load()
        logger.info("Project tracker started (%d projects)", len(app.state.store.snapshot()))
        yield

    app = FastAPI(title="HEC Project Tracker API", version="0.1.0", lifespan=lifespan)
    app.state.store = store or ProjectStore.from_settings(settings)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.frontend_url, "http://127.0.0.1:5173", "http://localhost:5173"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(projects_router)
    app.include_router(dashboard_router)
    app.include_router(exports_router)
    app.include_router(sync_router)

    @app.get("/api/health")
    async def health() -> dict[str, Any]:
        return {
            "status": "ok",
            "remote_enabled": settings.remote_enabled,
            "loading": app.state.store.loading,
        }

    return app


app = create_app()
