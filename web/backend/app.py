import os
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from core.config_manager import config
from core.logger import get_logger
from core.study_service import StudyService
from web.backend.routers import courses, export, lessons, objectives, resources

logger = get_logger("api")


def create_app(service: Optional[StudyService] = None) -> FastAPI:
    app = FastAPI(title="Study Tracker API", version="1.0")

    # The app owns the one service (and its state container) for its lifetime.
    app.state.study_service = service or StudyService()
    app.state.study_service.reload()
    if app.state.study_service.state.error:
        logger.warning("Initial course load failed: %s", app.state.study_service.state.error)

    raw_origins = os.getenv("STUDY_TRACKER_ALLOWED_ORIGINS", "*")
    allow_origins = [o.strip() for o in raw_origins.split(",") if o.strip()]
    allow_credentials = "*" not in allow_origins

    app.add_middleware(
        CORSMiddleware,
        allow_origins=allow_origins,
        allow_credentials=allow_credentials,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/health")
    async def health_check():
        return {"status": "ok", "service": "Study Tracker"}

    @app.get("/api/v1/config")
    async def client_config():
        return {
            "answer_debounce_ms": config.ANSWER_DEBOUNCE_MS,
            "default_export_format": config.DEFAULT_EXPORT_FORMAT,
        }

    app.include_router(courses.router, prefix="/api/v1/courses", tags=["courses"])
    app.include_router(lessons.router, prefix="/api/v1/lessons", tags=["lessons"])
    app.include_router(objectives.router, prefix="/api/v1/objectives", tags=["objectives"])
    app.include_router(resources.router, prefix="/api/v1/resources", tags=["resources"])
    app.include_router(export.router, prefix="/api/v1/export", tags=["export"])

    logger.info("Study Tracker API ready (store: %s)", app.state.study_service.store.path)
    return app
