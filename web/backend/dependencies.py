"""
Request-scoped access to the application's StudyService and the mapping of
domain errors to HTTP responses.
"""
from fastapi import HTTPException, Request

from core.exceptions import (
    LoadError,
    NodeNotFoundError,
    PersistenceError,
    StudyTrackerError,
    ValidationError,
)
from core.logger import get_logger
from core.study_service import StudyService

logger = get_logger("api")


def get_study_service(request: Request) -> StudyService:
    return request.app.state.study_service


def http_error(exc: StudyTrackerError) -> HTTPException:
    if isinstance(exc, NodeNotFoundError):
        return HTTPException(
            status_code=404,
            detail={"message": exc.message, "kind": exc.kind, "redirect": exc.redirect},
        )
    if isinstance(exc, ValidationError):
        return HTTPException(status_code=400, detail=exc.message)
    if isinstance(exc, (PersistenceError, LoadError)):
        return HTTPException(status_code=503, detail=exc.get_user_message())
    logger.exception("Unexpected study tracker error")
    return HTTPException(status_code=500, detail=exc.get_user_message())
