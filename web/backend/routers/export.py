from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import PlainTextResponse

from core.exceptions import StudyTrackerError
from core.export import (
    export_filename,
    format_course_summary,
    format_lesson_summary,
    format_resource_summary,
    media_type,
    normalize_format,
)
from core.study_service import StudyService
from web.backend.dependencies import get_study_service, http_error

router = APIRouter()


def _download(content: str, title: str, fmt: str) -> PlainTextResponse:
    return PlainTextResponse(
        content,
        media_type=media_type(fmt),
        headers={"Content-Disposition": f'attachment; filename="{export_filename(title, fmt)}"'},
    )


def _resolve_format(fmt: Optional[str]) -> str:
    try:
        return normalize_format(fmt)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))


@router.get("/courses/{course_id}")
def export_course(
    course_id: str,
    format: Optional[str] = None,
    service: StudyService = Depends(get_study_service),
):
    fmt = _resolve_format(format)
    try:
        course = service.get_course(course_id)
    except StudyTrackerError as exc:
        raise http_error(exc)
    return _download(format_course_summary(course, fmt), course.title, fmt)


@router.get("/lessons/{lesson_id}")
def export_lesson(
    lesson_id: str,
    format: Optional[str] = None,
    service: StudyService = Depends(get_study_service),
):
    fmt = _resolve_format(format)
    try:
        lesson = service.get_lesson(lesson_id)
    except StudyTrackerError as exc:
        raise http_error(exc)
    return _download(format_lesson_summary(lesson, fmt), lesson.title, fmt)


@router.get("/resources/{resource_id}")
def export_resource(
    resource_id: str,
    format: Optional[str] = None,
    service: StudyService = Depends(get_study_service),
):
    fmt = _resolve_format(format)
    try:
        resource = service.get_resource(resource_id)
    except StudyTrackerError as exc:
        raise http_error(exc)
    return _download(format_resource_summary(resource, fmt), resource.description, fmt)
