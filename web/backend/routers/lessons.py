from typing import List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict

from core.exceptions import StudyTrackerError
from core.models import tree_to_dict
from core.statistics import get_lesson_stats
from core.study_service import StudyService
from web.backend.dependencies import get_study_service, http_error

router = APIRouter()


class LessonUpdateRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    title: Optional[str] = None
    summary: Optional[str] = None
    project_questions: Optional[str] = None
    goals: Optional[List[str]] = None
    goal_answers: Optional[List[str]] = None


class ObjectiveCreateRequest(BaseModel):
    title: str
    summary: str = ""


class GoalAnswerRequest(BaseModel):
    answer: str = ""


def _lesson_payload(service: StudyService, lesson_id: str) -> dict:
    course, lesson = service.locate_lesson(lesson_id)
    payload = tree_to_dict(lesson)
    payload["course_id"] = course.id
    payload["stats"] = get_lesson_stats(lesson).to_dict()
    return payload


@router.get("/{lesson_id}")
def get_lesson(
    lesson_id: str,
    course_id: Optional[str] = None,
    service: StudyService = Depends(get_study_service),
):
    """`course_id` (optional) lets a 404 point back at the course page."""
    try:
        course, lesson = service.locate_lesson(lesson_id, course_id=course_id)
    except StudyTrackerError as exc:
        raise http_error(exc)
    payload = tree_to_dict(lesson)
    payload["course_id"] = course.id
    payload["stats"] = get_lesson_stats(lesson).to_dict()
    return {"lesson": payload}


@router.patch("/{lesson_id}")
def update_lesson(
    lesson_id: str,
    req: LessonUpdateRequest,
    service: StudyService = Depends(get_study_service),
):
    try:
        service.update_lesson(lesson_id, req.model_dump(exclude_unset=True))
        return {"success": True, "lesson": _lesson_payload(service, lesson_id)}
    except StudyTrackerError as exc:
        raise http_error(exc)


@router.delete("/{lesson_id}")
def delete_lesson(lesson_id: str, service: StudyService = Depends(get_study_service)):
    try:
        removed = service.delete_lesson(lesson_id)
    except StudyTrackerError as exc:
        raise http_error(exc)
    return {"success": True, "removed": removed}


@router.put("/{lesson_id}/goals/{index}/answer")
def answer_lesson_goal(
    lesson_id: str,
    index: int,
    req: GoalAnswerRequest,
    service: StudyService = Depends(get_study_service),
):
    try:
        service.set_lesson_goal_answer(lesson_id, index, req.answer)
        return {"success": True, "lesson": _lesson_payload(service, lesson_id)}
    except StudyTrackerError as exc:
        raise http_error(exc)


@router.post("/{lesson_id}/objectives", status_code=201)
def create_objective(
    lesson_id: str,
    req: ObjectiveCreateRequest,
    service: StudyService = Depends(get_study_service),
):
    try:
        row = service.create_objective(lesson_id, title=req.title, summary=req.summary)
        return {"success": True, "objective": tree_to_dict(service.get_objective(row.id))}
    except StudyTrackerError as exc:
        raise http_error(exc)
