from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, ConfigDict

from core.exceptions import StudyTrackerError
from core.models import tree_to_dict
from core.statistics import get_course_stats
from core.study_service import StudyService
from web.backend.dependencies import get_study_service, http_error

router = APIRouter()


class CourseCreateRequest(BaseModel):
    title: str
    description: str = ""
    summary: str = ""
    goals: List[str] = []
    goal_answers: List[str] = []


class CourseUpdateRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    title: Optional[str] = None
    description: Optional[str] = None
    summary: Optional[str] = None
    goals: Optional[List[str]] = None
    goal_answers: Optional[List[str]] = None


class LessonCreateRequest(BaseModel):
    title: str
    summary: str = ""
    project_questions: str = ""
    goals: List[str] = []
    goal_answers: List[str] = []


class GoalAnswerRequest(BaseModel):
    answer: str = ""


def _course_payload(service: StudyService, course_id: str) -> dict:
    course = service.get_course(course_id)
    payload = tree_to_dict(course)
    payload["stats"] = get_course_stats(course).to_dict()
    return payload


@router.get("")
def list_courses(service: StudyService = Depends(get_study_service)):
    """
    Full tree, newest course first. A failed load still answers 200 with
    `error` set and the last known courses, so the client can offer a retry.
    `loading` is True while another request's mutation is being applied.
    """
    courses = service.list_courses()
    items = []
    for course in courses:
        item = tree_to_dict(course)
        item["stats"] = get_course_stats(course).to_dict()
        items.append(item)
    return {
        "courses": items,
        "count": len(items),
        "loading": service.state.loading,
        "error": service.state.error,
    }


@router.post("/reload")
def reload_courses(service: StudyService = Depends(get_study_service)):
    ok = service.reload()
    return {"success": ok, "error": service.state.error, "count": len(service.state.courses)}


@router.post("", status_code=201)
def create_course(req: CourseCreateRequest, service: StudyService = Depends(get_study_service)):
    try:
        row = service.create_course(
            title=req.title,
            description=req.description,
            summary=req.summary,
            goals=req.goals,
            goal_answers=req.goal_answers,
        )
        return {"success": True, "course": _course_payload(service, row.id)}
    except StudyTrackerError as exc:
        raise http_error(exc)


@router.get("/{course_id}")
def get_course(course_id: str, service: StudyService = Depends(get_study_service)):
    try:
        return {"course": _course_payload(service, course_id)}
    except StudyTrackerError as exc:
        raise http_error(exc)


@router.get("/{course_id}/stats")
def get_course_stats_route(course_id: str, service: StudyService = Depends(get_study_service)):
    try:
        return {"course_id": course_id, "stats": service.course_stats(course_id).to_dict()}
    except StudyTrackerError as exc:
        raise http_error(exc)


@router.patch("/{course_id}")
def update_course(
    course_id: str,
    req: CourseUpdateRequest,
    service: StudyService = Depends(get_study_service),
):
    try:
        service.update_course(course_id, req.model_dump(exclude_unset=True))
        return {"success": True, "course": _course_payload(service, course_id)}
    except StudyTrackerError as exc:
        raise http_error(exc)


@router.delete("/{course_id}")
def delete_course(course_id: str, service: StudyService = Depends(get_study_service)):
    try:
        removed = service.delete_course(course_id)
    except StudyTrackerError as exc:
        raise http_error(exc)
    return {"success": True, "removed": removed}


@router.put("/{course_id}/goals/{index}/answer")
def answer_course_goal(
    course_id: str,
    index: int,
    req: GoalAnswerRequest,
    service: StudyService = Depends(get_study_service),
):
    try:
        service.set_course_goal_answer(course_id, index, req.answer)
        return {"success": True, "course": _course_payload(service, course_id)}
    except StudyTrackerError as exc:
        raise http_error(exc)


@router.post("/{course_id}/lessons", status_code=201)
def create_lesson(
    course_id: str,
    req: LessonCreateRequest,
    service: StudyService = Depends(get_study_service),
):
    try:
        row = service.create_lesson(
            course_id,
            title=req.title,
            summary=req.summary,
            project_questions=req.project_questions,
            goals=req.goals,
            goal_answers=req.goal_answers,
        )
        return {"success": True, "lesson": tree_to_dict(service.get_lesson(row.id))}
    except StudyTrackerError as exc:
        raise http_error(exc)


@router.get("/{course_id}/lessons/{lesson_id}")
def get_course_lesson(
    course_id: str,
    lesson_id: str,
    service: StudyService = Depends(get_study_service),
):
    try:
        course, lesson = service.locate_lesson(lesson_id, course_id=course_id)
    except StudyTrackerError as exc:
        raise http_error(exc)
    if course.id != course_id:
        raise HTTPException(
            status_code=404,
            detail={
                "message": f"Lesson {lesson_id} does not belong to course {course_id}",
                "kind": "lesson",
                "redirect": f"/courses/{course_id}",
            },
        )
    return {"lesson": tree_to_dict(lesson), "course_id": course.id}
