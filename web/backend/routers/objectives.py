from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict

from core.exceptions import StudyTrackerError
from core.models import ProgressStatus, tree_to_dict
from core.study_service import StudyService
from web.backend.dependencies import get_study_service, http_error

router = APIRouter()


class ObjectiveUpdateRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    title: Optional[str] = None
    summary: Optional[str] = None


class ResourceCreateRequest(BaseModel):
    description: str
    link: str = ""
    summary: str = ""
    status: ProgressStatus = ProgressStatus.NOT_STARTED


@router.get("/{objective_id}")
def get_objective(
    objective_id: str,
    lesson_id: Optional[str] = None,
    service: StudyService = Depends(get_study_service),
):
    try:
        course, lesson, objective = service.locate_objective(objective_id, lesson_id=lesson_id)
    except StudyTrackerError as exc:
        raise http_error(exc)
    payload = tree_to_dict(objective)
    payload["lesson_id"] = lesson.id
    payload["course_id"] = course.id
    return {"objective": payload}


@router.patch("/{objective_id}")
def update_objective(
    objective_id: str,
    req: ObjectiveUpdateRequest,
    service: StudyService = Depends(get_study_service),
):
    try:
        service.update_objective(objective_id, req.model_dump(exclude_unset=True))
        return {"success": True, "objective": tree_to_dict(service.get_objective(objective_id))}
    except StudyTrackerError as exc:
        raise http_error(exc)


@router.delete("/{objective_id}")
def delete_objective(objective_id: str, service: StudyService = Depends(get_study_service)):
    try:
        removed = service.delete_objective(objective_id)
    except StudyTrackerError as exc:
        raise http_error(exc)
    return {"success": True, "removed": removed}


@router.post("/{objective_id}/resources", status_code=201)
def create_resource(
    objective_id: str,
    req: ResourceCreateRequest,
    service: StudyService = Depends(get_study_service),
):
    try:
        row = service.create_resource(
            objective_id,
            description=req.description,
            link=req.link,
            summary=req.summary,
            status=req.status,
        )
        return {"success": True, "resource": tree_to_dict(service.get_resource(row.id))}
    except StudyTrackerError as exc:
        raise http_error(exc)
