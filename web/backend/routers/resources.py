from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict

from core.exceptions import StudyTrackerError
from core.models import ProgressStatus, tree_to_dict
from core.study_service import StudyService
from web.backend.dependencies import get_study_service, http_error

router = APIRouter()


class ResourceUpdateRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    description: Optional[str] = None
    link: Optional[str] = None
    summary: Optional[str] = None
    status: Optional[ProgressStatus] = None


class StatusRequest(BaseModel):
    status: ProgressStatus


def _resource_payload(service: StudyService, resource_id: str) -> dict:
    course, lesson, objective, resource = service.locate_resource(resource_id)
    return {
        "resource": tree_to_dict(resource),
        "objective_status": objective.status.value,
        "lesson_status": lesson.status.value,
        "course_status": course.status.value,
    }


@router.get("/{resource_id}")
def get_resource(
    resource_id: str,
    objective_id: Optional[str] = None,
    service: StudyService = Depends(get_study_service),
):
    try:
        course, lesson, objective, resource = service.locate_resource(
            resource_id, objective_id=objective_id
        )
    except StudyTrackerError as exc:
        raise http_error(exc)
    payload = tree_to_dict(resource)
    payload["objective_id"] = objective.id
    payload["lesson_id"] = lesson.id
    payload["course_id"] = course.id
    return {"resource": payload}


@router.patch("/{resource_id}")
def update_resource(
    resource_id: str,
    req: ResourceUpdateRequest,
    service: StudyService = Depends(get_study_service),
):
    try:
        service.update_resource(resource_id, req.model_dump(exclude_unset=True))
        return {"success": True, **_resource_payload(service, resource_id)}
    except StudyTrackerError as exc:
        raise http_error(exc)


@router.put("/{resource_id}/status")
def set_resource_status(
    resource_id: str,
    req: StatusRequest,
    service: StudyService = Depends(get_study_service),
):
    """Status toggle; ancestors are recomputed before the response is sent."""
    try:
        service.set_resource_status(resource_id, req.status)
        return {"success": True, **_resource_payload(service, resource_id)}
    except StudyTrackerError as exc:
        raise http_error(exc)


@router.delete("/{resource_id}")
def delete_resource(resource_id: str, service: StudyService = Depends(get_study_service)):
    try:
        removed = service.delete_resource(resource_id)
    except StudyTrackerError as exc:
        raise http_error(exc)
    return {"success": True, "removed": removed}
