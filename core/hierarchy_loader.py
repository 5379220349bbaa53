"""
Hierarchy Loader: rebuild the nested Course tree from the four flat tables.

Objective, Lesson and Course statuses are recomputed here from what is
attached below them, so a status that drifted in the store (out-of-band edits,
an interrupted propagation) is corrected on every load. The recomputed
values live only in the returned tree; the store is not written.
"""
from typing import Dict, List, Optional, Sequence

from core.logger import get_logger
from core.models import (
    Course,
    CourseRow,
    Lesson,
    LessonRow,
    Objective,
    ObjectiveRow,
    Resource,
    ResourceRow,
    status_from_string,
)
from core.status_engine import (
    compute_course_status,
    compute_lesson_status,
    compute_objective_status,
    pair_goals,
)
from core.study_store import COURSES, LESSONS, OBJECTIVES, RESOURCES, StudyStore

logger = get_logger("hierarchy_loader")


def _ascending(rows):
    return sorted(rows, key=lambda r: (r.created_at or "", r.id))


def resource_from_row(row: ResourceRow) -> Resource:
    return Resource(
        id=row.id,
        description=row.description,
        link=row.link,
        summary=row.summary,
        status=status_from_string(row.status),
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def build_course_tree(
    course_rows: Sequence[CourseRow],
    lesson_rows: Sequence[LessonRow],
    objective_rows: Sequence[ObjectiveRow],
    resource_rows: Sequence[ResourceRow],
) -> List[Course]:
    """
    Nest the flat rows. Courses come back newest first; everything below a
    course oldest first. Rows whose parent is missing are dropped.
    """
    course_ids = {row.id for row in course_rows}
    lesson_ids = {row.id for row in lesson_rows}
    objective_ids = {row.id for row in objective_rows}

    resources_by_objective: Dict[str, List[Resource]] = {}
    for row in _ascending(resource_rows):
        if row.objective_id not in objective_ids:
            logger.debug("Dropping orphan resource %s (objective %s)", row.id, row.objective_id)
            continue
        resources_by_objective.setdefault(row.objective_id, []).append(resource_from_row(row))

    objectives_by_lesson: Dict[str, List[Objective]] = {}
    for row in _ascending(objective_rows):
        if row.lesson_id not in lesson_ids:
            logger.debug("Dropping orphan objective %s (lesson %s)", row.id, row.lesson_id)
            continue
        resources = resources_by_objective.get(row.id, [])
        objectives_by_lesson.setdefault(row.lesson_id, []).append(
            Objective(
                id=row.id,
                title=row.title,
                summary=row.summary,
                resources=resources,
                status=compute_objective_status(resources),
                created_at=row.created_at,
                updated_at=row.updated_at,
            )
        )

    lessons_by_course: Dict[str, List[Lesson]] = {}
    for row in _ascending(lesson_rows):
        if row.course_id not in course_ids:
            logger.debug("Dropping orphan lesson %s (course %s)", row.id, row.course_id)
            continue
        objectives = objectives_by_lesson.get(row.id, [])
        goals = pair_goals(row.goals, row.goal_answers)
        lessons_by_course.setdefault(row.course_id, []).append(
            Lesson(
                id=row.id,
                title=row.title,
                summary=row.summary,
                project_questions=row.project_questions,
                goals=goals,
                objectives=objectives,
                status=compute_lesson_status(objectives, goals),
                created_at=row.created_at,
                updated_at=row.updated_at,
            )
        )

    courses = []
    for row in sorted(course_rows, key=lambda r: (r.created_at or "", r.id), reverse=True):
        lessons = lessons_by_course.get(row.id, [])
        goals = pair_goals(row.goals, row.goal_answers)
        courses.append(
            Course(
                id=row.id,
                title=row.title,
                description=row.description,
                summary=row.summary,
                goals=goals,
                lessons=lessons,
                status=compute_course_status(lessons, goals),
                created_at=row.created_at,
                updated_at=row.updated_at,
            )
        )
    return courses


def load_course_tree(store: StudyStore, refresh: bool = True) -> List[Course]:
    """Fetch all four tables from the store and nest them."""
    if refresh:
        store.refresh()
    return build_course_tree(
        store.list(COURSES, descending=True),
        store.list(LESSONS),
        store.list(OBJECTIVES),
        store.list(RESOURCES),
    )


def find_course(courses: Sequence[Course], course_id: str) -> Optional[Course]:
    return next((c for c in courses if c.id == course_id), None)
