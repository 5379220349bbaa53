"""
Study service: every create/update/delete of a course, lesson, objective or
resource goes through here.

Each mutation writes to the store, then walks up the tree recomputing and
persisting derived status (objective -> lesson -> course), then reloads the
StudyState so readers see what the store actually holds.
"""
import threading
import uuid
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, List, Optional, Tuple

from core.exceptions import LoadError, NodeNotFoundError, PersistenceError, ValidationError
from core.logger import get_logger
from core.models import (
    Course,
    CourseRow,
    Lesson,
    LessonRow,
    Objective,
    ObjectiveRow,
    ProgressStatus,
    Resource,
    ResourceRow,
)
from core.statistics import get_course_stats
from core.status_engine import (
    compute_course_status,
    compute_lesson_status,
    compute_objective_status,
    pad_answers,
)
from core.study_state import StudyState
from core.study_store import COURSES, KIND_BY_TABLE, LESSONS, OBJECTIVES, RESOURCES, StudyStore

logger = get_logger("study_service")

EDITABLE_FIELDS = {
    COURSES: {"title", "description", "summary", "goals", "goal_answers"},
    LESSONS: {"title", "summary", "project_questions", "goals", "goal_answers"},
    OBJECTIVES: {"title", "summary"},
    RESOURCES: {"description", "link", "summary", "status"},
}

# Client routes for the listing pages of each parent level.
LISTING_ROUTES = {
    COURSES: "/courses/{id}",
    LESSONS: "/lessons/{id}",
    OBJECTIVES: "/objectives/{id}",
}

# Field that must stay non-blank on each table.
REQUIRED_TEXT = {
    COURSES: "title",
    LESSONS: "title",
    OBJECTIVES: "title",
    RESOURCES: "description",
}


class StudyService:
    """Application service for the course tree."""

    def __init__(self, store: Optional[StudyStore] = None, state: Optional[StudyState] = None):
        self.store = store or StudyStore()
        self.state = state or StudyState(self.store)
        self._last_timestamp: Optional[datetime] = None
        # Held across write, propagation and reload of one mutation.
        self._lock = threading.RLock()

    # ---------------------------------------------------------------------
    # Helpers
    # ---------------------------------------------------------------------
    @staticmethod
    def _new_id(prefix: str) -> str:
        return f"{prefix}_{uuid.uuid4().hex[:12]}"

    def _now(self) -> str:
        # Strictly increasing so creation order is never a tie.
        with self._lock:
            now = datetime.now()
            if self._last_timestamp is not None and now <= self._last_timestamp:
                now = self._last_timestamp + timedelta(microseconds=1)
            self._last_timestamp = now
        return now.isoformat(timespec="microseconds")

    def _require_row(self, table: str, node_id: str):
        row = self.store.get(table, node_id)
        if row is None:
            raise NodeNotFoundError(KIND_BY_TABLE[table], node_id)
        return row

    def _redirect_for(self, parent_table: str, parent_id: Optional[str]) -> str:
        """Nearest listing still present: the given parent, else the course list."""
        if parent_id and self.store.get(parent_table, parent_id) is not None:
            return LISTING_ROUTES[parent_table].format(id=parent_id)
        return "/courses"

    @staticmethod
    def _require_text(table: str, value: Any) -> str:
        text = str(value or "").strip()
        if not text:
            raise ValidationError(f"{KIND_BY_TABLE[table].capitalize()} {REQUIRED_TEXT[table]} must not be empty")
        return text

    @staticmethod
    def _clean_goals(goals: Optional[List[Any]]) -> List[str]:
        return [str(g) for g in (goals or [])]

    def _clean_changes(self, table: str, changes: Dict[str, Any]) -> Dict[str, Any]:
        kind = KIND_BY_TABLE[table]
        if "status" in changes and table != RESOURCES:
            raise ValidationError(
                f"{kind.capitalize()} status is derived from its children and cannot be set directly"
            )
        unknown = set(changes) - EDITABLE_FIELDS[table]
        if unknown:
            raise ValidationError(f"Unknown {kind} fields: {', '.join(sorted(unknown))}")

        cleaned = {k: v for k, v in changes.items() if v is not None}
        required = REQUIRED_TEXT[table]
        if required in cleaned:
            cleaned[required] = self._require_text(table, cleaned[required])
        if "status" in cleaned:
            cleaned["status"] = self._parse_status(cleaned["status"])
        for key in ("goals", "goal_answers"):
            if key in cleaned:
                cleaned[key] = self._clean_goals(cleaned[key])
        return cleaned

    @staticmethod
    def _parse_status(raw: Any) -> str:
        value = raw.value if isinstance(raw, ProgressStatus) else str(raw or "").strip().lower()
        try:
            return ProgressStatus(value).value
        except ValueError:
            raise ValidationError(
                f"Invalid status '{raw}'; expected one of not_started, in_progress, completed"
            )

    def _mutate(self, action: str, operation: Callable[[], Any]) -> Any:
        """
        Run one mutation and always reload the state afterwards, so a failed
        write never leaves stale data on display.

        Mutations are serialized: a second request waits until the first
        has written, propagated and reloaded. `state.loading` stays True for
        the whole run.
        """
        with self._lock:
            self.state.loading = True
            try:
                result = operation()
            except PersistenceError as exc:
                logger.error("%s failed: %s", action, exc.message)
                raise
            finally:
                self.state.reload()
        logger.info("%s", action)
        return result

    # ---------------------------------------------------------------------
    # Status propagation
    # ---------------------------------------------------------------------
    def _store_status(self, table: str, row, status: ProgressStatus) -> None:
        if row.status == status.value:
            return
        logger.debug(
            "%s %s status %s -> %s", KIND_BY_TABLE[table], row.id, row.status, status.value
        )
        self.store.update(table, row.id, {"status": status.value, "updated_at": self._now()})

    def _propagate(self, level: str, node_id: Optional[str]) -> None:
        """
        Recompute derived status starting at `level` (objectives, lessons or
        courses) for `node_id`, then every ancestor above it, in order.

        Each step reads the current children from the store. A missing node
        ends the walk; a store failure aborts it.
        """
        if level == OBJECTIVES and node_id:
            objective = self.store.get(OBJECTIVES, node_id)
            if objective is None:
                return
            resources = self.store.list(RESOURCES, parent_id=objective.id)
            self._store_status(OBJECTIVES, objective, compute_objective_status(resources))
            level, node_id = LESSONS, objective.lesson_id

        if level == LESSONS and node_id:
            lesson = self.store.get(LESSONS, node_id)
            if lesson is None:
                return
            objectives = self.store.list(OBJECTIVES, parent_id=lesson.id)
            status = compute_lesson_status(objectives, lesson.goals, lesson.goal_answers)
            self._store_status(LESSONS, lesson, status)
            level, node_id = COURSES, lesson.course_id

        if level == COURSES and node_id:
            course = self.store.get(COURSES, node_id)
            if course is None:
                return
            lessons = self.store.list(LESSONS, parent_id=course.id)
            status = compute_course_status(lessons, course.goals, course.goal_answers)
            self._store_status(COURSES, course, status)

    # ---------------------------------------------------------------------
    # Query operations
    # ---------------------------------------------------------------------
    def _tree(self) -> List[Course]:
        self.state.ensure_loaded()
        if not self.state.loaded_once:
            raise LoadError(self.state.error or "Courses have not been loaded")
        return self.state.courses

    def list_courses(self) -> List[Course]:
        self.state.ensure_loaded()
        return self.state.courses

    def reload(self) -> bool:
        with self._lock:
            return self.state.reload()

    def get_course(self, course_id: str) -> Course:
        self._tree()
        course = self.state.get_course(course_id)
        if course is None:
            raise NodeNotFoundError("course", course_id, redirect="/courses")
        return course

    def locate_lesson(self, lesson_id: str, course_id: Optional[str] = None) -> Tuple[Course, Lesson]:
        for course in self._tree():
            for lesson in course.lessons:
                if lesson.id == lesson_id:
                    return course, lesson
        raise NodeNotFoundError("lesson", lesson_id, redirect=self._redirect_for(COURSES, course_id))

    def get_lesson(self, lesson_id: str, course_id: Optional[str] = None) -> Lesson:
        return self.locate_lesson(lesson_id, course_id)[1]

    def locate_objective(self, objective_id: str, lesson_id: Optional[str] = None) -> Tuple[Course, Lesson, Objective]:
        for course in self._tree():
            for lesson in course.lessons:
                for objective in lesson.objectives:
                    if objective.id == objective_id:
                        return course, lesson, objective
        raise NodeNotFoundError(
            "objective", objective_id, redirect=self._redirect_for(LESSONS, lesson_id)
        )

    def get_objective(self, objective_id: str, lesson_id: Optional[str] = None) -> Objective:
        return self.locate_objective(objective_id, lesson_id)[2]

    def locate_resource(self, resource_id: str, objective_id: Optional[str] = None) -> Tuple[Course, Lesson, Objective, Resource]:
        for course in self._tree():
            for lesson in course.lessons:
                for objective in lesson.objectives:
                    for resource in objective.resources:
                        if resource.id == resource_id:
                            return course, lesson, objective, resource
        raise NodeNotFoundError(
            "resource", resource_id, redirect=self._redirect_for(OBJECTIVES, objective_id)
        )

    def get_resource(self, resource_id: str, objective_id: Optional[str] = None) -> Resource:
        return self.locate_resource(resource_id, objective_id)[3]

    def course_stats(self, course_id: str):
        return get_course_stats(self.get_course(course_id))

    # ---------------------------------------------------------------------
    # Course commands
    # ---------------------------------------------------------------------
    def create_course(
        self,
        title: str,
        description: str = "",
        summary: str = "",
        goals: Optional[List[str]] = None,
        goal_answers: Optional[List[str]] = None,
    ) -> CourseRow:
        now = self._now()
        row = CourseRow(
            id=self._new_id("course"),
            title=self._require_text(COURSES, title),
            description=description or "",
            summary=summary or "",
            goals=self._clean_goals(goals),
            goal_answers=self._clean_goals(goal_answers),
            status=ProgressStatus.NOT_STARTED.value,
            created_at=now,
            updated_at=now,
        )

        def operation():
            self.store.insert(COURSES, row)
            self._propagate(COURSES, row.id)
            return self.store.get(COURSES, row.id)

        return self._mutate(f"Created course {row.id}", operation)

    def update_course(self, course_id: str, changes: Dict[str, Any]) -> CourseRow:
        cleaned = self._clean_changes(COURSES, changes)
        self._require_row(COURSES, course_id)

        def operation():
            self.store.update(COURSES, course_id, {**cleaned, "updated_at": self._now()})
            self._propagate(COURSES, course_id)
            return self.store.get(COURSES, course_id)

        return self._mutate(f"Updated course {course_id}", operation)

    def delete_course(self, course_id: str) -> int:
        self._require_row(COURSES, course_id)
        return self._mutate(
            f"Deleted course {course_id}", lambda: self.store.delete(COURSES, course_id)
        )

    def set_course_goal_answer(self, course_id: str, index: int, answer: str) -> CourseRow:
        course = self._require_row(COURSES, course_id)
        answers = self._answers_with(course.goals, course.goal_answers, index, answer)

        def operation():
            self.store.update(COURSES, course_id, {"goal_answers": answers, "updated_at": self._now()})
            self._propagate(COURSES, course_id)
            return self.store.get(COURSES, course_id)

        return self._mutate(f"Answered goal {index} of course {course_id}", operation)

    @staticmethod
    def _answers_with(goals: List[str], answers: List[str], index: int, answer: str) -> List[str]:
        if index < 0 or index >= len(goals):
            raise ValidationError(f"Goal index {index} out of range (0..{len(goals) - 1})")
        padded = pad_answers(answers, len(goals))
        padded[index] = answer or ""
        return padded

    # ---------------------------------------------------------------------
    # Lesson commands
    # ---------------------------------------------------------------------
    def create_lesson(
        self,
        course_id: str,
        title: str,
        summary: str = "",
        project_questions: str = "",
        goals: Optional[List[str]] = None,
        goal_answers: Optional[List[str]] = None,
    ) -> LessonRow:
        self._require_row(COURSES, course_id)
        now = self._now()
        row = LessonRow(
            id=self._new_id("lesson"),
            course_id=course_id,
            title=self._require_text(LESSONS, title),
            summary=summary or "",
            project_questions=project_questions or "",
            goals=self._clean_goals(goals),
            goal_answers=self._clean_goals(goal_answers),
            status=ProgressStatus.NOT_STARTED.value,
            created_at=now,
            updated_at=now,
        )

        def operation():
            self.store.insert(LESSONS, row)
            self._propagate(LESSONS, row.id)
            return self.store.get(LESSONS, row.id)

        return self._mutate(f"Created lesson {row.id} in course {course_id}", operation)

    def update_lesson(self, lesson_id: str, changes: Dict[str, Any]) -> LessonRow:
        cleaned = self._clean_changes(LESSONS, changes)
        self._require_row(LESSONS, lesson_id)

        def operation():
            self.store.update(LESSONS, lesson_id, {**cleaned, "updated_at": self._now()})
            self._propagate(LESSONS, lesson_id)
            return self.store.get(LESSONS, lesson_id)

        return self._mutate(f"Updated lesson {lesson_id}", operation)

    def delete_lesson(self, lesson_id: str) -> int:
        lesson = self._require_row(LESSONS, lesson_id)

        def operation():
            removed = self.store.delete(LESSONS, lesson_id)
            self._propagate(COURSES, lesson.course_id)
            return removed

        return self._mutate(f"Deleted lesson {lesson_id}", operation)

    def set_lesson_goal_answer(self, lesson_id: str, index: int, answer: str) -> LessonRow:
        lesson = self._require_row(LESSONS, lesson_id)
        answers = self._answers_with(lesson.goals, lesson.goal_answers, index, answer)

        def operation():
            self.store.update(LESSONS, lesson_id, {"goal_answers": answers, "updated_at": self._now()})
            self._propagate(LESSONS, lesson_id)
            return self.store.get(LESSONS, lesson_id)

        return self._mutate(f"Answered goal {index} of lesson {lesson_id}", operation)

    # ---------------------------------------------------------------------
    # Objective commands
    # ---------------------------------------------------------------------
    def create_objective(self, lesson_id: str, title: str, summary: str = "") -> ObjectiveRow:
        self._require_row(LESSONS, lesson_id)
        now = self._now()
        row = ObjectiveRow(
            id=self._new_id("objective"),
            lesson_id=lesson_id,
            title=self._require_text(OBJECTIVES, title),
            summary=summary or "",
            status=ProgressStatus.NOT_STARTED.value,
            created_at=now,
            updated_at=now,
        )

        def operation():
            self.store.insert(OBJECTIVES, row)
            self._propagate(OBJECTIVES, row.id)
            return self.store.get(OBJECTIVES, row.id)

        return self._mutate(f"Created objective {row.id} in lesson {lesson_id}", operation)

    def update_objective(self, objective_id: str, changes: Dict[str, Any]) -> ObjectiveRow:
        cleaned = self._clean_changes(OBJECTIVES, changes)
        self._require_row(OBJECTIVES, objective_id)

        def operation():
            self.store.update(OBJECTIVES, objective_id, {**cleaned, "updated_at": self._now()})
            self._propagate(OBJECTIVES, objective_id)
            return self.store.get(OBJECTIVES, objective_id)

        return self._mutate(f"Updated objective {objective_id}", operation)

    def delete_objective(self, objective_id: str) -> int:
        objective = self._require_row(OBJECTIVES, objective_id)

        def operation():
            removed = self.store.delete(OBJECTIVES, objective_id)
            self._propagate(LESSONS, objective.lesson_id)
            return removed

        return self._mutate(f"Deleted objective {objective_id}", operation)

    # ---------------------------------------------------------------------
    # Resource commands
    # ---------------------------------------------------------------------
    def create_resource(
        self,
        objective_id: str,
        description: str,
        link: str = "",
        summary: str = "",
        status: Any = None,
    ) -> ResourceRow:
        self._require_row(OBJECTIVES, objective_id)
        now = self._now()
        row = ResourceRow(
            id=self._new_id("resource"),
            objective_id=objective_id,
            description=self._require_text(RESOURCES, description),
            link=link or "",
            summary=summary or "",
            status=self._parse_status(status) if status is not None else ProgressStatus.NOT_STARTED.value,
            created_at=now,
            updated_at=now,
        )

        def operation():
            self.store.insert(RESOURCES, row)
            self._propagate(OBJECTIVES, objective_id)
            return self.store.get(RESOURCES, row.id)

        return self._mutate(f"Created resource {row.id} in objective {objective_id}", operation)

    def update_resource(self, resource_id: str, changes: Dict[str, Any]) -> ResourceRow:
        cleaned = self._clean_changes(RESOURCES, changes)
        resource = self._require_row(RESOURCES, resource_id)

        def operation():
            self.store.update(RESOURCES, resource_id, {**cleaned, "updated_at": self._now()})
            self._propagate(OBJECTIVES, resource.objective_id)
            return self.store.get(RESOURCES, resource_id)

        return self._mutate(f"Updated resource {resource_id}", operation)

    def set_resource_status(self, resource_id: str, status: Any) -> ResourceRow:
        return self.update_resource(resource_id, {"status": status})

    def delete_resource(self, resource_id: str) -> int:
        resource = self._require_row(RESOURCES, resource_id)

        def operation():
            removed = self.store.delete(RESOURCES, resource_id)
            self._propagate(OBJECTIVES, resource.objective_id)
            return removed

        return self._mutate(f"Deleted resource {resource_id}", operation)
