"""
Core Data Models for Study Tracker.

Course -> Lesson -> Objective -> Resource tree, the paired goal/answer record,
the course statistics record, and the row DTOs stored by StudyStore.
"""
from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class ProgressStatus(str, Enum):
    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


def status_from_string(raw: Any) -> ProgressStatus:
    """Parse a stored status; unknown values fall back to not_started."""
    if isinstance(raw, ProgressStatus):
        return raw
    try:
        return ProgressStatus(str(raw or "").strip().lower())
    except ValueError:
        return ProgressStatus.NOT_STARTED


# ---------------------------------------------------------------------------
# Tree (what the API and the client see)
# ---------------------------------------------------------------------------
@dataclass
class GoalItem:
    """One goal prompt with the learner's answer."""
    prompt: str
    answer: str = ""

    @property
    def completed(self) -> bool:
        return bool(self.answer.strip())


@dataclass
class Resource:
    id: str
    description: str
    link: str = ""
    summary: str = ""
    status: ProgressStatus = ProgressStatus.NOT_STARTED
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


@dataclass
class Objective:
    id: str
    title: str
    summary: str = ""
    resources: List[Resource] = field(default_factory=list)
    status: ProgressStatus = ProgressStatus.NOT_STARTED  # derived
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


@dataclass
class Lesson:
    id: str
    title: str
    summary: str = ""
    project_questions: str = ""
    goals: List[GoalItem] = field(default_factory=list)
    objectives: List[Objective] = field(default_factory=list)
    status: ProgressStatus = ProgressStatus.NOT_STARTED  # derived
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


@dataclass
class Course:
    id: str
    title: str
    description: str = ""
    summary: str = ""
    goals: List[GoalItem] = field(default_factory=list)
    lessons: List[Lesson] = field(default_factory=list)
    status: ProgressStatus = ProgressStatus.NOT_STARTED  # derived
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


@dataclass
class CourseStats:
    total_lessons: int = 0
    completed_lessons: int = 0
    total_objectives: int = 0
    completed_objectives: int = 0
    total_resources: int = 0
    completed_resources: int = 0
    total_goals: int = 0
    completed_goals: int = 0
    progress_percent: int = 0

    def to_dict(self) -> Dict[str, int]:
        return asdict(self)


def tree_to_dict(node: Any) -> Dict[str, Any]:
    """Serialize a tree node (any level) to plain JSON-ready data."""
    data = asdict(node)
    _flatten_status(data)
    return data


def _flatten_status(data: Any) -> None:
    if isinstance(data, dict):
        for key, value in data.items():
            if isinstance(value, ProgressStatus):
                data[key] = value.value
            else:
                _flatten_status(value)
    elif isinstance(data, list):
        for item in data:
            _flatten_status(item)


# ---------------------------------------------------------------------------
# Row DTOs (storage boundary, snake_case, flat, parent-keyed)
# ---------------------------------------------------------------------------
@dataclass
class CourseRow:
    id: str
    title: str
    description: str = ""
    summary: str = ""
    goals: List[str] = field(default_factory=list)
    goal_answers: List[str] = field(default_factory=list)
    status: str = ProgressStatus.NOT_STARTED.value
    created_at: str = ""
    updated_at: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "CourseRow":
        return cls(
            id=d["id"],
            title=d.get("title") or "",
            description=d.get("description") or "",
            summary=d.get("summary") or "",
            goals=list(d.get("goals") or []),
            goal_answers=list(d.get("goal_answers") or []),
            status=status_from_string(d.get("status")).value,
            created_at=d.get("created_at") or "",
            updated_at=d.get("updated_at") or "",
        )


@dataclass
class LessonRow:
    id: str
    course_id: str
    title: str
    summary: str = ""
    project_questions: str = ""
    goals: List[str] = field(default_factory=list)
    goal_answers: List[str] = field(default_factory=list)
    status: str = ProgressStatus.NOT_STARTED.value
    created_at: str = ""
    updated_at: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "LessonRow":
        return cls(
            id=d["id"],
            course_id=d.get("course_id") or "",
            title=d.get("title") or "",
            summary=d.get("summary") or "",
            project_questions=d.get("project_questions") or "",
            goals=list(d.get("goals") or []),
            goal_answers=list(d.get("goal_answers") or []),
            status=status_from_string(d.get("status")).value,
            created_at=d.get("created_at") or "",
            updated_at=d.get("updated_at") or "",
        )


@dataclass
class ObjectiveRow:
    id: str
    lesson_id: str
    title: str
    summary: str = ""
    status: str = ProgressStatus.NOT_STARTED.value
    created_at: str = ""
    updated_at: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "ObjectiveRow":
        return cls(
            id=d["id"],
            lesson_id=d.get("lesson_id") or "",
            title=d.get("title") or "",
            summary=d.get("summary") or "",
            status=status_from_string(d.get("status")).value,
            created_at=d.get("created_at") or "",
            updated_at=d.get("updated_at") or "",
        )


@dataclass
class ResourceRow:
    id: str
    objective_id: str
    description: str
    link: str = ""
    summary: str = ""
    status: str = ProgressStatus.NOT_STARTED.value
    created_at: str = ""
    updated_at: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "ResourceRow":
        return cls(
            id=d["id"],
            objective_id=d.get("objective_id") or "",
            description=d.get("description") or "",
            link=d.get("link") or "",
            summary=d.get("summary") or "",
            status=status_from_string(d.get("status")).value,
            created_at=d.get("created_at") or "",
            updated_at=d.get("updated_at") or "",
        )
