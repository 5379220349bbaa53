"""
Status Engine: derived ProgressStatus for Objective, Lesson and Course.

Pure functions. Children may be tree nodes or store rows; only their
`status` attribute is read. Goals may be given paired (List[GoalItem]) or as
the stored parallel `goals` / `goal_answers` arrays.
"""
from typing import Any, Iterable, List, Optional, Sequence

from core.models import GoalItem, ProgressStatus, status_from_string


def is_goal_complete(answer: Optional[str]) -> bool:
    return bool((answer or "").strip())


def pad_answers(answers: Optional[Sequence[str]], length: int) -> List[str]:
    """Return a copy of `answers` extended with "" up to `length` entries.

    Never truncates; entries beyond `length` are kept as stored.
    """
    padded = [a if isinstance(a, str) else "" for a in (answers or [])]
    if len(padded) < length:
        padded.extend([""] * (length - len(padded)))
    return padded


def pair_goals(goals: Optional[Sequence[str]], answers: Optional[Sequence[str]]) -> List[GoalItem]:
    """Pair parallel goal/answer arrays.

    Missing answers become "", answers without a goal are dropped.
    """
    goals = list(goals or [])
    answers = pad_answers(answers, len(goals))
    return [GoalItem(prompt=str(g), answer=answers[i]) for i, g in enumerate(goals)]


def count_completed_goals(goals: Iterable[GoalItem]) -> int:
    return sum(1 for g in goals if is_goal_complete(g.answer))


def _statuses(children: Iterable[Any]) -> List[ProgressStatus]:
    result = []
    for child in children:
        raw = child if isinstance(child, (str, ProgressStatus)) else getattr(child, "status", None)
        result.append(status_from_string(raw))
    return result


def _as_goal_items(goals: Optional[Sequence[Any]], answers: Optional[Sequence[str]]) -> List[GoalItem]:
    goals = list(goals or [])
    if all(isinstance(g, GoalItem) for g in goals):
        return goals
    return pair_goals(goals, answers)


def compute_objective_status(resources: Iterable[Any]) -> ProgressStatus:
    """
    Derive an Objective's status from its resources.

    Empty -> not_started; all completed -> completed; any started ->
    in_progress; otherwise not_started.
    """
    statuses = _statuses(resources)
    if not statuses:
        return ProgressStatus.NOT_STARTED
    if all(s == ProgressStatus.COMPLETED for s in statuses):
        return ProgressStatus.COMPLETED
    if any(s in (ProgressStatus.IN_PROGRESS, ProgressStatus.COMPLETED) for s in statuses):
        return ProgressStatus.IN_PROGRESS
    return ProgressStatus.NOT_STARTED


def compute_parent_status(children: Iterable[Any], goals: Sequence[GoalItem]) -> ProgressStatus:
    """
    Shared rule for Lesson (children = objectives) and Course
    (children = lessons).

    Goals and children each count only when present: a level with no goals
    is judged on its children alone and vice versa. A level with neither is
    not_started.
    """
    statuses = _statuses(children)

    total_goals = len(goals)
    completed_goals = count_completed_goals(goals)

    total_children = len(statuses)
    completed_children = sum(1 for s in statuses if s == ProgressStatus.COMPLETED)
    in_progress_children = sum(1 for s in statuses if s == ProgressStatus.IN_PROGRESS)

    all_goals_complete = total_goals > 0 and completed_goals == total_goals
    all_children_complete = total_children > 0 and completed_children == total_children
    all_complete = (total_goals == 0 or all_goals_complete) and (
        total_children == 0 or all_children_complete
    )
    has_any_progress = completed_goals > 0 or completed_children > 0 or in_progress_children > 0

    if all_complete and (total_goals > 0 or total_children > 0):
        return ProgressStatus.COMPLETED
    if has_any_progress:
        return ProgressStatus.IN_PROGRESS
    return ProgressStatus.NOT_STARTED


def compute_lesson_status(
    objectives: Iterable[Any],
    goals: Optional[Sequence[Any]] = None,
    answers: Optional[Sequence[str]] = None,
) -> ProgressStatus:
    return compute_parent_status(objectives, _as_goal_items(goals, answers))


def compute_course_status(
    lessons: Iterable[Any],
    goals: Optional[Sequence[Any]] = None,
    answers: Optional[Sequence[str]] = None,
) -> ProgressStatus:
    return compute_parent_status(lessons, _as_goal_items(goals, answers))
