"""
Course statistics: roll-up counts over one course subtree.

Recomputed on every call; nothing here is cached.
"""
import math

from core.models import Course, CourseStats, Lesson, ProgressStatus
from core.status_engine import count_completed_goals


def _percent(completed: int, total: int) -> int:
    # Resources are the only denominator; half rounds up.
    if total <= 0:
        return 0
    return int(math.floor(100 * completed / total + 0.5))


def get_course_stats(course: Course) -> CourseStats:
    stats = CourseStats(
        total_goals=len(course.goals),
        completed_goals=count_completed_goals(course.goals),
    )

    for lesson in course.lessons:
        stats.total_lessons += 1
        if lesson.status == ProgressStatus.COMPLETED:
            stats.completed_lessons += 1
        stats.total_goals += len(lesson.goals)
        stats.completed_goals += count_completed_goals(lesson.goals)

        for objective in lesson.objectives:
            stats.total_objectives += 1
            if objective.status == ProgressStatus.COMPLETED:
                stats.completed_objectives += 1
            for resource in objective.resources:
                stats.total_resources += 1
                if resource.status == ProgressStatus.COMPLETED:
                    stats.completed_resources += 1

    stats.progress_percent = _percent(stats.completed_resources, stats.total_resources)
    return stats


def get_lesson_stats(lesson: Lesson) -> CourseStats:
    """Same counts scoped to one lesson; the lesson fields stay at zero."""
    stats = CourseStats(
        total_goals=len(lesson.goals),
        completed_goals=count_completed_goals(lesson.goals),
    )
    for objective in lesson.objectives:
        stats.total_objectives += 1
        if objective.status == ProgressStatus.COMPLETED:
            stats.completed_objectives += 1
        stats.total_resources += len(objective.resources)
        stats.completed_resources += sum(
            1 for r in objective.resources if r.status == ProgressStatus.COMPLETED
        )
    stats.progress_percent = _percent(stats.completed_resources, stats.total_resources)
    return stats
