from core.models import GoalItem, Lesson, Objective, ProgressStatus, Resource
from core.status_engine import (
    compute_course_status,
    compute_lesson_status,
    compute_objective_status,
    compute_parent_status,
    count_completed_goals,
    is_goal_complete,
    pad_answers,
    pair_goals,
)

NOT_STARTED = ProgressStatus.NOT_STARTED
IN_PROGRESS = ProgressStatus.IN_PROGRESS
COMPLETED = ProgressStatus.COMPLETED


def _resource(idx: int, status: ProgressStatus) -> Resource:
    return Resource(id=f"r_{idx}", description=f"resource {idx}", status=status)


def _objective(idx: int, status: ProgressStatus) -> Objective:
    return Objective(id=f"o_{idx}", title=f"objective {idx}", status=status)


def _lesson(idx: int, status: ProgressStatus) -> Lesson:
    return Lesson(id=f"l_{idx}", title=f"lesson {idx}", status=status)


def test_objective_without_resources_is_not_started():
    assert compute_objective_status([]) == NOT_STARTED


def test_objective_with_all_resources_completed_is_completed():
    resources = [_resource(1, COMPLETED), _resource(2, COMPLETED)]
    assert compute_objective_status(resources) == COMPLETED


def test_objective_with_mixed_resources_is_in_progress():
    assert compute_objective_status([_resource(1, COMPLETED), _resource(2, NOT_STARTED)]) == IN_PROGRESS
    assert compute_objective_status([_resource(1, IN_PROGRESS), _resource(2, NOT_STARTED)]) == IN_PROGRESS
    assert compute_objective_status([_resource(1, IN_PROGRESS)]) == IN_PROGRESS


def test_objective_with_untouched_resources_is_not_started():
    resources = [_resource(1, NOT_STARTED), _resource(2, NOT_STARTED)]
    assert compute_objective_status(resources) == NOT_STARTED


def test_objective_status_accepts_stored_status_strings():
    assert compute_objective_status(["completed", "completed"]) == COMPLETED
    assert compute_objective_status(["bogus", "in_progress"]) == IN_PROGRESS


def test_lesson_with_half_answered_goals_and_no_objectives_is_in_progress():
    status = compute_lesson_status([], goals=["A", "B"], answers=["x", ""])
    assert status == IN_PROGRESS


def test_lesson_with_only_completed_objectives_is_completed():
    objectives = [_objective(i, COMPLETED) for i in range(3)]
    assert compute_lesson_status(objectives, goals=[], answers=[]) == COMPLETED


def test_lesson_with_nothing_is_not_started():
    assert compute_lesson_status([], goals=[], answers=[]) == NOT_STARTED


def test_lesson_with_all_goals_answered_and_no_objectives_is_completed():
    assert compute_lesson_status([], goals=["A", "B"], answers=["x", "y"]) == COMPLETED


def test_lesson_needs_both_goals_and_objectives_done():
    done = [_objective(1, COMPLETED)]
    assert compute_lesson_status(done, goals=["A"], answers=[""]) == IN_PROGRESS
    assert compute_lesson_status([_objective(1, IN_PROGRESS)], goals=["A"], answers=["x"]) == IN_PROGRESS
    assert compute_lesson_status(done, goals=["A"], answers=["x"]) == COMPLETED


def test_lesson_with_unanswered_goals_and_untouched_objectives_is_not_started():
    status = compute_lesson_status([_objective(1, NOT_STARTED)], goals=["A"], answers=[])
    assert status == NOT_STARTED


def test_whitespace_answer_does_not_complete_a_goal():
    assert compute_lesson_status([], goals=["A"], answers=["   \n"]) == NOT_STARTED
    assert is_goal_complete("  ok ") is True
    assert is_goal_complete("\t") is False
    assert is_goal_complete(None) is False


def test_extra_answers_beyond_goals_are_ignored():
    assert compute_lesson_status([], goals=["A"], answers=["x", ""]) == COMPLETED
    assert compute_lesson_status([], goals=[], answers=["stray"]) == NOT_STARTED


def test_lesson_status_accepts_paired_goals():
    goals = [GoalItem(prompt="A", answer="x"), GoalItem(prompt="B")]
    assert compute_lesson_status([], goals) == IN_PROGRESS


def test_course_status_uses_lessons_as_children():
    lessons = [_lesson(1, COMPLETED), _lesson(2, COMPLETED)]
    assert compute_course_status(lessons, goals=[], answers=[]) == COMPLETED
    assert compute_course_status([_lesson(1, COMPLETED), _lesson(2, NOT_STARTED)]) == IN_PROGRESS
    assert compute_course_status([], goals=["Why?"], answers=[]) == NOT_STARTED
    assert compute_course_status([]) == NOT_STARTED


def test_parent_status_is_shared_by_lesson_and_course():
    goals = [GoalItem(prompt="A", answer="x")]
    children = [COMPLETED, IN_PROGRESS]
    assert compute_parent_status(children, goals) == IN_PROGRESS
    assert compute_parent_status([COMPLETED], goals) == COMPLETED


def test_pair_goals_pads_missing_answers_and_drops_extra_ones():
    paired = pair_goals(["A", "B", "C"], ["x"])
    assert [g.prompt for g in paired] == ["A", "B", "C"]
    assert [g.answer for g in paired] == ["x", "", ""]

    assert pair_goals(["A"], ["x", "y"]) == [GoalItem(prompt="A", answer="x")]
    assert pair_goals(None, None) == []


def test_pad_answers_never_truncates():
    assert pad_answers(["a"], 4) == ["a", "", "", ""]
    assert pad_answers(["a", "b"], 1) == ["a", "b"]
    assert pad_answers(None, 2) == ["", ""]


def test_count_completed_goals():
    goals = [GoalItem("A", "x"), GoalItem("B", " "), GoalItem("C", "y")]
    assert count_completed_goals(goals) == 2
