import pytest

from core.export import (
    export_filename,
    format_course_summary,
    format_lesson_summary,
    format_resource_summary,
    media_type,
    normalize_format,
)
from core.models import Course, Lesson, Objective, Resource


def _course() -> Course:
    resource = Resource(id="r1", description="Official tutorial", link="https://docs.python.org", summary="Covers loops.")
    silent = Resource(id="r2", description="Unread book")
    objective = Objective(id="o1", title="Control flow", resources=[resource, silent])
    lesson = Lesson(
        id="l1",
        title="Basics",
        summary="Syntax first.",
        project_questions="What will you build?",
        objectives=[objective],
    )
    return Course(id="c1", title="Python", description="Learn Python", summary="Going well.", lessons=[lesson])


def test_normalize_format():
    assert normalize_format("MD") == "md"
    assert normalize_format(" txt ") == "txt"
    assert normalize_format(None) == "md"
    with pytest.raises(ValueError):
        normalize_format("pdf")


def test_media_type():
    assert media_type("md") == "text/markdown"
    assert media_type("txt") == "text/plain"


def test_export_filename_is_header_safe():
    assert export_filename("Intro to Python!", "md") == "Intro_to_Python.md"
    assert export_filename("Café notes", "txt") == "Caf_notes.txt"
    assert export_filename("???", "txt") == "summary.txt"


def test_resource_summary_markdown_and_text():
    resource = _course().lessons[0].objectives[0].resources[0]

    md = format_resource_summary(resource, "md")
    assert md.startswith("# Official tutorial\n")
    assert "[https://docs.python.org](https://docs.python.org)" in md
    assert md.endswith("Covers loops.")

    txt = format_resource_summary(resource, "txt")
    assert txt.startswith("Official tutorial\n" + "=" * len("Official tutorial") + "\n")
    assert "Source: https://docs.python.org" in txt


def test_lesson_summary_lists_only_summarised_resources():
    lesson = _course().lessons[0]

    md = format_lesson_summary(lesson, "md")
    assert "## Project Questions\n\nWhat will you build?" in md
    assert "### Control flow" in md
    assert "#### Official tutorial" in md
    assert "Unread book" not in md

    txt = format_lesson_summary(lesson, "txt")
    assert "LESSON SUMMARY" in txt
    assert "  - Official tutorial\n    Covers loops." in txt


def test_course_summary():
    course = _course()

    md = format_course_summary(course, "md")
    assert md.startswith("# Python\n\nLearn Python\n\n## Course Summary\n\nGoing well.")
    assert "## Basics" in md
    assert "- **Official tutorial**: Covers loops." in md

    txt = format_course_summary(course, "txt")
    assert txt.startswith("PYTHON\n======\n")
    assert "Official tutorial: Covers loops." in txt
