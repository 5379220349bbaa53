"""
Summary export: plain-text and Markdown renderings of a resource, a lesson,
or a whole course. Read-only; works on the loaded tree.
"""
import re
from typing import List, Optional

from core.config_manager import config
from core.models import Course, Lesson, Resource

FORMATS = {"md": "text/markdown", "txt": "text/plain"}


def normalize_format(fmt: Optional[str] = None) -> str:
    value = (fmt or config.DEFAULT_EXPORT_FORMAT).strip().lower()
    if value not in FORMATS:
        raise ValueError(f"Unsupported export format '{fmt}' (use md or txt)")
    return value


def media_type(fmt: str) -> str:
    return FORMATS[normalize_format(fmt)]


def export_filename(title: str, fmt: str) -> str:
    """Filesystem-safe download name built from a title."""
    # ASCII only: the name travels in a latin-1 Content-Disposition header.
    stem = re.sub(r"[^A-Za-z0-9_\-]+", "_", title.strip()).strip("_")
    stem = stem[: config.EXPORT_MAX_FILENAME_LENGTH] or "summary"
    return f"{stem}.{normalize_format(fmt)}"


def _underline(text: str, char: str) -> str:
    return char * len(text)


def format_resource_summary(resource: Resource, fmt: Optional[str] = None) -> str:
    fmt = normalize_format(fmt)
    title = resource.description
    if fmt == "md":
        return f"# {title}\n\n**Source:** [{resource.link}]({resource.link})\n\n## Summary\n\n{resource.summary}"
    return f"{title}\n{_underline(title, '=')}\n\nSource: {resource.link}\n\nSummary:\n{resource.summary}"


def format_lesson_summary(lesson: Lesson, fmt: Optional[str] = None) -> str:
    fmt = normalize_format(fmt)
    parts: List[str] = []

    if fmt == "md":
        parts.append(f"# {lesson.title}\n\n")
        if lesson.summary:
            parts.append(f"## Lesson Summary\n\n{lesson.summary}\n\n")
        if lesson.project_questions:
            parts.append(f"## Project Questions\n\n{lesson.project_questions}\n\n")
        if lesson.objectives:
            parts.append("## Objectives\n\n")
            for objective in lesson.objectives:
                parts.append(f"### {objective.title}\n\n")
                for resource in objective.resources:
                    if resource.summary:
                        parts.append(f"#### {resource.description}\n\n{resource.summary}\n\n")
        return "".join(parts)

    parts.append(f"{lesson.title}\n{_underline(lesson.title, '=')}\n\n")
    if lesson.summary:
        parts.append(f"LESSON SUMMARY\n{'-' * 14}\n{lesson.summary}\n\n")
    if lesson.project_questions:
        parts.append(f"PROJECT QUESTIONS\n{'-' * 17}\n{lesson.project_questions}\n\n")
    if lesson.objectives:
        parts.append(f"OBJECTIVES\n{'-' * 10}\n\n")
        for objective in lesson.objectives:
            parts.append(f"{objective.title}\n")
            for resource in objective.resources:
                if resource.summary:
                    parts.append(f"  - {resource.description}\n    {resource.summary}\n\n")
    return "".join(parts)


def format_course_summary(course: Course, fmt: Optional[str] = None) -> str:
    fmt = normalize_format(fmt)
    parts: List[str] = []

    if fmt == "md":
        parts.append(f"# {course.title}\n\n")
        if course.description:
            parts.append(f"{course.description}\n\n")
        if course.summary:
            parts.append(f"## Course Summary\n\n{course.summary}\n\n")
        for lesson in course.lessons:
            parts.append(f"---\n\n## {lesson.title}\n\n")
            if lesson.summary:
                parts.append(f"{lesson.summary}\n\n")
            for objective in lesson.objectives:
                parts.append(f"### {objective.title}\n\n")
                for resource in objective.resources:
                    if resource.summary:
                        parts.append(f"- **{resource.description}**: {resource.summary}\n")
                parts.append("\n")
        return "".join(parts)

    parts.append(f"{course.title.upper()}\n{_underline(course.title, '=')}\n\n")
    if course.description:
        parts.append(f"{course.description}\n\n")
    if course.summary:
        parts.append(f"COURSE SUMMARY\n{'-' * 14}\n{course.summary}\n\n")
    for lesson in course.lessons:
        parts.append(f"\n{'─' * 40}\n\n")
        parts.append(f"{lesson.title}\n{_underline(lesson.title, '-')}\n\n")
        if lesson.summary:
            parts.append(f"{lesson.summary}\n\n")
        for objective in lesson.objectives:
            parts.append(f"  {objective.title}\n")
            for resource in objective.resources:
                if resource.summary:
                    parts.append(f"    • {resource.description}: {resource.summary}\n")
            parts.append("\n")
    return "".join(parts)
