import json

import pytest

from core.exceptions import LoadError, NodeNotFoundError, PersistenceError, ValidationError
from core.models import CourseRow, LessonRow, ObjectiveRow, ResourceRow
from core.study_store import COURSES, LESSONS, OBJECTIVES, RESOURCES, StudyStore


def _seed(store: StudyStore) -> None:
    store.insert(COURSES, CourseRow(id="c1", title="Course", created_at="2026-01-01T00:00:00"))
    store.insert(COURSES, CourseRow(id="c2", title="Other", created_at="2026-01-02T00:00:00"))
    store.insert(LESSONS, LessonRow(id="l1", course_id="c1", title="Lesson", created_at="2026-01-01T00:00:01"))
    store.insert(LESSONS, LessonRow(id="l2", course_id="c2", title="Lesson 2", created_at="2026-01-02T00:00:01"))
    store.insert(OBJECTIVES, ObjectiveRow(id="o1", lesson_id="l1", title="Objective", created_at="2026-01-01T00:00:02"))
    store.insert(RESOURCES, ResourceRow(id="r1", objective_id="o1", description="Docs", created_at="2026-01-01T00:00:03"))
    store.insert(RESOURCES, ResourceRow(id="r2", objective_id="o1", description="Book", created_at="2026-01-01T00:00:04"))


def test_missing_file_reads_as_empty(store):
    assert store.list(COURSES) == []
    assert not store.path.exists()


def test_insert_get_and_list(store):
    _seed(store)

    assert store.get(COURSES, "c1").title == "Course"
    assert store.get(COURSES, "nope") is None
    assert [r.id for r in store.list(COURSES)] == ["c1", "c2"]
    assert [r.id for r in store.list(COURSES, descending=True)] == ["c2", "c1"]
    assert [r.id for r in store.list(LESSONS, parent_id="c1")] == ["l1"]
    assert [r.id for r in store.list(RESOURCES, parent_id="o1")] == ["r1", "r2"]


def test_rows_persist_across_instances(store):
    _seed(store)

    reopened = StudyStore(path=store.path)
    assert [r.id for r in reopened.list(RESOURCES)] == ["r1", "r2"]

    data = json.loads(store.path.read_text(encoding="utf-8"))
    assert set(data) == {"courses", "lessons", "objectives", "resources"}
    assert data["lessons"][0]["course_id"] == "c1"


def test_duplicate_id_is_rejected(store):
    _seed(store)
    with pytest.raises(PersistenceError):
        store.insert(COURSES, CourseRow(id="c1", title="Again"))


def test_update_merges_changes(store):
    _seed(store)

    row = store.update(RESOURCES, "r1", {"status": "completed", "summary": "read it"})

    assert row.status == "completed"
    assert row.summary == "read it"
    assert row.description == "Docs"
    assert StudyStore(path=store.path).get(RESOURCES, "r1").status == "completed"


def test_update_rejects_unknown_or_immutable_fields(store):
    _seed(store)
    with pytest.raises(ValidationError):
        store.update(COURSES, "c1", {"colour": "red"})
    with pytest.raises(ValidationError):
        store.update(COURSES, "c1", {"id": "c9"})


def test_update_missing_row_raises_not_found(store):
    _seed(store)
    with pytest.raises(NodeNotFoundError) as excinfo:
        store.update(LESSONS, "ghost", {"title": "x"})
    assert excinfo.value.kind == "lesson"


def test_delete_cascades_to_descendants(store):
    _seed(store)

    removed = store.delete(COURSES, "c1")

    assert removed == 5
    assert [r.id for r in store.list(COURSES)] == ["c2"]
    assert [r.id for r in store.list(LESSONS)] == ["l2"]
    assert store.list(OBJECTIVES) == []
    assert store.list(RESOURCES) == []


def test_delete_missing_row_raises_not_found(store):
    with pytest.raises(NodeNotFoundError):
        store.delete(RESOURCES, "ghost")


def test_failed_save_rolls_back_memory(store, monkeypatch):
    _seed(store)

    def broken_save():
        raise OSError("disk full")

    monkeypatch.setattr(store, "_save", broken_save)

    with pytest.raises(PersistenceError) as excinfo:
        store.update(RESOURCES, "r1", {"status": "completed"})
    assert excinfo.value.table == RESOURCES
    assert excinfo.value.node_id == "r1"
    assert store.get(RESOURCES, "r1").status == "not_started"

    with pytest.raises(PersistenceError):
        store.delete(COURSES, "c1")
    assert store.get(COURSES, "c1") is not None
    assert len(store.list(RESOURCES)) == 2


def test_corrupt_file_raises_load_error(store):
    store.path.write_text("{not json", encoding="utf-8")
    with pytest.raises(LoadError):
        store.refresh()


def test_wrong_shape_raises_load_error(store):
    store.path.write_text(json.dumps({"courses": {"id": "c1"}}), encoding="utf-8")
    with pytest.raises(LoadError):
        store.refresh()


def test_malformed_rows_are_skipped(store):
    store.path.write_text(
        json.dumps({"courses": [{"title": "no id"}, {"id": "c1", "title": "ok"}]}),
        encoding="utf-8",
    )
    store.refresh()
    assert [r.id for r in store.list(COURSES)] == ["c1"]


def test_failed_replace_removes_the_temp_file(store, monkeypatch):
    _seed(store)

    def broken_replace(src, dst):
        raise OSError("read-only filesystem")

    monkeypatch.setattr("core.study_store.os.replace", broken_replace)

    with pytest.raises(PersistenceError):
        store.update(COURSES, "c1", {"title": "Renamed"})

    assert not store.path.with_name(store.path.name + ".tmp").exists()
    assert store.get(COURSES, "c1").title == "Course"
    assert StudyStore(path=store.path).get(COURSES, "c1").title == "Course"
