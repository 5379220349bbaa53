"""
StudyStore: four flat tables (courses, lessons, objectives, resources) with
JSON persistence.

Path: data/study_store.json (file name from config.STORE_FILENAME).
Rows are snake_case and keyed to their parent by course_id / lesson_id /
objective_id. Every write is all-or-nothing: the file is written to a temp
file and renamed, and the in-memory tables are rolled back if that fails.
"""
import copy
import json
import os
import threading
from dataclasses import fields as dataclass_fields
from pathlib import Path
from typing import Any, Dict, List, Optional

from core.config_manager import config
from core.exceptions import LoadError, NodeNotFoundError, PersistenceError, ValidationError
from core.logger import get_logger
from core.models import CourseRow, LessonRow, ObjectiveRow, ResourceRow
from core.paths import DATA_DIR

STORE_PATH = DATA_DIR / config.STORE_FILENAME

COURSES = "courses"
LESSONS = "lessons"
OBJECTIVES = "objectives"
RESOURCES = "resources"
TABLES = (COURSES, LESSONS, OBJECTIVES, RESOURCES)

ROW_TYPES = {
    COURSES: CourseRow,
    LESSONS: LessonRow,
    OBJECTIVES: ObjectiveRow,
    RESOURCES: ResourceRow,
}

# table -> column holding the parent id
PARENT_KEYS = {
    LESSONS: "course_id",
    OBJECTIVES: "lesson_id",
    RESOURCES: "objective_id",
}

# table -> table of its direct children
CHILD_TABLES = {
    COURSES: LESSONS,
    LESSONS: OBJECTIVES,
    OBJECTIVES: RESOURCES,
}

KIND_BY_TABLE = {
    COURSES: "course",
    LESSONS: "lesson",
    OBJECTIVES: "objective",
    RESOURCES: "resource",
}

IMMUTABLE_COLUMNS = {"id", "created_at"}

logger = get_logger("store")


def _empty_tables() -> Dict[str, List[Dict[str, Any]]]:
    return {table: [] for table in TABLES}


def _check_table(table: str) -> None:
    if table not in ROW_TYPES:
        raise ValueError(f"Unknown table: {table}")


class StudyStore:
    """Flat-table store with JSON persistence at STORE_PATH."""

    def __init__(self, path: Optional[Path] = None):
        self._path = path if path is not None else STORE_PATH
        self._tables = _empty_tables()
        self._loaded = False
        self._lock = threading.RLock()

    @property
    def path(self) -> Path:
        return self._path

    # ------------------------------------------------------------------
    # Loading / saving
    # ------------------------------------------------------------------
    def refresh(self) -> None:
        """Re-read the backing file; raise LoadError when it is unreadable."""
        with self._lock:
            if not self._path.exists():
                self._tables = _empty_tables()
                self._loaded = True
                return
            try:
                with open(self._path, "r", encoding="utf-8") as f:
                    data = json.load(f)
            except (json.JSONDecodeError, OSError) as exc:
                raise LoadError(f"Cannot read study store {self._path}: {exc}")

            if not isinstance(data, dict):
                raise LoadError(f"Study store {self._path} is not a JSON object")

            tables = _empty_tables()
            for table in TABLES:
                rows = data.get(table, [])
                if not isinstance(rows, list):
                    raise LoadError(f"Table '{table}' in {self._path} is not a list")
                row_type = ROW_TYPES[table]
                for raw in rows:
                    if not isinstance(raw, dict) or not raw.get("id"):
                        logger.warning("Skipping malformed %s row: %r", table, raw)
                        continue
                    tables[table].append(row_type.from_dict(raw).to_dict())
            self._tables = tables
            self._loaded = True

    def _ensure_loaded(self) -> None:
        if not self._loaded:
            self.refresh()

    def _save(self) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self._path.with_name(self._path.name + ".tmp")
        try:
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump(self._tables, f, ensure_ascii=False, indent=2)
            os.replace(tmp_path, self._path)
        except OSError:
            if tmp_path.exists():
                tmp_path.unlink()
            raise

    def _commit(self, backup: Dict[str, List[Dict[str, Any]]], table: str, node_id: str) -> None:
        try:
            self._save()
        except OSError as exc:
            self._tables = backup
            logger.error("Failed to save %s %s: %s", KIND_BY_TABLE[table], node_id, exc)
            raise PersistenceError(
                f"Could not save {KIND_BY_TABLE[table]} {node_id}: {exc}",
                table=table,
                node_id=node_id,
            )

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------
    def list(self, table: str, parent_id: Optional[str] = None, descending: bool = False):
        """Return rows of `table` ordered by creation time.

        With `parent_id`, only direct children of that parent are returned.
        """
        _check_table(table)
        with self._lock:
            self._ensure_loaded()
            rows = self._tables[table]
            if parent_id is not None:
                parent_key = PARENT_KEYS.get(table)
                if parent_key is None:
                    raise ValueError(f"Table '{table}' has no parent")
                rows = [r for r in rows if r.get(parent_key) == parent_id]
            row_type = ROW_TYPES[table]
            result = [row_type.from_dict(r) for r in rows]
        result.sort(key=lambda r: (r.created_at or "", r.id), reverse=descending)
        return result

    def get(self, table: str, node_id: str):
        _check_table(table)
        with self._lock:
            self._ensure_loaded()
            for row in self._tables[table]:
                if row["id"] == node_id:
                    return ROW_TYPES[table].from_dict(row)
        return None

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------
    def insert(self, table: str, row: Any):
        """Append a row (a row DTO) and persist it."""
        _check_table(table)
        if not isinstance(row, ROW_TYPES[table]):
            raise ValueError(f"Expected {ROW_TYPES[table].__name__} for table '{table}'")
        with self._lock:
            self._ensure_loaded()
            if any(r["id"] == row.id for r in self._tables[table]):
                raise PersistenceError(
                    f"Duplicate {KIND_BY_TABLE[table]} id: {row.id}", table=table, node_id=row.id
                )
            backup = copy.deepcopy(self._tables)
            self._tables[table].append(row.to_dict())
            self._commit(backup, table, row.id)
        logger.debug("Inserted %s %s", KIND_BY_TABLE[table], row.id)
        return ROW_TYPES[table].from_dict(row.to_dict())

    def update(self, table: str, node_id: str, changes: Dict[str, Any]):
        """Merge `changes` into the row and persist it."""
        _check_table(table)
        allowed = {f.name for f in dataclass_fields(ROW_TYPES[table])} - IMMUTABLE_COLUMNS
        unknown = set(changes) - allowed
        if unknown:
            raise ValidationError(
                f"Unknown {KIND_BY_TABLE[table]} fields: {', '.join(sorted(unknown))}"
            )
        with self._lock:
            self._ensure_loaded()
            index = next(
                (i for i, r in enumerate(self._tables[table]) if r["id"] == node_id), None
            )
            if index is None:
                raise NodeNotFoundError(KIND_BY_TABLE[table], node_id)
            backup = copy.deepcopy(self._tables)
            merged = dict(self._tables[table][index])
            merged.update(changes)
            self._tables[table][index] = ROW_TYPES[table].from_dict(merged).to_dict()
            self._commit(backup, table, node_id)
            updated = self._tables[table][index]
        logger.debug("Updated %s %s: %s", KIND_BY_TABLE[table], node_id, sorted(changes))
        return ROW_TYPES[table].from_dict(updated)

    def delete(self, table: str, node_id: str) -> int:
        """Delete a row and all its descendants. Returns the number of rows removed."""
        _check_table(table)
        with self._lock:
            self._ensure_loaded()
            if not any(r["id"] == node_id for r in self._tables[table]):
                raise NodeNotFoundError(KIND_BY_TABLE[table], node_id)

            doomed = {table: {node_id}}
            current = table
            while current in CHILD_TABLES:
                child_table = CHILD_TABLES[current]
                parent_key = PARENT_KEYS[child_table]
                doomed[child_table] = {
                    r["id"] for r in self._tables[child_table] if r.get(parent_key) in doomed[current]
                }
                current = child_table

            backup = copy.deepcopy(self._tables)
            removed = 0
            for doomed_table, ids in doomed.items():
                before = len(self._tables[doomed_table])
                self._tables[doomed_table] = [
                    r for r in self._tables[doomed_table] if r["id"] not in ids
                ]
                removed += before - len(self._tables[doomed_table])
            self._commit(backup, table, node_id)
        logger.debug("Deleted %s %s (%d rows)", KIND_BY_TABLE[table], node_id, removed)
        return removed
