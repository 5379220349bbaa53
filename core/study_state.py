"""
StudyState: the loaded course tree plus loading/error flags.

Owned by the application and handed to StudyService; the tree is replaced
wholesale on every reload and never patched in place.
"""
from typing import List, Optional

from core.exceptions import LoadError
from core.hierarchy_loader import find_course, load_course_tree
from core.logger import get_logger
from core.models import Course
from core.study_store import StudyStore

logger = get_logger("study_state")


class StudyState:
    def __init__(self, store: StudyStore):
        self._store = store
        self.courses: List[Course] = []
        self.loading = False  # also True while StudyService applies a mutation
        self.error: Optional[str] = None
        self.loaded_once = False

    def reload(self) -> bool:
        """
        Re-fetch all four tables and rebuild the tree.

        On failure `error` is set and `courses` keeps its last value (empty
        before the first successful load). Returns True on success.
        """
        self.loading = True
        try:
            courses = load_course_tree(self._store)
        except LoadError as exc:
            logger.error("Failed to load courses: %s", exc.message)
            self.error = exc.get_user_message()
            return False
        finally:
            self.loading = False

        self.courses = courses
        self.error = None
        self.loaded_once = True
        return True

    def ensure_loaded(self) -> None:
        if not self.loaded_once:
            self.reload()

    def get_course(self, course_id: str) -> Optional[Course]:
        return find_course(self.courses, course_id)
