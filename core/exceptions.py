"""
Study Tracker exception definitions.

Hierarchy of the known errors:
- StudyTrackerError: base class, all expected failures
- ConfigError: configuration file problems
- PersistenceError: store read/write failed
- LoadError: the course tree could not be (re)loaded
- NodeNotFoundError: a course/lesson/objective/resource id is unknown
- ValidationError: request data is unusable (bad goal index, empty title)
"""
from typing import Optional


class StudyTrackerError(Exception):
    """Base class for every expected error.

    Catching this handles all anticipated failure modes.
    """

    def __init__(self, message: str, hint: Optional[str] = None):
        """
        Args:
            message: error description
            hint: suggestion shown to the user
        """
        super().__init__(message)
        self.message = message
        self.hint = hint

    def get_user_message(self) -> str:
        """Return a user-facing message."""
        if self.hint:
            return f"{self.message} (hint: {self.hint})"
        return self.message


class ConfigError(StudyTrackerError):
    """Configuration file is missing, malformed, or has invalid content."""

    def __init__(self, message: str, config_path: Optional[str] = None):
        hint = f"Check the config file: {config_path}" if config_path else "Check the config file format"
        super().__init__(message, hint)
        self.config_path = config_path


class PersistenceError(StudyTrackerError):
    """A write to or read from the study store failed.

    The mutation that raised it is aborted; ancestors are not recomputed.
    """

    def __init__(self, message: str, table: Optional[str] = None, node_id: Optional[str] = None):
        super().__init__(message, hint="Your change may not have been saved. Please retry.")
        self.table = table
        self.node_id = node_id


class LoadError(StudyTrackerError):
    """The course tree could not be loaded from the store."""

    def __init__(self, message: str):
        super().__init__(message, hint="Retry loading your courses.")


class NodeNotFoundError(StudyTrackerError):
    """An id does not match any stored course/lesson/objective/resource.

    `redirect` names the nearest listing that still exists, so callers can
    navigate there instead of failing.
    """

    def __init__(self, kind: str, node_id: str, redirect: str = "/courses"):
        super().__init__(f"{kind.capitalize()} not found: {node_id}")
        self.kind = kind
        self.node_id = node_id
        self.redirect = redirect


class ValidationError(StudyTrackerError):
    """Request data cannot be applied."""
