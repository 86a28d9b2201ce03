from __future__ import annotations

from enum import Enum


class Mark(str, Enum):
    """A single cell of the attendance register."""

    PRESENT = "P"
    ABSENT = "A"


class WorkList(str, Enum):
    """Array-valued fields on a teacher profile."""

    SUBJECTS = "createdSubjects"
    QUEUE = "attendanceQueue"
    COMPLETED = "completedClasses"

    @property
    def timestamp_field(self) -> str:
        return {
            WorkList.SUBJECTS: "createdAt",
            WorkList.QUEUE: "addedAt",
            WorkList.COMPLETED: "completedAt",
        }[self]


class CachePrefix(str, Enum):
    ATTENDANCE = "attendance"
    REGISTER = "register"
    STATS = "stats"


class RosterFilter(str, Enum):
    """How the attendance-taking roster was narrowed for a subject."""

    NONE = "none"
    LANGUAGE = "language"
    ELECTIVE = "elective"
