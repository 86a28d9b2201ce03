from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional


class SessionOrder(str, Enum):
    """How a session query is sorted."""

    CHRONOLOGICAL = "chronological"  # date, period start, label
    NEWEST_FIRST = "newest_first"  # createdAt desc


@dataclass(frozen=True)
class Session:
    """One recorded class meeting (a column of the register)."""

    session_id: str
    stream: str
    semester: int
    subject: str
    date: datetime
    time: str
    students_present: tuple[str, ...]
    total_students: int
    present_count: int
    absent_count: int
    start_minutes: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def sort_key(self) -> tuple:
        return (self.date, self.start_minutes if self.start_minutes is not None else -1, self.time)

    def is_present(self, student_id: str) -> bool:
        return student_id in self.students_present

    def to_dict(self, *, include_students: bool = True) -> dict:
        out = {
            "_id": self.session_id,
            "stream": self.stream,
            "semester": self.semester,
            "subject": self.subject,
            "date": self.date.isoformat(),
            "time": self.time,
            "totalStudents": self.total_students,
            "presentCount": self.present_count,
            "absentCount": self.absent_count,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
            "updatedAt": self.updated_at.isoformat() if self.updated_at else None,
        }
        if include_students:
            out["studentsPresent"] = list(self.students_present)
        return out


@dataclass(frozen=True)
class NewSession:
    """Validated input for an insert; counts already derived."""

    stream: str
    semester: int
    subject: str
    date: datetime
    time: str
    start_minutes: int
    students_present: tuple[str, ...]
    total_students: int
    present_count: int
    absent_count: int


@dataclass(frozen=True)
class SessionFilter:
    """Predicate for session queries.

    `stream` and `subject` match case-insensitively on the whole value;
    `date_from`/`date_to` form a half-open range [date_from, date_to).
    """

    stream: Optional[str] = None
    semester: Optional[int] = None
    subject: Optional[str] = None
    time: Optional[str] = None
    date_from: Optional[datetime] = None
    date_to: Optional[datetime] = None

    def as_params(self) -> dict:
        return {
            "stream": self.stream,
            "semester": self.semester,
            "subject": self.subject,
            "time": self.time,
            "date_from": self.date_from.isoformat() if self.date_from else None,
            "date_to": self.date_to.isoformat() if self.date_to else None,
        }


@dataclass(frozen=True)
class AttendanceUpdate:
    """New attendance for one session, counts consistent with the list."""

    session_id: str
    students_present: tuple[str, ...]
    total_students: int
    present_count: int
    absent_count: int

    def as_fields(self) -> dict:
        return {
            "studentsPresent": list(self.students_present),
            "totalStudents": self.total_students,
            "presentCount": self.present_count,
            "absentCount": self.absent_count,
        }


@dataclass(frozen=True)
class BulkWriteOutcome:
    matched: int
    modified: int
    failed_ids: tuple[str, ...] = ()


@dataclass(frozen=True)
class SubjectTotals:
    """Raw per-subject sums straight from the store.

    `ratio_sum` adds presentCount/totalStudents over sessions with totalStudents > 0
    and `rated_classes` counts those sessions.
    """

    subject: str
    total_classes: int
    total_present: int
    total_absent: int
    ratio_sum: float
    rated_classes: int


@dataclass(frozen=True)
class SubjectStats:
    subject: str
    total_classes: int
    total_present: int
    total_absent: int
    avg_attendance: float

    def to_dict(self) -> dict:
        return {
            "subject": self.subject,
            "totalClasses": self.total_classes,
            "totalPresent": self.total_present,
            "totalAbsent": self.total_absent,
            "avgAttendance": self.avg_attendance,
        }


@dataclass(frozen=True)
class SessionPage:
    records: tuple[Session, ...]
    total: int
    page: int
    limit: int

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.limit) if self.limit else 0

    def to_dict(self) -> dict:
        return {
            "records": [r.to_dict(include_students=False) for r in self.records],
            "count": len(self.records),
            "total": self.total,
            "page": self.page,
            "totalPages": self.total_pages,
        }
