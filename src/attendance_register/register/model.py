from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional

from ..core.enums import Mark, RosterFilter
from ..students.model import Student


@dataclass(frozen=True)
class SessionColumn:
    """One column of the register.

    `unrostered_present` lists ids marked present that are not on the active
    roster any more; they count as present but get no row.
    """

    session_id: str
    date: datetime
    time: str
    students_present: tuple[str, ...]
    total_students: int
    present_count: int
    absent_count: int
    unrostered_present: tuple[str, ...] = ()

    def to_dict(self) -> dict:
        return {
            "_id": self.session_id,
            "date": self.date.isoformat(),
            "time": self.time,
            "studentsPresent": list(self.students_present),
            "totalStudents": self.total_students,
            "presentCount": self.present_count,
            "absentCount": self.absent_count,
            "unrosteredPresent": list(self.unrostered_present),
        }


@dataclass(frozen=True)
class RegisterCell:
    session_id: str
    date: datetime
    time: str
    status: Mark

    def to_dict(self) -> dict:
        return {
            "date": self.date.isoformat(),
            "time": self.time,
            "status": self.status.value,
            "sessionId": self.session_id,
        }


@dataclass(frozen=True)
class StudentRow:
    student_id: str
    name: str
    roll_number: Optional[str]
    cells: tuple[RegisterCell, ...]
    present_count: int
    absent_count: int
    percentage: float

    @property
    def total_sessions(self) -> int:
        return len(self.cells)

    def to_dict(self) -> dict:
        return {
            "studentID": self.student_id,
            "name": self.name,
            "rollNumber": self.roll_number,
            "attendance": [c.to_dict() for c in self.cells],
            "presentCount": self.present_count,
            "absentCount": self.absent_count,
            "totalSessions": self.total_sessions,
            "attendancePercentage": self.percentage,
        }


@dataclass(frozen=True)
class RegisterView:
    stream: str
    semester: int
    subject: str
    sessions: tuple[SessionColumn, ...]
    students: tuple[StudentRow, ...]
    total_possible_attendances: int
    average_attendance: float

    @property
    def total_sessions(self) -> int:
        return len(self.sessions)

    @property
    def total_students(self) -> int:
        return len(self.students)

    def cell(self, student_id: str, session_id: str) -> Mark:
        for row in self.students:
            if row.student_id != student_id:
                continue
            for c in row.cells:
                if c.session_id == session_id:
                    return c.status
        raise KeyError((student_id, session_id))

    def to_dict(self) -> dict:
        return {
            "stream": self.stream,
            "semester": self.semester,
            "subject": self.subject,
            "students": [r.to_dict() for r in self.students],
            "sessions": [s.to_dict() for s in self.sessions],
            "totalSessions": self.total_sessions,
            "totalStudents": self.total_students,
            "statistics": {
                "totalPossibleAttendances": self.total_possible_attendances,
                "averageAttendance": self.average_attendance,
            },
        }


@dataclass(frozen=True)
class DateView:
    """Register of one day. With no session that day, `students` is the bare roster."""

    stream: str
    semester: int
    subject: str
    day: date
    roster: tuple[Student, ...]
    sessions: tuple[SessionColumn, ...] = ()

    @property
    def has_attendance(self) -> bool:
        return bool(self.sessions)

    def status(self, student_id: str, session: SessionColumn) -> Mark:
        return Mark.PRESENT if student_id in session.students_present else Mark.ABSENT

    def to_dict(self) -> dict:
        out = {
            "hasAttendance": self.has_attendance,
            "date": self.day.isoformat(),
            "stream": self.stream,
            "semester": self.semester,
            "subject": self.subject,
            "sessions": [s.to_dict() for s in self.sessions],
        }
        if not self.has_attendance:
            out["message"] = "No attendance records found for this date"
            out["students"] = [s.to_dict() for s in self.roster]
            return out

        out["students"] = [
            {
                **s.to_dict(),
                "sessions": [
                    {"time": col.time, "status": self.status(s.student_id, col).value, "sessionId": col.session_id}
                    for col in self.sessions
                ],
            }
            for s in self.roster
        ]
        return out


@dataclass(frozen=True)
class SubjectTally:
    present: int
    total: int

    @property
    def percentage(self) -> int:
        return round(self.present / self.total * 100) if self.total else 0

    def to_dict(self) -> dict:
        return {"present": self.present, "total": self.total, "percentage": self.percentage}


@dataclass(frozen=True)
class SubjectReport:
    """Per student, per subject attendance of a whole stream/semester."""

    stream: str
    semester: int
    subjects: tuple[str, ...]
    rows: tuple[tuple[Student, dict], ...]
    report_date: date

    def to_dict(self) -> dict:
        return {
            "stream": self.stream,
            "semester": self.semester,
            "totalStudents": len(self.rows),
            "totalSubjects": len(self.subjects),
            "subjects": list(self.subjects),
            "students": [
                {
                    "studentID": student.student_id,
                    "name": student.name,
                    "subjects": {name: tally.to_dict() for name, tally in tallies.items()},
                }
                for student, tallies in self.rows
            ],
            "reportDate": self.report_date.isoformat(),
        }


@dataclass(frozen=True)
class AttendanceRoster:
    """Students to mark for one subject. Unknown and core subjects list the whole class."""

    stream: str
    semester: int
    subject: str
    students: tuple[Student, ...]
    filter_applied: RosterFilter = RosterFilter.NONE

    def to_dict(self) -> dict:
        return {
            "students": [
                {
                    **s.to_dict(),
                    "languageSubject": s.language_subject,
                    "electiveSubject": s.elective_subject,
                    "parentPhone": s.parent_phone,
                }
                for s in self.students
            ],
            "count": len(self.students),
            "filterApplied": self.filter_applied.value,
        }
