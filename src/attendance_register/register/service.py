from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Any, Optional, Sequence

from ..cache.result_cache import ResultCache, make_key
from ..catalog.repository import CatalogRepository
from ..common.datetime_utils import day_bounds, utcnow
from ..common.validators import parse_semester, require_non_empty
from ..core.enums import CachePrefix, Mark, RosterFilter
from ..sessions.model import Session, SessionFilter, SessionOrder
from ..sessions.repository import SessionRepository
from ..students.model import Student
from ..students.repository import StudentRepository
from .model import (
    AttendanceRoster,
    DateView,
    RegisterCell,
    RegisterView,
    SessionColumn,
    StudentRow,
    SubjectReport,
    SubjectTally,
)

logger = logging.getLogger(__name__)


def _percentage(present: int, total: int) -> float:
    return round(present / total * 100, 2) if total else 0.0


def _column(session: Session, rostered: set[str]) -> SessionColumn:
    return SessionColumn(
        session_id=session.session_id,
        date=session.date,
        time=session.time,
        students_present=session.students_present,
        total_students=session.total_students,
        present_count=session.present_count,
        absent_count=session.absent_count,
        unrostered_present=tuple(s for s in session.students_present if s not in rostered),
    )


def _row(student: Student, sessions: Sequence[Session]) -> StudentRow:
    cells = tuple(
        RegisterCell(
            session_id=s.session_id,
            date=s.date,
            time=s.time,
            status=Mark.PRESENT if s.is_present(student.student_id) else Mark.ABSENT,
        )
        for s in sessions
    )
    present = sum(1 for c in cells if c.status is Mark.PRESENT)
    return StudentRow(
        student_id=student.student_id,
        name=student.name,
        roll_number=student.roll_number,
        cells=cells,
        present_count=present,
        absent_count=len(cells) - present,
        percentage=_percentage(present, len(cells)),
    )


class RegisterBuilder:
    """Derives the student x session grid from the roster and the stored sessions.

    Nothing is cached when either fetch fails; the store error propagates as is.
    """

    def __init__(
        self,
        sessions: SessionRepository,
        students: StudentRepository,
        catalog: CatalogRepository,
        cache: ResultCache,
    ):
        self._sessions = sessions
        self._students = students
        self._catalog = catalog
        self._cache = cache

    def _class_sessions(self, flt: SessionFilter) -> list[Session]:
        found = self._sessions.find(flt, order=SessionOrder.CHRONOLOGICAL)
        return sorted(found, key=lambda s: s.sort_key)

    def build_full_register(self, *, stream: Any, semester: Any, subject: Any) -> RegisterView:
        stream_name = require_non_empty(stream, "stream")
        subject_name = require_non_empty(subject, "subject")
        semester_no = parse_semester(semester)
        key = make_key(CachePrefix.REGISTER, stream_name, {"semester": semester_no, "subject": subject_name.lower()})

        def compute() -> RegisterView:
            roster = self._students.list_active(stream=stream_name, semester=semester_no)
            sessions = self._class_sessions(
                SessionFilter(stream=stream_name, semester=semester_no, subject=subject_name)
            )
            rostered = {s.student_id for s in roster}
            rows = tuple(_row(student, sessions) for student in roster)
            average = round(sum(r.percentage for r in rows) / len(rows), 2) if rows else 0.0

            logger.info(
                f"Register built - {stream_name}/sem{semester_no}/{subject_name} "
                f"students={len(rows)} sessions={len(sessions)}"
            )
            return RegisterView(
                stream=stream_name,
                semester=semester_no,
                subject=subject_name,
                sessions=tuple(_column(s, rostered) for s in sessions),
                students=rows,
                total_possible_attendances=len(sessions) * len(rows),
                average_attendance=average,
            )

        return self._cache.get_or_compute(key, compute)

    def build_single_date_register(self, *, stream: Any, semester: Any, subject: Any, day: date) -> DateView:
        stream_name = require_non_empty(stream, "stream")
        subject_name = require_non_empty(subject, "subject")
        semester_no = parse_semester(semester)
        if isinstance(day, datetime):
            day = day.date()
        key = make_key(
            CachePrefix.REGISTER,
            stream_name,
            {"semester": semester_no, "subject": subject_name.lower(), "date": day.isoformat()},
        )

        def compute() -> DateView:
            roster = self._students.list_active(stream=stream_name, semester=semester_no)
            start, end = day_bounds(day)
            sessions = self._class_sessions(
                SessionFilter(
                    stream=stream_name,
                    semester=semester_no,
                    subject=subject_name,
                    date_from=start,
                    date_to=end,
                )
            )
            rostered = {s.student_id for s in roster}
            return DateView(
                stream=stream_name,
                semester=semester_no,
                subject=subject_name,
                day=day,
                roster=tuple(roster),
                sessions=tuple(_column(s, rostered) for s in sessions),
            )

        return self._cache.get_or_compute(key, compute)

    def build_subject_report(self, *, stream: Any, semester: Any, now: Optional[datetime] = None) -> SubjectReport:
        """Attendance of every active student in every subject taught to the class.

        The subjects are the ones that have at least one recorded session.
        """

        stream_name = require_non_empty(stream, "stream")
        semester_no = parse_semester(semester)
        today = (now or utcnow()).date()
        key = make_key(CachePrefix.REGISTER, stream_name, {"semester": semester_no, "report": "subjects"})

        def compute() -> SubjectReport:
            roster = self._students.list_active(stream=stream_name, semester=semester_no)
            sessions = self._class_sessions(SessionFilter(stream=stream_name, semester=semester_no))

            by_subject: dict[str, list[Session]] = {}
            spelling: dict[str, str] = {}
            for s in sessions:
                k = s.subject.lower()
                spelling.setdefault(k, s.subject)
                by_subject.setdefault(k, []).append(s)
            subject_keys = sorted(by_subject)

            rows = []
            for student in roster:
                tallies = {}
                for k in subject_keys:
                    held = by_subject[k]
                    present = sum(1 for s in held if s.is_present(student.student_id))
                    tallies[spelling[k]] = SubjectTally(present=present, total=len(held))
                rows.append((student, tallies))

            return SubjectReport(
                stream=stream_name,
                semester=semester_no,
                subjects=tuple(spelling[k] for k in subject_keys),
                rows=tuple(rows),
                report_date=today,
            )

        return self._cache.get_or_compute(key, compute)

    def build_attendance_roster(self, *, stream: Any, semester: Any, subject: Any) -> AttendanceRoster:
        """Students to mark for a subject, narrowed by the subject's type.

        A language subject keeps the students whose languageSubject names it, an
        elective those whose electiveSubject does. Core and unknown subjects keep
        the whole class.
        """

        stream_name = require_non_empty(stream, "stream")
        subject_name = require_non_empty(subject, "subject")
        semester_no = parse_semester(semester)
        key = make_key(
            CachePrefix.REGISTER,
            stream_name,
            {"semester": semester_no, "subject": subject_name.lower(), "roster": True},
        )

        def compute() -> AttendanceRoster:
            found = self._catalog.find_subject(stream=stream_name, semester=semester_no, name=subject_name)
            applied = RosterFilter.NONE
            narrowed: dict[str, str] = {}
            if found is None:
                logger.warning(f"Subject {subject_name} not in catalog for {stream_name}/sem{semester_no}, listing all")
            elif found.is_language_subject:
                applied = RosterFilter.LANGUAGE
                narrowed["language_subject"] = found.name
            elif found.is_elective:
                applied = RosterFilter.ELECTIVE
                narrowed["elective_subject"] = found.name

            students = self._students.list_active(stream=stream_name, semester=semester_no, **narrowed)
            logger.info(
                f"Roster built - {stream_name}/sem{semester_no}/{subject_name} "
                f"filter={applied.value} students={len(students)}"
            )
            return AttendanceRoster(
                stream=stream_name,
                semester=semester_no,
                subject=subject_name,
                students=tuple(students),
                filter_applied=applied,
            )

        return self._cache.get_or_compute(key, compute)
