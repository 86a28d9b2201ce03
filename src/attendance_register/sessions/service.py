from __future__ import annotations

import logging
from datetime import date
from typing import Any, Iterable, Mapping, Optional, Sequence

from ..cache.result_cache import ResultCache, make_key
from ..common.datetime_utils import day_bounds, parse_session_date
from ..common.validators import (
    normalize_student_ids,
    parse_semester,
    parse_time_label,
    require_count,
    require_non_empty,
)
from ..core.constants import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE
from ..core.enums import CachePrefix
from ..core.exceptions import NotFound, ValidationError
from .model import NewSession, Session, SessionFilter, SessionOrder, SessionPage, SubjectStats
from .repository import SessionRepository

logger = logging.getLogger(__name__)

_EDITABLE_FIELDS = {
    "stream",
    "semester",
    "subject",
    "date",
    "time",
    "studentsPresent",
    "totalStudents",
    "presentCount",
    "absentCount",
}


def derive_counts(students_present: Sequence[str], total_students: int) -> tuple[int, int]:
    """presentCount/absentCount for a session; a roster smaller than the present list is rejected."""
    present = len(students_present)
    absent = total_students - present
    if absent < 0:
        raise ValidationError(
            f"totalStudents ({total_students}) is smaller than the number of students present ({present})"
        )
    return present, absent


class SessionService:
    """Session store use cases: submit, fetch, merge-update, delete, query, per-subject stats."""

    def __init__(self, sessions: SessionRepository, cache: ResultCache):
        self._sessions = sessions
        self._cache = cache

    def submit(
        self,
        *,
        stream: Any,
        semester: Any,
        subject: Any,
        date: Any,
        time: Any,
        students_present: Any,
        total_students: Any,
    ) -> str:
        missing = [
            name
            for name, value in (
                ("date", date),
                ("time", time),
                ("studentsPresent", students_present),
                ("totalStudents", total_students),
            )
            if value is None or value == ""
        ]
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

        stream_name = require_non_empty(stream, "stream")
        subject_name = require_non_empty(subject, "subject")
        semester_no = parse_semester(semester)
        label, start_minutes = parse_time_label(time)
        present_ids = normalize_student_ids(students_present)
        total = require_count(total_students, "totalStudents")
        present_count, absent_count = derive_counts(present_ids, total)

        new = NewSession(
            stream=stream_name,
            semester=semester_no,
            subject=subject_name,
            date=parse_session_date(date),
            time=label,
            start_minutes=start_minutes,
            students_present=tuple(present_ids),
            total_students=total,
            present_count=present_count,
            absent_count=absent_count,
        )
        session_id = self._sessions.insert(new)
        self._cache.invalidate_stream(stream_name)

        logger.info(
            f"Attendance saved - id={session_id} {stream_name}/sem{semester_no}/{subject_name} "
            f"{new.date.date()} {label} present={present_count}/{total}"
        )
        return session_id

    def get(self, session_id: str) -> Session:
        session = self._sessions.get(require_non_empty(session_id, "session id"))
        if not session:
            raise NotFound("Session not found")
        return session

    def update(self, session_id: str, partial: Mapping[str, Any]) -> Session:
        """Merge-update a session as given.

        Counts are not recomputed here; the merged document must already satisfy
        presentCount == len(studentsPresent) and presentCount + absentCount == totalStudents.
        """

        unknown = set(partial) - _EDITABLE_FIELDS
        if unknown:
            raise ValidationError(f"Unknown fields: {', '.join(sorted(unknown))}")
        if not partial:
            raise ValidationError("Nothing to update")

        current = self.get(session_id)
        fields: dict[str, Any] = {}
        if "stream" in partial:
            fields["stream"] = require_non_empty(partial["stream"], "stream")
        if "subject" in partial:
            fields["subject"] = require_non_empty(partial["subject"], "subject")
        if "semester" in partial:
            fields["semester"] = parse_semester(partial["semester"])
        if "date" in partial:
            fields["date"] = parse_session_date(partial["date"])
        if "time" in partial:
            fields["time"], fields["startMinutes"] = parse_time_label(partial["time"])
        if "studentsPresent" in partial:
            fields["studentsPresent"] = normalize_student_ids(partial["studentsPresent"])
        for name in ("totalStudents", "presentCount", "absentCount"):
            if name in partial:
                fields[name] = require_count(partial[name], name)

        present_ids = fields.get("studentsPresent", current.students_present)
        total = fields.get("totalStudents", current.total_students)
        present = fields.get("presentCount", current.present_count)
        absent = fields.get("absentCount", current.absent_count)
        if present != len(present_ids) or present + absent != total:
            raise ValidationError("presentCount/absentCount do not match studentsPresent and totalStudents")

        updated = self._sessions.update(current.session_id, fields)
        if not updated:
            raise NotFound("Session not found")

        self._cache.invalidate_stream(current.stream)
        if updated.stream != current.stream:
            self._cache.invalidate_stream(updated.stream)
        logger.info(f"Session updated - id={updated.session_id} fields={sorted(fields)}")
        return updated

    def delete(self, session_id: str) -> bool:
        removed = self._sessions.delete(require_non_empty(session_id, "session id"))
        if not removed:
            return False
        self._cache.invalidate_stream(removed.stream)
        logger.info(f"Session deleted - id={removed.session_id} {removed.stream}/{removed.subject}")
        return True

    def delete_many(self, session_ids: Iterable[str]) -> int:
        ids = [require_non_empty(s, "session id") for s in session_ids]
        if not ids:
            raise ValidationError("ids must be a non-empty array")

        streams = self._sessions.streams_for(ids)
        try:
            deleted = self._sessions.delete_many(ids)
        finally:
            for stream in streams:
                self._cache.invalidate_stream(stream)
        logger.info(f"Sessions deleted - requested={len(ids)} deleted={deleted}")
        return deleted

    def delete_range(self, *, stream: Any, semester: Any, subject: Any, start: date, end: date) -> int:
        """Delete a subject's sessions dated start..end (both days included)."""
        if end < start:
            raise ValidationError("end date is before start date")

        stream_name = require_non_empty(stream, "stream")
        flt = SessionFilter(
            stream=stream_name,
            semester=parse_semester(semester),
            subject=require_non_empty(subject, "subject"),
            date_from=day_bounds(start)[0],
            date_to=day_bounds(end)[1],
        )
        try:
            deleted = self._sessions.delete_matching(flt)
        finally:
            self._cache.invalidate_stream(stream_name)
        logger.info(f"Sessions deleted by range - {stream_name} {start}..{end} deleted={deleted}")
        return deleted

    def list_sessions(
        self,
        *,
        stream: Optional[str] = None,
        semester: Any = None,
        subject: Optional[str] = None,
        on_date: Optional[date] = None,
        time: Optional[str] = None,
        start: Optional[date] = None,
        end: Optional[date] = None,
        page: int = 1,
        limit: int = DEFAULT_PAGE_SIZE,
    ) -> SessionPage:
        page = max(1, int(page))
        limit = min(max(1, int(limit)), MAX_PAGE_SIZE)

        date_from = date_to = None
        if on_date:
            date_from, date_to = day_bounds(on_date)
        if start and end:
            date_from, date_to = day_bounds(start)[0], day_bounds(end)[1]

        flt = SessionFilter(
            stream=stream or None,
            semester=parse_semester(semester) if semester not in (None, "") else None,
            subject=subject or None,
            time=time or None,
            date_from=date_from,
            date_to=date_to,
        )
        key = make_key(CachePrefix.ATTENDANCE, flt.stream, {**flt.as_params(), "page": page, "limit": limit})

        def compute() -> SessionPage:
            records = self._sessions.find(
                flt,
                order=SessionOrder.NEWEST_FIRST,
                skip=(page - 1) * limit,
                limit=limit,
                include_students=False,
            )
            return SessionPage(records=tuple(records), total=self._sessions.count(flt), page=page, limit=limit)

        return self._cache.get_or_compute(key, compute)

    def subject_stats(self, *, stream: Any, semester: Any) -> tuple[SubjectStats, ...]:
        """Per-subject totals for a stream/semester.

        avgAttendance is the mean of presentCount/totalStudents over the subject's
        sessions. Sessions with totalStudents == 0 are left out of that mean; a subject
        with no such session at all reports 0.0.
        """

        stream_name = require_non_empty(stream, "stream")
        semester_no = parse_semester(semester)
        key = make_key(CachePrefix.STATS, stream_name, {"semester": semester_no})

        def compute() -> tuple[SubjectStats, ...]:
            rows = self._sessions.totals_by_subject(stream=stream_name, semester=semester_no)
            return tuple(
                SubjectStats(
                    subject=r.subject,
                    total_classes=r.total_classes,
                    total_present=r.total_present,
                    total_absent=r.total_absent,
                    avg_attendance=round(r.ratio_sum / r.rated_classes, 4) if r.rated_classes else 0.0,
                )
                for r in rows
            )

        return self._cache.get_or_compute(key, compute)
