from __future__ import annotations

import logging
from typing import Any, Mapping, Optional, Sequence

from ..cache.result_cache import ResultCache
from ..common.validators import normalize_student_ids, require_count, require_non_empty
from ..core.exceptions import NotFound, ValidationError
from ..sessions.model import AttendanceUpdate, Session
from ..sessions.repository import SessionRepository
from ..sessions.service import derive_counts
from .model import BulkEditResult

logger = logging.getLogger(__name__)


def _attendance_update(session_id: Any, students_present: Any, total_students: Any) -> AttendanceUpdate:
    present_ids = normalize_student_ids(students_present)
    total = require_count(total_students, "totalStudents")
    present, absent = derive_counts(present_ids, total)
    return AttendanceUpdate(
        session_id=require_non_empty(session_id, "sessionId"),
        students_present=tuple(present_ids),
        total_students=total,
        present_count=present,
        absent_count=absent,
    )


class EditService:
    """Corrections to already recorded sessions.

    Counts are always recomputed from the present list. A bulk edit is a batch of
    independent single-session writes: it is not atomic, and partial success is
    reported through `BulkEditResult` rather than raised.
    """

    def __init__(self, sessions: SessionRepository, cache: ResultCache):
        self._sessions = sessions
        self._cache = cache

    def update_session(self, session_id: str, *, students_present: Any, total_students: Any) -> Session:
        update = _attendance_update(session_id, students_present, total_students)
        updated = self._sessions.update(update.session_id, update.as_fields())
        if not updated:
            raise NotFound("Session not found")

        self._cache.invalidate_stream(updated.stream)
        logger.info(
            f"Session attendance edited - id={updated.session_id} "
            f"present={updated.present_count}/{updated.total_students}"
        )
        return updated

    def bulk_update(self, updates: Any, *, stream: Optional[str] = None) -> BulkEditResult:
        if not isinstance(updates, Sequence) or isinstance(updates, (str, bytes)) or not updates:
            raise ValidationError("updates must be a non-empty array")

        batch: list[AttendanceUpdate] = []
        for i, item in enumerate(updates):
            if not isinstance(item, Mapping):
                raise ValidationError(f"updates[{i}] must be an object")
            batch.append(_attendance_update(item.get("sessionId"), item.get("studentsPresent"), item.get("totalStudents")))

        ids = [u.session_id for u in batch]
        if len(set(ids)) != len(ids):
            raise ValidationError("updates contain the same sessionId more than once")

        touched = set(self._sessions.streams_for(ids))
        if stream:
            touched.add(stream)
        try:
            outcome = self._sessions.set_attendance_many(batch)
        finally:
            for name in touched:
                self._cache.invalidate_stream(name)

        result = BulkEditResult(
            requested=len(batch),
            matched=outcome.matched,
            modified=outcome.modified,
            failed=outcome.failed_ids,
        )
        if result.complete:
            logger.info(f"Bulk edit - requested={result.requested} modified={result.modified}")
        else:
            logger.warning(
                f"Bulk edit partially applied - requested={result.requested} matched={result.matched} "
                f"modified={result.modified} failed={list(result.failed)}"
            )
        return result
