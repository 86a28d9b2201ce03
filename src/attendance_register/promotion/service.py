from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Any, Optional

from ..cache.result_cache import ResultCache
from ..catalog.service import CatalogService
from ..common.datetime_utils import utcnow
from ..common.validators import require_non_empty
from ..core.constants import DEFAULT_UNDO_WINDOW_HOURS, MIN_SEMESTER, TOP_SEMESTER
from ..core.exceptions import Conflict, NotFound, UndoExpired
from ..students.model import NewStudent
from ..students.repository import StudentRepository
from .locks import StreamLocks
from .model import PromotionPreview, PromotionResult, UndoResult, UndoStatus
from .repository import BackupRepository

logger = logging.getLogger(__name__)


def _hours_old(timestamp: datetime, now: datetime) -> int:
    return int((now - timestamp).total_seconds() // 3600)


class PromotionService:
    """End-of-term promotion of a whole stream, with a backup and a time-boxed undo.

    The stream lock is held for the whole snapshot, graduate and promote sequence and
    for the whole restore, so two runs on one stream never interleave.
    """

    def __init__(
        self,
        catalog: CatalogService,
        students: StudentRepository,
        backups: BackupRepository,
        cache: ResultCache,
        *,
        locks: Optional[StreamLocks] = None,
        undo_window_hours: int = DEFAULT_UNDO_WINDOW_HOURS,
    ):
        self._catalog = catalog
        self._students = students
        self._backups = backups
        self._cache = cache
        self._locks = locks or StreamLocks()
        self._undo_window = timedelta(hours=undo_window_hours)

    def preview(self, stream: Any) -> PromotionPreview:
        name = self._catalog.resolve_stream(stream).name
        breakdown = {
            sem: self._students.count_by_semester(stream=name, semester=sem)
            for sem in range(MIN_SEMESTER, TOP_SEMESTER + 1)
        }
        return PromotionPreview(stream=name, breakdown=breakdown)

    def execute(self, stream: Any, *, now: Optional[datetime] = None) -> PromotionResult:
        name = self._catalog.resolve_stream(stream).name
        now = now or utcnow()

        with self._locks.hold(name):
            # nothing is mutated unless the backup is stored
            snapshot = self._students.snapshot(name)
            backup_id = self._backups.insert(stream=name, timestamp=now, students=snapshot)
            logger.info(f"[PROMOTION] backup {backup_id} created for {name}: {len(snapshot)} students")

            try:
                flow: list[str] = []
                graduated = self._students.graduate(stream=name, semester=TOP_SEMESTER)
                if graduated:
                    flow.append(f"Graduated {graduated} students from Semester {TOP_SEMESTER}")

                promoted = 0
                for sem in range(TOP_SEMESTER - 1, MIN_SEMESTER - 1, -1):
                    moved = self._students.promote(stream=name, from_semester=sem, to_semester=sem + 1, now=now)
                    if moved:
                        promoted += moved
                        flow.append(f"Promoted {moved} students: Sem {sem} → Sem {sem + 1}")
            finally:
                self._cache.invalidate_stream(name)

        logger.info(f"[PROMOTION] {name}: promoted={promoted} graduated={graduated}")
        return PromotionResult(
            stream=name,
            total_promoted=promoted,
            total_graduated=graduated,
            flow=tuple(flow),
            backup_id=backup_id,
        )

    def can_undo(self, stream: Any, *, now: Optional[datetime] = None) -> UndoStatus:
        name = self._catalog.resolve_stream(stream).name
        now = now or utcnow()

        backup = self._backups.latest(name)
        if not backup:
            return UndoStatus(can_undo=False, message="No backup available")
        if backup.restored:
            return UndoStatus(can_undo=False, message="The latest promotion has already been undone")

        return UndoStatus(
            can_undo=now - backup.timestamp <= self._undo_window,
            hours_old=_hours_old(backup.timestamp, now),
            students_in_backup=backup.total_students,
            backup_timestamp=backup.timestamp,
        )

    def undo(self, stream: Any, *, now: Optional[datetime] = None) -> UndoResult:
        """Put the stream back exactly as the latest backup recorded it.

        The window is checked again here, whatever `can_undo` said earlier. An undo
        cannot itself be undone.
        """

        name = self._catalog.resolve_stream(stream).name
        now = now or utcnow()

        with self._locks.hold(name):
            backup = self._backups.latest(name)
            if not backup:
                raise NotFound("No backup found. Cannot undo promotion.")
            if backup.restored:
                raise NotFound("The latest promotion has already been undone")
            if now - backup.timestamp > self._undo_window:
                hours = _hours_old(backup.timestamp, now)
                raise UndoExpired(
                    f"Backup is {hours} hours old. Undo only available within "
                    f"{int(self._undo_window.total_seconds() // 3600)} hours."
                )

            try:
                restored = self._students.replace_stream(name, backup.students)
                if not self._backups.mark_restored(backup.backup_id, at=now):
                    raise Conflict("Backup was restored by another request")
            finally:
                self._cache.invalidate_stream(name)

        logger.info(f"[PROMOTION] undo {name}: {restored} students restored from backup {backup.backup_id}")
        return UndoResult(stream=name, students_restored=restored, backup_timestamp=backup.timestamp)

    def admit(
        self,
        stream: Any,
        *,
        student_id: Any,
        name: Any,
        parent_phone: Any,
        now: Optional[datetime] = None,
    ) -> NewStudent:
        """Add a new student to semester 1 of the stream."""

        student_id = require_non_empty(student_id, "studentID")
        student_name = require_non_empty(name, "name")
        phone = require_non_empty(parent_phone, "parentPhone")
        stream_name = self._catalog.resolve_stream(stream).name
        now = now or utcnow()

        if self._students.find_by_student_id(student_id):
            raise Conflict(f"Student {student_id} already exists")

        new = NewStudent(
            student_id=student_id,
            name=student_name,
            stream=stream_name,
            semester=MIN_SEMESTER,
            parent_phone=phone,
            language_subject="",
            elective_subject="",
            academic_year=now.year,
        )
        self._students.insert(new, now=now)
        self._cache.invalidate_stream(stream_name)
        logger.info(f"Student {student_id} admitted to {stream_name} semester {MIN_SEMESTER}")
        return new
