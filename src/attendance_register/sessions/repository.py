from __future__ import annotations

from typing import Iterable, Mapping, Optional, Protocol, Sequence

from .model import (
    AttendanceUpdate,
    BulkWriteOutcome,
    NewSession,
    Session,
    SessionFilter,
    SessionOrder,
    SubjectTotals,
)


class SessionRepository(Protocol):
    def insert(self, new: NewSession) -> str:
        raise NotImplementedError

    def get(self, session_id: str) -> Optional[Session]:
        raise NotImplementedError

    def update(self, session_id: str, fields: Mapping[str, object]) -> Optional[Session]:
        """Merge `fields` into the document; returns the updated session or None."""

        raise NotImplementedError

    def delete(self, session_id: str) -> Optional[Session]:
        """Remove one session and return what was removed (None if nothing matched)."""

        raise NotImplementedError

    def delete_many(self, session_ids: Iterable[str]) -> int:
        raise NotImplementedError

    def delete_matching(self, flt: SessionFilter) -> int:
        raise NotImplementedError

    def find(
        self,
        flt: SessionFilter,
        *,
        order: SessionOrder = SessionOrder.CHRONOLOGICAL,
        skip: int = 0,
        limit: Optional[int] = None,
        include_students: bool = True,
    ) -> Sequence[Session]:
        raise NotImplementedError

    def count(self, flt: SessionFilter) -> int:
        raise NotImplementedError

    def streams_for(self, session_ids: Iterable[str]) -> set[str]:
        raise NotImplementedError

    def set_attendance_many(self, updates: Sequence[AttendanceUpdate]) -> BulkWriteOutcome:
        """Apply each update as its own single-document write (no batch atomicity)."""

        raise NotImplementedError

    def totals_by_subject(self, *, stream: str, semester: int) -> Sequence[SubjectTotals]:
        raise NotImplementedError
