from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Optional, Protocol, Sequence

from .model import NewStudent, Student


class StudentRepository(Protocol):
    """Roster access.

    `list_active` and `distinct_semesters` match the stream case-insensitively;
    the promotion methods take the canonical stream name and match it exactly.
    """

    def list_active(
        self,
        *,
        stream: str,
        semester: int,
        language_subject: Optional[str] = None,
        elective_subject: Optional[str] = None,
    ) -> Sequence[Student]:
        """Active students of a class, ordered by studentID.

        `language_subject`/`elective_subject` keep only the students who chose that
        subject (compared ignoring case).
        """

        raise NotImplementedError

    def distinct_semesters(self, stream: str) -> Sequence[int]:
        raise NotImplementedError

    def count_by_semester(self, *, stream: str, semester: int) -> int:
        raise NotImplementedError

    def snapshot(self, stream: str) -> Sequence[Dict[str, Any]]:
        """Every student document of the stream, whatever the semester, as stored."""

        raise NotImplementedError

    def graduate(self, *, stream: str, semester: int) -> int:
        raise NotImplementedError

    def promote(self, *, stream: str, from_semester: int, to_semester: int, now: datetime) -> int:
        raise NotImplementedError

    def replace_stream(self, stream: str, documents: Sequence[Dict[str, Any]]) -> int:
        """Delete the stream's students and insert `documents` (their `_id` is dropped)."""

        raise NotImplementedError

    def find_by_student_id(self, student_id: str) -> Optional[Student]:
        raise NotImplementedError

    def insert(self, new: NewStudent, *, now: datetime) -> str:
        raise NotImplementedError
