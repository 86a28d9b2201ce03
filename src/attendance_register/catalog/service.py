from __future__ import annotations

from typing import Any, Sequence

from ..common.validators import parse_semester, require_non_empty
from ..core.exceptions import NotFound
from ..students.repository import StudentRepository
from .model import Stream, Subject
from .repository import CatalogRepository


class CatalogService:
    def __init__(self, catalog: CatalogRepository, students: StudentRepository):
        self._catalog = catalog
        self._students = students

    def resolve_stream(self, name_or_code: Any) -> Stream:
        key = require_non_empty(name_or_code, "stream")
        stream = self._catalog.find_stream(key)
        if not stream:
            raise NotFound(f"Stream {key} not found")
        return stream

    def list_streams(self) -> Sequence[Stream]:
        return self._catalog.list_active_streams()

    def semesters_of(self, stream: Any) -> Sequence[int]:
        """Semesters that currently have active students in the stream."""
        return [s for s in self._students.distinct_semesters(require_non_empty(stream, "stream")) if s > 0]

    def subjects_of(self, *, stream: Any, semester: Any) -> tuple[Stream | None, Sequence[Subject]]:
        """Subjects are filed under the stream's canonical name; an unknown stream has none."""
        semester_no = parse_semester(semester)
        found = self._catalog.find_stream(require_non_empty(stream, "stream"))
        if not found:
            return None, []
        return found, self._catalog.list_subjects(stream=found.name, semester=semester_no)
