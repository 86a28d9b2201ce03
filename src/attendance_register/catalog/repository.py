from __future__ import annotations

from typing import Optional, Protocol, Sequence

from .model import Stream, Subject


class CatalogRepository(Protocol):
    def find_stream(self, name_or_code: str) -> Optional[Stream]:
        """Look a stream up by name or streamCode, ignoring case."""

        raise NotImplementedError

    def list_active_streams(self) -> Sequence[Stream]:
        raise NotImplementedError

    def list_subjects(self, *, stream: str, semester: int) -> Sequence[Subject]:
        raise NotImplementedError

    def find_subject(self, *, stream: str, semester: int, name: str) -> Optional[Subject]:
        """Active subject of a stream/semester by name, ignoring case."""

        raise NotImplementedError
