from __future__ import annotations

from typing import Any, Dict, Optional, Sequence

from pymongo import ASCENDING

from ..core.constants import TOP_SEMESTER
from ..database.connection import DatabaseConnection
from ..database.mongo_base import ci_exact, store_errors
from .model import Stream, Subject
from .repository import CatalogRepository


def _to_stream(d: Dict[str, Any]) -> Stream:
    return Stream(
        name=d.get("name", ""),
        stream_code=d.get("streamCode"),
        semesters=int(d.get("semesters") or TOP_SEMESTER),
        is_active=bool(d.get("isActive", True)),
    )


def _to_subject(d: Dict[str, Any]) -> Subject:
    return Subject(
        subject_id=str(d["_id"]),
        name=d.get("name") or d.get("subjectName") or d.get("subject") or "",
        code=d.get("subjectCode") or d.get("code") or "",
        stream=d.get("stream", ""),
        semester=int(d.get("semester") or 0),
        subject_type=str(d.get("subjectType") or "CORE"),
        is_language_subject=d.get("isLanguageSubject") is True,
    )


class MongoCatalogRepository(CatalogRepository):
    def __init__(self, conn: DatabaseConnection):
        self._conn = conn

    def find_stream(self, name_or_code: str) -> Optional[Stream]:
        query = {"$or": [{"name": ci_exact(name_or_code)}, {"streamCode": ci_exact(name_or_code)}]}
        with store_errors("find stream"):
            d = self._conn.db["streams"].find_one(query)
        return _to_stream(d) if d else None

    def list_active_streams(self) -> Sequence[Stream]:
        with store_errors("list streams"):
            cursor = self._conn.db["streams"].find({"isActive": True}).sort("name", ASCENDING)
            return [_to_stream(d) for d in cursor]

    def list_subjects(self, *, stream: str, semester: int) -> Sequence[Subject]:
        query = {"stream": ci_exact(stream), "semester": int(semester), "isActive": True}
        with store_errors("list subjects"):
            cursor = self._conn.db["subjects"].find(query).sort("name", ASCENDING)
            return [_to_subject(d) for d in cursor]

    def find_subject(self, *, stream: str, semester: int, name: str) -> Optional[Subject]:
        query = {
            "name": ci_exact(name),
            "stream": ci_exact(stream),
            "semester": int(semester),
            "isActive": True,
        }
        with store_errors("find subject"):
            d = self._conn.db["subjects"].find_one(query)
        return _to_subject(d) if d else None
