from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Optional, Sequence

from pymongo import ASCENDING

from ..database.connection import DatabaseConnection
from ..database.mongo_base import ci_exact, store_errors, without_id
from .model import NewStudent, Student
from .repository import StudentRepository


def _to_student(d: Dict[str, Any]) -> Student:
    roll = d.get("rollNumber")
    return Student(
        student_id=str(d.get("studentID", "")),
        name=d.get("name", ""),
        stream=d.get("stream", ""),
        semester=int(d.get("semester") or 0),
        roll_number=str(roll) if roll is not None else None,
        is_active=bool(d.get("isActive", True)),
        parent_phone=d.get("parentPhone"),
        language_subject=d.get("languageSubject") or None,
        elective_subject=d.get("electiveSubject") or None,
    )


class MongoStudentRepository(StudentRepository):
    def __init__(self, conn: DatabaseConnection, *, collection: str = "students"):
        self._conn = conn
        self._collection_name = collection

    @property
    def _col(self):
        return self._conn.db[self._collection_name]

    def list_active(
        self,
        *,
        stream: str,
        semester: int,
        language_subject: Optional[str] = None,
        elective_subject: Optional[str] = None,
    ) -> Sequence[Student]:
        query: Dict[str, Any] = {"stream": ci_exact(stream), "semester": int(semester), "isActive": True}
        if language_subject:
            query["languageSubject"] = ci_exact(language_subject)
        if elective_subject:
            query["electiveSubject"] = ci_exact(elective_subject)
        with store_errors("list roster"):
            cursor = self._col.find(query).sort("studentID", ASCENDING)
            return [_to_student(d) for d in cursor]

    def distinct_semesters(self, stream: str) -> Sequence[int]:
        with store_errors("list roster semesters"):
            values = self._col.distinct("semester", {"stream": ci_exact(stream), "isActive": True})
        return sorted(int(v) for v in values if v is not None)

    def count_by_semester(self, *, stream: str, semester: int) -> int:
        with store_errors("count roster"):
            return int(self._col.count_documents({"stream": stream, "semester": int(semester)}))

    def snapshot(self, stream: str) -> Sequence[Dict[str, Any]]:
        with store_errors("snapshot roster"):
            return list(self._col.find({"stream": stream}))

    def graduate(self, *, stream: str, semester: int) -> int:
        with store_errors("graduate students"):
            res = self._col.delete_many({"stream": stream, "semester": int(semester)})
        return int(res.deleted_count)

    def promote(self, *, stream: str, from_semester: int, to_semester: int, now: datetime) -> int:
        with store_errors("promote students"):
            res = self._col.update_many(
                {"stream": stream, "semester": int(from_semester)},
                {"$set": {"semester": int(to_semester), "updatedAt": now}},
            )
        return int(res.modified_count)

    def replace_stream(self, stream: str, documents: Sequence[Dict[str, Any]]) -> int:
        docs = [without_id(d) for d in documents]
        with store_errors("restore roster"):
            self._col.delete_many({"stream": stream})
            if docs:
                self._col.insert_many(docs, ordered=False)
        return len(docs)

    def find_by_student_id(self, student_id: str) -> Optional[Student]:
        with store_errors("find student"):
            d = self._col.find_one({"studentID": student_id})
        return _to_student(d) if d else None

    def insert(self, new: NewStudent, *, now: datetime) -> str:
        doc = {
            "studentID": new.student_id,
            "name": new.name,
            "stream": new.stream,
            "semester": new.semester,
            "parentPhone": new.parent_phone,
            "rollNumber": new.roll_number,
            "languageSubject": new.language_subject,
            "electiveSubject": new.elective_subject,
            "academicYear": new.academic_year,
            "isActive": True,
            "createdAt": now,
            "updatedAt": now,
        }
        with store_errors("insert student"):
            res = self._col.insert_one(doc)
        return str(res.inserted_id)
