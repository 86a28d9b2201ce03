from __future__ import annotations

from typing import Any, Dict, Iterable, Mapping, Optional, Sequence

from pymongo import ASCENDING, DESCENDING, ReturnDocument, UpdateOne
from pymongo.errors import BulkWriteError

from ..common.datetime_utils import utcnow
from ..database.connection import DatabaseConnection
from ..database.mongo_base import ci_exact, store_errors, to_object_id
from .model import (
    AttendanceUpdate,
    BulkWriteOutcome,
    NewSession,
    Session,
    SessionFilter,
    SessionOrder,
    SubjectTotals,
)
from .repository import SessionRepository

_SORTS = {
    SessionOrder.CHRONOLOGICAL: [("date", ASCENDING), ("startMinutes", ASCENDING), ("time", ASCENDING)],
    SessionOrder.NEWEST_FIRST: [("createdAt", DESCENDING)],
}


def _to_session(d: Dict[str, Any]) -> Session:
    return Session(
        session_id=str(d["_id"]),
        stream=d.get("stream", ""),
        semester=int(d.get("semester") or 0),
        subject=d.get("subject", ""),
        date=d["date"],
        time=d.get("time", ""),
        students_present=tuple(str(s) for s in (d.get("studentsPresent") or ())),
        total_students=int(d.get("totalStudents") or 0),
        present_count=int(d.get("presentCount") or 0),
        absent_count=int(d.get("absentCount") or 0),
        start_minutes=d.get("startMinutes"),
        created_at=d.get("createdAt"),
        updated_at=d.get("updatedAt"),
    )


def _to_query(flt: SessionFilter) -> Dict[str, Any]:
    query: Dict[str, Any] = {}
    if flt.stream:
        query["stream"] = ci_exact(flt.stream)
    if flt.semester is not None:
        query["semester"] = int(flt.semester)
    if flt.subject:
        query["subject"] = ci_exact(flt.subject)
    if flt.time:
        query["time"] = flt.time
    if flt.date_from or flt.date_to:
        date_q: Dict[str, Any] = {}
        if flt.date_from:
            date_q["$gte"] = flt.date_from
        if flt.date_to:
            date_q["$lt"] = flt.date_to
        query["date"] = date_q
    return query


class MongoSessionRepository(SessionRepository):
    def __init__(self, conn: DatabaseConnection, *, collection: str = "attendance"):
        self._conn = conn
        self._collection_name = collection

    @property
    def _col(self):
        return self._conn.db[self._collection_name]

    def insert(self, new: NewSession) -> str:
        now = utcnow()
        doc = {
            "stream": new.stream,
            "semester": new.semester,
            "subject": new.subject,
            "date": new.date,
            "time": new.time,
            "startMinutes": new.start_minutes,
            "studentsPresent": list(new.students_present),
            "totalStudents": new.total_students,
            "presentCount": new.present_count,
            "absentCount": new.absent_count,
            "createdAt": now,
            "updatedAt": now,
        }
        with store_errors("insert session"):
            res = self._col.insert_one(doc)
        return str(res.inserted_id)

    def get(self, session_id: str) -> Optional[Session]:
        oid = to_object_id(session_id)
        with store_errors("get session"):
            d = self._col.find_one({"_id": oid})
        return _to_session(d) if d else None

    def update(self, session_id: str, fields: Mapping[str, object]) -> Optional[Session]:
        oid = to_object_id(session_id)
        with store_errors("update session"):
            d = self._col.find_one_and_update(
                {"_id": oid},
                {"$set": {**fields, "updatedAt": utcnow()}},
                return_document=ReturnDocument.AFTER,
            )
        return _to_session(d) if d else None

    def delete(self, session_id: str) -> Optional[Session]:
        oid = to_object_id(session_id)
        with store_errors("delete session"):
            d = self._col.find_one_and_delete({"_id": oid})
        return _to_session(d) if d else None

    def delete_many(self, session_ids: Iterable[str]) -> int:
        oids = [to_object_id(s) for s in session_ids]
        if not oids:
            return 0
        with store_errors("delete sessions"):
            res = self._col.delete_many({"_id": {"$in": oids}})
        return int(res.deleted_count)

    def delete_matching(self, flt: SessionFilter) -> int:
        with store_errors("delete sessions by range"):
            res = self._col.delete_many(_to_query(flt))
        return int(res.deleted_count)

    def find(
        self,
        flt: SessionFilter,
        *,
        order: SessionOrder = SessionOrder.CHRONOLOGICAL,
        skip: int = 0,
        limit: Optional[int] = None,
        include_students: bool = True,
    ) -> Sequence[Session]:
        projection = None if include_students else {"studentsPresent": 0}
        with store_errors("find sessions"):
            cursor = self._col.find(_to_query(flt), projection).sort(_SORTS[order])
            if skip:
                cursor = cursor.skip(int(skip))
            if limit:
                cursor = cursor.limit(int(limit))
            return [_to_session(d) for d in cursor]

    def count(self, flt: SessionFilter) -> int:
        with store_errors("count sessions"):
            return int(self._col.count_documents(_to_query(flt)))

    def streams_for(self, session_ids: Iterable[str]) -> set[str]:
        oids = [to_object_id(s) for s in session_ids]
        if not oids:
            return set()
        with store_errors("lookup session streams"):
            return {str(s) for s in self._col.distinct("stream", {"_id": {"$in": oids}})}

    def set_attendance_many(self, updates: Sequence[AttendanceUpdate]) -> BulkWriteOutcome:
        if not updates:
            return BulkWriteOutcome(matched=0, modified=0)

        now = utcnow()
        ops = [
            UpdateOne({"_id": to_object_id(u.session_id)}, {"$set": {**u.as_fields(), "updatedAt": now}})
            for u in updates
        ]
        with store_errors("bulk update sessions"):
            try:
                res = self._col.bulk_write(ops, ordered=False)
            except BulkWriteError as e:
                details = e.details or {}
                failed = tuple(updates[err["index"]].session_id for err in details.get("writeErrors", []))
                return BulkWriteOutcome(
                    matched=int(details.get("nMatched", 0)),
                    modified=int(details.get("nModified", 0)),
                    failed_ids=failed,
                )
        return BulkWriteOutcome(matched=int(res.matched_count), modified=int(res.modified_count))

    def totals_by_subject(self, *, stream: str, semester: int) -> Sequence[SubjectTotals]:
        rated = {"$gt": ["$totalStudents", 0]}
        pipeline = [
            {"$match": {"stream": ci_exact(stream), "semester": int(semester)}},
            # spelling shown is the one of the earliest session
            {"$sort": {"date": 1, "startMinutes": 1, "time": 1}},
            {
                "$group": {
                    "_id": {"$toLower": "$subject"},
                    "subject": {"$first": "$subject"},
                    "totalClasses": {"$sum": 1},
                    "totalPresent": {"$sum": "$presentCount"},
                    "totalAbsent": {"$sum": "$absentCount"},
                    "ratioSum": {
                        "$sum": {"$cond": [rated, {"$divide": ["$presentCount", "$totalStudents"]}, 0]}
                    },
                    "ratedClasses": {"$sum": {"$cond": [rated, 1, 0]}},
                }
            },
            {"$sort": {"_id": 1}},
        ]
        with store_errors("aggregate sessions by subject"):
            rows = list(self._col.aggregate(pipeline))
        return [
            SubjectTotals(
                subject=str(r["subject"]),
                total_classes=int(r["totalClasses"]),
                total_present=int(r["totalPresent"]),
                total_absent=int(r["totalAbsent"]),
                ratio_sum=float(r["ratioSum"]),
                rated_classes=int(r["ratedClasses"]),
            )
            for r in rows
        ]
