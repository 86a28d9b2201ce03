from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Dict, Optional, Sequence

from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError

from ..core.enums import WorkList
from ..database.connection import DatabaseConnection
from ..database.mongo_base import ci_exact, store_errors
from .model import TeacherProfile, WorkItem
from .repository import TeacherRepository

logger = logging.getLogger(__name__)


def _to_item(kind: WorkList, d: Dict[str, Any]) -> WorkItem:
    return WorkItem(
        item_id=str(d.get("id", "")),
        stream=str(d.get("stream", "")),
        semester=int(d.get("semester") or 0),
        subject=str(d.get("subject", "")),
        timestamp=str(d.get(kind.timestamp_field) or ""),
        teacher_email=d.get("teacherEmail"),
    )


def _to_profile(d: Dict[str, Any]) -> TeacherProfile:
    return TeacherProfile(
        email=d["email"],
        name=d.get("name") or d["email"].split("@")[0],
        firebase_uid=d.get("firebaseUid"),
        lists={kind: tuple(_to_item(kind, i) for i in (d.get(kind.value) or ())) for kind in WorkList},
        created_at=d.get("createdAt"),
        updated_at=d.get("updatedAt"),
        last_queue_update=d.get("lastQueueUpdate"),
    )


class MongoTeacherRepository(TeacherRepository):
    def __init__(self, conn: DatabaseConnection, *, collection: str = "teachers"):
        self._conn = conn
        self._collection_name = collection

    @property
    def _col(self):
        return self._conn.db[self._collection_name]

    def upsert_profile(self, *, email: str, firebase_uid: str, name: str, now: datetime) -> TeacherProfile:
        with store_errors("save teacher profile"):
            self._col.update_one(
                {"email": email},
                {
                    "$set": {"firebaseUid": firebase_uid, "name": name, "email": email, "updatedAt": now},
                    "$setOnInsert": {"createdAt": now},
                },
                upsert=True,
            )
        self.ensure_fields(email, now=now, create=False)
        return self.find_by_email(email)

    def ensure_fields(self, email: str, *, now: datetime, create: bool = True) -> None:
        with store_errors("ensure teacher fields"):
            if create:
                try:
                    self._col.update_one(
                        {"email": email},
                        {"$setOnInsert": {"email": email, "createdAt": now, "updatedAt": now}},
                        upsert=True,
                    )
                except DuplicateKeyError:
                    # a concurrent first contact inserted it
                    logger.debug(f"teacher {email} created concurrently")
            for kind in WorkList:
                # {field: None} matches both a missing field and an explicit null
                self._col.update_one({"email": email, kind.value: None}, {"$set": {kind.value: []}})

    def find_by_uid(self, firebase_uid: str) -> Optional[TeacherProfile]:
        with store_errors("find teacher"):
            d = self._col.find_one({"firebaseUid": firebase_uid})
        return _to_profile(d) if d else None

    def find_by_email(self, email: str) -> Optional[TeacherProfile]:
        with store_errors("find teacher"):
            d = self._col.find_one({"email": email})
        return _to_profile(d) if d else None

    def push_item(self, email: str, kind: WorkList, item: WorkItem, *, unique_by_class: bool, now: datetime) -> bool:
        if unique_by_class:
            absent = {
                kind.value: {
                    "$not": {
                        "$elemMatch": {
                            "stream": ci_exact(item.stream),
                            "semester": item.semester,
                            "subject": ci_exact(item.subject),
                        }
                    }
                }
            }
        else:
            absent = {f"{kind.value}.id": {"$ne": item.item_id}}

        with store_errors(f"append to {kind.value}"):
            res = self._col.update_one(
                {"email": email, **absent},
                {"$push": {kind.value: item.to_dict(kind)}, "$set": {"updatedAt": now}},
            )
        return res.matched_count == 1

    def pull_item(self, email: str, kind: WorkList, item_id: str, *, now: datetime) -> Optional[TeacherProfile]:
        with store_errors(f"remove from {kind.value}"):
            d = self._col.find_one_and_update(
                {"email": email},
                {"$pull": {kind.value: {"id": item_id}}, "$set": {"updatedAt": now}},
                return_document=ReturnDocument.AFTER,
            )
        return _to_profile(d) if d else None

    def replace_items(self, email: str, kind: WorkList, items: Sequence[WorkItem], *, now: datetime) -> TeacherProfile:
        fields: Dict[str, Any] = {kind.value: [i.to_dict(kind) for i in items], "updatedAt": now}
        if kind is WorkList.QUEUE:
            fields["lastQueueUpdate"] = now
        with store_errors(f"replace {kind.value}"):
            d = self._col.find_one_and_update(
                {"email": email},
                {"$set": fields},
                return_document=ReturnDocument.AFTER,
            )
        return _to_profile(d)
