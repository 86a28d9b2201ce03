from __future__ import annotations

import logging

from pymongo import ASCENDING, DESCENDING
from pymongo.database import Database

from ..common.datetime_utils import utcnow

logger = logging.getLogger(__name__)


def ensure_indexes(db: Database) -> None:
    """Create the indexes the register and date queries rely on (idempotent)."""

    attendance = db["attendance"]
    attendance.create_index(
        [("stream", ASCENDING), ("semester", ASCENDING), ("subject", ASCENDING), ("date", DESCENDING)],
        name="stream_semester_subject_date",
    )
    attendance.create_index([("date", DESCENDING), ("stream", ASCENDING)], name="date_stream")
    attendance.create_index([("createdAt", DESCENDING)], name="created_at")

    db["students"].create_index(
        [("stream", ASCENDING), ("semester", ASCENDING), ("studentID", ASCENDING)],
        name="stream_semester_student",
    )
    db["students"].create_index([("studentID", ASCENDING)], name="student_id")

    db["promotion_history"].create_index([("stream", ASCENDING), ("timestamp", DESCENDING)], name="stream_timestamp")

    db["teachers"].create_index([("email", ASCENDING)], unique=True, name="email_unique")
    db["teachers"].create_index([("firebaseUid", ASCENDING)], sparse=True, name="firebase_uid")

    logger.info("[BOOTSTRAP] indexes ready")


def ensure_demo_teacher(db: Database, *, email: str, name: str, firebase_uid: str) -> None:
    """Create a teacher profile with empty work lists unless one exists already."""

    now = utcnow()
    db["teachers"].update_one(
        {"email": email},
        {
            "$setOnInsert": {
                "email": email,
                "name": name,
                "firebaseUid": firebase_uid,
                "createdSubjects": [],
                "attendanceQueue": [],
                "completedClasses": [],
                "lastQueueUpdate": now,
                "createdAt": now,
                "updatedAt": now,
            }
        },
        upsert=True,
    )


def list_collections(db: Database) -> list[str]:
    return sorted(db.list_collection_names())
