from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Optional, Sequence

from pymongo import DESCENDING

from ..database.connection import DatabaseConnection
from ..database.mongo_base import store_errors, to_object_id
from .model import PromotionBackup
from .repository import BackupRepository


class MongoBackupRepository(BackupRepository):
    def __init__(self, conn: DatabaseConnection, *, collection: str = "promotion_history"):
        self._conn = conn
        self._collection_name = collection

    @property
    def _col(self):
        return self._conn.db[self._collection_name]

    def insert(self, *, stream: str, timestamp: datetime, students: Sequence[Dict[str, Any]]) -> str:
        doc = {
            "stream": stream,
            "timestamp": timestamp,
            "students": list(students),
            "totalStudents": len(students),
            "restored": False,
        }
        with store_errors("write promotion backup"):
            res = self._col.insert_one(doc)
        return str(res.inserted_id)

    def latest(self, stream: str) -> Optional[PromotionBackup]:
        with store_errors("find promotion backup"):
            d = self._col.find_one({"stream": stream}, sort=[("timestamp", DESCENDING)])
        if not d:
            return None
        return PromotionBackup(
            backup_id=str(d["_id"]),
            stream=d["stream"],
            timestamp=d["timestamp"],
            students=tuple(d.get("students") or ()),
            restored=bool(d.get("restored", False)),
            restored_at=d.get("restoredAt"),
        )

    def mark_restored(self, backup_id: str, *, at: datetime) -> bool:
        with store_errors("mark promotion backup restored"):
            res = self._col.update_one(
                {"_id": to_object_id(backup_id), "restored": {"$ne": True}},
                {"$set": {"restored": True, "restoredAt": at}},
            )
        return res.modified_count == 1
