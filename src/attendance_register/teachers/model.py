from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional

from ..core.enums import WorkList


@dataclass(frozen=True)
class WorkItem:
    """An entry of one of a teacher's work lists.

    `item_id` is generated by the client and only unique within its list. `timestamp`
    is kept as the client sent it and is stored under the list's own field name
    (createdAt, addedAt or completedAt).
    """

    item_id: str
    stream: str
    semester: int
    subject: str
    timestamp: str
    teacher_email: Optional[str] = None

    @property
    def class_key(self) -> tuple[str, int, str]:
        return (self.stream.lower(), self.semester, self.subject.lower())

    def to_dict(self, kind: WorkList) -> dict:
        out: dict[str, Any] = {
            "id": self.item_id,
            "stream": self.stream,
            "semester": self.semester,
            "subject": self.subject,
            kind.timestamp_field: self.timestamp,
        }
        if self.teacher_email:
            out["teacherEmail"] = self.teacher_email
        return out


@dataclass(frozen=True)
class TeacherProfile:
    email: str
    name: str
    firebase_uid: Optional[str] = None
    lists: dict[WorkList, tuple[WorkItem, ...]] = field(default_factory=dict)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    last_queue_update: Optional[datetime] = None

    def items(self, kind: WorkList) -> tuple[WorkItem, ...]:
        return self.lists.get(kind, ())

    def to_dict(self) -> dict:
        out: dict[str, Any] = {
            "firebaseUid": self.firebase_uid,
            "email": self.email,
            "name": self.name,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
            "updatedAt": self.updated_at.isoformat() if self.updated_at else None,
            "lastQueueUpdate": self.last_queue_update.isoformat() if self.last_queue_update else None,
        }
        for kind in WorkList:
            out[kind.value] = [i.to_dict(kind) for i in self.items(kind)]
        return out


@dataclass(frozen=True)
class TeacherStats:
    total_subjects: int
    queue_length: int
    completed_classes: int
    last_active: Optional[datetime]

    def to_dict(self) -> dict:
        return {
            "totalSubjects": self.total_subjects,
            "queueLength": self.queue_length,
            "completedClasses": self.completed_classes,
            "lastActive": self.last_active.isoformat() if self.last_active else None,
        }
