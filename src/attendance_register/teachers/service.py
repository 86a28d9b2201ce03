from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Mapping, Optional, Sequence

from ..common.datetime_utils import utcnow
from ..common.validators import parse_semester, require_non_empty
from ..core.enums import WorkList
from ..core.exceptions import Conflict, NotFound, ValidationError
from .model import TeacherProfile, TeacherStats, WorkItem
from .repository import TeacherRepository

logger = logging.getLogger(__name__)

# completed classes repeat legitimately, so only their ids must differ
_UNIQUE_BY_CLASS = {
    WorkList.SUBJECTS: True,
    WorkList.QUEUE: True,
    WorkList.COMPLETED: False,
}


def parse_work_item(kind: WorkList, data: Any, *, teacher_email: str, now: datetime) -> WorkItem:
    if not isinstance(data, Mapping):
        raise ValidationError(f"Invalid {kind.value} entry")

    missing = [name for name in ("id", "stream", "semester", "subject") if data.get(name) in (None, "")]
    if missing:
        raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    return WorkItem(
        item_id=str(data["id"]).strip(),
        stream=require_non_empty(data["stream"], "stream"),
        semester=parse_semester(data["semester"]),
        subject=require_non_empty(data["subject"], "subject"),
        timestamp=str(data.get(kind.timestamp_field) or now.isoformat()),
        teacher_email=str(data.get("teacherEmail") or teacher_email),
    )


class TeacherService:
    def __init__(self, teachers: TeacherRepository):
        self._teachers = teachers

    def save_profile(self, *, firebase_uid: Any, email: Any, name: Any = None, now: Optional[datetime] = None) -> TeacherProfile:
        uid = require_non_empty(firebase_uid, "firebaseUid")
        address = require_non_empty(email, "email")
        display = str(name).strip() if name else address.split("@")[0]

        profile = self._teachers.upsert_profile(email=address, firebase_uid=uid, name=display, now=now or utcnow())
        logger.info(f"[TEACHER] profile saved for {address}")
        return profile

    def profile_by_uid(self, firebase_uid: Any) -> TeacherProfile:
        profile = self._teachers.find_by_uid(require_non_empty(firebase_uid, "firebaseUid"))
        if not profile:
            raise NotFound("Teacher not found")
        return profile

    def profile_by_email(self, email: Any) -> TeacherProfile:
        profile = self._teachers.find_by_email(require_non_empty(email, "email"))
        if not profile:
            raise NotFound("Teacher not found")
        return profile

    def ensure_fields(self, email: Any, *, now: Optional[datetime] = None) -> None:
        """Idempotent: creates missing lists as empty, never touches populated ones."""
        self._teachers.ensure_fields(require_non_empty(email, "email"), now=now or utcnow())

    def list_items(self, email: Any, kind: WorkList, *, limit: Optional[int] = None) -> Sequence[WorkItem]:
        """Entries of one list; an unknown teacher simply has none.

        Completed classes come newest first.
        """

        profile = self._teachers.find_by_email(require_non_empty(email, "email"))
        if not profile:
            return []

        items = list(profile.items(kind))
        if kind is WorkList.COMPLETED:
            items.sort(key=lambda i: i.timestamp, reverse=True)
        if limit is not None and limit > 0:
            items = items[:limit]
        return items

    def append(self, email: Any, kind: WorkList, data: Any, *, now: Optional[datetime] = None) -> TeacherProfile:
        address = require_non_empty(email, "teacherEmail")
        now = now or utcnow()
        item = parse_work_item(kind, data, teacher_email=address, now=now)

        self._teachers.ensure_fields(address, now=now)
        if not self._teachers.push_item(address, kind, item, unique_by_class=_UNIQUE_BY_CLASS[kind], now=now):
            if _UNIQUE_BY_CLASS[kind]:
                raise Conflict(f"{item.stream} semester {item.semester} {item.subject} is already in {kind.value}")
            raise Conflict(f"Entry {item.item_id} is already in {kind.value}")

        logger.info(f"[TEACHER] {address}: added {item.item_id} to {kind.value}")
        return self._teachers.find_by_email(address)

    def remove(self, email: Any, kind: WorkList, item_id: Any, *, now: Optional[datetime] = None) -> TeacherProfile:
        address = require_non_empty(email, "teacherEmail")
        entry = require_non_empty(item_id, "id")
        now = now or utcnow()

        self._teachers.ensure_fields(address, now=now, create=False)
        profile = self._teachers.pull_item(address, kind, entry, now=now)
        if not profile:
            raise NotFound("Teacher not found")
        logger.info(f"[TEACHER] {address}: removed {entry} from {kind.value}")
        return profile

    def save_queue(self, email: Any, items: Any, *, now: Optional[datetime] = None) -> TeacherProfile:
        """Replace the whole attendance queue."""

        address = require_non_empty(email, "teacherEmail")
        if not isinstance(items, list):
            raise ValidationError("Queue data must be an array")
        now = now or utcnow()

        parsed = [parse_work_item(WorkList.QUEUE, i, teacher_email=address, now=now) for i in items]
        keys = [p.class_key for p in parsed]
        if len(set(keys)) != len(keys):
            raise ValidationError("Queue data lists the same class more than once")

        self._teachers.ensure_fields(address, now=now)
        profile = self._teachers.replace_items(address, WorkList.QUEUE, parsed, now=now)
        logger.info(f"[TEACHER] {address}: queue saved ({len(parsed)} items)")
        return profile

    def stats(self, email: Any) -> TeacherStats:
        profile = self.profile_by_email(email)
        return TeacherStats(
            total_subjects=len(profile.items(WorkList.SUBJECTS)),
            queue_length=len(profile.items(WorkList.QUEUE)),
            completed_classes=len(profile.items(WorkList.COMPLETED)),
            last_active=profile.updated_at,
        )
