from __future__ import annotations

from datetime import datetime
from typing import Optional, Protocol, Sequence

from ..core.enums import WorkList
from .model import TeacherProfile, WorkItem


class TeacherRepository(Protocol):
    def upsert_profile(self, *, email: str, firebase_uid: str, name: str, now: datetime) -> TeacherProfile:
        raise NotImplementedError

    def ensure_fields(self, email: str, *, now: datetime, create: bool = True) -> None:
        """Make sure the three work lists exist as arrays, leaving existing ones alone.

        With `create` the profile itself is inserted when missing.
        """

        raise NotImplementedError

    def find_by_uid(self, firebase_uid: str) -> Optional[TeacherProfile]:
        raise NotImplementedError

    def find_by_email(self, email: str) -> Optional[TeacherProfile]:
        raise NotImplementedError

    def push_item(self, email: str, kind: WorkList, item: WorkItem, *, unique_by_class: bool, now: datetime) -> bool:
        """Append unless a duplicate is already there; False means nothing was written.

        Duplicate means same class (stream, semester, subject) when `unique_by_class`,
        same id otherwise. Check and push are a single conditional update.
        """

        raise NotImplementedError

    def pull_item(self, email: str, kind: WorkList, item_id: str, *, now: datetime) -> Optional[TeacherProfile]:
        raise NotImplementedError

    def replace_items(self, email: str, kind: WorkList, items: Sequence[WorkItem], *, now: datetime) -> TeacherProfile:
        raise NotImplementedError
