from __future__ import annotations

import copy
import itertools
from collections import Counter
from dataclasses import replace
from datetime import datetime, timedelta
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

import pytest

from attendance_register.cache.result_cache import ResultCache
from attendance_register.catalog.model import Stream, Subject
from attendance_register.container import wire
from attendance_register.core.enums import WorkList
from attendance_register.core.exceptions import StoreError
from attendance_register.promotion.model import PromotionBackup
from attendance_register.sessions.model import (
    AttendanceUpdate,
    BulkWriteOutcome,
    NewSession,
    Session,
    SessionFilter,
    SessionOrder,
    SubjectTotals,
)
from attendance_register.students.model import NewStudent, Student
from attendance_register.teachers.model import TeacherProfile, WorkItem

_FIELD_NAMES = {
    "stream": "stream",
    "semester": "semester",
    "subject": "subject",
    "date": "date",
    "time": "time",
    "startMinutes": "start_minutes",
    "studentsPresent": "students_present",
    "totalStudents": "total_students",
    "presentCount": "present_count",
    "absentCount": "absent_count",
}


def _same(a: Optional[str], b: Optional[str]) -> bool:
    return (a or "").strip().lower() == (b or "").strip().lower()


class FakeSessionsRepo:
    def __init__(self):
        self._rows: Dict[str, Session] = {}
        self._ids = itertools.count(1)
        self._created = datetime(2025, 1, 1, 8, 0, 0)
        self.calls: Counter = Counter()
        self.fail_ids: set[str] = set()

    def _matches(self, s: Session, flt: SessionFilter) -> bool:
        if flt.stream and not _same(s.stream, flt.stream):
            return False
        if flt.semester is not None and s.semester != flt.semester:
            return False
        if flt.subject and not _same(s.subject, flt.subject):
            return False
        if flt.time and s.time != flt.time:
            return False
        if flt.date_from and s.date < flt.date_from:
            return False
        if flt.date_to and s.date >= flt.date_to:
            return False
        return True

    def insert(self, new: NewSession) -> str:
        session_id = f"{next(self._ids):024x}"
        created = self._created + timedelta(seconds=len(self._rows))
        self._rows[session_id] = Session(
            session_id=session_id,
            stream=new.stream,
            semester=new.semester,
            subject=new.subject,
            date=new.date,
            time=new.time,
            students_present=new.students_present,
            total_students=new.total_students,
            present_count=new.present_count,
            absent_count=new.absent_count,
            start_minutes=new.start_minutes,
            created_at=created,
            updated_at=created,
        )
        return session_id

    def get(self, session_id: str) -> Optional[Session]:
        return self._rows.get(session_id)

    def update(self, session_id: str, fields: Mapping[str, object]) -> Optional[Session]:
        current = self._rows.get(session_id)
        if not current:
            return None
        changes = {_FIELD_NAMES[k]: v for k, v in fields.items()}
        if "students_present" in changes:
            changes["students_present"] = tuple(changes["students_present"])
        self._rows[session_id] = replace(current, **changes)
        return self._rows[session_id]

    def delete(self, session_id: str) -> Optional[Session]:
        return self._rows.pop(session_id, None)

    def delete_many(self, session_ids: Iterable[str]) -> int:
        return sum(1 for s in list(session_ids) if self._rows.pop(s, None))

    def delete_matching(self, flt: SessionFilter) -> int:
        doomed = [k for k, s in self._rows.items() if self._matches(s, flt)]
        for k in doomed:
            del self._rows[k]
        return len(doomed)

    def find(
        self,
        flt: SessionFilter,
        *,
        order: SessionOrder = SessionOrder.CHRONOLOGICAL,
        skip: int = 0,
        limit: Optional[int] = None,
        include_students: bool = True,
    ) -> Sequence[Session]:
        self.calls["find"] += 1
        rows = [s for s in self._rows.values() if self._matches(s, flt)]
        if order is SessionOrder.CHRONOLOGICAL:
            rows.sort(key=lambda s: s.sort_key)
        else:
            rows.sort(key=lambda s: s.created_at, reverse=True)
        rows = rows[skip:]
        if limit:
            rows = rows[:limit]
        if not include_students:
            rows = [replace(s, students_present=()) for s in rows]
        return rows

    def count(self, flt: SessionFilter) -> int:
        return sum(1 for s in self._rows.values() if self._matches(s, flt))

    def streams_for(self, session_ids: Iterable[str]) -> set[str]:
        return {self._rows[s].stream for s in session_ids if s in self._rows}

    def set_attendance_many(self, updates: Sequence[AttendanceUpdate]) -> BulkWriteOutcome:
        matched = modified = 0
        failed = []
        for u in updates:
            if u.session_id in self.fail_ids:
                failed.append(u.session_id)
                continue
            current = self._rows.get(u.session_id)
            if not current:
                continue
            matched += 1
            updated = self.update(u.session_id, u.as_fields())
            if updated != current:
                modified += 1
        return BulkWriteOutcome(matched=matched, modified=modified, failed_ids=tuple(failed))

    def totals_by_subject(self, *, stream: str, semester: int) -> Sequence[SubjectTotals]:
        self.calls["totals_by_subject"] += 1
        groups: Dict[str, List[Session]] = {}
        for s in sorted(self._rows.values(), key=lambda s: s.sort_key):
            if _same(s.stream, stream) and s.semester == semester:
                groups.setdefault(s.subject.lower(), []).append(s)
        out = []
        for key in sorted(groups):
            rows = groups[key]
            rated = [s for s in rows if s.total_students > 0]
            out.append(
                SubjectTotals(
                    subject=rows[0].subject,
                    total_classes=len(rows),
                    total_present=sum(s.present_count for s in rows),
                    total_absent=sum(s.absent_count for s in rows),
                    ratio_sum=sum(s.present_count / s.total_students for s in rated),
                    rated_classes=len(rated),
                )
            )
        return out


class FakeStudentsRepo:
    def __init__(self):
        self.docs: List[Dict[str, Any]] = []
        self._ids = itertools.count(1)
        self.fail_list = False
        self.calls: Counter = Counter()

    def add(
        self,
        student_id: str,
        name: str,
        stream: str,
        semester: int,
        *,
        is_active: bool = True,
        language_subject: Optional[str] = None,
        elective_subject: Optional[str] = None,
    ) -> None:
        self.docs.append(
            {
                "_id": f"stu{next(self._ids)}",
                "studentID": student_id,
                "name": name,
                "stream": stream,
                "semester": semester,
                "rollNumber": student_id[-2:],
                "isActive": is_active,
                "languageSubject": language_subject,
                "electiveSubject": elective_subject,
            }
        )

    @staticmethod
    def _to_student(d: Dict[str, Any]) -> Student:
        return Student(
            student_id=d["studentID"],
            name=d["name"],
            stream=d["stream"],
            semester=d["semester"],
            roll_number=d.get("rollNumber"),
            is_active=d.get("isActive", True),
            parent_phone=d.get("parentPhone"),
            language_subject=d.get("languageSubject"),
            elective_subject=d.get("electiveSubject"),
        )

    def list_active(
        self,
        *,
        stream: str,
        semester: int,
        language_subject: Optional[str] = None,
        elective_subject: Optional[str] = None,
    ) -> Sequence[Student]:
        self.calls["list_active"] += 1
        if self.fail_list:
            raise StoreError("list roster failed")
        rows = [
            d for d in self.docs if _same(d["stream"], stream) and d["semester"] == semester and d.get("isActive")
        ]
        if language_subject:
            rows = [d for d in rows if _same(d.get("languageSubject"), language_subject)]
        if elective_subject:
            rows = [d for d in rows if _same(d.get("electiveSubject"), elective_subject)]
        return [self._to_student(d) for d in sorted(rows, key=lambda d: d["studentID"])]

    def distinct_semesters(self, stream: str) -> Sequence[int]:
        return sorted({d["semester"] for d in self.docs if _same(d["stream"], stream) and d.get("isActive")})

    def count_by_semester(self, *, stream: str, semester: int) -> int:
        return sum(1 for d in self.docs if d["stream"] == stream and d["semester"] == semester)

    def snapshot(self, stream: str) -> Sequence[Dict[str, Any]]:
        return [copy.deepcopy(d) for d in self.docs if d["stream"] == stream]

    def graduate(self, *, stream: str, semester: int) -> int:
        before = len(self.docs)
        self.docs = [d for d in self.docs if not (d["stream"] == stream and d["semester"] == semester)]
        return before - len(self.docs)

    def promote(self, *, stream: str, from_semester: int, to_semester: int, now: datetime) -> int:
        moved = 0
        for d in self.docs:
            if d["stream"] == stream and d["semester"] == from_semester:
                d["semester"] = to_semester
                d["updatedAt"] = now
                moved += 1
        return moved

    def replace_stream(self, stream: str, documents: Sequence[Dict[str, Any]]) -> int:
        self.docs = [d for d in self.docs if d["stream"] != stream]
        for doc in documents:
            restored = {k: v for k, v in copy.deepcopy(doc).items() if k != "_id"}
            restored["_id"] = f"stu{next(self._ids)}"
            self.docs.append(restored)
        return len(documents)

    def find_by_student_id(self, student_id: str) -> Optional[Student]:
        for d in self.docs:
            if d["studentID"] == student_id:
                return self._to_student(d)
        return None

    def insert(self, new: NewStudent, *, now: datetime) -> str:
        doc_id = f"stu{next(self._ids)}"
        self.docs.append({"_id": doc_id, **new.to_dict(), "createdAt": now, "updatedAt": now})
        return doc_id

    def roster(self, stream: str) -> set[tuple[str, int]]:
        return {(d["studentID"], d["semester"]) for d in self.docs if d["stream"] == stream}


class FakeCatalogRepo:
    def __init__(self, streams: Sequence[Stream] = (), subjects: Sequence[Subject] = ()):
        self.streams = list(streams)
        self.subjects = list(subjects)

    def find_stream(self, name_or_code: str) -> Optional[Stream]:
        for s in self.streams:
            if _same(s.name, name_or_code) or _same(s.stream_code, name_or_code):
                return s
        return None

    def list_active_streams(self) -> Sequence[Stream]:
        return sorted((s for s in self.streams if s.is_active), key=lambda s: s.name)

    def list_subjects(self, *, stream: str, semester: int) -> Sequence[Subject]:
        return [s for s in self.subjects if _same(s.stream, stream) and s.semester == semester]

    def find_subject(self, *, stream: str, semester: int, name: str) -> Optional[Subject]:
        for s in self.list_subjects(stream=stream, semester=semester):
            if _same(s.name, name):
                return s
        return None


class FakeBackupsRepo:
    def __init__(self):
        self.rows: List[PromotionBackup] = []
        self._ids = itertools.count(1)
        self.fail_insert = False

    def insert(self, *, stream: str, timestamp: datetime, students: Sequence[Dict[str, Any]]) -> str:
        if self.fail_insert:
            raise StoreError("write promotion backup failed")
        backup_id = f"bak{next(self._ids)}"
        self.rows.append(
            PromotionBackup(
                backup_id=backup_id,
                stream=stream,
                timestamp=timestamp,
                students=tuple(copy.deepcopy(list(students))),
            )
        )
        return backup_id

    def latest(self, stream: str) -> Optional[PromotionBackup]:
        rows = [b for b in self.rows if b.stream == stream]
        return max(rows, key=lambda b: b.timestamp) if rows else None

    def mark_restored(self, backup_id: str, *, at: datetime) -> bool:
        for i, b in enumerate(self.rows):
            if b.backup_id == backup_id and not b.restored:
                self.rows[i] = replace(b, restored=True, restored_at=at)
                return True
        return False


class FakeTeachersRepo:
    def __init__(self):
        self.docs: Dict[str, Dict[str, Any]] = {}

    def _profile(self, d: Dict[str, Any]) -> TeacherProfile:
        return TeacherProfile(
            email=d["email"],
            name=d.get("name") or d["email"].split("@")[0],
            firebase_uid=d.get("firebaseUid"),
            lists={kind: tuple(d.get(kind.value) or ()) for kind in WorkList},
            created_at=d.get("createdAt"),
            updated_at=d.get("updatedAt"),
            last_queue_update=d.get("lastQueueUpdate"),
        )

    def upsert_profile(self, *, email: str, firebase_uid: str, name: str, now: datetime) -> TeacherProfile:
        d = self.docs.setdefault(email, {"email": email, "createdAt": now})
        d.update({"firebaseUid": firebase_uid, "name": name, "updatedAt": now})
        self.ensure_fields(email, now=now, create=False)
        return self._profile(d)

    def ensure_fields(self, email: str, *, now: datetime, create: bool = True) -> None:
        if email not in self.docs:
            if not create:
                return
            self.docs[email] = {"email": email, "createdAt": now, "updatedAt": now}
        d = self.docs[email]
        for kind in WorkList:
            if d.get(kind.value) is None:
                d[kind.value] = []

    def find_by_uid(self, firebase_uid: str) -> Optional[TeacherProfile]:
        for d in self.docs.values():
            if d.get("firebaseUid") == firebase_uid:
                return self._profile(d)
        return None

    def find_by_email(self, email: str) -> Optional[TeacherProfile]:
        d = self.docs.get(email)
        return self._profile(d) if d else None

    def push_item(self, email: str, kind: WorkList, item: WorkItem, *, unique_by_class: bool, now: datetime) -> bool:
        d = self.docs.get(email)
        if d is None:
            return False
        items: list = d[kind.value]
        if unique_by_class and any(i.class_key == item.class_key for i in items):
            return False
        if not unique_by_class and any(i.item_id == item.item_id for i in items):
            return False
        items.append(item)
        d["updatedAt"] = now
        return True

    def pull_item(self, email: str, kind: WorkList, item_id: str, *, now: datetime) -> Optional[TeacherProfile]:
        d = self.docs.get(email)
        if d is None:
            return None
        d[kind.value] = [i for i in d[kind.value] if i.item_id != item_id]
        d["updatedAt"] = now
        return self._profile(d)

    def replace_items(self, email: str, kind: WorkList, items: Sequence[WorkItem], *, now: datetime) -> TeacherProfile:
        d = self.docs[email]
        d[kind.value] = list(items)
        d["updatedAt"] = now
        if kind is WorkList.QUEUE:
            d["lastQueueUpdate"] = now
        return self._profile(d)


class FakeClock:
    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def fixed_now() -> datetime:
    return datetime(2025, 1, 12, 9, 0, 0)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def cache(clock) -> ResultCache:
    return ResultCache(ttl_seconds=300, clock=clock)


@pytest.fixture
def sessions_repo() -> FakeSessionsRepo:
    return FakeSessionsRepo()


@pytest.fixture
def students_repo() -> FakeStudentsRepo:
    students = FakeStudentsRepo()
    for sid, name in (("S1", "Asha"), ("S2", "Bilal"), ("S3", "Chitra")):
        students.add(sid, name, "BCA", 2)
    return students


@pytest.fixture
def catalog_repo() -> FakeCatalogRepo:
    return FakeCatalogRepo(
        streams=[Stream(name="BCA", stream_code="bca", semesters=6), Stream(name="BCom", stream_code="bcom", semesters=6)],
        subjects=[
            Subject(subject_id="sub1", name="DBMS", code="BCA201", stream="BCA", semester=2),
            Subject(subject_id="sub2", name="Data Structures", code="BCA202", stream="BCA", semester=2),
        ],
    )


@pytest.fixture
def backups_repo() -> FakeBackupsRepo:
    return FakeBackupsRepo()


@pytest.fixture
def teachers_repo() -> FakeTeachersRepo:
    return FakeTeachersRepo()


@pytest.fixture
def container(sessions_repo, students_repo, catalog_repo, backups_repo, teachers_repo, cache):
    return wire(
        sessions_repo=sessions_repo,
        students_repo=students_repo,
        catalog_repo=catalog_repo,
        backups_repo=backups_repo,
        teachers_repo=teachers_repo,
        cache=cache,
    )


@pytest.fixture
def submit(container):
    """Record a BCA semester 2 DBMS session unless told otherwise."""

    def _submit(day: str, present, *, time: str = "10:00 AM - 11:00 AM", total: int = 3, **overrides) -> str:
        fields = {"stream": "BCA", "semester": 2, "subject": "DBMS", **overrides}
        return container.session_service.submit(
            date=day, time=time, students_present=list(present), total_students=total, **fields
        )

    return _submit


@pytest.fixture
def app(container, monkeypatch):
    monkeypatch.setenv("APP_ENV", "testing")
    from attendance_register.main import create_app

    flask_app = create_app(container)
    flask_app.config.update(TESTING=True)
    return flask_app


@pytest.fixture
def client(app):
    return app.test_client()
